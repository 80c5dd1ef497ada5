"""Source instrumentation engine for JavaScript extension bundles."""

from __future__ import annotations

from .engine import patch_source
from .guard import DEFAULT_LOOKAHEAD, MARKER, is_file_instrumented, is_match_instrumented
from .locator import DEFAULT_TARGET_FUNCTIONS, FunctionMatch, Matcher, RegexFunctionLocator
from .params import extract_first_identifier
from .rewriter import Insertion, PatchResult, apply_insertions
from .statement import DEFAULT_SINK, SINK_TEMPLATES, SinkTemplate, get_sink, synthesize_statement

__all__ = [
    "DEFAULT_LOOKAHEAD",
    "DEFAULT_SINK",
    "DEFAULT_TARGET_FUNCTIONS",
    "FunctionMatch",
    "Insertion",
    "MARKER",
    "Matcher",
    "PatchResult",
    "RegexFunctionLocator",
    "SINK_TEMPLATES",
    "SinkTemplate",
    "apply_insertions",
    "extract_first_identifier",
    "get_sink",
    "is_file_instrumented",
    "is_match_instrumented",
    "patch_source",
    "synthesize_statement",
]

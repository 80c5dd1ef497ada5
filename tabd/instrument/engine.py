"""Tie the locator, guard, extractor, synthesizer and rewriter together."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..exceptions import ExtractionError
from ..metadata import ExtensionIdentity
from .guard import DEFAULT_LOOKAHEAD, is_file_instrumented, is_match_instrumented
from .locator import Matcher, RegexFunctionLocator
from .params import extract_first_identifier
from .rewriter import Insertion, PatchResult, apply_insertions
from .statement import SinkTemplate, synthesize_statement

LOGGER = logging.getLogger(__name__)

__all__ = ["patch_source"]

_DEFAULT_MATCHER = RegexFunctionLocator()


def patch_source(
    content: str,
    identity: Optional[ExtensionIdentity] = None,
    *,
    matcher: Optional[Matcher] = None,
    sink: Optional[SinkTemplate] = None,
    lookahead: int = DEFAULT_LOOKAHEAD,
    file_guard: bool = True,
    source: str = "<string>",
) -> PatchResult:
    """Instrument every eligible target function found in ``content``.

    When nothing is patched the returned :class:`PatchResult` carries the very
    same ``content`` object so callers can skip the write entirely.  With
    ``file_guard`` disabled a file that already carries the marker is still
    scanned and only the matches followed by the marker are skipped.
    """

    if file_guard and is_file_instrumented(content):
        LOGGER.info("Patch already exists in %s, skipping", source)
        return PatchResult(content=content, already_instrumented=True)

    matches = (matcher or _DEFAULT_MATCHER).find(content)
    if not matches:
        return PatchResult(content=content)

    result = PatchResult(content=content)
    insertions: List[Insertion] = []
    for match in matches:
        if is_match_instrumented(content, match, lookahead):
            LOGGER.info("Function already patched in %s, skipping", source)
            result.skipped += 1
            continue
        params = match.params(content)
        try:
            var = extract_first_identifier(params)
        except ExtractionError as exc:
            message = f"Could not extract variable from parameters '{params}' in {source}: {exc}"
            LOGGER.warning("Warning: %s", message)
            result.warnings.append(message)
            result.skipped += 1
            continue
        statement = synthesize_statement(var, identity, sink)
        insertions.append(Insertion(offset=match.match_end, text=statement))

    if insertions:
        result.content = apply_insertions(content, insertions)
        result.patch_count = len(insertions)
    return result

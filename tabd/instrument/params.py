"""Recover the first bound parameter name from a raw parameter list."""

from __future__ import annotations

import re

from ..exceptions import ExtractionError

__all__ = ["IDENTIFIER_RE", "extract_first_identifier"]

IDENTIFIER_RE = re.compile(r"^([a-zA-Z_$][a-zA-Z0-9_$]*)")


def extract_first_identifier(params: str) -> str:
    """Return the identifier leading the first comma separated segment.

    The split is lexical: commas inside destructuring patterns are not treated
    specially, so ``"{a, b}, c"`` yields the segment ``"{a"`` and fails.

    >>> extract_first_identifier("item, ctx")
    'item'
    """

    first = params.split(",", 1)[0].strip()
    if not first:
        raise ExtractionError(params, "no parameters found")
    match = IDENTIFIER_RE.match(first)
    if match is None:
        raise ExtractionError(params, f"could not extract variable name from parameter: {first}")
    return match.group(1)

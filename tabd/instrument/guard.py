"""Idempotency checks based on the marker embedded in every injected statement."""

from __future__ import annotations

from .locator import FunctionMatch

__all__ = ["MARKER", "DEFAULT_LOOKAHEAD", "is_file_instrumented", "is_match_instrumented"]

MARKER = "/*tabd*/"

# Characters inspected past a match.  A marker further than this from the
# opening brace goes unnoticed and the function is patched again.
DEFAULT_LOOKAHEAD = 200


def is_file_instrumented(content: str) -> bool:
    """Return ``True`` when the marker appears anywhere in ``content``."""

    return MARKER in content


def is_match_instrumented(content: str, match: FunctionMatch, lookahead: int = DEFAULT_LOOKAHEAD) -> bool:
    """Return ``True`` when the marker occurs shortly after ``match``."""

    if lookahead < 0:
        raise ValueError("lookahead must be non-negative")
    window_end = min(len(content), match.match_end + lookahead)
    return MARKER in content[match.match_start : window_end]

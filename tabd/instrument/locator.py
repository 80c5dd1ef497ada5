"""Locate target function definitions inside JavaScript bundles.

Matching is purely lexical: a target signature is ``name(params){`` with any
amount of whitespace around the parentheses and the brace.  Nothing depends on
line breaks or indentation, so minified bundles are handled the same way as
formatted sources.  Parameter lists may not contain a closing parenthesis;
definitions with nested calls in default values are therefore not matched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

__all__ = [
    "DEFAULT_TARGET_FUNCTIONS",
    "FunctionMatch",
    "Matcher",
    "RegexFunctionLocator",
    "build_signature_pattern",
]

DEFAULT_TARGET_FUNCTIONS: Tuple[str, ...] = (
    "handleDidPartiallyAcceptCompletionItem",
    "handleDidShowCompletionItem",
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


@dataclass(frozen=True)
class FunctionMatch:
    """Offsets of one located signature within the original content.

    ``match_end`` points just past the opening brace, which is also where the
    instrumentation statement is inserted.
    """

    match_start: int
    match_end: int
    params_start: int
    params_end: int
    name: str = ""

    def params(self, content: str) -> str:
        return content[self.params_start : self.params_end]


class Matcher(Protocol):
    """Anything able to report insertion spans for a piece of source text."""

    def find(self, content: str) -> List[FunctionMatch]:  # pragma: no cover - protocol
        ...


def build_signature_pattern(targets: Sequence[str]) -> re.Pattern[str]:
    """Return the compiled signature pattern for ``targets``."""

    names = [name.strip() for name in targets if name and name.strip()]
    if not names:
        raise ValueError("at least one target function name is required")
    for name in names:
        if not _IDENTIFIER_RE.match(name):
            raise ValueError(f"invalid target function name: {name!r}")
    # Longest first so a name that prefixes another one never shadows it.
    alternation = "|".join(re.escape(name) for name in sorted(set(names), key=len, reverse=True))
    return re.compile(rf"(?P<name>{alternation})\s*\((?P<params>[^)]*)\)\s*\{{")


class RegexFunctionLocator:
    """Default :class:`Matcher` backed by a single alternation regex."""

    def __init__(self, targets: Optional[Sequence[str]] = None) -> None:
        self.targets: Tuple[str, ...] = tuple(targets or DEFAULT_TARGET_FUNCTIONS)
        self.pattern = build_signature_pattern(self.targets)

    def mentions_target(self, content: str) -> bool:
        return any(name in content for name in self.targets)

    def find(self, content: str) -> List[FunctionMatch]:
        if not self.mentions_target(content):
            return []
        return [
            FunctionMatch(
                match_start=match.start(),
                match_end=match.end(),
                params_start=match.start("params"),
                params_end=match.end("params"),
                name=match.group("name"),
            )
            for match in self.pattern.finditer(content)
        ]

    def __repr__(self) -> str:
        return f"RegexFunctionLocator(targets={list(self.targets)!r})"

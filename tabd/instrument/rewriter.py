"""Offset-safe text splicing over an immutable source string."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

__all__ = ["Insertion", "PatchResult", "apply_insertions"]


@dataclass(frozen=True)
class Insertion:
    """Text to splice in at ``offset`` of the original content."""

    offset: int
    text: str


@dataclass
class PatchResult:
    """Outcome of instrumenting a single source text."""

    content: str
    patch_count: int = 0
    skipped: int = 0
    already_instrumented: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.patch_count > 0


def apply_insertions(content: str, insertions: Iterable[Insertion]) -> str:
    """Return ``content`` with every insertion applied.

    Edits are applied from the highest offset down so the offsets recorded
    against the original content stay valid for every remaining edit.  Two
    insertions at the same offset keep their input order in the output.
    """

    ordered = sorted(
        enumerate(insertions),
        key=lambda item: (item[1].offset, item[0]),
        reverse=True,
    )
    if not ordered:
        return content

    size = len(content)
    pieces: List[str] = []
    tail = size
    for _, insertion in ordered:
        if not 0 <= insertion.offset <= size:
            raise ValueError(f"insertion offset {insertion.offset} outside content of length {size}")
        pieces.append(content[insertion.offset : tail])
        pieces.append(insertion.text)
        tail = insertion.offset
    pieces.append(content[:tail])
    return "".join(reversed(pieces))

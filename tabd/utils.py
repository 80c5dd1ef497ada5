"""Small helpers shared across the patcher."""

from __future__ import annotations

import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Sequence, TypeVar, Union

T = TypeVar("T")
R = TypeVar("R")

__all__ = ["colorize_text", "run_parallel", "atomic_write_text"]

_COLOUR_CODES = {
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "magenta": "35",
}


def colorize_text(text: str, colour: str) -> str:
    """Return *text* wrapped in the ANSI escape for ``colour``."""
    return f"\033[{_COLOUR_CODES.get(colour, '0')}m{text}\033[0m"


def run_parallel(items: Sequence[T], worker: Callable[[T], R], *, jobs: int = 1) -> List[R]:
    """Map ``worker`` over ``items``, on a thread pool when ``jobs`` > 1.

    Results keep the input order.  Exceptions raised by ``worker`` propagate.
    """

    if jobs <= 1 or len(items) <= 1:
        return [worker(item) for item in items]
    with ThreadPoolExecutor(max_workers=jobs) as pool:
        return list(pool.map(worker, items))


def atomic_write_text(
    path: Union[str, os.PathLike[str]],
    content: str,
    *,
    encoding: str = "utf-8",
    errors: str = "strict",
) -> None:
    """Replace the file at ``path`` with ``content`` without leaving a half written file.

    Symbolic links are followed so the file they point to receives the new
    content and the link itself stays in place.  The permission bits of an
    existing target are carried over.
    """

    target = Path(path).resolve()
    fd, temp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".partial", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding=encoding, errors=errors, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if target.exists():
            shutil.copymode(target, temp_path)
        os.replace(temp_path, target)
    except BaseException:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise

"""Test configuration ensuring the project source tree is importable."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable, Optional
import importlib

import pytest

ROOT = Path(__file__).resolve().parent.parent
TESTS = ROOT / "tests"

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)
else:
    idx = sys.path.index(root_str)
    if idx != 0:
        sys.path.insert(0, sys.path.pop(idx))

if str(TESTS) in sys.path:
    sys.path.pop(sys.path.index(str(TESTS)))
sys.path.insert(1, str(TESTS))

# Import the project package eagerly so subsequent imports reuse it
importlib.import_module("tabd")


@pytest.fixture
def make_extension(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory creating ``<tmp>/extensions/<name>`` with files."""

    root = tmp_path / "extensions"
    root.mkdir()

    def _make(name: str, files: dict[str, str], manifest: Optional[dict] = None) -> Path:
        extension_dir = root / name
        extension_dir.mkdir()
        if manifest is not None:
            (extension_dir / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
        for relative, content in files.items():
            target = extension_dir / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content.encode("utf-8"))
        return extension_dir

    _make.root = root  # type: ignore[attr-defined]
    return _make

import os
from pathlib import Path

import pytest

from tabd.config import PatcherConfig
from tabd.exceptions import PathResolutionError
from tabd.instrument import MARKER
from tabd.walker import (
    ENV_EXTENSIONS_DIR,
    default_extensions_root,
    iter_source_files,
    patch_file,
    resolve_extensions_root,
    walk_extensions,
)

COPILOT_SOURCE = "function handleDidShowCompletionItem(item, ctx){doWork();}"


def test_walk_patches_supported_files_only(make_extension) -> None:
    ext = make_extension(
        "github.copilot-1.0.0",
        {
            "dist/extension.js": COPILOT_SOURCE,
            "dist/extension.ts": COPILOT_SOURCE,
            "dist/notes.txt": COPILOT_SOURCE,
            "dist/plain.mjs": "export const x = 1;\r\n",
        },
        manifest={"name": "copilot", "displayName": "Copilot", "publisher": "GitHub"},
    )
    report = walk_extensions(make_extension.root)

    assert report.extensions == 1
    assert report.patch_count == 2
    assert {outcome.path.name for outcome in report.patched_files} == {"extension.js", "extension.ts"}
    patched = (ext / "dist" / "extension.js").read_text(encoding="utf-8")
    assert "'_extensionName':'Copilot'" in patched
    assert patched.endswith("doWork();}")
    assert (ext / "dist" / "notes.txt").read_text(encoding="utf-8") == COPILOT_SOURCE
    assert (ext / "dist" / "plain.mjs").read_bytes() == b"export const x = 1;\r\n"


def test_second_walk_changes_nothing(make_extension) -> None:
    ext = make_extension("ext", {"main.js": COPILOT_SOURCE}, manifest={"name": "ext"})
    walk_extensions(make_extension.root)
    target = ext / "main.js"
    first_bytes = target.read_bytes()
    first_mtime = target.stat().st_mtime_ns

    report = walk_extensions(make_extension.root)

    assert report.patch_count == 0
    assert report.files[0].status == "already-patched"
    assert target.read_bytes() == first_bytes
    assert target.stat().st_mtime_ns == first_mtime


def test_missing_metadata_uses_placeholder(make_extension) -> None:
    ext = make_extension("broken", {"a.cjs": COPILOT_SOURCE})
    report = walk_extensions(make_extension.root)

    assert report.patch_count == 1
    assert len(report.metadata_warnings) == 1
    assert "'_extensionName':'unknown'" in (ext / "a.cjs").read_text(encoding="utf-8")


def test_unchanged_files_are_not_rewritten(make_extension) -> None:
    ext = make_extension("ext", {"a.js": "function f(x){}"}, manifest={"name": "ext"})
    target = ext / "a.js"
    before = target.stat().st_mtime_ns

    report = walk_extensions(make_extension.root)

    assert report.files[0].status == "unchanged"
    assert target.stat().st_mtime_ns == before


def test_non_utf8_bytes_survive_round_trip(make_extension) -> None:
    ext = make_extension("ext", {}, manifest={"name": "ext"})
    raw = b"var s='\xff\xfe';\r\n" + COPILOT_SOURCE.encode("utf-8") + b"\r\n"
    (ext / "bundle.js").write_bytes(raw)

    walk_extensions(make_extension.root)

    patched = (ext / "bundle.js").read_bytes()
    assert patched.startswith(b"var s='\xff\xfe';\r\n")
    assert patched.endswith(b"doWork();}\r\n")
    assert MARKER.encode() in patched


def test_dry_run_does_not_write(make_extension) -> None:
    ext = make_extension("ext", {"a.js": COPILOT_SOURCE}, manifest={"name": "ext"})
    report = walk_extensions(make_extension.root, dry_run=True)

    assert report.patch_count == 1
    assert (ext / "a.js").read_text(encoding="utf-8") == COPILOT_SOURCE


def test_parallel_walk_matches_sequential(make_extension) -> None:
    files = {f"f{i}.js": COPILOT_SOURCE for i in range(6)}
    make_extension("ext", files, manifest={"displayName": "Par"})
    report = walk_extensions(make_extension.root, jobs=3)

    assert report.patch_count == 6
    assert [outcome.path.name for outcome in report.files] == sorted(files)


def test_read_errors_are_reported_not_raised(tmp_path: Path) -> None:
    missing = tmp_path / "gone.js"
    outcome = patch_file(missing, None, PatcherConfig())
    assert outcome.status == "error"
    assert "gone.js" in outcome.error


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="requires POSIX permissions")
def test_write_errors_are_reported_not_raised(make_extension) -> None:
    ext = make_extension("ext", {"a.js": COPILOT_SOURCE}, manifest={"name": "ext"})
    ext.chmod(0o555)
    try:
        report = walk_extensions(make_extension.root)
    finally:
        ext.chmod(0o755)
    assert len(report.errors) == 1
    assert (ext / "a.js").read_text(encoding="utf-8") == COPILOT_SOURCE


def test_iter_source_files_is_sorted_and_filtered(tmp_path: Path) -> None:
    for name in ("b.tsx", "a.jsx", "c.json", "sub/d.MJS"):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")
    names = [p.relative_to(tmp_path).as_posix() for p in iter_source_files(tmp_path, PatcherConfig())]
    assert names == ["a.jsx", "b.tsx", "sub/d.MJS"]


def test_resolve_extensions_root_precedence(tmp_path: Path) -> None:
    explicit = tmp_path / "explicit"
    explicit.mkdir()
    from_env = tmp_path / "env"
    from_env.mkdir()
    home = tmp_path / "home"
    (home / ".vscode" / "extensions").mkdir(parents=True)

    env = {ENV_EXTENSIONS_DIR: str(from_env)}
    assert resolve_extensions_root(explicit, env=env, home=home) == explicit
    assert resolve_extensions_root(None, env=env, home=home) == from_env
    assert resolve_extensions_root(None, env={}, home=home, platform="linux") == home / ".vscode" / "extensions"


def test_resolve_extensions_root_failures(tmp_path: Path) -> None:
    with pytest.raises(PathResolutionError):
        resolve_extensions_root(tmp_path / "missing", env={})
    with pytest.raises(PathResolutionError):
        resolve_extensions_root(None, env={}, home=tmp_path, platform="linux")
    with pytest.raises(PathResolutionError):
        default_extensions_root(home=tmp_path, platform="sunos5")


@pytest.mark.skipif(os.name == "nt", reason="requires symlink support")
def test_symlinked_bundle_is_patched_through_the_link(make_extension, tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    shared.mkdir()
    real = shared / "bundle.js"
    real.write_text(COPILOT_SOURCE, encoding="utf-8")
    ext = make_extension("ext", {}, manifest={"name": "ext"})
    link = ext / "bundle.js"
    link.symlink_to(real)

    report = walk_extensions(make_extension.root)

    assert report.patch_count == 1
    assert link.is_symlink()
    assert MARKER in real.read_text(encoding="utf-8")
    assert walk_extensions(make_extension.root).patch_count == 0

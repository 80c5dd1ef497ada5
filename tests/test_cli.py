import json
import logging
from pathlib import Path

import pytest

from tabd.instrument import MARKER
from tabd.main import EXIT_BAD_CONFIG, EXIT_NO_ROOT, EXIT_OK, main
from tabd.walker import ENV_EXTENSIONS_DIR

SOURCE = "e.handleDidPartiallyAcceptCompletionItem=function(){};function handleDidShowCompletionItem(t){r(t)}"


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def test_cli_patches_and_reports(make_extension, tmp_path: Path, capsys) -> None:
    ext = make_extension("pub.ext-1.0.0", {"out/main.js": SOURCE}, manifest={"displayName": "My Ext"})
    report_path = tmp_path / "report.json"

    exit_code = main(["--root", str(make_extension.root), "--json-report", str(report_path)])

    assert exit_code == EXIT_OK
    assert MARKER in (ext / "out" / "main.js").read_text(encoding="utf-8")
    out = capsys.readouterr().out
    assert "Extensions path:" in out
    assert "Patched 1 function(s)" in out
    assert "Patching complete!" in out
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["patch_count"] == 1
    assert report["files"][0]["status"] == "patched"


def test_cli_missing_root_exits_non_zero(tmp_path: Path, capsys) -> None:
    exit_code = main(["--root", str(tmp_path / "nope")])
    assert exit_code == EXIT_NO_ROOT
    assert "does not exist" in capsys.readouterr().out


def test_cli_uses_environment_root(make_extension, monkeypatch) -> None:
    ext = make_extension("ext", {"a.js": SOURCE}, manifest={"name": "ext"})
    monkeypatch.setenv(ENV_EXTENSIONS_DIR, str(make_extension.root))

    assert main([]) == EXIT_OK
    assert MARKER in (ext / "a.js").read_text(encoding="utf-8")


def test_cli_warnings_do_not_change_exit_code(make_extension, capsys) -> None:
    make_extension("ext", {"a.js": "handleDidShowCompletionItem({a}){}"})

    assert main(["--root", str(make_extension.root)]) == EXIT_OK
    out = capsys.readouterr().out
    assert "Could not read extension metadata" in out
    assert "Could not extract variable" in out


def test_cli_config_and_overrides(make_extension, tmp_path: Path) -> None:
    ext = make_extension("ext", {"a.js": "onAccept(x){}", "b.ts": "onShow(y){}"}, manifest={"name": "ext"})
    config = tmp_path / "tabd.yaml"
    config.write_text(
        f"targets: [onAccept]\nsink: command-bare\nextensions_root: {make_extension.root}\n",
        encoding="utf-8",
    )

    assert main(["--config", str(config), "--target", "onShow"]) == EXIT_OK
    assert MARKER not in (ext / "a.js").read_text(encoding="utf-8")
    patched = (ext / "b.ts").read_text(encoding="utf-8")
    assert "JSON.stringify(y)" in patched


def test_cli_bad_config_exits_with_config_error(tmp_path: Path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("lookahead: soon\n", encoding="utf-8")
    assert main(["--config", str(config)]) == EXIT_BAD_CONFIG


def test_cli_dry_run_and_log_file(make_extension, tmp_path: Path) -> None:
    ext = make_extension("ext", {"a.js": SOURCE}, manifest={"name": "ext"})
    log_file = tmp_path / "logs" / "patch.log"

    assert main(["--root", str(make_extension.root), "--dry-run", "--log-file", str(log_file)]) == EXIT_OK
    assert (ext / "a.js").read_text(encoding="utf-8") == SOURCE
    assert "Would patch 1 function(s)" in log_file.read_text(encoding="utf-8")


def test_cli_unwritable_report_path_still_succeeds(make_extension, tmp_path: Path, capsys) -> None:
    ext = make_extension("ext", {"a.js": SOURCE}, manifest={"name": "ext"})
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    exit_code = main(["--root", str(make_extension.root), "--json-report", str(blocker / "r.json")])

    assert exit_code == EXIT_OK
    assert MARKER in (ext / "a.js").read_text(encoding="utf-8")
    out = capsys.readouterr().out
    assert "Warning: failed to write report" in out
    assert "Patching complete!" in out


def test_cli_unwritable_log_file_falls_back_to_stdout(make_extension, tmp_path: Path, capsys) -> None:
    ext = make_extension("ext", {"a.js": SOURCE}, manifest={"name": "ext"})
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    exit_code = main(["--root", str(make_extension.root), "--log-file", str(blocker / "patch.log")])

    assert exit_code == EXIT_OK
    assert MARKER in (ext / "a.js").read_text(encoding="utf-8")
    out = capsys.readouterr().out
    assert "Warning: failed to open log file" in out
    assert "Patched 1 function(s)" in out

"""Command line interface for instrumenting installed VS Code extensions."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import PatcherConfig, load_config
from .exceptions import ConfigError, PathResolutionError
from .instrument.statement import SINK_TEMPLATES
from .logging_config import configure_logging
from .walker import resolve_extensions_root, walk_extensions

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_ROOT = 1
EXIT_BAD_CONFIG = 2


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabd-patch",
        description="Inject completion capture statements into installed VS Code extensions",
    )
    parser.add_argument(
        "--root",
        type=Path,
        help="extensions directory (default: $TABD_EXTENSIONS_DIR or ~/.vscode/extensions)",
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument(
        "--target",
        dest="targets",
        action="append",
        help="function name to instrument (can be supplied multiple times)",
    )
    parser.add_argument("--sink", choices=sorted(SINK_TEMPLATES), help="statement template to inject")
    parser.add_argument(
        "--lookahead",
        type=int,
        help="characters after a match searched for an existing marker",
    )
    parser.add_argument("--jobs", type=int, default=1, help="process files in parallel using N workers")
    parser.add_argument("--dry-run", action="store_true", help="report what would change without writing")
    parser.add_argument("--verbose", action="store_true", help="enable verbose colourised logging")
    parser.add_argument("--log-file", type=Path, help="also write diagnostics to this file")
    parser.add_argument("--json-report", type=Path, help="write a JSON run report to this path")
    return parser


def _build_config(args: argparse.Namespace) -> PatcherConfig:
    config = load_config(args.config) if args.config else PatcherConfig()
    return config.with_overrides(
        targets=args.targets,
        sink=args.sink,
        lookahead=args.lookahead,
        extensions_root=args.root,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.verbose, args.log_file)
    except OSError as exc:
        LOGGER.warning("Warning: failed to open log file %s: %s", args.log_file, exc)

    LOGGER.info("VS Code Extension Patcher")
    LOGGER.info("========================")

    try:
        config = _build_config(args)
    except ConfigError as exc:
        LOGGER.error("Error: %s", exc)
        return EXIT_BAD_CONFIG

    try:
        root = resolve_extensions_root(config.extensions_root)
        LOGGER.info("Extensions path: %s", root)
        LOGGER.info("Scanning for files to patch...")
        report = walk_extensions(root, config, jobs=max(1, args.jobs), dry_run=args.dry_run)
    except PathResolutionError as exc:
        LOGGER.error("Error: %s", exc)
        return EXIT_NO_ROOT

    LOGGER.info(report.summary())
    if args.json_report:
        try:
            args.json_report.parent.mkdir(parents=True, exist_ok=True)
            args.json_report.write_text(json.dumps(report.to_json(), indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Warning: failed to write report %s: %s", args.json_report, exc)
    LOGGER.info("Patching complete!")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI wrapper
    sys.exit(main())

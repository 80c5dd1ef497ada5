"""Walk installed extensions and instrument their JavaScript sources.

Each immediate child directory of the extensions root is one extension.  Its
``package.json`` provides the identity embedded in injected statements; when
that fails the extension is still processed without identity.  Problems with a
single file are recorded on the run report and never stop the walk.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Sequence, Union

from .config import PatcherConfig
from .exceptions import FileReadError, FileWriteError, MetadataReadError, PathResolutionError
from .instrument import patch_source
from .metadata import ExtensionIdentity, read_extension_identity
from .utils import atomic_write_text, run_parallel

LOGGER = logging.getLogger(__name__)

__all__ = [
    "ENV_EXTENSIONS_DIR",
    "FileOutcome",
    "WalkReport",
    "default_extensions_root",
    "resolve_extensions_root",
    "iter_extension_dirs",
    "iter_source_files",
    "patch_file",
    "walk_extensions",
]

ENV_EXTENSIONS_DIR = "TABD_EXTENSIONS_DIR"
_SUPPORTED_PLATFORMS = ("win32", "darwin", "linux")

# Source files are decoded so that any byte sequence survives a round trip.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"

PATCHED = "patched"
UNCHANGED = "unchanged"
ALREADY_PATCHED = "already-patched"
ERROR = "error"


@dataclass
class FileOutcome:
    path: Path
    status: str
    patch_count: int = 0
    skipped: int = 0
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_json(self) -> dict:
        return {
            "path": str(self.path),
            "status": self.status,
            "patch_count": self.patch_count,
            "skipped": self.skipped,
            "warnings": list(self.warnings),
            "error": self.error,
        }


@dataclass
class WalkReport:
    """Aggregated results of one run over an extensions root."""

    root: Path
    extensions: int = 0
    files: List[FileOutcome] = field(default_factory=list)
    metadata_warnings: List[str] = field(default_factory=list)

    @property
    def patch_count(self) -> int:
        return sum(outcome.patch_count for outcome in self.files)

    @property
    def patched_files(self) -> List[FileOutcome]:
        return [outcome for outcome in self.files if outcome.status == PATCHED]

    @property
    def errors(self) -> List[FileOutcome]:
        return [outcome for outcome in self.files if outcome.status == ERROR]

    def summary(self) -> str:
        return (
            f"{self.extensions} extension(s), {len(self.files)} file(s) scanned, "
            f"{self.patch_count} function(s) patched in {len(self.patched_files)} file(s), "
            f"{len(self.errors)} error(s)"
        )

    def to_json(self) -> dict:
        return {
            "root": str(self.root),
            "extensions": self.extensions,
            "patch_count": self.patch_count,
            "files": [outcome.to_json() for outcome in self.files],
            "metadata_warnings": list(self.metadata_warnings),
        }


def default_extensions_root(home: Optional[Path] = None, platform: Optional[str] = None) -> Path:
    """Return the per-user VS Code extensions directory for ``platform``."""

    platform = platform or sys.platform
    if not platform.startswith(_SUPPORTED_PLATFORMS):
        raise PathResolutionError(f"unsupported operating system: {platform}")
    if home is None:
        try:
            home = Path.home()
        except RuntimeError as exc:
            raise PathResolutionError(f"failed to get home directory: {exc}") from exc
    return Path(home) / ".vscode" / "extensions"


def resolve_extensions_root(
    explicit: Optional[Union[str, Path]] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
    platform: Optional[str] = None,
) -> Path:
    """Return an existing extensions root directory.

    Precedence: ``explicit``, then ``$TABD_EXTENSIONS_DIR``, then the platform
    default.  Raises :class:`PathResolutionError` when the result is missing.
    """

    env = os.environ if env is None else env
    if explicit:
        root = Path(explicit).expanduser()
    elif env.get(ENV_EXTENSIONS_DIR):
        root = Path(env[ENV_EXTENSIONS_DIR]).expanduser()
    else:
        root = default_extensions_root(home=home, platform=platform)

    if not root.is_dir():
        raise PathResolutionError(f"VS Code extensions directory does not exist: {root}")
    return root


def iter_extension_dirs(root: Path) -> Iterator[Path]:
    for child in sorted(root.iterdir()):
        if child.is_dir():
            yield child


def iter_source_files(extension_dir: Path, config: PatcherConfig) -> Iterator[Path]:
    def _on_error(exc: OSError) -> None:
        LOGGER.warning("Warning: Error accessing %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(extension_dir, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if config.accepts(path):
                yield path


def _read_source(path: Path) -> str:
    try:
        return path.read_bytes().decode(_ENCODING, _ERRORS)
    except OSError as exc:
        raise FileReadError(path, f"failed to read file: {exc}") from exc


def _write_source(path: Path, content: str) -> None:
    try:
        atomic_write_text(path, content, encoding=_ENCODING, errors=_ERRORS)
    except OSError as exc:
        raise FileWriteError(path, f"failed to write file: {exc}") from exc


def patch_file(
    path: Path,
    identity: Optional[ExtensionIdentity],
    config: PatcherConfig,
    *,
    dry_run: bool = False,
) -> FileOutcome:
    """Instrument ``path`` in place and report what happened.

    Read and write failures are logged and recorded on the outcome.
    """

    try:
        original = _read_source(path)
        result = patch_source(
            original,
            identity,
            matcher=config.build_matcher(),
            sink=config.sink_template(),
            lookahead=config.lookahead,
            source=str(path),
        )
        if result.already_instrumented:
            return FileOutcome(path, ALREADY_PATCHED)
        if not result.changed:
            return FileOutcome(path, UNCHANGED, skipped=result.skipped, warnings=result.warnings)
        if dry_run:
            LOGGER.info("Would patch %d function(s) in %s", result.patch_count, path)
        else:
            _write_source(path, result.content)
            LOGGER.info("Patched %d function(s) in %s", result.patch_count, path)
        return FileOutcome(
            path,
            PATCHED,
            patch_count=result.patch_count,
            skipped=result.skipped,
            warnings=result.warnings,
        )
    except (FileReadError, FileWriteError) as exc:
        LOGGER.warning("Warning: Error processing %s: %s", path, exc.reason)
        return FileOutcome(path, ERROR, error=str(exc))


def _load_identity(extension_dir: Path, report: WalkReport) -> Optional[ExtensionIdentity]:
    try:
        identity = read_extension_identity(extension_dir)
    except MetadataReadError as exc:
        message = f"Could not read extension metadata for {extension_dir.name}: {exc}"
        LOGGER.warning("Warning: %s", message)
        report.metadata_warnings.append(message)
        return None
    LOGGER.info("Processing extension: %s", identity.label or extension_dir.name)
    return identity


def walk_extensions(
    root: Path,
    config: Optional[PatcherConfig] = None,
    *,
    jobs: int = 1,
    dry_run: bool = False,
) -> WalkReport:
    """Instrument every supported file below ``root``."""

    config = config or PatcherConfig()
    report = WalkReport(root=root)
    try:
        extension_dirs: Sequence[Path] = list(iter_extension_dirs(root))
    except OSError as exc:
        raise PathResolutionError(f"failed to read extensions directory {root}: {exc}") from exc

    for extension_dir in extension_dirs:
        report.extensions += 1
        identity = _load_identity(extension_dir, report)
        files = list(iter_source_files(extension_dir, config))

        def _worker(path: Path) -> FileOutcome:
            return patch_file(path, identity, config, dry_run=dry_run)

        outcomes = run_parallel(files, _worker, jobs=jobs)
        LOGGER.debug("Processed %d file(s) in %s", len(files), extension_dir.name)
        report.files.extend(outcomes)
    return report

"""Custom exception hierarchy for the extension patcher."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PatcherError(Exception):
    """Base class for all patching related errors."""


class PathResolutionError(PatcherError):
    """Raised when no usable extensions root directory can be found."""


class ConfigError(PatcherError):
    """Raised when a configuration file or option is invalid."""


class MetadataReadError(PatcherError):
    """Raised when an extension's ``package.json`` cannot be used."""


class _FileError(PatcherError):
    def __init__(self, path: Path, reason: object) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class FileReadError(_FileError):
    """Raised when a candidate source file cannot be read or decoded."""


class FileWriteError(_FileError):
    """Raised when a patched source file cannot be written back."""


class ExtractionError(PatcherError):
    """Raised when no bound identifier can be recovered from a parameter list."""

    def __init__(self, params: str, message: Optional[str] = None) -> None:
        self.params = params
        super().__init__(message or f"could not extract variable name from parameters: {params!r}")


class MessageFramingError(PatcherError):
    """Raised when a native messaging frame is malformed."""


__all__ = [
    "PatcherError",
    "PathResolutionError",
    "ConfigError",
    "MetadataReadError",
    "FileReadError",
    "FileWriteError",
    "ExtractionError",
    "MessageFramingError",
]

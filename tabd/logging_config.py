"""Logging helpers shared by the patcher and the native messaging host."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from .utils import colorize_text

__all__ = [
    "configure_logging",
    "configure_file_logger",
    "close_file_logger",
]

_FILE_HANDLER_FLAG = "_tabd_file_logger"


class _ColourFormatter(logging.Formatter):
    COLOURS = {
        logging.DEBUG: "blue",
        logging.INFO: "green",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "magenta",
    }

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - trivial wrapper
        message = super().format(record)
        colour = self.COLOURS.get(record.levelno, "green")
        return colorize_text(message, colour)


def configure_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure root logging handlers.

    Diagnostics go to standard output so warnings show up next to the run
    summary.  ``log_file`` additionally captures a timestamped copy; the stdout
    handler is already installed when opening it raises :class:`OSError`.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    level = logging.DEBUG if verbose else logging.INFO
    root.setLevel(level)

    stream = logging.StreamHandler(sys.stdout)
    if verbose:
        stream.setFormatter(_ColourFormatter("%(levelname)s: %(message)s"))
    else:
        stream.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(stream)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)


def configure_file_logger(
    name: str,
    path: Path,
    *,
    level: int = logging.INFO,
    formatter: logging.Formatter | None = None,
) -> logging.Logger:
    """Return a logger appending to ``path``.

    Handlers previously installed on ``name`` by this helper are replaced so a
    process never holds two handles on the same log file.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    close_file_logger(logger)

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    setattr(handler, _FILE_HANDLER_FLAG, True)
    if formatter is None:
        formatter = logging.Formatter(
            "%(asctime)s %(filename)s:%(lineno)d: %(message)s",
            datefmt="%Y/%m/%d %H:%M:%S",
        )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def close_file_logger(logger: logging.Logger) -> None:
    """Tear down handlers installed by :func:`configure_file_logger`."""

    for handler in list(logger.handlers):
        if getattr(handler, _FILE_HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()

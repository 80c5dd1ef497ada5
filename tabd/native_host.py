"""Native messaging host persisting clipboard payloads from the browser extension.

Messages use the browser native messaging framing: a 4 byte little-endian
length followed by that many bytes of UTF-8 JSON.  Every clipboard payload is
stored as ``clipboard_<timestamp>.json`` plus ``latest_clipboard.json`` inside
the data directory, and a framed JSON status response is written back.
"""

from __future__ import annotations

import argparse
import json
import logging
import struct
import sys
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Mapping, Optional, Sequence

from .exceptions import MessageFramingError
from .logging_config import close_file_logger, configure_file_logger

__all__ = [
    "MAX_MESSAGE_SIZE",
    "ClipboardData",
    "Response",
    "NativeHost",
    "read_message",
    "write_message",
    "default_data_dir",
    "main",
]

MAX_MESSAGE_SIZE = 1024 * 1024
LOG_NAME = "native-host.log"
LATEST_NAME = "latest_clipboard.json"
_HEADER = struct.Struct("<I")
_PREVIEW_LIMIT = 100


def read_message(stream: BinaryIO) -> Optional[bytes]:
    """Return the next framed message, or ``None`` on a clean end of stream."""

    header = stream.read(_HEADER.size)
    if not header:
        return None
    if len(header) < _HEADER.size:
        raise MessageFramingError(f"failed to read message length: got {len(header)} byte(s)")
    (length,) = _HEADER.unpack(header)
    if length == 0 or length > MAX_MESSAGE_SIZE:
        raise MessageFramingError(f"invalid message length: {length}")
    body = stream.read(length)
    if len(body) != length:
        raise MessageFramingError(f"failed to read message data: expected {length} bytes, got {len(body)}")
    return body


def write_message(stream: BinaryIO, payload: bytes) -> None:
    stream.write(_HEADER.pack(len(payload)))
    stream.write(payload)
    stream.flush()


def _text_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


@dataclass
class ClipboardData:
    type: str = ""
    text: str = ""
    timestamp: int = 0
    url: str = ""
    title: str = ""

    @classmethod
    def from_json(cls, raw: bytes) -> "ClipboardData":
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"failed to parse message: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise ValueError("failed to parse message: expected a JSON object")
        timestamp = payload.get("timestamp", 0)
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            timestamp = 0
        return cls(
            type=_text_field(payload, "type"),
            text=_text_field(payload, "text"),
            timestamp=int(timestamp),
            url=_text_field(payload, "url"),
            title=_text_field(payload, "title"),
        )


@dataclass
class Response:
    status: str
    message: str = ""
    timestamp: int = 0

    def to_bytes(self) -> bytes:
        payload: Dict[str, Any] = {"status": self.status}
        if self.message:
            payload["message"] = self.message
        payload["timestamp"] = self.timestamp
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def default_data_dir() -> Path:
    return Path.home() / ".tabd"


def _dump_json(path: Path, data: ClipboardData) -> None:
    path.write_text(json.dumps(asdict(data), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


class NativeHost:
    """Read framed clipboard messages from ``stdin`` until end of stream.

    The host owns one log file for its whole lifetime; use it as a context
    manager so the handle is released when the loop ends.
    """

    def __init__(
        self,
        directory: Path,
        stdin: BinaryIO,
        stdout: BinaryIO,
        *,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.directory = Path(directory)
        self.stdin = stdin
        self.stdout = stdout
        self.now = now
        self.log: Optional[logging.Logger] = None

    def __enter__(self) -> "NativeHost":
        self.directory.mkdir(parents=True, exist_ok=True)
        self.log = configure_file_logger(f"{__name__}.session", self.directory / LOG_NAME)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.log is not None:
            close_file_logger(self.log)
            self.log = None

    @property
    def logger(self) -> logging.Logger:
        if self.log is None:
            raise RuntimeError("NativeHost must be entered before use")
        return self.log

    def save_clipboard_data(self, data: ClipboardData) -> Path:
        filename = f"clipboard_{self.now().strftime('%Y%m%d_%H%M%S')}.json"
        target = self.directory / filename
        _dump_json(target, data)
        try:
            _dump_json(self.directory / LATEST_NAME, data)
        except OSError as exc:
            self.logger.warning("Warning: failed to create latest clipboard file: %s", exc)
        self.logger.info("Saved clipboard data to %s", filename)
        return target

    def send(self, response: Response) -> None:
        write_message(self.stdout, response.to_bytes())

    def handle_message(self, raw: bytes) -> Response:
        data = ClipboardData.from_json(raw)
        self.logger.info("Received clipboard data: text_length=%d, url=%s", len(data.text), data.url)
        preview = data.text if len(data.text) <= _PREVIEW_LIMIT else data.text[:_PREVIEW_LIMIT] + "..."
        self.logger.info("Clipboard text preview: %s", preview)

        try:
            self.save_clipboard_data(data)
        except OSError as exc:
            self.logger.error("Error saving clipboard data: %s", exc)
            response = Response("error", f"Failed to save clipboard data: {exc}", int(time.time()))
        else:
            response = Response("success", "Clipboard data saved successfully", int(time.time()))
        self.send(response)
        return response

    def run(self) -> int:
        """Process messages until end of stream and return the handled count."""

        self.logger.info("Tab'd Native Host started")
        handled = 0
        while True:
            try:
                raw = read_message(self.stdin)
            except MessageFramingError as exc:
                self.logger.error("Error reading message: %s", exc)
                continue
            if raw is None:
                self.logger.info("Browser extension disconnected")
                break
            try:
                self.handle_message(raw)
            except (ValueError, OSError) as exc:
                self.logger.error("Error handling message: %s", exc)
                continue
            handled += 1
        return handled


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabd-native-host",
        description="Native messaging host storing clipboard payloads",
    )
    parser.add_argument("--dir", type=Path, default=None, help="data directory (default: ~/.tabd)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    directory = args.dir or default_data_dir()
    try:
        host = NativeHost(directory, sys.stdin.buffer, sys.stdout.buffer)
        with host:
            host.run()
            host.logger.info("Tab'd Native Host shutdown")
    except OSError as exc:
        print(f"Failed to create native host: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI wrapper
    raise SystemExit(main())

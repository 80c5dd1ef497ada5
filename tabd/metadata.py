"""Extension identity read from an extension's ``package.json``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

from .exceptions import MetadataReadError

LOGGER = logging.getLogger(__name__)

__all__ = ["MANIFEST_NAME", "ExtensionIdentity", "read_extension_identity"]

MANIFEST_NAME = "package.json"


def _string_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class ExtensionIdentity:
    """Name, display name and publisher of an installed extension."""

    name: str = ""
    display_name: str = ""
    publisher: str = ""

    @property
    def label(self) -> str:
        """Display name when set, falling back to the package name."""

        return self.display_name or self.name

    @classmethod
    def from_manifest(cls, payload: Mapping[str, Any]) -> "ExtensionIdentity":
        return cls(
            name=_string_field(payload, "name"),
            display_name=_string_field(payload, "displayName"),
            publisher=_string_field(payload, "publisher"),
        )


def read_extension_identity(extension_dir: Union[str, Path]) -> ExtensionIdentity:
    """Return the identity declared in ``extension_dir/package.json``.

    Raises :class:`MetadataReadError` when the manifest is missing, unreadable
    or not a JSON object.  Callers are expected to carry on without identity.
    """

    manifest = Path(extension_dir) / MANIFEST_NAME
    if not manifest.is_file():
        raise MetadataReadError(f"{MANIFEST_NAME} not found in {extension_dir}")
    try:
        text = manifest.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise MetadataReadError(f"failed to read {manifest}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MetadataReadError(f"failed to parse {manifest}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise MetadataReadError(f"expected a JSON object in {manifest}")

    identity = ExtensionIdentity.from_manifest(payload)
    LOGGER.debug("Read identity %r from %s", identity, manifest)
    return identity

"""Patcher configuration and YAML configuration file loading.

A configuration file is optional.  Recognised keys::

    targets: [handleDidShowCompletionItem, handleDidPartiallyAcceptCompletionItem]
    sink: command            # command | command-bare | file
    lookahead: 200
    suffixes: [.js, .mjs]
    extensions_root: ~/.vscode/extensions

Command line flags take precedence over values read from the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Tuple, Union

import yaml

from .exceptions import ConfigError
from .instrument.guard import DEFAULT_LOOKAHEAD
from .instrument.locator import DEFAULT_TARGET_FUNCTIONS, RegexFunctionLocator
from .instrument.statement import DEFAULT_SINK, SINK_TEMPLATES, SinkTemplate

LOGGER = logging.getLogger(__name__)

__all__ = ["SUPPORTED_SUFFIXES", "PatcherConfig", "load_config"]

SUPPORTED_SUFFIXES: Tuple[str, ...] = (".js", ".ts", ".mjs", ".cjs", ".jsx", ".tsx")

_KNOWN_KEYS = frozenset({"targets", "sink", "lookahead", "suffixes", "extensions_root"})


@dataclass(frozen=True)
class PatcherConfig:
    """Settings shared by every file processed during a run."""

    targets: Tuple[str, ...] = DEFAULT_TARGET_FUNCTIONS
    sink: str = DEFAULT_SINK.name
    lookahead: int = DEFAULT_LOOKAHEAD
    suffixes: Tuple[str, ...] = SUPPORTED_SUFFIXES
    extensions_root: Optional[Path] = None
    _matcher: Optional[RegexFunctionLocator] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.targets:
            raise ConfigError("at least one target function is required")
        if self.sink not in SINK_TEMPLATES:
            raise ConfigError(f"unknown sink {self.sink!r}; choose from {', '.join(sorted(SINK_TEMPLATES))}")
        if self.lookahead < 0:
            raise ConfigError("lookahead must be a non-negative integer")
        try:
            matcher = RegexFunctionLocator(self.targets)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        object.__setattr__(self, "suffixes", tuple(s.lower() for s in self.suffixes))
        object.__setattr__(self, "_matcher", matcher)

    def build_matcher(self) -> RegexFunctionLocator:
        return self._matcher  # type: ignore[return-value]

    def sink_template(self) -> SinkTemplate:
        return SINK_TEMPLATES[self.sink]

    def accepts(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def with_overrides(self, **overrides: Any) -> "PatcherConfig":
        """Return a copy with every non-``None`` override applied."""

        values = {key: value for key, value in overrides.items() if value is not None}
        if not values:
            return self
        if "targets" in values:
            values["targets"] = tuple(values["targets"])
        return replace(self, **values)


def _string_list(data: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    value = data[key]
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{key}' must be a string or a list of strings")
    return tuple(value)


def _normalise_suffix(suffix: str) -> str:
    suffix = suffix.strip().lower()
    return suffix if suffix.startswith(".") else f".{suffix}"


def load_config(path: Union[str, Path], base: Optional[PatcherConfig] = None) -> PatcherConfig:
    """Read a YAML configuration file layered over ``base``."""

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, MutableMapping):
        raise ConfigError(f"expected mapping at root of config: {path}")
    unknown = sorted(set(map(str, data)) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"unknown config keys in {path}: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    if "targets" in data:
        values["targets"] = _string_list(data, "targets")
    if "suffixes" in data:
        values["suffixes"] = tuple(_normalise_suffix(s) for s in _string_list(data, "suffixes"))
    if "sink" in data:
        if not isinstance(data["sink"], str):
            raise ConfigError("'sink' must be a string")
        values["sink"] = data["sink"]
    if "lookahead" in data:
        lookahead = data["lookahead"]
        if isinstance(lookahead, bool) or not isinstance(lookahead, int):
            raise ConfigError("'lookahead' must be an integer")
        values["lookahead"] = lookahead
    if "extensions_root" in data:
        root = data["extensions_root"]
        if not isinstance(root, str):
            raise ConfigError("'extensions_root' must be a path string")
        values["extensions_root"] = Path(root).expanduser()

    LOGGER.debug("Loaded config %s: %s", path, values)
    return replace(base or PatcherConfig(), **values)

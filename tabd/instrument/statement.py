"""Build the instrumentation statement spliced after a matched opening brace.

Every template starts with :data:`~tabd.instrument.guard.MARKER` and wraps its
body in ``try{...}catch(e){}`` so an unexpected argument shape can never raise
inside the host function.  Templates use two placeholders: ``{var}`` for the
captured parameter and ``{extension}`` for the escaped extension label.  Other
braces are left alone, which keeps JavaScript object literals readable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional

from ..metadata import ExtensionIdentity
from .guard import MARKER

__all__ = [
    "UNKNOWN_EXTENSION",
    "TYPE_TAG",
    "SinkTemplate",
    "SINK_TEMPLATES",
    "DEFAULT_SINK",
    "escape_single_quoted",
    "get_sink",
    "synthesize_statement",
]

UNKNOWN_EXTENSION = "unknown"
TYPE_TAG = "inlineCompletion"

_PLACEHOLDER_RE = re.compile(r"\{(var|extension)\}")

_METADATA_FIELDS = (
    "{...{var},'_extensionName':'{extension}','_timestamp':new Date().getTime(),'_type':'" + TYPE_TAG + "'}"
)

_SINGLE_QUOTE_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass(frozen=True)
class SinkTemplate:
    """Named statement template forwarding the captured payload somewhere."""

    name: str
    template: str
    description: str = ""

    def __post_init__(self) -> None:
        if not self.template.startswith(MARKER):
            raise ValueError(f"sink template {self.name!r} must start with {MARKER!r}")
        if "{var}" not in self.template:
            raise ValueError(f"sink template {self.name!r} has no {{var}} placeholder")

    def render(self, var: str, extension: str) -> str:
        values = {"var": var, "extension": extension}
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], self.template)


SINK_TEMPLATES: Dict[str, SinkTemplate] = {
    sink.name: sink
    for sink in (
        SinkTemplate(
            "command",
            MARKER
            + "try{require('vscode').commands.executeCommand('tabd._internal',JSON.stringify("
            + _METADATA_FIELDS
            + "));}catch(e){}",
            "Forward the argument merged with extension metadata to the tabd command",
        ),
        SinkTemplate(
            "command-bare",
            MARKER
            + "try{require('vscode').commands.executeCommand('tabd._internal',JSON.stringify({var}));}catch(e){}",
            "Forward the raw argument to the tabd command",
        ),
        SinkTemplate(
            "file",
            MARKER
            + "try{const f=require('fs'),p=require('path'),d=p.join(require('os').homedir(),'.tabd');"
            + "f.mkdirSync(d,{recursive:true});"
            + "f.appendFileSync(p.join(d,'completions.jsonl'),JSON.stringify("
            + _METADATA_FIELDS
            + ")+'\\n');}catch(e){}",
            "Append the merged payload as a JSON line to ~/.tabd/completions.jsonl",
        ),
    )
}

DEFAULT_SINK = SINK_TEMPLATES["command"]


def escape_single_quoted(text: str) -> str:
    """Escape ``text`` for use inside a single-quoted JavaScript literal."""

    return "".join(_SINGLE_QUOTE_ESCAPES.get(ch, ch) for ch in text)


def get_sink(name: str) -> SinkTemplate:
    try:
        return SINK_TEMPLATES[name]
    except KeyError:
        raise KeyError(f"unknown sink {name!r}; choose from {', '.join(sorted(SINK_TEMPLATES))}") from None


def synthesize_statement(
    var: str,
    identity: Optional[ExtensionIdentity] = None,
    sink: Optional[SinkTemplate] = None,
) -> str:
    """Return the statement capturing ``var`` for the extension ``identity``."""

    label = identity.label if identity is not None else ""
    extension = escape_single_quoted(label) if label else UNKNOWN_EXTENSION
    return (sink or DEFAULT_SINK).render(var, extension)

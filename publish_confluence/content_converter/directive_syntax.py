"""Lexical rules for template directives (``{{...}}`` spans).

Shared by every component that has to recognise directives without
evaluating them: the forward converter (escaping), the literal-preservation
layer, the normalizer and the template renderer.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

_STRING = r'"(?:\\.|[^"\\])*"' + "|" + r"'(?:\\.|[^'\\])*'"
_ARGUMENT = (
    r"(?:" + _STRING + r"|[^\s\"'{}=]+(?:=(?:" + _STRING + r"|[^\s\"'{}]+))?)"
)

DIRECTIVE_PATTERN = re.compile(
    r"\{\{(?P<marker>[#/]?)\s*(?P<name>[A-Za-z_][\w.\-]*)"
    r"(?P<args>(?:\s+" + _ARGUMENT + r")*)\s*\}\}"
)

ARGUMENT_PATTERN = re.compile(
    r"(?:(?P<key>[^\s\"'{}=]+)=)?(?P<value>" + _STRING + r"|[^\s\"'{}]+)"
)

ELSE_NAME = "else"


class DirectiveKind(Enum):
    OPEN = "open"      # {{#name ...}}
    CLOSE = "close"    # {{/name}}
    INLINE = "inline"  # {{name ...}}
    ELSE = "else"      # {{else}}


@dataclass(frozen=True)
class Directive:
    """A single parsed directive."""
    kind: DirectiveKind
    name: str
    arguments: str = ""


def parse_directive(text: str) -> Optional[Directive]:
    """Parse ``text`` if it is exactly one directive, else return None."""
    match = DIRECTIVE_PATTERN.fullmatch(text)
    if not match:
        return None
    marker = match.group("marker")
    name = match.group("name")
    arguments = match.group("args").strip()
    if marker == "#":
        kind = DirectiveKind.OPEN
    elif marker == "/":
        if arguments:
            return None
        kind = DirectiveKind.CLOSE
    elif name == ELSE_NAME and not arguments:
        kind = DirectiveKind.ELSE
    else:
        kind = DirectiveKind.INLINE
    return Directive(kind=kind, name=name, arguments=arguments)


def parse_arguments(source: str) -> List[Tuple[Optional[str], str]]:
    """Split an argument list into (key, raw value) pairs.

    Positional arguments have a key of None. Values keep their quotes.
    """
    return [
        (match.group("key"), match.group("value"))
        for match in ARGUMENT_PATTERN.finditer(source)
    ]


def find_directive_end(source: str, start: int) -> int:
    """Return the index just past the ``{{...}}`` span opening at ``start``.

    Handles ``{{{raw}}}`` and ``{{!-- comments --}}`` spans, and ignores
    closing braces inside quoted argument values. Returns -1 when the span
    is never closed.
    """
    if source.startswith("{{!--", start):
        end = source.find("--}}", start + 5)
        return end + 4 if end >= 0 else -1
    if source.startswith("{{{", start):
        end = source.find("}}}", start + 3)
        return end + 3 if end >= 0 else -1

    index = start + 2
    quote = None
    length = len(source)
    while index < length:
        char = source[index]
        if quote:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"') and source[index - 1] in ("=", " ", "\t"):
            quote = char
        elif source.startswith("}}", index):
            return index + 2
        index += 1
    return -1


def escape_placeholders(text: str) -> str:
    """Escape every ``{{`` so the template engine emits it literally."""
    return text.replace("{{", "\\{{")

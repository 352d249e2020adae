"""Final whitespace canonicalization for exported template markup.

The normalizer only ever touches prose. Literal nodes (directive lines,
code bodies, fenced blocks) are joined into the output exactly as they are.

Layout rules:
    - trailing whitespace is trimmed from every prose line
    - runs of blank prose lines collapse to a single blank line
    - fenced code nested in a list item or quote is copied verbatim
    - a block-open directive is followed by a single newline, and a
      block-close directive is preceded by one, so bodies hug their
      directives; everything else is separated by one blank line
    - wrapper tags left over from the source document's root
      (``<div>``, ``<body>``, ``<html>``, ``<root>``) are removed when they
      enclose the whole document
    - output ends with exactly one newline; empty input stays empty

Running the normalizer on its own output changes nothing.
"""

import logging
import re
from typing import List, Optional

from .directive_syntax import DirectiveKind, parse_directive
from .document_tree import Literal, Node, Text
from .literal_preserver import segment_template_text
from .macro_registry import DEFAULT_REGISTRY, MacroRegistry

logger = logging.getLogger(__name__)

_WRAPPER_OPEN = re.compile(r"<(div|body|html|root)(?:\s[^<>]*)?>")
_NESTED_FENCE = re.compile(r"^[ \t>]*(?:(?:[-+*]|\d+[.)])[ \t]+)*(?P<fence>`{3,}|~{3,})")


def normalize_formatting(text: str, registry: MacroRegistry = DEFAULT_REGISTRY) -> str:
    """Canonicalize whitespace of exported template markup.

    Args:
        text: Template markup, typically produced by the forward converter
        registry: Registry deciding which macro bodies are literal text

    Returns:
        Normalized markup
    """
    if not text or not text.strip():
        return ""
    text = strip_root_wrapper(text.replace("\r\n", "\n"))
    return normalize_nodes(segment_template_text(text, registry))


def normalize_nodes(nodes: List[Node]) -> str:
    """Join Text and Literal nodes into normalized markup.

    Text nodes are cleaned and dropped when nothing but whitespace is left;
    Literal nodes are emitted byte-for-byte.
    """
    blocks: List[Node] = []
    for node in nodes:
        if isinstance(node, Literal):
            if node.value:
                blocks.append(node)
        elif isinstance(node, Text):
            cleaned = _clean_prose(node.value)
            if cleaned:
                blocks.append(Text(cleaned))

    if not blocks:
        return ""

    parts = [blocks[0].value]
    for previous, current in zip(blocks, blocks[1:]):
        parts.append(_separator(previous, current))
        parts.append(current.value)

    result = "".join(parts)
    if not result.endswith("\n"):
        result += "\n"
    return result


def strip_root_wrapper(text: str) -> str:
    """Remove root wrapper lines that enclose the whole document."""
    lines = text.split("\n")
    while True:
        first = _first_content_line(lines)
        last = _last_content_line(lines)
        if first is None or last is None or first >= last:
            return "\n".join(lines)
        match = _WRAPPER_OPEN.fullmatch(lines[first].strip())
        if not match or lines[last].strip() != f"</{match.group(1)}>":
            return "\n".join(lines)
        logger.debug(f"Removing <{match.group(1)}> document wrapper")
        lines = lines[first + 1:last]


def _first_content_line(lines: List[str]) -> Optional[int]:
    for index, line in enumerate(lines):
        if line.strip():
            return index
    return None


def _last_content_line(lines: List[str]) -> Optional[int]:
    for index in range(len(lines) - 1, -1, -1):
        if lines[index].strip():
            return index
    return None


def _clean_prose(value: str) -> str:
    """Trim and collapse prose lines, copying nested fenced code verbatim.

    Fences indented under a list item or quote are part of the prose node,
    but their lines are code and keep their blank lines and trailing
    whitespace.
    """
    lines: List[str] = []
    fence: Optional[str] = None
    previous_blank = False
    for line in value.split("\n"):
        if fence is not None:
            lines.append(line)
            if _closes_fence(line, fence):
                fence = None
            previous_blank = False
            continue
        line = line.rstrip()
        if not line and (previous_blank or not lines):
            continue
        opening = _NESTED_FENCE.match(line)
        if opening:
            fence = opening.group("fence")
        lines.append(line)
        previous_blank = not line
    while lines and not lines[-1] and fence is None:
        lines.pop()
    return "\n".join(lines)


def _closes_fence(line: str, fence: str) -> bool:
    candidate = line.strip().lstrip(">").strip()
    return candidate.startswith(fence) and not candidate.strip(fence[0])


def _directive_kind(node: Node) -> Optional[DirectiveKind]:
    if not isinstance(node, Literal):
        return None
    directive = parse_directive(node.value)
    return directive.kind if directive else None


def _separator(previous: Node, current: Node) -> str:
    if _directive_kind(previous) in (DirectiveKind.OPEN, DirectiveKind.ELSE):
        return "\n"
    if _directive_kind(current) in (DirectiveKind.CLOSE, DirectiveKind.ELSE):
        return "\n"
    return "\n\n"

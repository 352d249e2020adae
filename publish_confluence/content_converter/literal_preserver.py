"""Keep template directives intact through markdown passes.

A generic markdown pass sees ``{{#confluence-panel}}`` as prose. It may glue
the line onto a neighbouring list item, wrap it in a paragraph, or escape
its quotes, and any of those breaks the pairing of open and close
directives. This module gives directives and literal bodies their own
``Literal`` nodes before such a pass runs:

- ``promote_directives`` works on the forward converter's node list.
- ``segment_template_text`` recovers the same node list from exported text
  (used by the formatting normalizer).
- ``directive_plugin`` teaches markdown-it the same rules for the publish
  direction, so directive lines survive markdown rendering untouched.
"""

import logging
import re
from typing import List, Optional

from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from markdown_it.rules_inline import StateInline

from .directive_syntax import Directive, DirectiveKind, find_directive_end, parse_directive
from .document_tree import Literal, Node, Text
from .macro_registry import DEFAULT_REGISTRY, MacroRegistry

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^(`{3,}|~{3,})")


def directive_on_line(line: str) -> Optional[Directive]:
    """Return the directive if ``line`` holds nothing else.

    Only unindented lines count: an indented directive belongs to the
    list item or quote it is indented under.
    """
    if not line or line[0] in (" ", "\t"):
        return None
    return parse_directive(line.rstrip())


def is_directive_line(line: str) -> bool:
    return directive_on_line(line) is not None


def promote_directives(nodes: List[Node]) -> List[Node]:
    """Promote directive-only lines of top-level Text nodes to Literals.

    Returns a new list; the given nodes are not modified. A Text node whose
    whole value is a directive is promoted even if it is padded with
    whitespace.
    """
    promoted: List[Node] = []
    for node in nodes:
        if not isinstance(node, Text):
            promoted.append(node)
            continue

        stripped = node.value.strip()
        if parse_directive(stripped) is not None:
            promoted.append(Literal(stripped))
            continue

        prose: List[str] = []
        for line in node.value.split("\n"):
            if is_directive_line(line):
                if prose:
                    promoted.append(Text("\n".join(prose)))
                    prose = []
                promoted.append(Literal(line.rstrip()))
            else:
                prose.append(line)
        if prose:
            promoted.append(Text("\n".join(prose)))
    return promoted


def segment_template_text(text: str, registry: MacroRegistry = DEFAULT_REGISTRY) -> List[Node]:
    """Split template markup into prose Text and Literal nodes.

    Literal nodes are produced for fenced code blocks (whole fence),
    directive-only lines, and the bodies of plain-body macros such as
    ``confluence-code``.
    """
    lines = text.replace("\r\n", "\n").split("\n")
    nodes: List[Node] = []
    prose: List[str] = []

    def flush() -> None:
        if prose:
            nodes.append(Text("\n".join(prose)))
            prose.clear()

    index = 0
    while index < len(lines):
        line = lines[index]

        fence = _FENCE_OPEN.match(line)
        if fence:
            end = _find_fence_end(lines, index, fence.group(1))
            flush()
            nodes.append(Literal("\n".join(lines[index:end + 1])))
            index = end + 1
            continue

        directive = directive_on_line(line)
        if directive is None:
            prose.append(line)
            index += 1
            continue

        flush()
        nodes.append(Literal(line.rstrip()))
        if directive.kind == DirectiveKind.OPEN and registry.has_literal_body(directive.name):
            close = _find_literal_close(lines, index, directive.name)
            if close is not None:
                if close > index + 1:
                    nodes.append(Literal("\n".join(lines[index + 1:close])))
                nodes.append(Literal(lines[close].rstrip()))
                index = close + 1
                continue
        index += 1

    flush()
    return nodes


def _find_fence_end(lines: List[str], start: int, marker: str) -> int:
    for index in range(start + 1, len(lines)):
        candidate = lines[index].strip()
        if candidate.startswith(marker[0] * len(marker)) and not candidate.strip(marker[0]):
            return index
    # Unclosed fence: runs to the last non-blank line
    for index in range(len(lines) - 1, start, -1):
        if lines[index].strip():
            return index
    return start


def _find_literal_close(lines: List[str], start: int, name: str) -> Optional[int]:
    for index in range(start + 1, len(lines)):
        directive = directive_on_line(lines[index])
        if directive and directive.kind == DirectiveKind.CLOSE and directive.name == name:
            return index
    return None


def directive_plugin(md: MarkdownIt, registry: MacroRegistry = DEFAULT_REGISTRY) -> None:
    """markdown-it plugin passing template directives through verbatim.

    Block level: a line holding only a block directive (or a standalone
    inline macro such as a table of contents) becomes a raw block, and so
    does the whole region of a plain-body macro. These lines also end
    paragraphs, lists, tables and quotes, so a directive written directly
    under a list item is not swallowed by it.

    Inline level: ``{{...}}`` spans, including escaped ``\\{{`` spans, are
    emitted raw instead of being escaped or parsed for emphasis.
    """

    def template_directive(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
        if state.is_code_block(startLine):
            return False
        start = state.bMarks[startLine] + state.tShift[startLine]
        line = state.src[start:state.eMarks[startLine]].rstrip()
        directive = parse_directive(line)
        if directive is None:
            return False
        if directive.kind == DirectiveKind.INLINE:
            descriptor = registry.lookup_by_template_name(directive.name)
            if descriptor is None or not descriptor.standalone:
                return False
        if silent:
            return True

        next_line = startLine + 1
        if directive.kind == DirectiveKind.OPEN and registry.has_literal_body(directive.name):
            for candidate in range(startLine + 1, endLine):
                begin = state.bMarks[candidate] + state.tShift[candidate]
                closing = parse_directive(state.src[begin:state.eMarks[candidate]].rstrip())
                if (
                    closing is not None
                    and closing.kind == DirectiveKind.CLOSE
                    and closing.name == directive.name
                ):
                    next_line = candidate + 1
                    break

        token = state.push("html_block", "", 0)
        token.map = [startLine, next_line]
        token.content = state.getLines(startLine, next_line, state.blkIndent, True)
        state.line = next_line
        return True

    def template_placeholder(state: StateInline, silent: bool) -> bool:
        start = state.pos
        opening = start + 1 if state.src.startswith("\\{{", start) else start
        if not state.src.startswith("{{", opening):
            return False
        end = find_directive_end(state.src[:state.posMax], opening)
        if end < 0:
            if opening == start:
                return False
            # A lone escaped \{{ keeps its backslash for the template scanner
            end = opening + 2
        if not silent:
            token = state.push("html_inline", "", 0)
            token.content = state.src[start:end]
        state.pos = end
        return True

    md.block.ruler.before(
        "table",
        "template_directive",
        template_directive,
        {"alt": ["paragraph", "reference", "blockquote", "list"]},
    )
    md.inline.ruler.before("escape", "template_placeholder", template_placeholder)

"""Forward converter: storage-format document tree to template markup.

The converter is a pure fold over the document tree. Block-level content
becomes a list of ``Text`` blocks (markdown prose) and ``Literal`` nodes
(directive lines and code bodies); the list is handed to the
literal-preservation pass and then to the formatting normalizer, which
joins it into the final text.

Macros understood by the registry become ``{{#confluence-...}}`` blocks or
``{{confluence-...}}`` inline invocations. Anything else called a macro is
exported through the generic ``confluence-macro`` helper so that its body
and parameters survive a publish round trip.
"""

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from publish_confluence.models.conversion_result import ConversionResult, WarningKind

from .conversion_context import ConversionContext, Dialect
from .directive_syntax import escape_placeholders, find_directive_end, parse_directive
from .document_tree import Element, Literal, Node, Text
from .formatting_normalizer import normalize_nodes
from .literal_preserver import promote_directives
from .macro_registry import (
    COMMENT_ARGUMENT,
    DEFAULT_REGISTRY,
    GENERIC_MACRO,
    GENERIC_NAME_ARGUMENT,
    GENERIC_PLAIN_MACRO,
    LINK_TEXT_BODY,
    MACRO_CONTAINER,
    PARAMETER_ELEMENT,
    PLAIN_BODY,
    RICH_BODY,
    RICH_LINK_BODY,
    TEMPLATE_LANGUAGES,
    UNNAMED_PARAMETER_ARGUMENT,
    BodyKind,
    MacroDescriptor,
    MacroRegistry,
    ParamSource,
    is_identifier,
    quote_template_string,
)
from .storage_parser import ROOT_NAME, parse_storage_markup

logger = logging.getLogger(__name__)

HEADINGS = {f"h{level}": level for level in range(1, 7)}

BLOCK_TAGS = frozenset({
    "p", "ul", "ol", "table", "pre", "blockquote", "hr",
    "div", "section", "article", "header", "footer", "main", "body", "html",
    ROOT_NAME, RICH_BODY, "ac:task-list", "ac:task", "ac:task-body",
}) | frozenset(HEADINGS)

# Elements whose content is metadata rather than page text
IGNORED_TAGS = frozenset({
    PARAMETER_ELEMENT, "ac:task-id", "ac:task-uuid", "ac:task-status",
    "ac:placeholder", "colgroup", "col",
})

# Argument names the template helpers reserve for themselves
RESERVED_ARGUMENTS = frozenset({GENERIC_NAME_ARGUMENT, COMMENT_ARGUMENT, "caller"})

HARD_BREAK = "\\\n"

_WHITESPACE = re.compile(r"[ \t\r\n]+")
_MARKDOWN_SPECIAL = re.compile(r"([\\`*_\[\]])")
_ENTITY_LIKE = re.compile(r"&(?=#?\w+;)")
_BLOCK_START = re.compile(r"^(#{1,6}(?=\s|$)|>|[-+](?=\s|$)|=+\s*$|~{3,})")
_ORDERED_START = re.compile(r"^(\d+)([.)])(?=\s|$)")


class _Invocation(NamedTuple):
    """A template helper invocation built from one storage element."""
    name: str
    arguments: List[Tuple[str, str]]
    body: Optional[List[Node]]
    standalone: bool = False


def escape_prose(text: str) -> str:
    """Escape markdown syntax in prose, leaving ``{{...}}`` spans alone.

    A ``{{`` that does not open a complete template span is written as
    ``\\{{`` so that it publishes as literal text.
    """
    parts = []
    position = 0
    while True:
        start = text.find("{{", position)
        if start < 0:
            break
        parts.append(_escape_segment(text[position:start]))
        end = find_directive_end(text, start)
        if end < 0 or not _is_template_span(text[start:end]):
            parts.append("\\{{")
            position = start + 2
            continue
        parts.append(text[start:end])
        position = end
    parts.append(_escape_segment(text[position:]))
    return "".join(parts)


def _is_template_span(span: str) -> bool:
    if span.startswith("{{!") or span.startswith("{{{"):
        return True
    return parse_directive(span) is not None


def _escape_segment(text: str) -> str:
    text = _MARKDOWN_SPECIAL.sub(r"\\\1", text)
    text = _ENTITY_LIKE.sub("&amp;", text)
    return text.replace("<", "&lt;")


def _escape_line_start(line: str) -> str:
    """Keep a paragraph line from being read as a heading, quote or list."""
    ordered = _ORDERED_START.match(line)
    if ordered:
        return f"{ordered.group(1)}\\{line[len(ordered.group(1)):]}"
    if _BLOCK_START.match(line):
        return "\\" + line
    return line


def _outside_placeholders(text: str, old: str, new: str) -> str:
    parts = []
    position = 0
    while True:
        start = text.find("{{", position)
        end = find_directive_end(text, start) if start >= 0 else -1
        if end < 0:
            break
        parts.append(text[position:start].replace(old, new))
        parts.append(text[start:end])
        position = end
    parts.append(text[position:].replace(old, new))
    return "".join(parts)


def _wrap(marker: str, inner: str) -> str:
    stripped = inner.strip()
    if not stripped:
        return inner
    leading = inner[:len(inner) - len(inner.lstrip())]
    trailing = inner[len(inner.rstrip()):]
    return f"{leading}{marker}{stripped}{marker}{trailing}"


def _indent(text: str, first: str, rest: str) -> str:
    lines = text.split("\n")
    indented = [first + lines[0]]
    indented.extend(rest + line if line else "" for line in lines[1:])
    return "\n".join(indented)


def format_directive(name: str, arguments: List[Tuple[str, str]], marker: str = "") -> str:
    """Render ``{{name key=value ...}}`` (``marker`` is ``#`` for a block)."""
    rendered = "".join(f" {key}={value}" for key, value in arguments)
    return "{{" + marker + name + rendered + "}}"


class StorageToTemplateConverter:
    """Converts a parsed storage document into template markup.

    One converter may be reused for any number of documents; all
    per-document state lives in the ``ConversionContext``.

    Example:
        >>> converter = StorageToTemplateConverter()
        >>> converter.convert(parse_storage_markup("<p>Hello <strong>world</strong></p>"))
        'Hello **world**\\n'
    """

    def __init__(self, registry: MacroRegistry = DEFAULT_REGISTRY):
        self._registry = registry

    def convert(self, tree: Element, context: Optional[ConversionContext] = None) -> str:
        """Convert a document tree to normalized template markup.

        Args:
            tree: Parsed document, usually the ``root`` element returned by
                ``parse_storage_markup``
            context: Conversion context collecting warnings; a fresh one is
                created when omitted

        Returns:
            Template markup ending in a single newline (empty for an empty
            document)
        """
        if context is None:
            context = ConversionContext(dialect=Dialect.TEMPLATE)

        nodes = tree.children if tree.name == ROOT_NAME else [tree]
        context.output = promote_directives(self._flow(nodes, context))
        return normalize_nodes(context.output)

    # Block level

    def _flow(self, nodes: List[Node], context: ConversionContext) -> List[Node]:
        """Convert mixed content; runs of inline content become paragraphs."""
        blocks: List[Node] = []
        inline: List[str] = []

        def flush() -> None:
            paragraph = self._paragraph("".join(inline))
            inline.clear()
            if paragraph:
                blocks.append(Text(paragraph))

        for node in self._hoist_block_macros(nodes):
            if isinstance(node, Element) and self._is_block(node):
                flush()
                blocks.extend(self._block(node, context))
            elif isinstance(node, Text) and not node.value.strip() and not inline:
                continue
            else:
                inline.append(self._inline(node, context))
        flush()
        return blocks

    def _hoist_block_macros(self, nodes: List[Node]) -> List[Node]:
        """Split inline elements around the block-level macros nested in them.

        ``<strong>A <info>...</info> B</strong>`` becomes a strong run, the
        macro, and a second strong run, so the macro body keeps its blocks.
        """
        hoisted: List[Node] = []
        for node in nodes:
            if (
                isinstance(node, Element)
                and not self._is_block(node)
                and not self._registry.is_macro_element(node)
            ):
                hoisted.extend(self._split_inline(node))
            else:
                hoisted.append(node)
        return hoisted

    def _split_inline(self, element: Element) -> List[Node]:
        pieces: List[Node] = []
        run: List[Node] = []
        split = False
        for child in self._hoist_block_macros(element.children):
            if (
                isinstance(child, Element)
                and self._registry.is_macro_element(child)
                and self._is_block(child)
            ):
                if run:
                    pieces.append(Element(element.name, dict(element.attributes), run))
                    run = []
                pieces.append(child)
                split = True
            else:
                run.append(child)
        if not split:
            return [element]
        if run:
            pieces.append(Element(element.name, dict(element.attributes), run))
        return pieces

    def _paragraph(self, raw: str) -> str:
        lines = [line.strip() for line in raw.split(HARD_BREAK)]
        while lines and not lines[0]:
            lines.pop(0)
        while lines and not lines[-1]:
            lines.pop()
        return HARD_BREAK.join(_escape_line_start(line) for line in lines)

    def _is_block(self, element: Element) -> bool:
        if element.name in BLOCK_TAGS:
            return True
        if not self._registry.is_macro_element(element):
            return False
        descriptor = self._registry.lookup_element(element)
        if descriptor is None:
            return element.name == MACRO_CONTAINER and (
                element.find(RICH_BODY) is not None or element.find(PLAIN_BODY) is not None
            )
        return descriptor.is_block or descriptor.standalone

    def _block(self, element: Element, context: ConversionContext) -> List[Node]:
        name = element.name
        if name in IGNORED_TAGS or element.prefix == "ri":
            return []
        if self._registry.is_macro_element(element):
            return self._macro_block(element, context)
        if name in HEADINGS:
            return self._heading(element, context)
        if name in ("ul", "ol"):
            return self._list(element, name == "ol", context)
        if name == "table":
            return self._table(element, context)
        if name == "pre":
            return self._preformatted(element, context)
        if name == "blockquote":
            return self._blockquote(element, context)
        if name == "hr":
            return [Text("---")]
        return self._flow(element.children, context)

    def _heading(self, element: Element, context: ConversionContext) -> List[Node]:
        text = self._inline_children(element, context).replace(HARD_BREAK, " ").strip()
        if not text:
            return []
        return [Text("#" * HEADINGS[element.name] + " " + text)]

    def _list(self, element: Element, ordered: bool, context: ConversionContext) -> List[Node]:
        number = 1
        start = element.get("start", "")
        if ordered and start.isdigit():
            number = int(start)

        nodes: List[Node] = []
        lines: List[str] = []
        context.list_depth += 1
        try:
            for item in element.child_elements():
                marker = f"{number}. " if ordered else "- "
                number += 1
                padding = " " * len(marker)
                first = True
                for block in self._flow(item.children, context):
                    if isinstance(block, Literal):
                        # Directive lines must stay flush-left, so they
                        # interrupt the list rather than nest inside it.
                        if lines:
                            nodes.append(Text("\n".join(lines)))
                            lines = []
                        nodes.append(block)
                        continue
                    lines.append(_indent(block.value, marker if first else padding, padding))
                    first = False
                if first:
                    lines.append(marker.rstrip())
        finally:
            context.list_depth -= 1

        if lines:
            nodes.append(Text("\n".join(lines)))
        return nodes

    def _table(self, element: Element, context: ConversionContext) -> List[Node]:
        rows = self._table_rows(element)
        grid = [
            [self._cell(cell, context) for cell in row.child_elements() if cell.name in ("th", "td")]
            for row in rows
        ]
        grid = [row for row in grid if row]
        if not grid:
            return []

        width = max(len(row) for row in grid)
        for row in grid:
            row.extend([""] * (width - len(row)))

        def line(cells: List[str]) -> str:
            return "| " + " | ".join(cells) + " |"

        lines = [line(grid[0]), line(["---"] * width)]
        lines.extend(line(row) for row in grid[1:])
        return [Text("\n".join(lines))]

    def _table_rows(self, element: Element) -> List[Element]:
        rows = []
        for child in element.child_elements():
            if child.name == "tr":
                rows.append(child)
            elif child.name in ("thead", "tbody", "tfoot"):
                rows.extend(child.child_elements("tr"))
        return rows

    def _cell(self, cell: Element, context: ConversionContext) -> str:
        blocks = self._flow(cell.children, context)
        text = "<br>".join(
            block.value.replace(HARD_BREAK, "<br>").replace("\n", "<br>") for block in blocks
        )
        return _outside_placeholders(text, "|", "\\|")

    def _preformatted(self, element: Element, context: ConversionContext) -> List[Node]:
        code = element.text_content().rstrip("\n")
        fence = "```"
        while fence in code:
            fence += "`"
        text = f"{fence}\n{code}\n{fence}"
        # Inside a list the fence is indented with the item, so it cannot
        # be a Literal. The normalizer still copies its lines verbatim.
        return [Text(text)] if context.list_depth else [Literal(text)]

    def _blockquote(self, element: Element, context: ConversionContext) -> List[Node]:
        nodes: List[Node] = []
        quoted: List[str] = []
        for block in self._flow(element.children, context):
            if isinstance(block, Literal):
                if quoted:
                    nodes.append(Text("\n>\n".join(quoted)))
                    quoted = []
                nodes.append(block)
                continue
            quoted.append("\n".join(
                f"> {line}" if line else ">" for line in block.value.split("\n")
            ))
        if quoted:
            nodes.append(Text("\n>\n".join(quoted)))
        return nodes

    # Inline level

    def _inline_children(self, element: Element, context: ConversionContext) -> str:
        return "".join(self._inline(child, context) for child in element.children)

    def _inline(self, node: Node, context: ConversionContext) -> str:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Text):
            return escape_prose(_WHITESPACE.sub(" ", node.value))

        name = node.name
        if name in IGNORED_TAGS or node.prefix == "ri":
            return ""
        if self._registry.is_macro_element(node):
            return self._macro_inline(node, context)
        if self._is_block(node):
            return " ".join(block.value for block in self._block(node, context))
        if name in ("strong", "b"):
            return _wrap("**", self._inline_children(node, context))
        if name in ("em", "i"):
            return _wrap("*", self._inline_children(node, context))
        if name in ("s", "del", "strike"):
            return _wrap("~~", self._inline_children(node, context))
        if name in ("u", "sub", "sup"):
            return f"<{name}>{self._inline_children(node, context)}</{name}>"
        if name == "code":
            return self._code_span(node.text_content())
        if name == "br":
            return HARD_BREAK
        if name == "a":
            return self._anchor(node, context)
        if name == "img":
            alt = escape_prose(node.get("alt", ""))
            return f"![{alt}]({self._destination(node.get('src', ''))})"
        if name == "ac:emoticon":
            return f":{node.get('ac:name', '')}:"
        return self._inline_children(node, context)

    def _code_span(self, code: str) -> str:
        code = _WHITESPACE.sub(" ", code)
        if not code:
            return ""
        ticks = "`"
        while ticks in code:
            ticks += "`"
        if ticks != "`" or code.startswith("`") or code.endswith("`"):
            return f"{ticks} {code} {ticks}"
        return f"{ticks}{code}{ticks}"

    def _anchor(self, element: Element, context: ConversionContext) -> str:
        href = element.get("href")
        text = self._inline_children(element, context).strip()
        if not href:
            return text
        if not text:
            text = escape_prose(href)
        title = element.get("title")
        if title:
            escaped = title.replace('"', '\\"')
            return f'[{text}]({self._destination(href)} "{escaped}")'
        return f"[{text}]({self._destination(href)})"

    @staticmethod
    def _destination(url: str) -> str:
        if not url or re.search(r"[\s()<>]", url):
            return f"<{url.replace('<', '%3C').replace('>', '%3E')}>"
        return url

    # Macros

    def _macro_block(self, element: Element, context: ConversionContext) -> List[Node]:
        invocation = self._invocation(element, context)
        if invocation is None:
            return self._flow(element.children, context)
        if invocation.body is None:
            directive = format_directive(invocation.name, invocation.arguments)
            return [Literal(directive) if invocation.standalone else Text(directive)]
        return (
            [Literal(format_directive(invocation.name, invocation.arguments, "#"))]
            + invocation.body
            + [Literal("{{/" + invocation.name + "}}")]
        )

    def _macro_inline(self, element: Element, context: ConversionContext) -> str:
        invocation = self._invocation(element, context)
        if invocation is None:
            return self._fallback_text(element, context)
        if invocation.body is None:
            return format_directive(invocation.name, invocation.arguments)
        return " ".join(node.value for node in self._macro_block(element, context))

    def _fallback_text(self, element: Element, context: ConversionContext) -> str:
        """Text of a macro-like element that cannot be expressed as a helper."""
        plain = element.find(LINK_TEXT_BODY)
        if plain is not None:
            return escape_prose(plain.text_content())
        rich = element.find(RICH_LINK_BODY)
        if rich is not None:
            return self._inline_children(rich, context)
        return ""

    def _invocation(self, element: Element, context: ConversionContext) -> Optional[_Invocation]:
        descriptor = self._registry.lookup_element(element)
        if descriptor is None:
            if element.name == MACRO_CONTAINER:
                return self._generic_invocation(element, context)
            context.warn(
                WarningKind.UNSUPPORTED_MACRO,
                f"Unsupported {element.name} element exported as plain text",
                macro=element.name,
            )
            return None

        arguments = self._arguments(element, descriptor, context)
        if descriptor.body == BodyKind.NONE:
            body = None
        elif descriptor.body == BodyKind.PLAIN:
            body = self._plain_body(element, self._parameter_value(element, "language"))
        elif descriptor.body == BodyKind.RICH:
            rich = element.find(RICH_BODY)
            body = self._flow(rich.children, context) if rich is not None else []
        else:
            body = self._flow(element.children, context)
        return _Invocation(descriptor.template_name, arguments, body, descriptor.standalone)

    def _generic_invocation(self, element: Element, context: ConversionContext) -> Optional[_Invocation]:
        name = element.get("ac:name")
        if not name:
            context.warn(
                WarningKind.UNSUPPORTED_MACRO,
                "Structured macro without a name exported as plain content",
            )
            return None

        context.warn(
            WarningKind.UNSUPPORTED_MACRO,
            f"Unsupported macro '{name}' exported as {GENERIC_MACRO.template_name}",
            macro=name,
        )
        arguments = [(GENERIC_NAME_ARGUMENT, quote_template_string(name))]
        taken: Set[str] = set(RESERVED_ARGUMENTS)
        for key, value in self._parameters(element, name, context).items():
            self._add_free_argument(arguments, taken, key, value, name, context)

        plain = element.find(PLAIN_BODY)
        if plain is not None:
            return _Invocation(
                GENERIC_PLAIN_MACRO.template_name, arguments, self._plain_body(element, None)
            )
        rich = element.find(RICH_BODY)
        body = self._flow(rich.children, context) if rich is not None else None
        return _Invocation(GENERIC_MACRO.template_name, arguments, body)

    def _plain_body(self, element: Element, language: Optional[str]) -> List[Node]:
        plain = element.find(PLAIN_BODY)
        code = plain.text_content() if plain is not None else ""
        if (language or "").lower() not in TEMPLATE_LANGUAGES:
            code = escape_placeholders(code)
        return [Literal(code)] if code else []

    def _arguments(
        self,
        element: Element,
        descriptor: MacroDescriptor,
        context: ConversionContext,
    ) -> List[Tuple[str, str]]:
        name = descriptor.structured_name or element.name
        parameters = self._parameters(element, name, context)
        arguments: List[Tuple[str, str]] = []

        for spec in descriptor.parameters:
            if spec.source == ParamSource.CONTROL:
                continue
            if spec.source == ParamSource.ATTRIBUTE:
                value = element.get(spec.structured_key)
            else:
                value = parameters.pop(spec.structured_key, None)
            if value is None or spec.is_default(value):
                continue
            arguments.append((spec.template_key, spec.to_template(value)))

        seen: Set[str] = set()
        for resource in descriptor.resources:
            if resource.template_key in seen:
                continue
            child = element.find(resource.element)
            value = child.get(resource.attribute) if child is not None else None
            if value is None:
                continue
            seen.add(resource.template_key)
            arguments.append((resource.template_key, quote_template_string(value)))
            for attribute, template_key in resource.extra:
                extra = child.get(attribute)
                if extra:
                    arguments.append((template_key, quote_template_string(extra)))

        if descriptor.text_argument:
            text = self._link_text(element)
            if text:
                arguments.append((descriptor.text_argument, quote_template_string(text)))

        if descriptor.is_structured_macro:
            taken = set(descriptor.template_keys()) | RESERVED_ARGUMENTS
            for key, value in parameters.items():
                self._add_free_argument(arguments, taken, key, value, name, context)
        return arguments

    def _parameters(self, element: Element, macro: str, context: ConversionContext) -> Dict[str, str]:
        parameters: Dict[str, str] = {}
        for parameter in element.child_elements(PARAMETER_ELEMENT):
            key = parameter.get("ac:name", "")
            if parameter.child_elements():
                context.warn(
                    WarningKind.INVALID_ARGUMENT,
                    f"Parameter '{key}' of macro '{macro}' holds structured content and was dropped",
                    macro=macro,
                    argument=key,
                )
                continue
            parameters[key] = parameter.text_content()
        return parameters

    @staticmethod
    def _parameter_value(element: Element, key: str) -> Optional[str]:
        for parameter in element.child_elements(PARAMETER_ELEMENT):
            if parameter.get("ac:name") == key:
                return parameter.text_content()
        return None

    @staticmethod
    def _link_text(element: Element) -> str:
        plain = element.find(LINK_TEXT_BODY)
        if plain is not None:
            return plain.text_content()
        rich = element.find(RICH_LINK_BODY)
        if rich is not None:
            return _WHITESPACE.sub(" ", rich.text_content()).strip()
        return ""

    @staticmethod
    def _add_free_argument(
        arguments: List[Tuple[str, str]],
        taken: Set[str],
        key: str,
        value: str,
        macro: str,
        context: ConversionContext,
    ) -> None:
        """Pass a parameter the registry does not describe through verbatim."""
        argument = key or UNNAMED_PARAMETER_ARGUMENT
        if not is_identifier(argument) or argument in taken:
            context.warn(
                WarningKind.INVALID_ARGUMENT,
                f"Parameter '{key}' of macro '{macro}' cannot be written as a "
                f"template argument and was dropped",
                macro=macro,
                argument=key,
            )
            return
        taken.add(argument)
        arguments.append((argument, quote_template_string(value)))


def export_to_template_markup(
    tree: Element,
    registry: MacroRegistry = DEFAULT_REGISTRY,
    context: Optional[ConversionContext] = None,
) -> str:
    """Convert a parsed storage document to template markup.

    Args:
        tree: Document tree from ``parse_storage_markup``
        registry: Macro table to convert against
        context: Optional context to collect warnings in

    Returns:
        Normalized template markup
    """
    return StorageToTemplateConverter(registry).convert(tree, context)


def export_storage_to_template(
    xhtml: str,
    registry: MacroRegistry = DEFAULT_REGISTRY,
    document_key: str = "",
) -> ConversionResult:
    """Parse storage markup and export it in one step.

    Raises:
        ParseError: If the storage markup is malformed
    """
    context = ConversionContext(dialect=Dialect.TEMPLATE, document_key=document_key)
    content = export_to_template_markup(parse_storage_markup(xhtml), registry, context)
    logger.debug(
        f"Exported '{document_key or 'document'}' with {len(context.warnings)} warning(s)"
    )
    return ConversionResult(
        content=content,
        metadata={"document_key": document_key, "format": "template"},
        warnings=list(context.warnings),
    )

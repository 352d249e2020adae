"""Parser adapter from Confluence storage format to the document tree.

Storage format is XHTML plus the ``ac:`` (content) and ``ri:`` (resource
identifier) vocabularies. Pages returned by the REST API are fragments: they
have no root element and never declare the namespaces they use. The adapter
wraps the fragment in a root element that declares them, parses it strictly
with lxml, and folds the result into ``Element``/``Text``/``Literal`` nodes.
"""

import logging
import re
from html.entities import name2codepoint
from typing import List

from lxml import etree

from .document_tree import Element, Literal, Node, Text
from .errors import ParseError

logger = logging.getLogger(__name__)

STORAGE_NAMESPACES = {
    "ac": "http://atlassian.com/content",
    "ri": "http://atlassian.com/resource/identifier",
    "at": "http://atlassian.com/template",
}

# Elements whose character data is literal text (CDATA in storage format)
LITERAL_CONTAINERS = frozenset({"ac:plain-text-body", "ac:plain-text-link-body"})

ROOT_NAME = "root"

_XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})
_ENTITY_PATTERN = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_CDATA_PATTERN = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
_LIBXML_LOCATION = re.compile(r",\s*line \d+,\s*column \d+\s*$")

_PREFIX_BY_URI = {uri: prefix for prefix, uri in STORAGE_NAMESPACES.items()}
_ROOT_OPEN = "<{}{}>".format(
    ROOT_NAME,
    "".join(f' xmlns:{prefix}="{uri}"' for prefix, uri in STORAGE_NAMESPACES.items()),
)


def parse_storage_markup(text: str) -> Element:
    """Parse a storage-format fragment into a document tree.

    Args:
        text: Storage format XHTML as returned by the content API

    Returns:
        Synthetic ``root`` element whose children are the fragment's
        top-level nodes

    Raises:
        ParseError: If the markup is not well-formed
    """
    prepared = _replace_named_entities(text or "")
    source = f"{_ROOT_OPEN}{prepared}</{ROOT_NAME}>"

    parser = etree.XMLParser(
        strip_cdata=False,
        resolve_entities=False,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        root = etree.fromstring(source.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        raise _parse_error(e, prepared) from e

    tree = _convert_element(root)
    logger.debug(f"Parsed storage markup: {len(tree.children)} top-level node(s)")
    return tree


def _replace_named_entities(text: str) -> str:
    """Rewrite HTML named entities as numeric references outside CDATA.

    XML only knows the five predefined entities, but Confluence happily
    stores ``&nbsp;``, ``&mdash;`` and friends.
    """
    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in _XML_ENTITIES or name not in name2codepoint:
            return match.group(0)
        return f"&#{name2codepoint[name]};"

    parts = _CDATA_PATTERN.split(text)
    for index in range(0, len(parts), 2):
        parts[index] = _ENTITY_PATTERN.sub(replace, parts[index])
    return "".join(parts)


def _parse_error(error: "etree.XMLSyntaxError", prepared: str) -> ParseError:
    """Translate an lxml syntax error into a ParseError with source position."""
    line, column = getattr(error, "position", (None, None))
    if line == 1 and column is not None:
        column = max(column - len(_ROOT_OPEN), 1)

    fragment = None
    lines = prepared.splitlines()
    if line is not None and 1 <= line <= len(lines):
        fragment = lines[line - 1].strip()[:200]

    message = getattr(error, "msg", None) or str(error)
    message = _LIBXML_LOCATION.sub("", message)
    return ParseError(message, line=line, column=column, fragment=fragment)


def _qualified_name(name: str) -> str:
    """Turn an lxml ``{uri}local`` name back into ``prefix:local``."""
    if name.startswith("{"):
        uri, local = name[1:].split("}", 1)
        prefix = _PREFIX_BY_URI.get(uri)
        return f"{prefix}:{local}" if prefix else local
    return name


def _convert_element(node: "etree._Element") -> Element:
    name = _qualified_name(node.tag)
    attributes = {
        _qualified_name(key): value for key, value in node.attrib.items()
    }
    element = Element(name=name, attributes=attributes)

    if name in LITERAL_CONTAINERS:
        element.children.append(Literal(node.text or ""))
        return element

    children: List[Node] = []
    if node.text:
        children.append(Text(node.text))
    for child in node:
        # Comments and processing instructions are removed by the parser,
        # but entity references can still show up as non-element nodes.
        if isinstance(child.tag, str):
            children.append(_convert_element(child))
        if child.tail:
            children.append(Text(child.tail))
    element.children = children
    return element

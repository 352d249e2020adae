"""Custom assertion helpers for storage format and markdown comparison.

These helpers normalize whitespace and formatting differences to make
content comparisons more reliable in tests.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from publish_confluence.content_converter.document_tree import Element, Literal, Node, Text
from publish_confluence.content_converter.storage_parser import parse_storage_markup

# Attributes Confluence regenerates on every save
VOLATILE_ATTRIBUTES = frozenset({"ac:macro-id", "ac:schema-version"})


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace in text for comparison.

    Strips each line, drops blank lines and collapses runs of whitespace.

    Example:
        >>> normalize_whitespace("  Hello   World  \\n\\n")
        'Hello World'
    """
    if not text:
        return ""
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    lines = [line.strip() for line in text.split('\n')]
    result = ' '.join(line for line in lines if line)
    return re.sub(r'\s+', ' ', result).strip()


def storage_structure(xhtml: str) -> Any:
    """Reduce storage markup to the parts a round trip must preserve.

    Each element becomes ``(name, attributes, parameters, children)``.
    Macro parameters are compared as a mapping, so their order does not
    matter; whitespace-only text disappears and other text is collapsed;
    macro ids and schema versions are ignored.
    """
    return _structure(parse_storage_markup(xhtml))


def _structure(node: Node) -> Optional[Tuple]:
    if isinstance(node, Literal):
        return ("literal", node.value.strip("\n"))
    if isinstance(node, Text):
        text = " ".join(node.value.split())
        return ("text", text) if text else None

    attributes = {
        key: value for key, value in node.attributes.items()
        if key not in VOLATILE_ATTRIBUTES
    }
    parameters: Dict[str, str] = {}
    children: List[Tuple] = []
    for child in node.children:
        if isinstance(child, Element) and child.name == "ac:parameter":
            parameters[child.get("ac:name", "")] = child.text_content()
            continue
        converted = _structure(child)
        if converted is not None:
            children.append(converted)
    return (node.name, attributes, parameters, children)


def assert_storage_equivalent(actual: str, expected: str, message: str = "") -> None:
    """Assert that two storage documents have the same structure.

    Raises:
        AssertionError: If element names, parameter values or nesting differ

    Example:
        >>> assert_storage_equivalent("<p>A  </p>\\n", "<p>A</p>")
    """
    actual_structure = storage_structure(actual)
    expected_structure = storage_structure(expected)
    if actual_structure != expected_structure:
        error_msg = (
            f"Storage mismatch:\nExpected:\n{expected_structure}\n\n"
            f"Actual:\n{actual_structure}\n\nActual markup:\n{actual}"
        )
        if message:
            error_msg = f"{message}\n{error_msg}"
        raise AssertionError(error_msg)


def assert_markdown_similar(actual: str, expected: str, message: str = "") -> None:
    """Assert that two markdown strings match after whitespace normalization.

    Raises:
        AssertionError: If the markdown differs (after normalization)
    """
    actual_normalized = normalize_whitespace(actual)
    expected_normalized = normalize_whitespace(expected)
    if actual_normalized != expected_normalized:
        error_msg = (
            f"Markdown mismatch:\nExpected:\n{expected_normalized}\n\n"
            f"Actual:\n{actual_normalized}"
        )
        if message:
            error_msg = f"{message}\n{error_msg}"
        raise AssertionError(error_msg)


def directive_lines(markdown: str) -> List[str]:
    """Lines of exported markdown that start with a template directive."""
    return [line for line in markdown.split("\n") if line.startswith("{{")]

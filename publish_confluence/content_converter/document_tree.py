"""Document tree shared by both conversion directions.

The tree is deliberately small: elements with ordered attributes, plain
character data, and literal spans. A ``Literal`` carries content that every
later pass must emit byte-for-byte (code bodies, template directives); no
pass looks inside one for markup syntax.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union


@dataclass
class Text:
    """Plain character data."""
    value: str


@dataclass
class Literal:
    """Opaque passthrough content that must never be reflowed or escaped."""
    value: str


@dataclass
class Element:
    """A markup element.

    Attributes:
        name: Qualified element name, e.g. ``p`` or ``ac:structured-macro``
        attributes: Attribute values in document order
        children: Child nodes in document order
    """
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)

    @property
    def prefix(self) -> Optional[str]:
        """Namespace prefix of the element name (``ac`` for ``ac:layout``)."""
        if ":" in self.name:
            return self.name.split(":", 1)[0]
        return None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return an attribute value, or ``default`` when absent."""
        return self.attributes.get(name, default)

    def child_elements(self, name: Optional[str] = None) -> List["Element"]:
        """Return direct child elements, optionally filtered by name."""
        return [
            child for child in self.children
            if isinstance(child, Element) and (name is None or child.name == name)
        ]

    def find(self, name: str) -> Optional["Element"]:
        """Return the first direct child element called ``name``."""
        for child in self.children:
            if isinstance(child, Element) and child.name == name:
                return child
        return None

    def text_content(self) -> str:
        """Concatenate all Text and Literal descendants."""
        parts = []
        for node in walk(self):
            if isinstance(node, (Text, Literal)):
                parts.append(node.value)
        return "".join(parts)


Node = Union[Element, Text, Literal]


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants in document order."""
    yield node
    if isinstance(node, Element):
        for child in node.children:
            yield from walk(child)

"""Bidirectional mapping between storage-format macros and template helpers.

Every macro the converter understands is described once, as data, by a
``MacroDescriptor``. The forward converter reads descriptors to turn
``ac:structured-macro`` elements (and the few macro-like ``ac:`` elements such
as layouts, images and links) into ``{{#confluence-...}}`` invocations; the
reverse synthesizer reads the same descriptors to turn invocations back into
storage markup. Adding a macro is a change to ``_DEFAULT_DESCRIPTORS`` only.

Value-kind policy:
    - BOOL parameters are ``true``/``false`` tokens in templates and are
      written to storage format only when true.
    - NUMBER parameters are unquoted in templates.
    - STRING and ENUM parameters are quoted in templates.

Defaults describe the value Confluence assumes when a parameter is absent.
Export leaves out arguments that equal their default; synthesis fills
omitted arguments with their default.
"""

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .document_tree import Element

MACRO_CONTAINER = "ac:structured-macro"
PARAMETER_ELEMENT = "ac:parameter"
RICH_BODY = "ac:rich-text-body"
PLAIN_BODY = "ac:plain-text-body"
LINK_TEXT_BODY = "ac:plain-text-link-body"
RICH_LINK_BODY = "ac:link-body"

COMMENT_ARGUMENT = "comment"
GENERIC_NAME_ARGUMENT = "macro"
# Template argument standing in for a parameter stored with an empty name
UNNAMED_PARAMETER_ARGUMENT = "unnamed"

TEMPLATE_LANGUAGES = frozenset({"template", "handlebars", "hbs", "mustache"})

_NUMBER_PATTERN = re.compile(r"-?\d+(\.\d+)?")
_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_URL_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


class ParamKind(Enum):
    """How a parameter value is typed and rendered."""
    STRING = "string"
    BOOL = "bool"
    NUMBER = "number"
    ENUM = "enum"


class ParamSource(Enum):
    """Where a parameter lives in storage format."""
    PARAMETER = "parameter"  # <ac:parameter ac:name="key">value</ac:parameter>
    ATTRIBUTE = "attribute"  # attribute on the container element
    CONTROL = "control"      # template-only switch, never written to storage


class BodyKind(Enum):
    """How a macro's body is carried in storage format."""
    NONE = "none"            # inline macro, no body
    RICH = "rich"            # <ac:rich-text-body>markup</ac:rich-text-body>
    PLAIN = "plain"          # <ac:plain-text-body><![CDATA[text]]></ac:plain-text-body>
    ELEMENT = "element"      # children of the container element itself


def quote_template_string(value: str) -> str:
    """Quote a value as a template string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def is_identifier(key: str) -> bool:
    """Whether ``key`` can be used as a template argument name."""
    return bool(_IDENTIFIER_PATTERN.fullmatch(key))


def looks_like_url(value: str) -> bool:
    return bool(_URL_PATTERN.match(value))


@dataclass(frozen=True)
class ParamSpec:
    """One parameter of a macro, as seen from both sides.

    Attributes:
        structured_key: Parameter or attribute name in storage format
            (None for template-only control arguments)
        template_key: Argument name in template invocations
        kind: Value kind driving quoting and validation
        default: Value Confluence assumes when the parameter is absent
        required: Whether synthesis must refuse to render without it
        choices: Allowed values for ENUM parameters (case-insensitive)
        source: Where the parameter lives in storage format
    """
    structured_key: Optional[str]
    template_key: str
    kind: ParamKind = ParamKind.STRING
    default: Optional[str] = None
    required: bool = False
    choices: Tuple[str, ...] = ()
    source: ParamSource = ParamSource.PARAMETER

    def is_default(self, value: str) -> bool:
        """Whether ``value`` equals this parameter's default."""
        if self.kind == ParamKind.BOOL:
            default = self.default or "false"
            return value.strip().lower() == default
        return self.default is not None and value == self.default

    def to_template(self, value: str) -> str:
        """Render a storage-format value as a template argument value."""
        if self.kind == ParamKind.BOOL:
            return "true" if value.strip().lower() == "true" else "false"
        if self.kind == ParamKind.NUMBER and _NUMBER_PATTERN.fullmatch(value.strip()):
            return value.strip()
        return quote_template_string(value)

    def coerce(self, raw: Any) -> str:
        """Normalize a template argument into its storage-format text.

        Raises:
            ValueError: If the value cannot be interpreted for this kind
        """
        if self.kind == ParamKind.BOOL:
            if isinstance(raw, bool):
                return "true" if raw else "false"
            text = str(raw).strip().lower()
            if text in ("true", "false"):
                return text
            raise ValueError(f"expected true or false, got '{raw}'")
        if self.kind == ParamKind.NUMBER:
            if isinstance(raw, bool):
                raise ValueError(f"expected a number, got '{raw}'")
            if isinstance(raw, (int, float)):
                return str(raw)
            text = str(raw).strip()
            if not _NUMBER_PATTERN.fullmatch(text):
                raise ValueError(f"expected a number, got '{raw}'")
            return text
        if self.kind == ParamKind.ENUM:
            text = str(raw)
            if self.choices and text.lower() not in {c.lower() for c in self.choices}:
                raise ValueError(
                    f"expected one of {', '.join(self.choices)}, got '{raw}'"
                )
            return text
        return str(raw)


@dataclass(frozen=True)
class ResourceSpec:
    """A resource-identifier child (``ri:*``) mapped to template arguments.

    Attributes:
        element: Resource element name, e.g. ``ri:attachment``
        attribute: Identifying attribute on that element
        template_key: Argument carrying the identifying attribute
        url: True if the argument value must be a URL, False if it must not
            be one, None if either is fine
        extra: Further (structured attribute, template argument) pairs
    """
    element: str
    attribute: str
    template_key: str
    url: Optional[bool] = None
    extra: Tuple[Tuple[str, str], ...] = ()

    def accepts(self, value: str) -> bool:
        if self.url is None:
            return True
        return looks_like_url(value) == self.url


@dataclass(frozen=True)
class MacroDescriptor:
    """Registry entry describing one macro in both dialects.

    Attributes:
        structured_name: ``ac:name`` of a structured macro, or the element
            name for element containers such as ``ac:layout``
        template_name: Helper name used in template invocations
        body: How the body is carried in storage format
        parameters: Parameter specs in the order they are emitted
        container: ``ac:structured-macro`` or the element container name
        resources: Resource-identifier children understood by the macro
        resource_required: Whether one of ``resources`` must be present
        text_argument: Argument carrying a plain-text link body
        standalone: Inline macro that forms its own block when it is alone
            on a line (a table of contents, not an image)
        generic: Fallback descriptor for macros absent from the table
    """
    structured_name: Optional[str]
    template_name: str
    body: BodyKind = BodyKind.NONE
    parameters: Tuple[ParamSpec, ...] = ()
    container: str = MACRO_CONTAINER
    resources: Tuple[ResourceSpec, ...] = ()
    resource_required: bool = False
    text_argument: Optional[str] = None
    standalone: bool = False
    generic: bool = False

    @property
    def is_block(self) -> bool:
        return self.body != BodyKind.NONE

    @property
    def is_structured_macro(self) -> bool:
        return self.container == MACRO_CONTAINER

    def param(self, template_key: str) -> Optional[ParamSpec]:
        for spec in self.parameters:
            if spec.template_key == template_key:
                return spec
        return None

    def structured_param(self, structured_key: str) -> Optional[ParamSpec]:
        for spec in self.parameters:
            if spec.source != ParamSource.CONTROL and spec.structured_key == structured_key:
                return spec
        return None

    def template_keys(self) -> Tuple[str, ...]:
        keys = [spec.template_key for spec in self.parameters]
        for resource in self.resources:
            keys.append(resource.template_key)
            keys.extend(template_key for _, template_key in resource.extra)
        if self.text_argument:
            keys.append(self.text_argument)
        return tuple(keys)


def _param(structured_key: Optional[str], template_key: Optional[str] = None,
           kind: ParamKind = ParamKind.STRING, **options: Any) -> ParamSpec:
    return ParamSpec(
        structured_key=structured_key,
        template_key=template_key or structured_key or "",
        kind=kind,
        **options,
    )


def _attribute(structured_key: str, template_key: str,
               kind: ParamKind = ParamKind.STRING, **options: Any) -> ParamSpec:
    return _param(structured_key, template_key, kind,
                  source=ParamSource.ATTRIBUTE, **options)


_COMMENT = _param(None, COMMENT_ARGUMENT, ParamKind.BOOL, source=ParamSource.CONTROL)


def _admonition(name: str) -> MacroDescriptor:
    return MacroDescriptor(
        structured_name=name,
        template_name=f"confluence-{name}",
        body=BodyKind.RICH,
        parameters=(_param("title"), _COMMENT),
    )


_DEFAULT_DESCRIPTORS: Tuple[MacroDescriptor, ...] = (
    MacroDescriptor(
        structured_name="panel",
        template_name="confluence-panel",
        body=BodyKind.RICH,
        parameters=(
            _param("title"),
            _param("bgColor"),
            _param("titleBGColor"),
            _param("titleColor"),
            _param("borderStyle"),
            _param("borderColor"),
            _param("borderWidth", kind=ParamKind.NUMBER),
            _COMMENT,
        ),
    ),
    _admonition("info"),
    _admonition("note"),
    _admonition("warning"),
    _admonition("tip"),
    MacroDescriptor(
        structured_name="expand",
        template_name="confluence-expand",
        body=BodyKind.RICH,
        parameters=(_param("title"),),
    ),
    MacroDescriptor(
        structured_name="code",
        template_name="confluence-code",
        body=BodyKind.PLAIN,
        parameters=(
            _param("language"),
            _param("title"),
            _param("linenumbers", kind=ParamKind.BOOL),
            _param("collapse", kind=ParamKind.BOOL),
            _param("firstline", kind=ParamKind.NUMBER),
            _param("theme"),
        ),
    ),
    MacroDescriptor(
        structured_name="toc",
        template_name="confluence-toc",
        standalone=True,
        parameters=(
            _param("minLevel", kind=ParamKind.NUMBER),
            _param("maxLevel", kind=ParamKind.NUMBER),
            _param("style"),
            _param("type", kind=ParamKind.ENUM, choices=("list", "flat")),
            _param("outline", kind=ParamKind.BOOL),
            _param("include"),
            _param("exclude"),
        ),
    ),
    MacroDescriptor(
        structured_name="status",
        template_name="confluence-status",
        parameters=(
            _param("colour", "type", ParamKind.ENUM,
                   choices=("Grey", "Red", "Yellow", "Green", "Blue", "Purple")),
            _param("title", "text"),
            _param("subtle", kind=ParamKind.BOOL),
        ),
    ),
    MacroDescriptor(
        structured_name="anchor",
        template_name="confluence-anchor",
        parameters=(_param("", "name", required=True),),
    ),
    MacroDescriptor(
        structured_name="children",
        template_name="confluence-children",
        standalone=True,
        parameters=(
            _param("sort", "sortBy", ParamKind.ENUM,
                   choices=("creation", "title", "modified")),
            _param("reverse", kind=ParamKind.BOOL),
            _param("depth", kind=ParamKind.NUMBER),
            _param("all", kind=ParamKind.BOOL),
            _param("first", kind=ParamKind.NUMBER),
            _param("style"),
            _param("page"),
        ),
    ),
    MacroDescriptor(
        structured_name="html",
        template_name="confluence-html",
        body=BodyKind.PLAIN,
    ),
    MacroDescriptor(
        structured_name="ac:layout",
        template_name="confluence-layout",
        body=BodyKind.ELEMENT,
        container="ac:layout",
    ),
    MacroDescriptor(
        structured_name="ac:layout-section",
        template_name="layout-section",
        body=BodyKind.ELEMENT,
        container="ac:layout-section",
        parameters=(
            _attribute("ac:type", "type", ParamKind.ENUM, default="single", choices=(
                "single", "two_equal", "two_left_sidebar", "two_right_sidebar",
                "three_equal", "three_with_sidebars", "fixed-width",
            )),
        ),
    ),
    MacroDescriptor(
        structured_name="ac:layout-cell",
        template_name="layout-cell",
        body=BodyKind.ELEMENT,
        container="ac:layout-cell",
    ),
    MacroDescriptor(
        structured_name="tabs-group",
        template_name="confluence-tabs",
        body=BodyKind.RICH,
        parameters=(
            _param("disposition", kind=ParamKind.ENUM,
                   choices=("horizontal", "vertical")),
            _param("outline", kind=ParamKind.BOOL),
            _param("color"),
        ),
    ),
    MacroDescriptor(
        structured_name="tab-pane",
        template_name="confluence-tab",
        body=BodyKind.RICH,
        parameters=(
            _param("name", required=True),
            _param("icon"),
            _param("anchor"),
        ),
    ),
    MacroDescriptor(
        structured_name="ac:image",
        template_name="confluence-image",
        container="ac:image",
        parameters=(
            _attribute("ac:alt", "alt"),
            _attribute("ac:title", "title"),
            _attribute("ac:width", "width", ParamKind.NUMBER),
            _attribute("ac:height", "height", ParamKind.NUMBER),
            _attribute("ac:align", "align", ParamKind.ENUM,
                       choices=("left", "center", "right")),
            _attribute("ac:border", "border", ParamKind.BOOL),
            _attribute("ac:thumbnail", "thumbnail", ParamKind.BOOL),
        ),
        resources=(
            ResourceSpec("ri:url", "ri:value", "src", url=True),
            ResourceSpec("ri:attachment", "ri:filename", "src", url=False),
        ),
        resource_required=True,
    ),
    MacroDescriptor(
        structured_name="ac:link",
        template_name="confluence-link",
        container="ac:link",
        parameters=(
            _attribute("ac:anchor", "anchor"),
            _attribute("ac:tooltip", "tooltip"),
        ),
        resources=(
            ResourceSpec("ri:page", "ri:content-title", "pageTitle",
                         extra=(("ri:space-key", "spaceKey"),)),
            ResourceSpec("ri:attachment", "ri:filename", "filename"),
            ResourceSpec("ri:url", "ri:value", "url"),
        ),
        text_argument="text",
    ),
)

GENERIC_MACRO = MacroDescriptor(
    structured_name=None,
    template_name="confluence-macro",
    body=BodyKind.RICH,
    generic=True,
)

GENERIC_PLAIN_MACRO = MacroDescriptor(
    structured_name=None,
    template_name="confluence-plain-macro",
    body=BodyKind.PLAIN,
    generic=True,
)


class MacroRegistry:
    """Read-only lookup table of macro descriptors.

    The registry is built once and never mutated afterwards, so a single
    instance can be shared by any number of concurrent conversions.

    Example:
        >>> DEFAULT_REGISTRY.lookup_by_structured_name("status").template_name
        'confluence-status'
        >>> DEFAULT_REGISTRY.lookup_by_template_name("confluence-toc").is_block
        False
    """

    def __init__(self, descriptors: Iterable[MacroDescriptor]):
        macros: Dict[str, MacroDescriptor] = {}
        elements: Dict[str, MacroDescriptor] = {}
        templates: Dict[str, MacroDescriptor] = {}

        for descriptor in descriptors:
            if descriptor.template_name in templates:
                raise ValueError(
                    f"Duplicate template name '{descriptor.template_name}'"
                )
            templates[descriptor.template_name] = descriptor
            if descriptor.generic or descriptor.structured_name is None:
                continue
            if descriptor.is_structured_macro:
                macros[descriptor.structured_name] = descriptor
            else:
                elements[descriptor.container] = descriptor

        self._macros: Mapping[str, MacroDescriptor] = MappingProxyType(macros)
        self._elements: Mapping[str, MacroDescriptor] = MappingProxyType(elements)
        self._templates: Mapping[str, MacroDescriptor] = MappingProxyType(templates)

    def lookup_by_structured_name(self, name: str) -> Optional[MacroDescriptor]:
        """Find a descriptor by ``ac:name`` or by element container name."""
        return self._macros.get(name) or self._elements.get(name)

    def lookup_by_template_name(self, name: str) -> Optional[MacroDescriptor]:
        """Find a descriptor by template helper name."""
        return self._templates.get(name)

    def is_macro_element(self, element: Element) -> bool:
        """Whether ``element`` is a macro container of either sort."""
        return element.name == MACRO_CONTAINER or element.name in self._elements

    def lookup_element(self, element: Element) -> Optional[MacroDescriptor]:
        """Find the descriptor for a storage element, if it is a known macro.

        Element containers whose resource children are not all understood
        (for instance an ``ac:link`` to a user) count as unknown.
        """
        if element.name == MACRO_CONTAINER:
            return self._macros.get(element.get("ac:name", ""))

        descriptor = self._elements.get(element.name)
        if descriptor is None:
            return None
        known = {resource.element for resource in descriptor.resources}
        for child in element.child_elements():
            if child.prefix == "ri" and child.name not in known:
                return None
        return descriptor

    def descriptors(self) -> Tuple[MacroDescriptor, ...]:
        return tuple(self._templates.values())

    def has_literal_body(self, template_name: str) -> bool:
        """Whether the named helper's body is literal text."""
        descriptor = self._templates.get(template_name)
        return descriptor is not None and descriptor.body == BodyKind.PLAIN


DEFAULT_REGISTRY = MacroRegistry(
    _DEFAULT_DESCRIPTORS + (GENERIC_MACRO, GENERIC_PLAIN_MACRO)
)

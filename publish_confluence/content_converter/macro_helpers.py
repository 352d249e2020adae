"""Reverse synthesizer: template helpers that emit storage-format macros.

Each macro descriptor in the registry becomes one helper. When a page
template is rendered, the template engine calls the helper with the
invocation's arguments and (for block macros) the already-rendered body,
and the helper returns the storage-format fragment for the macro.

Helpers never raise for bad input. A missing required argument makes the
macro render as nothing and records a warning on the conversion context,
so one broken macro does not stop the rest of the page from publishing.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from publish_confluence.models.conversion_result import WarningKind

from .conversion_context import ConversionContext, Dialect
from .macro_registry import (
    COMMENT_ARGUMENT,
    DEFAULT_REGISTRY,
    GENERIC_NAME_ARGUMENT,
    LINK_TEXT_BODY,
    MACRO_CONTAINER,
    PARAMETER_ELEMENT,
    PLAIN_BODY,
    RICH_BODY,
    UNNAMED_PARAMETER_ARGUMENT,
    BodyKind,
    MacroDescriptor,
    MacroRegistry,
    ParamKind,
    ParamSource,
)
from .template_renderer import HelperRegistry

logger = logging.getLogger(__name__)

# The publish side of a conversion uses the same context type
SynthesisContext = ConversionContext

SCHEMA_VERSION = "1"


def escape_xml(value: str) -> str:
    """Escape text for use in element content or a double-quoted attribute."""
    return escape(value, {'"': "&quot;"})


def cdata(text: str) -> str:
    """Wrap text in a CDATA section, splitting any ``]]>`` it contains."""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _is_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _trim_plain_body(body: str) -> str:
    """Drop the newlines that directive-per-line layout puts around a body."""
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    if body.endswith("\n"):
        body = body[:-1]
    return body


class StructuredMacroHelper:
    """Template helper rendering one macro descriptor as storage format.

    Args:
        descriptor: Macro to render
        context: Publish-side conversion context (warnings, id counter and
            the include-comments switch)

    Example:
        >>> context = ConversionContext(dialect=Dialect.STORAGE)
        >>> helper = StructuredMacroHelper(
        ...     DEFAULT_REGISTRY.lookup_by_template_name("confluence-anchor"), context)
        >>> helper({}, None)
        ''
        >>> context.warnings[0].argument
        'name'
    """

    def __init__(self, descriptor: MacroDescriptor, context: ConversionContext):
        self.descriptor = descriptor
        self.context = context

    def __call__(self, arguments: Dict[str, Any], body: Optional[str]) -> str:
        descriptor = self.descriptor
        if _is_true(arguments.get(COMMENT_ARGUMENT, False)) and not self.context.include_comments:
            logger.debug(f"Skipping comment macro '{descriptor.template_name}'")
            return ""

        if descriptor.generic:
            return self._render_generic(arguments, body)

        values = self._parameter_values(arguments)
        if values is None:
            return ""

        resource = self._resource(arguments)
        if descriptor.resource_required and resource is None:
            return self._missing(descriptor.resources[0].template_key)

        self._report_unknown(arguments)

        if descriptor.is_structured_macro:
            parameters = [
                (spec.structured_key, value) for spec, value in values
                if spec.source == ParamSource.PARAMETER
            ]
            parameters.extend(self._free_parameters(arguments))
            return self._structured_macro(descriptor.structured_name, parameters, body)

        attributes = [
            (spec.structured_key, value) for spec, value in values
            if spec.source == ParamSource.ATTRIBUTE
        ]
        parts = [resource or ""]
        if descriptor.text_argument and arguments.get(descriptor.text_argument) is not None:
            text = _as_text(arguments[descriptor.text_argument])
            parts.append(f"<{LINK_TEXT_BODY}>{cdata(text)}</{LINK_TEXT_BODY}>")
        if descriptor.body == BodyKind.ELEMENT and body is not None:
            parts.append(body.strip())
        return _element(descriptor.container, attributes, "".join(parts))

    def _parameter_values(self, arguments: Dict[str, Any]) -> Optional[List[Tuple[Any, str]]]:
        """Coerce described arguments; None when a required one is missing."""
        values = []
        for spec in self.descriptor.parameters:
            if spec.source == ParamSource.CONTROL:
                continue
            raw = arguments.get(spec.template_key)
            if raw is None or (spec.required and raw == ""):
                if spec.required:
                    self._missing(spec.template_key)
                    return None
                if spec.default is None or spec.kind == ParamKind.BOOL:
                    continue
                value = spec.default
            else:
                try:
                    value = spec.coerce(raw)
                except ValueError as e:
                    self.context.warn(
                        WarningKind.INVALID_ARGUMENT,
                        f"Invalid value for argument '{spec.template_key}' of "
                        f"'{self.descriptor.template_name}': {e}",
                        macro=self.descriptor.template_name,
                        argument=spec.template_key,
                    )
                    value = _as_text(raw)
            if spec.kind == ParamKind.BOOL and value != "true":
                continue
            values.append((spec, value))
        return values

    def _resource(self, arguments: Dict[str, Any]) -> Optional[str]:
        for resource in self.descriptor.resources:
            value = arguments.get(resource.template_key)
            if value is None or not resource.accepts(_as_text(value)):
                continue
            attributes = [(resource.attribute, _as_text(value))]
            for attribute, template_key in resource.extra:
                if arguments.get(template_key) is not None:
                    attributes.append((attribute, _as_text(arguments[template_key])))
            rendered = "".join(f' {key}="{escape_xml(item)}"' for key, item in attributes)
            return f"<{resource.element}{rendered} />"
        return None

    def _free_parameters(self, arguments: Dict[str, Any]) -> List[Tuple[str, str]]:
        known = set(self.descriptor.template_keys()) | {COMMENT_ARGUMENT}
        return [
            ("" if key == UNNAMED_PARAMETER_ARGUMENT else key, _as_text(value))
            for key, value in arguments.items()
            if key not in known
        ]

    def _report_unknown(self, arguments: Dict[str, Any]) -> None:
        if self.descriptor.is_structured_macro:
            return
        known = set(self.descriptor.template_keys()) | {COMMENT_ARGUMENT}
        for key in arguments:
            if key not in known:
                logger.debug(
                    f"Ignoring argument '{key}' of '{self.descriptor.template_name}'"
                )

    def _render_generic(self, arguments: Dict[str, Any], body: Optional[str]) -> str:
        name = arguments.get(GENERIC_NAME_ARGUMENT)
        if not name:
            return self._missing(GENERIC_NAME_ARGUMENT)
        parameters = [
            ("" if key == UNNAMED_PARAMETER_ARGUMENT else key, _as_text(value))
            for key, value in arguments.items()
            if key not in (GENERIC_NAME_ARGUMENT, COMMENT_ARGUMENT)
        ]
        return self._structured_macro(_as_text(name), parameters, body)

    def _structured_macro(
        self,
        name: str,
        parameters: List[Tuple[str, str]],
        body: Optional[str],
    ) -> str:
        parts = [
            f'<{MACRO_CONTAINER} ac:name="{escape_xml(name)}" '
            f'ac:schema-version="{SCHEMA_VERSION}" '
            f'ac:macro-id="{self.context.next_macro_id()}">'
        ]
        for key, value in parameters:
            parts.append(
                f'<{PARAMETER_ELEMENT} ac:name="{escape_xml(key)}">'
                f'{escape_xml(value)}</{PARAMETER_ELEMENT}>'
            )
        if body is not None:
            if self.descriptor.body == BodyKind.PLAIN:
                parts.append(f"<{PLAIN_BODY}>{cdata(_trim_plain_body(body))}</{PLAIN_BODY}>")
            elif self.descriptor.body == BodyKind.RICH:
                parts.append(f"<{RICH_BODY}>{body.strip()}</{RICH_BODY}>")
        parts.append(f"</{MACRO_CONTAINER}>")
        return "".join(parts)

    def _missing(self, argument: str) -> str:
        name = self.descriptor.template_name
        self.context.warn(
            WarningKind.MISSING_REQUIRED_ARGUMENT,
            f"Macro '{name}' is missing required argument '{argument}' and was not rendered",
            macro=name,
            argument=argument,
        )
        return ""


def _element(name: str, attributes: List[Tuple[str, str]], content: str) -> str:
    rendered = "".join(f' {key}="{escape_xml(value)}"' for key, value in attributes)
    return f"<{name}{rendered}>{content}</{name}>"


def register_structured_macro_helpers(
    registry: HelperRegistry,
    context: Optional[ConversionContext] = None,
    macro_registry: MacroRegistry = DEFAULT_REGISTRY,
) -> ConversionContext:
    """Register one helper per macro descriptor.

    Args:
        registry: Helper registry to populate
        context: Publish-side context shared by the helpers of one render;
            a fresh one is created when omitted
        macro_registry: Macro table to register

    Returns:
        The context the helpers report warnings to
    """
    if context is None:
        context = ConversionContext(dialect=Dialect.STORAGE)
    for descriptor in macro_registry.descriptors():
        registry.register(
            descriptor.template_name,
            StructuredMacroHelper(descriptor, context),
            block=descriptor.is_block,
        )
    logger.debug(f"Registered {len(macro_registry.descriptors())} macro helpers")
    return context

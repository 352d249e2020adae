"""Publish pipeline: page template source to storage format.

Markdown pages are rendered in two steps. markdown-it first turns the prose
into XHTML, passing template directives through untouched (see
``literal_preserver.directive_plugin``); the result is then rendered as a
template, at which point the macro helpers replace every directive with
storage markup. Storage templates (``.hbs``, ``.html``, ``.xhtml``) skip the
markdown step.
"""

import logging
from typing import Any, Mapping, Optional

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml

from publish_confluence.models.conversion_result import ConversionResult, WarningKind

from .conversion_context import ConversionContext, Dialect
from .directive_syntax import escape_placeholders
from .errors import TemplateRenderError
from .forward_converter import format_directive
from .literal_preserver import directive_plugin
from .macro_helpers import register_structured_macro_helpers
from .macro_registry import DEFAULT_REGISTRY, TEMPLATE_LANGUAGES, MacroRegistry, quote_template_string
from .storage_validator import validate_storage_markup
from .template_renderer import HelperRegistry, render_template

logger = logging.getLogger(__name__)

MARKDOWN_FORMATS = frozenset({"md", "markdown"})
STORAGE_FORMATS = frozenset({"hbs", "handlebars", "html", "xhtml"})


class MarkdownRenderer:
    """Renders template markdown to XHTML with directives left in place.

    Fenced code blocks become ``confluence-code`` invocations and images
    become ``confluence-image`` invocations, so that they publish as the
    corresponding Confluence macros.

    Example:
        >>> MarkdownRenderer().render("{{#confluence-info}}\\nHello\\n{{/confluence-info}}\\n")
        '{{#confluence-info}}\\n<p>Hello</p>\\n{{/confluence-info}}\\n'
    """

    def __init__(self, registry: MacroRegistry = DEFAULT_REGISTRY):
        self._registry = registry
        self._code_helper = registry.lookup_by_structured_name("code").template_name
        self._image_helper = registry.lookup_by_structured_name("ac:image").template_name

        self._md = (
            MarkdownIt("commonmark", {"xhtmlOut": True, "html": True})
            .enable(["table", "strikethrough"])
            .use(directive_plugin, registry=registry)
        )
        self._md.add_render_rule("fence", self._fence_rule())
        self._md.add_render_rule("code_block", self._fence_rule())
        self._md.add_render_rule("code_inline", _code_inline)
        self._md.add_render_rule("image", self._image_rule())

    def render(self, markdown: str) -> str:
        """Render markdown to XHTML, keeping template directives verbatim."""
        return self._md.render(markdown)

    def _fence_rule(self):
        code_helper = self._code_helper

        def fence(renderer, tokens, idx, options, env):
            token = tokens[idx]
            info = token.info.strip() if token.info else ""
            language = info.split()[0] if info else ""
            code = token.content
            if not code.endswith("\n"):
                code += "\n"
            if language.lower() not in TEMPLATE_LANGUAGES:
                code = escape_placeholders(code)
            arguments = [("language", quote_template_string(language))] if language else []
            return (
                format_directive(code_helper, arguments, "#") + "\n"
                + code
                + "{{/" + code_helper + "}}\n"
            )

        return fence

    def _image_rule(self):
        image_helper = self._image_helper

        def image(renderer, tokens, idx, options, env):
            token = tokens[idx]
            arguments = [("src", quote_template_string(str(token.attrGet("src") or "")))]
            alt = renderer.renderInlineAsText(token.children or [], options, env)
            if alt:
                arguments.append(("alt", quote_template_string(alt)))
            title = token.attrGet("title")
            if title:
                arguments.append(("title", quote_template_string(str(title))))
            return format_directive(image_helper, arguments)

        return image


def _code_inline(renderer, tokens, idx, options, env):
    content = escape_placeholders(tokens[idx].content)
    return f"<code>{escapeHtml(content)}</code>"


def render_page_template(
    source: str,
    template_format: str,
    context: Optional[Mapping[str, Any]] = None,
    helpers: Optional[HelperRegistry] = None,
    registry: MacroRegistry = DEFAULT_REGISTRY,
) -> str:
    """Render a page template of the given format to storage markup.

    Args:
        source: Template source
        template_format: File extension or format name (``md``, ``hbs``,
            ``html``, ``xhtml``)
        context: Template variables
        helpers: Helpers available to the template
        registry: Macro table used by the markdown step

    Raises:
        TemplateRenderError: For an unknown format or a template error
        MismatchedBlockDirectiveError: If block directives do not pair
    """
    template_format = template_format.lower().lstrip(".")
    if template_format in MARKDOWN_FORMATS:
        source = MarkdownRenderer(registry).render(source)
    elif template_format not in STORAGE_FORMATS:
        raise TemplateRenderError(f"Unsupported template format '{template_format}'")
    return render_template(source, context, helpers)


def render_page_to_storage(
    source: str,
    template_format: str,
    variables: Optional[Mapping[str, Any]] = None,
    include_comments: bool = False,
    document_key: str = "",
    registry: MacroRegistry = DEFAULT_REGISTRY,
) -> ConversionResult:
    """Render one page template with the macro helpers and validate it.

    Each call builds its own helper registry and conversion context, so
    pages can be rendered concurrently.

    Raises:
        TemplateRenderError: If the template cannot be rendered
        MismatchedBlockDirectiveError: If block directives do not pair
    """
    helpers = HelperRegistry()
    context = register_structured_macro_helpers(
        helpers,
        ConversionContext(
            dialect=Dialect.STORAGE,
            include_comments=include_comments,
            document_key=document_key,
        ),
        registry,
    )
    content = render_page_template(source, template_format, variables, helpers, registry)

    for problem in validate_storage_markup(content):
        context.warn(WarningKind.VALIDATION, problem)

    logger.debug(
        f"Rendered '{document_key or 'page'}' to {len(content)} characters "
        f"with {len(context.warnings)} warning(s)"
    )
    return ConversionResult(
        content=content,
        metadata={"document_key": document_key, "format": "storage"},
        warnings=list(context.warnings),
    )

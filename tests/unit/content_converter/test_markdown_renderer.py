"""Unit tests for content_converter.markdown_renderer module."""

import pytest

from publish_confluence.content_converter.errors import (
    MismatchedBlockDirectiveError,
    TemplateRenderError,
)
from publish_confluence.content_converter.markdown_renderer import (
    MarkdownRenderer,
    render_page_template,
    render_page_to_storage,
)
from publish_confluence.models.conversion_result import WarningKind
from tests.fixtures.sample_templates import (
    SAMPLE_STORAGE_TEMPLATE,
    SAMPLE_TEMPLATE_MISMATCHED,
    SAMPLE_TEMPLATE_WITH_COMMENT,
    SAMPLE_TEMPLATE_WITH_MACROS,
)
from tests.helpers.assertion_helpers import assert_storage_equivalent


@pytest.fixture
def renderer():
    return MarkdownRenderer()


class TestMarkdownRenderer:
    """Test cases for MarkdownRenderer."""

    def test_directives_pass_through(self, renderer):
        """Block directives are kept verbatim around rendered prose."""
        html = renderer.render("{{#confluence-info}}\nHello\n{{/confluence-info}}\n")

        assert html == "{{#confluence-info}}\n<p>Hello</p>\n{{/confluence-info}}\n"

    def test_fence_becomes_code_macro(self, renderer):
        """Fenced code blocks are rendered as confluence-code invocations."""
        html = renderer.render("```python\nprint(1)\n```\n")

        assert html == '{{#confluence-code language="python"}}\nprint(1)\n{{/confluence-code}}\n'

    def test_fence_placeholders_are_escaped(self, renderer):
        """Placeholders in code are shown, not evaluated."""
        html = renderer.render("```\nHello {{x}}\n```\n")

        assert html == "{{#confluence-code}}\nHello \\{{x}}\n{{/confluence-code}}\n"

    def test_template_language_fence_is_live(self, renderer):
        """Code declared as a template language keeps live placeholders."""
        html = renderer.render("```handlebars\nHello {{x}}\n```\n")

        assert "Hello {{x}}" in html
        assert "\\{{" not in html

    def test_image_becomes_image_macro(self, renderer):
        """Markdown images are rendered as confluence-image invocations."""
        html = renderer.render("![Alt](pic.png)\n")

        assert html == '<p>{{confluence-image src="pic.png" alt="Alt"}}</p>\n'

    def test_inline_code_placeholders_are_escaped(self, renderer):
        """Inline code shows placeholders literally and escapes markup."""
        assert renderer.render("`{{x}}`\n") == "<p><code>\\{{x}}</code></p>\n"
        assert renderer.render("`a<b`\n") == "<p><code>a&lt;b</code></p>\n"

    def test_tables_and_strikethrough_enabled(self, renderer):
        """GFM tables and strike-through are available."""
        html = renderer.render("| a | b |\n| --- | --- |\n| 1 | ~~2~~ |\n")

        assert "<table>" in html
        assert "<s>2</s>" in html

    def test_xhtml_output(self, renderer):
        """Void elements are self-closed."""
        assert "<br />" in renderer.render("a\\\nb\n")
        assert "<hr />" in renderer.render("---\n")

    def test_directive_after_list_and_table(self, renderer):
        """Directives directly under a list or table are not swallowed."""
        html = renderer.render(
            "- one\n{{#confluence-note}}\nx\n{{/confluence-note}}\n"
            "| a |\n| --- |\n| 1 |\n{{#confluence-tip}}\ny\n{{/confluence-tip}}\n"
        )

        assert "<li>one</li>" in html
        assert "\n{{#confluence-note}}\n" in html
        assert "<td>{{" not in html
        assert "\n{{#confluence-tip}}\n" in html


class TestRenderPageTemplate:
    """Test cases for render_page_template function."""

    def test_storage_template_skips_markdown(self):
        """hbs templates are rendered as storage markup directly."""
        result = render_page_template("<p>{{title}}</p>", "hbs", {"title": "A&B"})

        assert result == "<p>A&amp;B</p>"

    def test_format_is_case_insensitive(self):
        """Formats may be given as extensions in any case."""
        assert render_page_template("*x*", ".MD") == "<p><em>x</em></p>\n"

    def test_unknown_format(self):
        """Unsupported formats are rejected."""
        with pytest.raises(TemplateRenderError, match="Unsupported template format 'txt'"):
            render_page_template("x", "txt")


class TestRenderPageToStorage:
    """Test cases for render_page_to_storage function."""

    def test_markdown_with_macros(self):
        """Markdown templates publish to storage macros."""
        result = render_page_to_storage(
            SAMPLE_TEMPLATE_WITH_MACROS, "md", {"pageTitle": "Guide"}, document_key="Guide"
        )

        assert_storage_equivalent(
            result.content,
            '<h1>Guide</h1>'
            '<ac:structured-macro ac:name="toc">'
            '<ac:parameter ac:name="maxLevel">2</ac:parameter>'
            '</ac:structured-macro>'
            '<ac:structured-macro ac:name="info">'
            '<ac:parameter ac:name="title">Heads up</ac:parameter>'
            '<ac:rich-text-body><p>Be <em>careful</em>.</p></ac:rich-text-body>'
            '</ac:structured-macro>'
            '<ac:structured-macro ac:name="code">'
            '<ac:parameter ac:name="language">python</ac:parameter>'
            '<ac:plain-text-body><![CDATA[print("{{not a placeholder}}")]]></ac:plain-text-body>'
            '</ac:structured-macro>'
            '<p>State: <ac:structured-macro ac:name="status">'
            '<ac:parameter ac:name="colour">Green</ac:parameter>'
            '<ac:parameter ac:name="title">Done</ac:parameter>'
            '</ac:structured-macro></p>',
        )
        assert result.metadata == {"document_key": "Guide", "format": "storage"}
        assert result.warnings == []

    def test_fenced_code_placeholder_survives(self):
        """A placeholder in a fence arrives in the code body as written."""
        result = render_page_to_storage("```\nHello {{x}}\n```\n", "md", {"x": "no"})

        assert "<![CDATA[Hello {{x}}]]>" in result.content

    def test_storage_template(self):
        """Storage templates use the same helpers."""
        result = render_page_to_storage(SAMPLE_STORAGE_TEMPLATE, "hbs", {"pageTitle": "Home"})

        assert "<h1>Home</h1>" in result.content
        assert 'ac:name="status"' in result.content
        assert 'ac:name="expand"' in result.content

    def test_comment_macros(self):
        """Comment macros are only published on request."""
        hidden = render_page_to_storage(SAMPLE_TEMPLATE_WITH_COMMENT, "md")
        shown = render_page_to_storage(SAMPLE_TEMPLATE_WITH_COMMENT, "md", include_comments=True)

        assert "Internal reviewer note." not in hidden.content
        assert "Visible." in hidden.content
        assert "Internal reviewer note." in shown.content

    def test_missing_argument_warning(self):
        """Helper warnings are returned with the result."""
        result = render_page_to_storage("{{confluence-anchor}}\n", "md")

        assert result.warnings[0].kind == WarningKind.MISSING_REQUIRED_ARGUMENT

    def test_validation_warnings(self):
        """Structural problems in the output become validation warnings."""
        result = render_page_to_storage('<ac:parameter ac:name="x">1</ac:parameter>', "html")

        assert [warning.kind for warning in result.warnings] == [WarningKind.VALIDATION]

    def test_mismatched_directives(self):
        """Mismatched blocks abort the render."""
        with pytest.raises(MismatchedBlockDirectiveError) as exc_info:
            render_page_to_storage(SAMPLE_TEMPLATE_MISMATCHED, "md")

        assert exc_info.value.open_name == "confluence-panel"
        assert exc_info.value.close_name == "confluence-info"

    def test_independent_renders_share_nothing(self):
        """Each render has its own context and macro ids."""
        first = render_page_to_storage("{{#confluence-info}}\nx\n{{/confluence-info}}\n", "md",
                                       document_key="Page")
        second = render_page_to_storage("{{#confluence-info}}\nx\n{{/confluence-info}}\n", "md",
                                        document_key="Page")

        assert first.content == second.content

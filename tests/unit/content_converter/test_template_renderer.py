"""Unit tests for content_converter.template_renderer module."""

import pytest

from publish_confluence.content_converter.errors import (
    MismatchedBlockDirectiveError,
    TemplateRenderError,
)
from publish_confluence.content_converter.template_renderer import (
    HelperRegistry,
    TokenKind,
    check_block_pairing,
    render_template,
    scan_template,
)


@pytest.fixture
def helpers():
    """Registry with a few simple helpers."""
    registry = HelperRegistry()
    registry.register("shout", lambda arguments, body: str(arguments["text"]).upper())
    registry.register("keys", lambda arguments, body: ",".join(sorted(arguments)))
    registry.register("tag", lambda arguments, body: str(arguments["name"]))
    registry.register("wrap", lambda arguments, body: f"[{body}]", block=True)
    registry.register("show", lambda arguments, body: repr(arguments["value"]))
    return registry


class TestVariables:
    """Test cases for variable substitution."""

    def test_variable_is_html_escaped(self):
        """{{x}} escapes markup characters."""
        assert render_template("{{x}}", {"x": "<b>&"}) == "&lt;b&gt;&amp;"

    def test_triple_stash_is_raw(self):
        """{{{x}}} inserts the value unescaped."""
        assert render_template("{{{x}}}", {"x": "<b>"}) == "<b>"

    def test_escaped_placeholder_is_literal(self):
        """\\{{x}} renders as {{x}} without evaluation."""
        assert render_template("a \\{{x}} b", {"x": "no"}) == "a {{x}} b"

    def test_comments_are_dropped(self):
        """Both comment forms produce no output."""
        assert render_template("a{{!-- note }} --}}b{{! short }}c") == "abc"

    def test_missing_variable_renders_empty(self):
        """Undefined variables render as nothing."""
        assert render_template("[{{missing}}]") == "[]"

    def test_dotted_path(self):
        """Dotted paths look up nested values."""
        assert render_template("{{user.name}}", {"user": {"name": "Ana"}}) == "Ana"

    def test_text_is_never_interpreted(self):
        """Template text that looks like engine syntax is emitted as is."""
        source = "<<< x >>> <%% if y %%> {% raw %}\n"

        assert render_template(source) == source


class TestConditionals:
    """Test cases for if, unless and else."""

    def test_if_else(self):
        """{{#if}} picks a branch by truthiness."""
        source = "{{#if draft}}Draft{{else}}Final{{/if}}"

        assert render_template(source, {"draft": True}) == "Draft"
        assert render_template(source, {"draft": False}) == "Final"
        assert render_template(source) == "Final"

    def test_unless(self):
        """{{#unless}} is the negated if."""
        assert render_template("{{#unless done}}todo{{/unless}}", {"done": False}) == "todo"
        assert render_template("{{#unless done}}todo{{/unless}}", {"done": True}) == ""

    def test_if_requires_one_condition(self):
        """Conditionals take exactly one positional condition."""
        with pytest.raises(TemplateRenderError, match="takes exactly one condition"):
            render_template("{{#if a b}}x{{/if}}")


class TestHelpers:
    """Test cases for helper invocations."""

    def test_inline_helper(self, helpers):
        """Inline helpers get keyword arguments and no body."""
        assert render_template('{{shout text="hi"}}', helpers=helpers) == "HI"

    def test_block_helper_gets_rendered_body(self, helpers):
        """Block helpers receive their body already rendered."""
        assert render_template("{{#wrap}}in {{x}}{{/wrap}}", {"x": "v"}, helpers) == "[in v]"

    def test_nested_blocks_render_innermost_first(self, helpers):
        """The outer helper sees the inner helper's output."""
        assert render_template("{{#wrap}}a{{#wrap}}b{{/wrap}}{{/wrap}}", helpers=helpers) == "[a[b]]"

    def test_helper_may_take_name_argument(self, helpers):
        """A 'name' argument doesn't clash with the helper name."""
        assert render_template('{{tag name="x"}}', helpers=helpers) == "x"

    def test_undefined_arguments_are_dropped(self, helpers):
        """Arguments bound to undefined variables are not passed."""
        assert render_template("{{keys a=1 b=missing}}", helpers=helpers) == "a"

    @pytest.mark.parametrize("argument,expected", [
        ("value=2", "'2'"),
        ("value=1.50", "'1.50'"),
        ("value=-3", "'-3'"),
        ("value=true", "True"),
        ("value=false", "False"),
        ('value="s"', "'s'"),
        ("value=page.title", "'Home'"),
    ])
    def test_argument_values(self, helpers, argument, expected):
        """Booleans are typed, numbers keep their source text, paths are looked up."""
        source = "{{show " + argument + "}}"

        assert render_template(source, {"page": {"title": "Home"}}, helpers) == expected

    def test_unknown_helper_with_arguments(self):
        """An inline directive with arguments must name a helper."""
        with pytest.raises(TemplateRenderError, match="Unknown helper 'nothing'"):
            render_template("{{nothing a=1}}")

    def test_unknown_block_helper(self, helpers):
        """Block directives must name a block helper or a conditional."""
        with pytest.raises(TemplateRenderError, match="Unknown block helper 'shout'"):
            render_template("{{#shout}}x{{/shout}}", helpers=helpers)

    def test_positional_argument_rejected(self, helpers):
        """Helpers only take key=value arguments."""
        with pytest.raises(TemplateRenderError, match="only accepts key=value arguments"):
            render_template("{{#wrap a}}x{{/wrap}}", helpers=helpers)

    def test_else_inside_helper_block(self, helpers):
        """{{else}} only belongs to conditionals."""
        with pytest.raises(TemplateRenderError, match="only supported inside if and unless blocks"):
            render_template("{{#wrap}}a{{else}}b{{/wrap}}", helpers=helpers)


class TestErrors:
    """Test cases for template errors and their positions."""

    def test_mismatched_close(self):
        """A close that doesn't match the innermost open block is reported."""
        with pytest.raises(MismatchedBlockDirectiveError) as exc_info:
            render_template("{{#confluence-panel}}\nx\n{{/confluence-info}}")

        error = exc_info.value
        assert error.open_name == "confluence-panel"
        assert error.close_name == "confluence-info"
        assert error.line == 3
        assert error.column == 1
        assert (
            "'{{/confluence-info}}' does not match the open block '{{#confluence-panel}}'"
            in str(error)
        )

    def test_unclosed_block(self):
        """A block left open is reported at its open directive."""
        with pytest.raises(MismatchedBlockDirectiveError) as exc_info:
            render_template("text\n  {{#if a}}x")

        assert exc_info.value.open_name == "if"
        assert exc_info.value.close_name is None
        assert (exc_info.value.line, exc_info.value.column) == (2, 3)

    def test_stray_close(self):
        """A close without an open block is reported."""
        with pytest.raises(MismatchedBlockDirectiveError) as exc_info:
            render_template("x{{/if}}")

        assert exc_info.value.open_name is None
        assert exc_info.value.close_name == "if"

    def test_names_are_case_sensitive(self):
        """Open and close names must match exactly."""
        with pytest.raises(MismatchedBlockDirectiveError):
            render_template("{{#if a}}x{{/IF}}")

    def test_else_outside_block(self):
        """{{else}} needs an enclosing block."""
        with pytest.raises(TemplateRenderError, match="'\\{\\{else\\}\\}' outside of a block"):
            render_template("a{{else}}b")

    def test_unclosed_braces(self):
        """An opening {{ without closing braces is an error."""
        with pytest.raises(TemplateRenderError, match="is never closed") as exc_info:
            render_template("a\nb {{x")

        assert exc_info.value.line == 2
        assert exc_info.value.column == 3

    def test_partials_unsupported(self):
        """Partials are reported explicitly."""
        with pytest.raises(TemplateRenderError, match="Partials are not supported"):
            render_template("{{> header}}")

    def test_mismatch_is_a_template_error(self):
        """MismatchedBlockDirectiveError can be caught as TemplateRenderError."""
        with pytest.raises(TemplateRenderError):
            render_template("{{#a}}{{/b}}")


class TestScanner:
    """Test cases for scan_template and check_block_pairing."""

    def test_token_kinds_and_positions(self):
        """Tokens carry their kind, name and 1-based position."""
        tokens = scan_template('a {{#x k="v"}}\n{{/x}}')

        assert [token.kind for token in tokens] == [
            TokenKind.TEXT, TokenKind.OPEN, TokenKind.TEXT, TokenKind.CLOSE,
        ]
        assert (tokens[1].name, tokens[1].arguments) == ("x", 'k="v"')
        assert (tokens[1].line, tokens[1].column) == (1, 3)
        assert (tokens[3].line, tokens[3].column) == (2, 1)

    def test_escaped_token(self):
        """\\{{ spans become ESCAPED tokens without the backslash."""
        tokens = scan_template("\\{{x}}")

        assert tokens[0].kind == TokenKind.ESCAPED
        assert tokens[0].text == "{{x}}"

    def test_check_block_pairing_accepts_nesting(self):
        """Properly nested blocks pass."""
        check_block_pairing(scan_template("{{#a}}{{#b}}{{else}}{{/b}}{{/a}}"))


class TestHelperRegistry:
    """Test cases for HelperRegistry."""

    def test_register_and_get(self):
        """Registered helpers can be looked up."""
        registry = HelperRegistry()
        registry.register("b", lambda arguments, body: "")
        registry.register("a", lambda arguments, body: "", block=True)

        assert "a" in registry
        assert registry.get("a").block
        assert registry.get("missing") is None
        assert registry.names() == ["a", "b"]

    @pytest.mark.parametrize("name", ["if", "unless"])
    def test_builtin_names_are_reserved(self, name):
        """Conditionals cannot be overridden."""
        with pytest.raises(ValueError, match="built-in block"):
            HelperRegistry().register(name, lambda arguments, body: "")


class TestHelperFailures:
    """Test cases for failures inside helper invocations."""

    @pytest.mark.parametrize("source", [
        '{{shout caller="y"}}',
        "{{#wrap caller=1}}x{{/wrap}}",
    ])
    def test_caller_argument_rejected(self, helpers, source):
        """'caller' is reserved and can't be passed to a helper."""
        with pytest.raises(TemplateRenderError, match="'caller' is a reserved argument name") as exc_info:
            render_template(source, helpers=helpers)

        assert exc_info.value.line == 1

    def test_helper_exception_becomes_template_error(self):
        """Anything a helper raises is reported as a TemplateRenderError."""
        registry = HelperRegistry()
        registry.register("broken", lambda arguments, body: arguments["missing"])

        with pytest.raises(TemplateRenderError, match="KeyError") as exc_info:
            render_template("{{broken a=1}}", helpers=registry)

        assert isinstance(exc_info.value.__cause__, KeyError)

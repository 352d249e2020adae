"""Template engine adapter for Handlebars-style page templates.

Page templates use mustache syntax: ``{{variable}}``, ``{{{raw}}}``,
``{{!comments}}``, ``\\{{escaped}}``, ``{{#if x}}...{{else}}...{{/if}}``,
``{{#unless x}}`` and registered helpers, both inline (``{{helper a=1}}``)
and as blocks (``{{#helper}}...{{/helper}}``).

Templates are evaluated by Jinja2. The source is first scanned into tokens,
checked for block pairing (so a mismatch is reported at its position in the
page source, not in generated code), and then translated to a Jinja2
template in which every helper invocation is a call to a dispatcher and
every run of literal text is looked up from the render context. Nested
block helpers therefore render innermost-first: a block helper receives its
body already rendered.
"""

import bisect
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from jinja2 import ChainableUndefined, Environment, TemplateError, Undefined

from .directive_syntax import DirectiveKind, find_directive_end, parse_arguments, parse_directive
from .errors import ConversionError, MismatchedBlockDirectiveError, TemplateRenderError
from .macro_registry import is_identifier

logger = logging.getLogger(__name__)

HelperFunction = Callable[[Dict[str, Any], Optional[str]], str]

CONDITIONALS = {"if": "", "unless": "not "}

# Jinja2 passes a block body to its call as ``caller``
RESERVED_ARGUMENTS = frozenset({"caller"})

_TEXT_KEY = "_hbs_text"
_CALL_KEY = "_hbs_call"
_NUMBER = re.compile(r"-?\d+(\.\d+)?")
_LITERALS = {"true": "True", "false": "False", "null": "None", "undefined": "None"}


class TokenKind(Enum):
    TEXT = "text"
    COMMENT = "comment"
    ESCAPED = "escaped"    # \{{...}}, emitted literally
    VARIABLE = "variable"  # {{path}} or {{helper args}}
    RAW = "raw"            # {{{path}}}
    OPEN = "open"          # {{#name args}}
    CLOSE = "close"        # {{/name}}
    ELSE = "else"          # {{else}}


@dataclass(frozen=True)
class TemplateToken:
    """One lexical unit of a page template.

    Attributes:
        kind: Token kind
        text: Source text (for TEXT and ESCAPED tokens, the text to emit)
        line: 1-based line of the token start
        column: 1-based column of the token start
        name: Helper, variable or block name
        arguments: Raw argument source of the directive
    """
    kind: TokenKind
    text: str
    line: int
    column: int
    name: Optional[str] = None
    arguments: str = ""


@dataclass(frozen=True)
class Helper:
    function: HelperFunction
    block: bool = False


class HelperRegistry:
    """Named helpers available to templates.

    A helper is called with the invocation's keyword arguments and, for
    block invocations, the already-rendered body; inline invocations get a
    body of None. It returns the markup to insert.
    """

    def __init__(self):
        self._helpers: Dict[str, Helper] = {}

    def register(self, name: str, helper: HelperFunction, block: bool = False) -> None:
        if name in CONDITIONALS:
            raise ValueError(f"'{name}' is a built-in block and cannot be registered")
        self._helpers[name] = Helper(function=helper, block=block)

    def get(self, name: str) -> Optional[Helper]:
        return self._helpers.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._helpers

    def names(self) -> List[str]:
        return sorted(self._helpers)


class _Positions:
    """Maps string offsets to 1-based line and column numbers."""

    def __init__(self, source: str):
        self._starts = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self._starts.append(index + 1)

    def locate(self, offset: int) -> Tuple[int, int]:
        line = bisect.bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line] + 1


def scan_template(source: str) -> List[TemplateToken]:
    """Split a template into tokens.

    Raises:
        TemplateRenderError: If a ``{{`` is never closed or a directive
            cannot be parsed
    """
    positions = _Positions(source)
    tokens: List[TemplateToken] = []
    position = 0

    def add_text(text: str, offset: int, kind: TokenKind = TokenKind.TEXT) -> None:
        if text:
            line, column = positions.locate(offset)
            tokens.append(TemplateToken(kind, text, line, column))

    while position < len(source):
        start = source.find("{{", position)
        if start < 0:
            add_text(source[position:], position)
            break

        if start > 0 and source[start - 1] == "\\":
            add_text(source[position:start - 1], position)
            end = find_directive_end(source, start)
            if end < 0:
                end = start + 2
            add_text(source[start:end], start, TokenKind.ESCAPED)
            position = end
            continue

        add_text(source[position:start], position)
        line, column = positions.locate(start)
        end = find_directive_end(source, start)
        if end < 0:
            raise TemplateRenderError("'{{' is never closed", line=line, column=column)
        span = source[start:end]
        tokens.append(_directive_token(span, line, column))
        position = end

    return tokens


def _directive_token(span: str, line: int, column: int) -> TemplateToken:
    if span.startswith("{{!"):
        return TemplateToken(TokenKind.COMMENT, span, line, column)
    if span.startswith("{{{"):
        return TemplateToken(TokenKind.RAW, span, line, column, name=span[3:-3].strip())

    directive = parse_directive(span)
    if directive is None:
        inner = span[2:-2].strip()
        if inner.startswith(">"):
            raise TemplateRenderError("Partials are not supported", line=line, column=column)
        raise TemplateRenderError(f"Cannot parse '{span}'", line=line, column=column)

    kind = {
        DirectiveKind.OPEN: TokenKind.OPEN,
        DirectiveKind.CLOSE: TokenKind.CLOSE,
        DirectiveKind.ELSE: TokenKind.ELSE,
        DirectiveKind.INLINE: TokenKind.VARIABLE,
    }[directive.kind]
    return TemplateToken(kind, span, line, column, name=directive.name, arguments=directive.arguments)


def check_block_pairing(tokens: List[TemplateToken]) -> None:
    """Verify that every block-open token has a matching close.

    Names must match exactly, including case.

    Raises:
        MismatchedBlockDirectiveError: At the first close that does not
            match, or at the first block left open
        TemplateRenderError: If ``{{else}}`` appears outside a block
    """
    stack: List[TemplateToken] = []
    for token in tokens:
        if token.kind == TokenKind.OPEN:
            stack.append(token)
        elif token.kind == TokenKind.CLOSE:
            if not stack:
                raise MismatchedBlockDirectiveError(None, token.name, token.line, token.column)
            opened = stack.pop()
            if opened.name != token.name:
                raise MismatchedBlockDirectiveError(
                    opened.name, token.name, token.line, token.column
                )
        elif token.kind == TokenKind.ELSE and not stack:
            raise TemplateRenderError(
                "'{{else}}' outside of a block", line=token.line, column=token.column
            )
    if stack:
        opened = stack[-1]
        raise MismatchedBlockDirectiveError(opened.name, None, opened.line, opened.column)


class _Translator:
    """Translates template tokens into Jinja2 source."""

    def __init__(self, helpers: HelperRegistry):
        self._helpers = helpers
        self.texts: List[str] = []

    def translate(self, tokens: List[TemplateToken]) -> str:
        parts: List[str] = []
        blocks: List[str] = []
        for token in tokens:
            if token.kind in (TokenKind.TEXT, TokenKind.ESCAPED):
                self.texts.append(token.text)
                parts.append(f"<<< {_TEXT_KEY}[{len(self.texts) - 1}] >>>")
            elif token.kind == TokenKind.COMMENT:
                continue
            elif token.kind == TokenKind.RAW:
                parts.append(f"<<< {self._path(token.name, token)} >>>")
            elif token.kind == TokenKind.VARIABLE:
                parts.append(self._variable(token))
            elif token.kind == TokenKind.OPEN:
                parts.append(self._open(token, blocks))
            elif token.kind == TokenKind.ELSE:
                if blocks[-1] != "endif":
                    raise TemplateRenderError(
                        "'{{else}}' is only supported inside if and unless blocks",
                        line=token.line,
                        column=token.column,
                    )
                parts.append("<%% else %%>")
            else:
                parts.append(f"<%% {blocks.pop()} %%>")
        return "".join(parts)

    def _variable(self, token: TemplateToken) -> str:
        if token.name in self._helpers:
            return f"<<< {self._call(token)} >>>"
        if token.arguments:
            raise TemplateRenderError(
                f"Unknown helper '{token.name}'", line=token.line, column=token.column
            )
        return f"<<< {self._path(token.name, token)}|e >>>"

    def _open(self, token: TemplateToken, blocks: List[str]) -> str:
        if token.name in CONDITIONALS:
            arguments = parse_arguments(token.arguments)
            if len(arguments) != 1 or arguments[0][0] is not None:
                raise TemplateRenderError(
                    f"'{token.name}' takes exactly one condition",
                    line=token.line,
                    column=token.column,
                )
            condition = self._value(arguments[0][1], token)
            blocks.append("endif")
            return f"<%% if {CONDITIONALS[token.name]}{condition} %%>"

        helper = self._helpers.get(token.name)
        if helper is None or not helper.block:
            raise TemplateRenderError(
                f"Unknown block helper '{token.name}'", line=token.line, column=token.column
            )
        blocks.append("endcall")
        return f"<%% call {self._call(token)} %%>"

    def _call(self, token: TemplateToken) -> str:
        expressions = [repr(token.name)]
        for key, value in parse_arguments(token.arguments):
            if key is None:
                raise TemplateRenderError(
                    f"Helper '{token.name}' only accepts key=value arguments",
                    line=token.line,
                    column=token.column,
                )
            if not is_identifier(key):
                raise TemplateRenderError(
                    f"Invalid argument name '{key}'", line=token.line, column=token.column
                )
            if key in RESERVED_ARGUMENTS:
                raise TemplateRenderError(
                    f"'{key}' is a reserved argument name", line=token.line, column=token.column
                )
            # Numbers reach helpers as written so that 1.50 stays 1.50
            if _NUMBER.fullmatch(value):
                expressions.append(f"{key}={value!r}")
            else:
                expressions.append(f"{key}={self._value(value, token)}")
        return f"{_CALL_KEY}({', '.join(expressions)})"

    def _value(self, raw: str, token: TemplateToken) -> str:
        if raw[0] in ("'", '"'):
            return raw
        if _NUMBER.fullmatch(raw):
            return raw
        if raw in _LITERALS:
            return _LITERALS[raw]
        return self._path(raw, token)

    @staticmethod
    def _path(path: Optional[str], token: TemplateToken) -> str:
        segments = (path or "").split(".")
        if not all(is_identifier(segment) for segment in segments):
            raise TemplateRenderError(
                f"'{path}' is not a helper or a variable path",
                line=token.line,
                column=token.column,
            )
        return ".".join(segments)


def _environment() -> Environment:
    return Environment(
        variable_start_string="<<<",
        variable_end_string=">>>",
        block_start_string="<%%",
        block_end_string="%%>",
        comment_start_string="<#",
        comment_end_string="#>",
        undefined=ChainableUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )


def _dispatcher(helpers: HelperRegistry) -> Callable[..., str]:
    # The helper name is positional so that helpers may take a ``name``
    # argument of their own.
    def call(*names: str, caller: Optional[Callable[[], str]] = None, **arguments: Any) -> str:
        helper = helpers.get(names[0])
        body = str(caller()) if caller is not None else None
        defined = {
            key: value for key, value in arguments.items()
            if not isinstance(value, Undefined)
        }
        return helper.function(defined, body)

    return call


def render_template(
    source: str,
    context: Optional[Mapping[str, Any]] = None,
    helpers: Optional[HelperRegistry] = None,
) -> str:
    """Render a Handlebars-style template.

    Args:
        source: Template source
        context: Variables available to the template
        helpers: Helpers available to the template

    Returns:
        Rendered text

    Raises:
        MismatchedBlockDirectiveError: If block directives do not pair
        TemplateRenderError: If the template cannot be compiled or rendered
    """
    helpers = helpers or HelperRegistry()
    tokens = scan_template(source)
    check_block_pairing(tokens)

    translator = _Translator(helpers)
    translated = translator.translate(tokens)

    variables: Dict[str, Any] = dict(context or {})
    variables[_TEXT_KEY] = translator.texts
    variables[_CALL_KEY] = _dispatcher(helpers)

    try:
        template = _environment().from_string(translated)
        return template.render(variables)
    except ConversionError:
        raise
    except TemplateError as e:
        raise TemplateRenderError(str(e)) from e
    except Exception as e:
        logger.debug(f"Template rendering failed: {e!r}")
        raise TemplateRenderError(f"{type(e).__name__}: {e}") from e

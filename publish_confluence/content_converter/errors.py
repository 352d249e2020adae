"""Typed exception hierarchy for content conversion errors.

Fatal conversion problems are raised as exceptions and abort the conversion
of a single document. Recoverable problems (unsupported macros, missing
macro arguments) are not exceptions; they are recorded as
``ConversionWarning`` entries on the conversion context instead.
"""

from typing import Optional

from publish_confluence.confluence_client.errors import PublishError


class ConversionError(PublishError):
    """Base exception for content conversion failures."""

    def __init__(self, message: str):
        super().__init__(message)


class ParseError(ConversionError):
    """Raised when storage markup is malformed and cannot be parsed."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        fragment: Optional[str] = None,
    ):
        location = ""
        if line is not None:
            location = f" at line {line}"
            if column is not None:
                location += f", column {column}"
        full_message = f"Malformed storage markup{location}: {message}"
        if fragment:
            full_message += f"\n    {fragment}"
        super().__init__(full_message)
        self.line = line
        self.column = column
        self.fragment = fragment
        self.original_message = message


class TemplateRenderError(ConversionError):
    """Raised when a page template cannot be compiled or rendered."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        if line is not None:
            full_message = f"Template error at line {line}, column {column}: {message}"
        else:
            full_message = f"Template error: {message}"
        super().__init__(full_message)
        self.line = line
        self.column = column
        self.original_message = message


class MismatchedBlockDirectiveError(TemplateRenderError):
    """Raised when block-open and block-close directives do not pair.

    ``close_name`` is None for a block left open at the end of the source,
    and ``open_name`` is None for a close directive with nothing to close.
    """

    def __init__(
        self,
        open_name: Optional[str],
        close_name: Optional[str],
        line: int,
        column: int,
    ):
        if open_name is None:
            message = f"'{{{{/{close_name}}}}}' closes a block that was never opened"
        elif close_name is None:
            message = f"'{{{{#{open_name}}}}}' is never closed"
        else:
            message = (
                f"'{{{{/{close_name}}}}}' does not match the open block "
                f"'{{{{#{open_name}}}}}'"
            )
        super().__init__(message, line=line, column=column)
        self.open_name = open_name
        self.close_name = close_name

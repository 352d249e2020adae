"""Typed exception hierarchy for Confluence-related errors.

This module defines the root exception of the tool and the errors raised by
the Confluence REST client. Every exception carries the context that
produced it as attributes so callers can report precise messages.
"""

from typing import Optional


class PublishError(Exception):
    """Base exception for all publish-confluence errors.

    Use this to catch any application-level error from the tool.
    """
    pass


class ConfluenceError(PublishError):
    """Base exception for all Confluence-related errors."""
    pass


class InvalidCredentialsError(ConfluenceError):
    """Raised when API credentials are missing, invalid or rejected."""

    def __init__(self, user: str, endpoint: str):
        super().__init__(
            f"API key is invalid (user: {user}, endpoint: {endpoint})"
        )
        self.user = user
        self.endpoint = endpoint


class PageNotFoundError(ConfluenceError):
    """Raised when a requested page does not exist."""

    def __init__(self, page_id: str, space_key: Optional[str] = None):
        if space_key:
            message = f"Page '{page_id}' not found in space {space_key}"
        else:
            message = f"Page {page_id} not found"
        super().__init__(message)
        self.page_id = page_id
        self.space_key = space_key


class APIUnreachableError(ConfluenceError):
    """Raised when the Confluence API is not available or unreachable."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class APIAccessError(ConfluenceError):
    """Raised when API access fails after retries or due to access restrictions."""

    def __init__(self, message: str = "Confluence API failure (after 3 retries)",
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

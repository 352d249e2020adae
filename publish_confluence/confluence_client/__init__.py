"""Confluence REST client used by the fetch and publish workflows.

This package provides credential loading, a thin wrapper over the Confluence
REST content API, rate-limit retry, and the typed errors they raise.
"""

from .api_wrapper import APIWrapper
from .auth import Authenticator, Credentials
from .errors import (
    PublishError,
    ConfluenceError,
    InvalidCredentialsError,
    PageNotFoundError,
    APIUnreachableError,
    APIAccessError,
)

__all__ = [
    "APIWrapper",
    "Authenticator",
    "Credentials",
    "PublishError",
    "ConfluenceError",
    "InvalidCredentialsError",
    "PageNotFoundError",
    "APIUnreachableError",
    "APIAccessError",
]

"""Command-line interface for publishing Confluence pages.

This package provides the `publish-confluence` CLI tool: publishing
templates configured in ``publish-confluence.yaml``, fetching pages as
template markdown, and offline export and render commands.
"""

from .models import ExitCode, PageConfig, PublishConfig
from .errors import (
    CLIError,
    ConfigError,
    FilesystemError,
)

__all__ = [
    'ExitCode',
    'PageConfig',
    'PublishConfig',
    'CLIError',
    'ConfigError',
    'FilesystemError',
]

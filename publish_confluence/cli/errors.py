"""Typed exception hierarchy for CLI-related errors.

This module defines all custom exceptions used by the CLI.
All exceptions inherit from CLIError base class for easy catching and
include descriptive messages with context to help with debugging.
"""

from typing import Optional

from publish_confluence.confluence_client.errors import PublishError


class CLIError(PublishError):
    """Base exception for all CLI-related errors."""
    pass


class ConfigError(CLIError):
    """Raised when the publish configuration is invalid."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_field = config_field
        self.original_message = message


class FilesystemError(CLIError):
    """Raised when filesystem operations fail (read, write, permissions, etc)."""

    def __init__(self, file_path: str, operation: str, reason: Optional[str] = None):
        message = f"Filesystem operation '{operation}' failed for {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.file_path = file_path
        self.operation = operation
        self.reason = reason

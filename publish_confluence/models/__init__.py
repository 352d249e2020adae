"""Data models for Confluence pages and conversion results."""

from publish_confluence.models.confluence_page import ConfluencePage
from publish_confluence.models.conversion_result import (
    ConversionResult,
    ConversionWarning,
    WarningKind,
)

__all__ = ['ConfluencePage', 'ConversionResult', 'ConversionWarning', 'WarningKind']

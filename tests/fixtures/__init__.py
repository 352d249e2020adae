"""Test fixtures for conversion and publish tests.

This module provides test fixtures for:
- Sample Confluence storage format pages (with/without macros)
- Sample page templates for rendering tests
- Confluence REST API payload builders
"""

from .api_responses import page_payload, search_payload
from .sample_pages import (
    MALFORMED_PAGE,
    PANEL_MACRO,
    SAMPLE_PAGE_SIMPLE,
    SAMPLE_PAGE_WITH_TABLE,
    SUPPORTED_MACRO_FIXTURES,
)
from .sample_templates import (
    SAMPLE_STORAGE_TEMPLATE,
    SAMPLE_TEMPLATE_SIMPLE,
    SAMPLE_TEMPLATE_WITH_MACROS,
)

__all__ = [
    "page_payload",
    "search_payload",
    "MALFORMED_PAGE",
    "PANEL_MACRO",
    "SAMPLE_PAGE_SIMPLE",
    "SAMPLE_PAGE_WITH_TABLE",
    "SUPPORTED_MACRO_FIXTURES",
    "SAMPLE_STORAGE_TEMPLATE",
    "SAMPLE_TEMPLATE_SIMPLE",
    "SAMPLE_TEMPLATE_WITH_MACROS",
]

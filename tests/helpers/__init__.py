"""Test helper modules for conversion testing.

This package provides utilities for unit and integration testing:
- assertion_helpers: Custom assertions for content comparison
"""

from .assertion_helpers import (
    assert_markdown_similar,
    assert_storage_equivalent,
    directive_lines,
    normalize_whitespace,
    storage_structure,
)

__all__ = [
    'assert_markdown_similar',
    'assert_storage_equivalent',
    'directive_lines',
    'normalize_whitespace',
    'storage_structure',
]

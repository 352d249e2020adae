"""Fetch and publish workflows over many Confluence pages.

This package converts whole page trees: exporting fetched pages to
template markdown files and publishing rendered templates, with a
failure in one page recorded in its result rather than aborting the rest.
"""

from .filesafe import title_to_filename, unique_filename
from .models import FetchResult, PageAction, PageResult
from .page_operations import PageOperations

__all__ = [
    'PageOperations',
    'PageAction',
    'PageResult',
    'FetchResult',
    'title_to_filename',
    'unique_filename',
]

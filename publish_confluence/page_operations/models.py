"""Data models for page operations module.

This module defines the per-page results reported by the fetch and
publish workflows.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..models.conversion_result import ConversionWarning


class PageAction(Enum):
    """What a workflow did with one page."""

    CREATED = "created"
    UPDATED = "updated"
    DRY_RUN = "dry-run"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class PageResult:
    """Result of publishing one page.

    A failed page never aborts its siblings; the failure is recorded here.

    Attributes:
        title: Page title
        action: What happened to the page
        page_id: Confluence page ID (None for dry runs and failures)
        error: Error message if the page failed or was skipped
        warnings: Recoverable conversion problems
        content: Rendered storage markup (kept for dry runs)
    """

    title: str
    action: PageAction
    page_id: Optional[str] = None
    error: Optional[str] = None
    warnings: List[ConversionWarning] = field(default_factory=list)
    content: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.action in (PageAction.CREATED, PageAction.UPDATED, PageAction.DRY_RUN)


@dataclass
class FetchResult:
    """Result of fetching and exporting one page.

    Attributes:
        title: Page title
        page_id: Confluence page ID
        path: File the page was written to (None on failure)
        error: Error message if the page could not be exported
        warnings: Recoverable conversion problems
    """

    title: str
    page_id: str
    path: Optional[Path] = None
    error: Optional[str] = None
    warnings: List[ConversionWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

"""Data models for CLI operations.

This module defines the exit codes of the CLI and the publish
configuration read from ``publish-confluence.yaml``. All models use
dataclasses for clean, type-safe data structures.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (config issues, conversion failures)
    - PARTIAL_FAILURE (2): Some pages failed while others were published
    - AUTH_ERROR (3): Authentication or authorization failure
    - NETWORK_ERROR (4): Network connectivity or API availability issues

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    PARTIAL_FAILURE = 2
    AUTH_ERROR = 3
    NETWORK_ERROR = 4


@dataclass
class PageConfig:
    """One page to publish, with the pages published under it.

    Attributes:
        page_title: Title of the Confluence page
        template_path: Template file (``.md``, ``.hbs``, ``.html`` or ``.xhtml``),
            resolved against the configuration file's directory
        space_key: Space of the page (inherited from the parent when omitted)
        variables: Template context for this page, merged over the parent's
        child_pages: Pages published as children of this page

    Example:
        >>> page = PageConfig(
        ...     page_title="Release Notes",
        ...     template_path=Path("./release-notes.md"),
        ...     space_key="TEAM",
        ... )
    """
    page_title: str
    template_path: Path
    space_key: str
    variables: Dict[str, Any] = field(default_factory=dict)
    child_pages: List["PageConfig"] = field(default_factory=list)

    @property
    def template_format(self) -> str:
        """Template format derived from the file extension."""
        return self.template_path.suffix.lstrip('.').lower()

    def descendants(self) -> List["PageConfig"]:
        """All pages below this one, parents before their children."""
        pages: List[PageConfig] = []
        for child in self.child_pages:
            pages.append(child)
            pages.extend(child.descendants())
        return pages


@dataclass
class PublishConfig:
    """Contents of a ``publish-confluence.yaml`` file.

    Attributes:
        space_key: Default space for all pages
        pages: Top-level pages to publish
        parent_page_title: Existing page the top-level pages are published under
        include_comments: Render macros marked ``comment=true``
        config_path: Where the configuration was loaded from
    """
    space_key: str
    pages: List[PageConfig] = field(default_factory=list)
    parent_page_title: Optional[str] = None
    include_comments: bool = False
    config_path: Optional[Path] = None

    def all_pages(self) -> List[PageConfig]:
        """Every configured page, parents before their children."""
        pages: List[PageConfig] = []
        for page in self.pages:
            pages.append(page)
            pages.extend(page.descendants())
        return pages

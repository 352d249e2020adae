"""Confluence page data model."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ConfluencePage:
    """Confluence page with storage format content.

    Represents a page returned by the content REST API with the metadata
    needed to export it or to publish a new version of it.

    Attributes:
        page_id: Unique identifier for the page
        space_key: Space key where the page resides (e.g., "TEAM")
        title: Page title
        content_storage: Page content in Confluence storage format (XHTML)
        version: Current version number (required for updates)
        parent_id: Parent page ID (None if page is at root level)
        children: List of child page IDs (for tree operations)
    """
    page_id: str
    space_key: str
    title: str
    content_storage: str  # XHTML format
    version: int
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ConfluencePage":
        """Build a page from a REST content payload.

        Args:
            data: Content dict as returned by ``/rest/api/content``

        Returns:
            ConfluencePage populated from the payload
        """
        space_key = data.get("space", {}).get("key", "")
        ancestors = data.get("ancestors") or []
        parent_id = ancestors[-1].get("id") if ancestors else None
        children_data = data.get("children", {}).get("page", {}).get("results", [])
        return cls(
            page_id=str(data.get("id", "")),
            space_key=space_key,
            title=data.get("title", ""),
            content_storage=data.get("body", {}).get("storage", {}).get("value", ""),
            version=data.get("version", {}).get("number", 1),
            parent_id=parent_id,
            children=[str(child.get("id")) for child in children_data],
        )

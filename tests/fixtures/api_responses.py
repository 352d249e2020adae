"""Builders for Confluence REST API payloads used in tests."""

from typing import Any, Dict, List, Optional


def page_payload(
    page_id: str,
    title: str,
    body: str = "<p>Content</p>",
    space_key: str = "TEAM",
    version: int = 1,
    ancestors: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Build a content payload as returned by ``/rest/api/content``."""
    return {
        "id": page_id,
        "type": "page",
        "title": title,
        "space": {"key": space_key},
        "body": {"storage": {"value": body, "representation": "storage"}},
        "version": {"number": version},
        "ancestors": [{"id": ancestor} for ancestor in (ancestors or [])],
    }


def search_payload(*pages: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap pages in a paginated result list."""
    return {"results": list(pages), "size": len(pages)}

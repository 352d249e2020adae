"""Best-effort sanity checks for synthesized storage markup.

These are heuristics, not schema validation: they catch the mistakes a
broken template tends to produce (stray directives, parameters outside a
macro, layout cells outside a layout) before the page is sent to
Confluence, which would otherwise reject or silently mangle it.
"""

import logging
import re
from typing import List

from bs4 import BeautifulSoup

from .macro_registry import MACRO_CONTAINER, PARAMETER_ELEMENT, PLAIN_BODY, RICH_BODY

logger = logging.getLogger(__name__)

_LEFTOVER_DIRECTIVE = re.compile(r"\{\{\s*[#/][A-Za-z_][\w.\-]*[^}]*\}\}")

# Element -> name of the parent it must sit directly inside
_REQUIRED_PARENTS = {
    PARAMETER_ELEMENT: MACRO_CONTAINER,
    RICH_BODY: MACRO_CONTAINER,
    PLAIN_BODY: MACRO_CONTAINER,
    "ac:layout-section": "ac:layout",
    "ac:layout-cell": "ac:layout-section",
}


def validate_storage_markup(xhtml: str) -> List[str]:
    """Check storage markup for common structural problems.

    Args:
        xhtml: Storage format XHTML

    Returns:
        Human-readable problem descriptions (empty if nothing was found)
    """
    problems: List[str] = []
    if not xhtml or not xhtml.strip():
        return problems

    soup = BeautifulSoup(xhtml, "lxml")

    for macro in soup.find_all(MACRO_CONTAINER):
        if not macro.get("ac:name"):
            problems.append("Structured macro without an ac:name attribute")

    for name, parent_name in _REQUIRED_PARENTS.items():
        for element in soup.find_all(name):
            parent = element.parent
            if parent is None or parent.name != parent_name:
                found = parent.name if parent is not None else "document"
                problems.append(f"<{name}> must be inside <{parent_name}>, found in <{found}>")

    for text in soup.find_all(string=_LEFTOVER_DIRECTIVE):
        if text.find_parent(PLAIN_BODY) is not None:
            continue
        directive = _LEFTOVER_DIRECTIVE.search(str(text)).group(0)
        problems.append(f"Unrendered template directive '{directive}'")

    for problem in problems:
        logger.debug(f"Storage validation: {problem}")
    return problems

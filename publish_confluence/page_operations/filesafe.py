"""Filesafe file names for fetched pages.

Page titles become file names that are valid on every common file system
while keeping the title's case:

- Spaces become hyphens (-)
- Colons (:) become double hyphens (--)
- ``/ \\ ? % * | " < > &`` become hyphens (-)
- Runs of three or more hyphens collapse to two; leading and trailing
  hyphens are trimmed

Examples:
    - "Customer Feedback" -> "Customer-Feedback.md"
    - "API Reference: Getting Started" -> "API-Reference--Getting-Started.md"
    - "Q&A Session" -> "Q-A-Session.md"
"""

import re
from typing import Set

_UNSAFE_CHARACTERS = re.compile(r'[/\\?%*|"<>&]')
_HYPHEN_RUN = re.compile(r'-{3,}')

FALLBACK_STEM = 'untitled'


def title_to_stem(title: str) -> str:
    """Convert a page title to a filesafe stem (no extension).

    Example:
        >>> title_to_stem("API Reference: Getting Started")
        'API-Reference--Getting-Started'
    """
    stem = title.strip().replace(': ', '--').replace(':', '--')
    stem = stem.replace(' ', '-')
    stem = _UNSAFE_CHARACTERS.sub('-', stem)
    stem = _HYPHEN_RUN.sub('--', stem)
    stem = stem.strip('-')
    # "." and ".." are not usable file names
    if not stem.strip('.'):
        return FALLBACK_STEM
    return stem


def title_to_filename(title: str, extension: str = '.md') -> str:
    """Convert a page title to a filesafe file name with ``extension``.

    Example:
        >>> title_to_filename("Q&A Session", ".xhtml")
        'Q-A-Session.xhtml'
    """
    return f"{title_to_stem(title)}{extension}"


def unique_filename(title: str, taken: Set[str], extension: str = '.md') -> str:
    """Return a filesafe name for ``title`` not already in ``taken``.

    Distinct titles can map to the same name ("A: B" and "A--B"). Later
    pages get a numeric suffix. Comparison is case-insensitive so the
    result is also unique on case-insensitive file systems. The returned
    name is added to ``taken``.
    """
    stem = title_to_stem(title)
    candidate = f"{stem}{extension}"
    counter = 2
    while candidate.lower() in taken:
        candidate = f"{stem}-{counter}{extension}"
        counter += 1
    taken.add(candidate.lower())
    return candidate

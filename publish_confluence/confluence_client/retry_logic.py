"""Rate-limit retry for Confluence REST calls.

Only HTTP 429 responses are retried. The wait honours the server's
``Retry-After`` header when it sends one and otherwise backs off
exponentially (1s, 2s, 4s). Every other error propagates immediately.
"""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from .errors import APIAccessError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3
MAX_WAIT_SECONDS = 60.0


def retry_on_rate_limit(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Call ``func``, retrying while Confluence answers 429.

    Args:
        func: The function to execute
        *args: Positional arguments for ``func``
        **kwargs: Keyword arguments for ``func``

    Returns:
        The return value of ``func``

    Raises:
        APIAccessError: If the rate limit persists after all retries
        Other exceptions: Passed through immediately without retry

    Example:
        >>> page = retry_on_rate_limit(client.get_page_by_id, "123")
    """
    for attempt in range(MAX_RETRIES + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not _is_rate_limit_error(e):
                raise

            if attempt >= MAX_RETRIES:
                logger.error(f"Rate limit persisted after {MAX_RETRIES} retries, giving up")
                raise APIAccessError(
                    f"Confluence API failure (after {MAX_RETRIES} retries)",
                    status_code=429,
                ) from e

            wait_time = _retry_after(e)
            if wait_time is None:
                wait_time = float(2 ** attempt)
            logger.info(
                f"Rate limit hit, retrying in {wait_time:g}s "
                f"(retry {attempt + 1}/{MAX_RETRIES})"
            )
            time.sleep(wait_time)

    raise APIAccessError(f"Confluence API failure (after {MAX_RETRIES} retries)", status_code=429)


def _is_rate_limit_error(exception: Exception) -> bool:
    status_code = getattr(exception, 'status_code', None)
    response = getattr(exception, 'response', None)
    if status_code is None and response is not None:
        status_code = getattr(response, 'status_code', None)
    return status_code == 429


def _retry_after(exception: Exception) -> Optional[float]:
    """Seconds requested by a ``Retry-After`` header, if any.

    The HTTP-date form of the header is not supported and falls back to
    exponential backoff.
    """
    response = getattr(exception, 'response', None)
    headers = getattr(response, 'headers', None) or {}
    value = headers.get('Retry-After')
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return min(max(seconds, 0.0), MAX_WAIT_SECONDS)

"""Utility functions for GitHub API interactions."""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, TypeVar

from .errors import TransportError
from .models import Page

T = TypeVar('T')

# First call plus four retries
DEFAULT_PAGE_ATTEMPTS = 5

_LINK_NEXT_RE = re.compile(r'<([^>]+)>\s*;\s*rel="next"')

logger = logging.getLogger(__name__)


def parse_next_link(link_header: Optional[str]) -> Optional[str]:
    """Extract the ``rel="next"`` URL from a GitHub ``Link`` header.

    Args:
        link_header: Raw value of the Link header, may be None

    Returns:
        The next page URL, or None on the last page
    """
    if not link_header:
        return None
    for part in link_header.split(','):
        match = _LINK_NEXT_RE.search(part)
        if match:
            return match.group(1)
    return None


def paginate(
    first_page: Page[T],
    fetch_next: Callable[[str], Page[T]],
    max_attempts: int = DEFAULT_PAGE_ATTEMPTS,
) -> List[T]:
    """Drain a paginated listing starting from an already fetched page.

    Each ``fetch_next`` call is retried on ``TransportError`` until fewer than
    two attempts remain, at which point the last outcome is returned as-is
    (the error propagates). API errors are never retried.

    Args:
        first_page: Page returned by the initial list call
        fetch_next: Callable fetching the page behind a ``next_url``
        max_attempts: Attempts allowed per page fetch

    Returns:
        Items from all pages, in page order
    """
    items: List[T] = list(first_page.items)
    next_url = first_page.next_url

    while next_url:
        remaining = max_attempts
        while True:
            try:
                page = fetch_next(next_url)
                break
            except TransportError as e:
                if remaining < 2:
                    raise
                remaining -= 1
                logger.warning("Page fetch failed for %s: %s; retrying (%d attempts left)",
                               next_url, e, remaining)
        items.extend(page.items)
        next_url = page.next_url

    return items

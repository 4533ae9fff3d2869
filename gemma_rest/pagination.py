"""Offset/limit page loop."""

from __future__ import annotations

import logging
from typing import Any, Callable

from gemma_rest.exceptions import InvalidParameter

logger = logging.getLogger(__name__)


def validate_window(limit: int, offset: int) -> None:
    """Reject negative or non-integer limit/offset before any request goes out."""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise InvalidParameter(f"limit must be a non-negative integer, got {limit!r}")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidParameter(f"offset must be a non-negative integer, got {offset!r}")


def paginate(
    fetch_page: Callable[[int, int], Any],
    *,
    limit: int,
    offset: int = 0,
    max_page_size: int = 100,
    count_rows: Callable[[Any], int] = len,
) -> list[Any]:
    """Fetch `limit` rows starting at `offset`, one page at a time.

    `fetch_page(offset, limit)` is called sequentially with the page size
    clamped to `max_page_size`. Stops once `limit` rows arrived or a page
    comes back short. Returns the pages in request order; an exception from
    `fetch_page` propagates and nothing fetched so far is returned.
    """
    validate_window(limit, offset)
    if max_page_size < 1:
        raise InvalidParameter(f"max_page_size must be positive, got {max_page_size!r}")

    pages: list[Any] = []
    remaining = limit
    current = offset
    while remaining > 0:
        page_size = min(remaining, max_page_size)
        logger.debug("Fetching page offset=%s limit=%s", current, page_size)
        page = fetch_page(current, page_size)
        pages.append(page)

        received = count_rows(page)
        # a short page means the server ran out of data
        if received < page_size:
            break
        remaining -= page_size
        current += page_size
    return pages

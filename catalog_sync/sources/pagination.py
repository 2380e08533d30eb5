"""Bounded cursor pagination."""

from typing import Any, Callable, Iterator, NamedTuple

import structlog

from catalog_sync.errors import FetchError

log = structlog.stdlib.get_logger()


class Page(NamedTuple):
    """One page of raw records plus the cursor for the next page, if any."""

    items: list[dict[str, Any]]
    next_cursor: str | None


def iter_pages(
    fetch_page: Callable[[str | None], Page],
    source: str,
    max_pages: int = 1000,
) -> Iterator[list[dict[str, Any]]]:
    """
    Yield pages of records until the source reports no further page.

    Each call starts again from the first page, so the sequence can be
    restarted by iterating a new generator.

    Args:
        fetch_page: Fetches the page for a cursor (None for the first page)
        source: Source name used in errors and logs
        max_pages: Hard upper bound on the number of pages requested

    Yields:
        The raw records of each page, in order

    Raises:
        FetchError: If the cap is exceeded or the source repeats a cursor
    """
    cursor: str | None = None
    seen_cursors: set[str] = set()

    for page_number in range(1, max_pages + 1):
        page = fetch_page(cursor)
        log.debug(
            "page_fetched",
            source=source,
            page_number=page_number,
            item_count=len(page.items),
        )
        yield page.items

        if not page.next_cursor:
            return
        if page.next_cursor in seen_cursors:
            raise FetchError(source, f"pagination cursor repeated on page {page_number}")

        seen_cursors.add(page.next_cursor)
        cursor = page.next_cursor

    log.error("pagination_limit_exceeded", source=source, max_pages=max_pages)
    raise FetchError(source, f"pagination exceeded {max_pages} pages")

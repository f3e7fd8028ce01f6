"""
Pagination — Turns a paged remote listing into a lazy sequence of items.

enumerate_pages() is a generator over the items of successive pages. It asks
for page 1, 2, 3, ... until one of these happens:

  - a page comes back empty
  - max_items items have been yielded
  - a page fetch raises a ServiceError

Error policy:
  - A failure on page 2 or later ends the sequence silently. The items from
    earlier pages have already been yielded, so the network is smaller than
    the true remote state; the failure shows up in the statistics only.
  - A failure on page 1 is re-raised, unless the caller says partial results
    already exist (skip_first_page_errors=True), in which case it is also
    swallowed.

Nothing is retried here. Retries of transient failures belong to the
transport (FlickrClient); this layer only sees whether a page ultimately
succeeded.
"""

from typing import Any, Callable, Iterator, List, Optional

from .errors import ServiceError
from .models import CancellationToken, RequestStatistics

FetchPage = Callable[[int, int], List[Any]]


def page_size_for(max_items: Optional[int], page_size_limit: int) -> int:
    """Page size to request: the item cap, bounded by the protocol maximum."""
    if max_items is None:
        return page_size_limit
    return max(1, min(max_items, page_size_limit))


def enumerate_pages(
    fetch_page: FetchPage,
    statistics: RequestStatistics,
    page_size_limit: int,
    max_items: Optional[int] = None,
    skip_first_page_errors: bool = False,
    cancel_token: Optional[CancellationToken] = None,
    debug: bool = False,
) -> Iterator[Any]:
    """Yield items from successive pages of a listing.

    Args:
        fetch_page: Called as fetch_page(page_index, page_size); page_index
                    starts at 1. Returns the page's items, raises ServiceError.
        statistics: Counters updated for every page fetch issued.
        page_size_limit: Largest page size the remote accepts.
        max_items: Stop after this many items (None = no cap).
        skip_first_page_errors: Swallow a page-1 failure too.
        cancel_token: Polled before each page fetch.
        debug: If True, print each swallowed page error.

    Raises:
        ServiceError: Page 1 failed and skip_first_page_errors is False.
        CrawlCancelledError: Cancellation was requested.
    """
    if max_items is not None and max_items <= 0:
        return

    page_size = page_size_for(max_items, page_size_limit)
    page_index = 1
    yielded = 0

    while True:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        statistics.pages_fetched += 1
        try:
            items = fetch_page(page_index, page_size)
        except ServiceError as e:
            statistics.pages_failed += 1
            if page_index == 1 and not skip_first_page_errors:
                raise
            statistics.pages_skipped += 1
            if page_index == 1:
                statistics.first_page_errors_absorbed += 1
            if debug:
                print(f"    Warning: page {page_index} failed, ending listing: {e}")
            return

        if not items:
            return

        for item in items:
            yield item
            yielded += 1
            if max_items is not None and yielded >= max_items:
                return

        page_index += 1

"""
Relationship Fetcher — Yields raw relationship records for one user and one kind.

This module sits between the Flickr client and the NetworkExpander. It knows
which API methods back each relation kind and how to normalize their JSON
items into RelationshipRecord values, so the expander never sees a raw
response.

Two fetch shapes:

  1. Direct ("contact")
     One paged listing, flickr.contacts.getPublicList. Each contact item
     becomes a record: {"nsid": "...", "username": "..."}.

  2. Derived ("commenter")
     A paged listing of parent items (the user's public photos), then one
     unpaged fetch of child items (the photo's comments) per parent. The
     children are flattened into a single sequence of records, one per
     comment, carrying the comment time and permalink. Each child fetch is
     reported through the progress callback.

     A failure fetching one photo's comments is swallowed and counted; the
     records already yielded stay yielded and the next photo is tried.
     Failures of the photo listing itself follow the pagination policy.

Flickr answers a page past the end of a listing with its last page again, so
pages beyond the reported "pages" count are turned into empty pages here to
let the enumerator stop.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import ProtocolFormatError, ServiceError
from .flickr_client import MAX_CONTACTS_PER_PAGE, MAX_PHOTOS_PER_PAGE
from .models import CancellationToken, RelationKind, RelationshipRecord, RequestStatistics
from .pagination import enumerate_pages


def epoch_to_iso(value: Any) -> Optional[str]:
    """Convert Flickr's epoch-seconds strings ("1229551617") to ISO-8601 UTC."""
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def listing_items(listing: Dict[str, Any], items_key: str, page_index: int) -> List[Dict]:
    """Items of one listing page, or [] when page_index is past the last page.

    Raises:
        ProtocolFormatError: The items are not a list.
    """
    pages = listing.get("pages")
    try:
        if pages is not None and page_index > int(pages):
            return []
    except (TypeError, ValueError):
        raise ProtocolFormatError(f"Unexpected page count: {pages!r}") from None
    items = listing.get(items_key, [])
    if not isinstance(items, list):
        raise ProtocolFormatError(f"Expected a list under {items_key!r}")
    return items


class RelationshipFetcher:
    """Fetches RelationshipRecords for (user, relation kind).

    Attributes:
        client: A FlickrClient (or anything with the same listing methods).
        statistics: The crawl's RequestStatistics.
        cancel_token: Polled before every page fetch and every comment fetch.
        debug: If True, prints skipped items and swallowed failures.
        progress: Called with a message before each photo's comments are fetched.
    """

    def __init__(
        self,
        client,
        statistics: RequestStatistics,
        cancel_token: Optional[CancellationToken] = None,
        debug: bool = False,
        progress: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.statistics = statistics
        self.cancel_token = cancel_token
        self.debug = debug
        self.progress = progress

    def fetch(
        self,
        user_id: str,
        kind: RelationKind,
        max_items: Optional[int] = None,
        skip_first_page_errors: bool = False,
    ) -> Iterator[RelationshipRecord]:
        """Yield the records of one relation kind for one user.

        Args:
            user_id: Canonical ID of the user whose relationships are listed.
            kind: Which relation kind to fetch.
            max_items: Cap on items per listing (None = unlimited). For the
                       derived shape the cap applies to the photo listing.
            skip_first_page_errors: Forwarded to the pagination policy.
        """
        if kind is RelationKind.CONTACT:
            return self._fetch_contacts(user_id, max_items, skip_first_page_errors)
        if kind is RelationKind.COMMENTER:
            return self._fetch_commenters(user_id, max_items, skip_first_page_errors)
        raise ValueError(f"Unsupported relation kind: {kind}")

    def _fetch_contacts(
        self, user_id: str, max_items: Optional[int], skip_first_page_errors: bool
    ) -> Iterator[RelationshipRecord]:
        def fetch_page(page_index: int, page_size: int) -> List[Dict]:
            listing = self.client.get_public_contacts(user_id, page_index, page_size)
            return listing_items(listing, "contact", page_index)

        for contact in enumerate_pages(
            fetch_page,
            self.statistics,
            MAX_CONTACTS_PER_PAGE,
            max_items=max_items,
            skip_first_page_errors=skip_first_page_errors,
            cancel_token=self.cancel_token,
            debug=self.debug,
        ):
            other_id = contact.get("nsid")
            other_handle = contact.get("username")
            if not other_id or not other_handle:
                if self.debug:
                    print(f"    Skipping contact without nsid/username: {contact}")
                continue
            yield RelationshipRecord(other_handle=str(other_handle), other_id=str(other_id))

    def _fetch_commenters(
        self, user_id: str, max_items: Optional[int], skip_first_page_errors: bool
    ) -> Iterator[RelationshipRecord]:
        def fetch_page(page_index: int, page_size: int) -> List[Dict]:
            listing = self.client.get_public_photos(user_id, page_index, page_size)
            return listing_items(listing, "photo", page_index)

        for photo in enumerate_pages(
            fetch_page,
            self.statistics,
            MAX_PHOTOS_PER_PAGE,
            max_items=max_items,
            skip_first_page_errors=skip_first_page_errors,
            cancel_token=self.cancel_token,
            debug=self.debug,
        ):
            photo_id = photo.get("id")
            if not photo_id:
                continue

            if self.cancel_token is not None:
                self.cancel_token.raise_if_cancelled()

            if self.progress is not None:
                self.progress(f'Getting comments for the photo "{photo_id}"')
            self.statistics.child_fetches += 1
            try:
                comments = self.client.get_photo_comments(str(photo_id))
            except ServiceError as e:
                self.statistics.child_fetch_failures += 1
                if self.debug:
                    print(f"    Warning: could not get comments for photo {photo_id}: {e}")
                continue

            for comment in comments:
                other_id = comment.get("author")
                other_handle = comment.get("authorname")
                if not other_id or not other_handle:
                    continue
                yield RelationshipRecord(
                    other_handle=str(other_handle),
                    other_id=str(other_id),
                    timestamp=epoch_to_iso(comment.get("datecreate")),
                    reference_url=comment.get("permalink"),
                )

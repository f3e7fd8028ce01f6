"""
Attribute Enricher — Optional post-pass that adds profile details to vertices.

After the NetworkExpander has finished, every visited user gets one
flickr.people.getInfo call. The values found are written back through the
graph sink's set_attribute():

  real_name         person.realname._content
  location          person.location._content
  photo_count       person.photos.count._content (int)
  first_photo_date  person.photos.firstdate._content (epoch -> ISO-8601 UTC)
  is_pro            person.ispro (bool)
  image_url         buddy icon URL built from iconfarm/iconserver/nsid
  photos_url        person.photosurl._content

Failure isolation: a failure for one user is counted and skipped. It never
stops the pass and never changes the crawl outcome. Cancellation is checked
before each user and again before writing that user's attributes, so nothing
is written after a cancel request has been seen.
"""

from typing import Any, Callable, Dict, Optional

from .errors import CrawlCancelledError
from .entity_resolver import content_of
from .flickr_client import FlickrClient
from .graph_document import GraphAssembler, Vertex
from .models import CancellationToken, RequestStatistics
from .relationship_fetcher import epoch_to_iso


def person_attributes(person: Dict[str, Any]) -> Dict[str, Any]:
    """Map a "person" object to vertex attributes, leaving out missing values."""
    photos = person.get("photos") or {}
    values = {
        "real_name": content_of(person.get("realname")),
        "location": content_of(person.get("location")),
        "photos_url": content_of(person.get("photosurl")),
        "image_url": FlickrClient.buddy_icon_url(person),
        "first_photo_date": epoch_to_iso(content_of(photos.get("firstdate")) or None),
    }

    count = content_of(photos.get("count"))
    if count:
        try:
            values["photo_count"] = int(count)
        except ValueError:
            pass

    if "ispro" in person:
        values["is_pro"] = bool(int(person.get("ispro") or 0))

    return {key: value for key, value in values.items() if value not in (None, "")}


class AttributeEnricher:
    """Fetches and writes per-vertex detail attributes.

    Attributes:
        client: A FlickrClient.
        graph: The graph sink the vertices live in.
        statistics: vertices_enriched and enrichment_failures are updated here.
        progress: Called with one message per vertex.
        cancel_token: Polled before each vertex and before each write.
        debug: If True, prints each swallowed failure.
    """

    def __init__(
        self,
        client,
        graph: GraphAssembler,
        statistics: RequestStatistics,
        progress: Optional[Callable[[str], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
        debug: bool = False,
    ):
        self.client = client
        self.graph = graph
        self.statistics = statistics
        self.progress = progress
        self.cancel_token = cancel_token
        self.debug = debug

    def enrich(self, visited: Dict[str, Vertex]):
        """Enrich every vertex of the VisitedSet, in the order it was built.

        Raises:
            CrawlCancelledError: Cancellation was requested.
        """
        for user_id, vertex in list(visited.items()):
            self._check_cancelled()

            if self.progress is not None:
                self.progress(f'Getting details for "{vertex.label}"')

            try:
                person = self.client.get_person_info(user_id)
                attributes = person_attributes(person)
                self._check_cancelled()
                for key, value in attributes.items():
                    self.graph.set_attribute(vertex, key, value)
            except CrawlCancelledError:
                raise
            except Exception as e:
                self.statistics.enrichment_failures += 1
                if self.debug:
                    print(f"    Warning: could not get details for {vertex.label}: {e}")
                continue

            self.statistics.vertices_enriched += 1

    def _check_cancelled(self):
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

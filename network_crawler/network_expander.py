"""
Network Expander — Recursive traversal that builds the user network.

Starting from the resolved root user, each requested relation kind is
expanded independently, and all kinds share one VisitedSet (canonical ID ->
vertex). A user reached through "contact" is therefore never added a second
time when "commenter" reaches it too: the first kind processed appends the
vertex, later kinds only record their edges.

What one step does depends on the expansion level and how deep the step is:

                  | recursion level 1          | recursion level 2
  ----------------|----------------------------|-------------------------------
  ONE             | add vertices, add edges,   | (never reached)
                  | do not recurse             |
  ONE_POINT_FIVE  | add vertices, add edges,   | do not add vertices; add an
                  | recurse                    | edge only if both endpoints
                  |                            | are already visited; do not
                  |                            | recurse
  TWO             | add vertices, add edges,   | add vertices, add edges,
                  | recurse                    | do not recurse

The step's own vertex is appended lazily, on its first record, so a user
with no relationships of a kind does not show up because of that kind.

Errors: a ServiceError that escapes a step ends that step only. At recursion
level 1 that ends the relation kind's expansion; at level 2 the remaining
sibling steps still run. Each such failure is kept in `failures` so the
analyzer can decide the crawl outcome.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import ServiceError
from .flickr_client import FlickrClient
from .graph_document import GraphAssembler, Vertex
from .models import (
    CancellationToken,
    Entity,
    ExpansionLevel,
    RelationKind,
    RelationshipRecord,
)
from .relationship_fetcher import RelationshipFetcher


def needs_to_recurse(level: ExpansionLevel, recursion_level: int) -> bool:
    _check_recursion_level(level, recursion_level)
    return recursion_level == 1 and level is not ExpansionLevel.ONE


def needs_to_append_vertices(level: ExpansionLevel, recursion_level: int) -> bool:
    _check_recursion_level(level, recursion_level)
    return recursion_level == 1 or level is ExpansionLevel.TWO


def _check_recursion_level(level: ExpansionLevel, recursion_level: int):
    if recursion_level not in (1, 2):
        raise ValueError(f"Recursion level must be 1 or 2, got {recursion_level}")
    if recursion_level == 2 and level is ExpansionLevel.ONE:
        raise ValueError("Level ONE never recurses")


class NetworkExpander:
    """Expands one root user into a network for one crawl.

    An instance belongs to a single crawl: its VisitedSet is never shared
    with another crawl.

    Attributes:
        visited: The VisitedSet, canonical ID -> appended vertex, in the order
                 vertices were appended.
        failures: (relation kind, error) for every step a ServiceError ended.
        recursive_calls: Number of recursion level 2 steps started.
    """

    def __init__(
        self,
        fetcher: RelationshipFetcher,
        graph: GraphAssembler,
        level: ExpansionLevel,
        max_per_request: Optional[int] = None,
        progress: Optional[Callable[[str], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
        debug: bool = False,
    ):
        self.fetcher = fetcher
        self.graph = graph
        self.level = level
        self.max_per_request = max_per_request
        self.progress = progress
        self.cancel_token = cancel_token
        self.debug = debug
        self.visited: Dict[str, Vertex] = {}
        self.failures: List[Tuple[RelationKind, ServiceError]] = []
        self.recursive_calls = 0

    def expand(self, root: Entity, kinds: Iterable[RelationKind]):
        """Expand the root user for each relation kind, in the given order.

        Raises:
            CrawlCancelledError: Cancellation was requested.
        """
        for kind in kinds:
            if self.cancel_token is not None:
                self.cancel_token.raise_if_cancelled()
            try:
                self._expand_step(root.id, root.handle, kind, 1)
            except ServiceError as e:
                self.failures.append((kind, e))
                if self.debug:
                    print(f"  Warning: {kind.value} expansion of {root.handle} stopped: {e}")

    def try_append_vertex(self, user_id: str, handle: str) -> bool:
        """Append a vertex unless the user is already visited.

        Returns:
            True if a vertex was appended, False if it already existed.
        """
        if user_id in self.visited:
            return False
        vertex = self.graph.append_vertex(user_id, handle)
        self.graph.set_attribute(vertex, "profile_url", FlickrClient.profile_url(user_id))
        self.visited[user_id] = vertex
        return True

    def _expand_step(self, user_id: str, handle: str, kind: RelationKind, recursion_level: int):
        need_to_recurse = needs_to_recurse(self.level, recursion_level)
        need_to_append_vertices = needs_to_append_vertices(self.level, recursion_level)
        to_recurse: List[Tuple[str, str]] = []

        self._report(f'Getting {kind.progress_text} "{handle}"')

        this_user_appended = False
        records = self.fetcher.fetch(
            user_id,
            kind,
            max_items=self.max_per_request,
            skip_first_page_errors=self.graph.has_vertices,
        )

        for record in records:
            if not this_user_appended:
                self.try_append_vertex(user_id, handle)
                this_user_appended = True

            if need_to_append_vertices:
                if self.try_append_vertex(record.other_id, record.other_handle) and need_to_recurse:
                    to_recurse.append((record.other_id, record.other_handle))

            if need_to_append_vertices or record.other_id in self.visited:
                self._append_edge(user_id, record, kind)

        if not need_to_recurse:
            return

        for other_id, other_handle in to_recurse:
            self.recursive_calls += 1
            try:
                self._expand_step(other_id, other_handle, kind, recursion_level + 1)
            except ServiceError as e:
                self.failures.append((kind, e))
                if self.debug:
                    print(f"  Warning: {kind.value} expansion of {other_handle} stopped: {e}")

    def _append_edge(self, user_id: str, record: RelationshipRecord, kind: RelationKind):
        this_vertex = self.visited[user_id]
        other_vertex = self.visited[record.other_id]

        if kind.edge_points_to_other:
            edge = self.graph.append_edge(this_vertex, other_vertex, kind)
        else:
            edge = self.graph.append_edge(other_vertex, this_vertex, kind)

        self.graph.set_attribute(edge, "relationship", kind.relationship_label)
        self.graph.set_attribute(edge, "relation_kind", kind.value)
        if kind is RelationKind.COMMENTER:
            if record.timestamp:
                self.graph.set_attribute(edge, "timestamp", record.timestamp)
            if record.reference_url:
                self.graph.set_attribute(edge, "reference_url", record.reference_url)

    def _report(self, message: str):
        if self.progress is not None:
            self.progress(message)

"""
Models — Value types shared by every stage of a crawl.

Entity and RelationshipRecord are transient values produced and consumed
within a single traversal step. RequestStatistics is created at the start of
a crawl and returned with its CrawlResult. The enums name the relation kinds
and expansion levels that callers pass to NetworkAnalyzer.get_network().
"""

import threading
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import CrawlCancelledError


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Entity:
    """A user of the remote service.

    Attributes:
        id: Canonical ID (Flickr NSID, e.g. "12037949754@N01").
        handle: Canonically-cased username.
    """

    id: str
    handle: str


class RelationKind(Enum):
    """Semantic type and direction of a discovered edge."""

    CONTACT = "contact"
    COMMENTER = "commenter"

    @property
    def relationship_label(self) -> str:
        if self is RelationKind.CONTACT:
            return "Contact of"
        return "Commented on"

    @property
    def edge_points_to_other(self) -> bool:
        """True if edges run root -> other, False if other -> root."""
        return self is RelationKind.CONTACT

    @property
    def progress_text(self) -> str:
        if self is RelationKind.CONTACT:
            return "contacts of"
        return "commenters on photos of"

    @classmethod
    def parse(cls, text: str) -> List["RelationKind"]:
        """Parse a comma-separated list such as "contact,commenter".

        Duplicates are dropped and the given order is kept, since the first
        kind processed wins the vertex append for entities both kinds reach.

        Raises:
            ValueError: If the list is empty or names an unknown kind.
        """
        kinds = []
        for part in text.split(","):
            name = part.strip().lower()
            if not name:
                continue
            try:
                kind = cls(name)
            except ValueError:
                raise ValueError(f"Unknown relation kind: {part.strip()!r}") from None
            if kind not in kinds:
                kinds.append(kind)
        if not kinds:
            raise ValueError("At least one relation kind is required")
        return kinds


class ExpansionLevel(Enum):
    """How many hops from the root are crawled, and what the second hop adds."""

    ONE = "1"
    ONE_POINT_FIVE = "1.5"
    TWO = "2"

    @classmethod
    def parse(cls, text: str) -> "ExpansionLevel":
        value = str(text).strip()
        for level in cls:
            if value == level.value or value.upper() == level.name:
                return level
        if value in ("1.0", "2.0"):
            return cls(value[0])
        raise ValueError(f"Unknown network level: {text!r} (expected 1, 1.5 or 2)")


@dataclass(frozen=True)
class RelationshipRecord:
    """One raw relationship yielded by RelationshipFetcher."""

    other_handle: str
    other_id: str
    timestamp: Optional[str] = None
    reference_url: Optional[str] = None


@dataclass
class RequestStatistics:
    """Counters kept for observability. Never used in traversal decisions."""

    pages_fetched: int = 0
    pages_failed: int = 0
    pages_skipped: int = 0
    first_page_errors_absorbed: int = 0
    child_fetches: int = 0
    child_fetch_failures: int = 0
    vertices_enriched: int = 0
    enrichment_failures: int = 0
    started_at: str = field(default_factory=utc_now_iso)
    finished_at: Optional[str] = None

    def finish(self):
        self.finished_at = utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Outcome(Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class CrawlResult:
    """Final result of one crawl.

    The graph is attached for every outcome, including FAILED and CANCELLED,
    so a caller may keep whatever was assembled before the crawl stopped.
    """

    graph: Any
    statistics: RequestStatistics
    outcome: Outcome
    message: Optional[str] = None
    root: Optional[Entity] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (Outcome.SUCCESS, Outcome.PARTIAL_SUCCESS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "message": self.message,
            "root": asdict(self.root) if self.root else None,
            "statistics": self.statistics.to_dict(),
            "vertices": self.graph.vertex_count,
            "edges": self.graph.edge_count,
        }


@dataclass(frozen=True)
class ProgressEvent:
    message: str


@dataclass(frozen=True)
class CompletedEvent:
    result: CrawlResult


class CancellationToken:
    """Cooperative cancellation flag polled by the crawl at fixed points."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise CrawlCancelledError("The crawl was cancelled")

"""
Network Analyzer — Runs one crawl as a single cancellable unit of work.

A crawl resolves the root user, expands each requested relation kind, then
optionally enriches every discovered user:

    EntityResolver -> NetworkExpander -> AttributeEnricher

get_network() runs the crawl on the caller's thread. get_network_async()
runs it on a single background worker and returns a CrawlTask: a future for
the final CrawlResult plus an ordered event stream of ProgressEvents that
ends with exactly one CompletedEvent.

One analyzer runs one crawl at a time. Starting a second crawl while one is
in progress raises BusyError immediately instead of queuing it.

Cancellation is cooperative. The crawl polls its CancellationToken before
each relation kind, each page fetch, each comment fetch and each vertex
enrichment, and stops with Outcome.CANCELLED as soon as it sees the request.

Outcome rules:
  CANCELLED        cancellation was observed
  FAILED           the root could not be resolved, an unexpected error
                   escaped, or a relation kind failed before any vertex
                   existed
  PARTIAL_SUCCESS  a relation kind failed after vertices existed, or a
                   page-1 failure was swallowed because vertices existed
  SUCCESS          everything else; failures past page 1 are swallowed and
                   only visible in the statistics

The graph assembled so far is attached to the result for every outcome.
"""

import queue
import threading
import traceback
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .attribute_enricher import AttributeEnricher
from .entity_resolver import EntityResolver
from .errors import BusyError, CrawlCancelledError, ServiceError
from .graph_document import GraphDocument
from .models import (
    CancellationToken,
    CompletedEvent,
    CrawlResult,
    ExpansionLevel,
    Outcome,
    ProgressEvent,
    RelationKind,
    RequestStatistics,
)
from .network_expander import NetworkExpander
from .relationship_fetcher import RelationshipFetcher

ProgressCallback = Callable[[str], None]
CompletedCallback = Callable[[CrawlResult], None]


class CrawlTask:
    """Handle for a crawl running on the analyzer's background worker."""

    def __init__(self, future: Future, cancel_token: CancellationToken, events: "queue.Queue"):
        self._future = future
        self._cancel_token = cancel_token
        self._events = events

    def cancel(self):
        """Ask the crawl to stop at its next polling point."""
        self._cancel_token.cancel()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> CrawlResult:
        return self._future.result(timeout)

    def events(self, timeout: Optional[float] = None) -> Iterator:
        """Yield progress events in the order the work happened.

        The last event yielded is the single CompletedEvent.

        Raises:
            queue.Empty: No event arrived within timeout seconds.
        """
        while True:
            event = self._events.get(timeout=timeout)
            yield event
            if isinstance(event, CompletedEvent):
                return


class NetworkAnalyzer:
    """Gets the network of people around one Flickr user.

    Attributes:
        client: The FlickrClient every remote call goes through.
        debug: If True, components print verbose details and tracebacks.
    """

    def __init__(self, client, debug: bool = False):
        self.client = client
        self.debug = debug
        self._lock = threading.Lock()
        self._busy = False
        self._cancel_token: Optional[CancellationToken] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def is_busy(self) -> bool:
        return self._busy

    def cancel(self):
        """Cancel the crawl in progress, if any."""
        token = self._cancel_token
        if token is not None:
            token.cancel()

    def get_network(
        self,
        root_handle: str,
        relation_kinds: Sequence[RelationKind],
        level: ExpansionLevel,
        max_per_request: Optional[int] = None,
        include_details: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        completed_callback: Optional[CompletedCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> CrawlResult:
        """Crawl synchronously on the calling thread.

        Args:
            root_handle: Username to start from, any casing.
            relation_kinds: Kinds to expand, in processing order.
            level: ExpansionLevel controlling depth and vertex inclusion.
            max_per_request: Cap on items per listing (None = unlimited).
            include_details: Run the AttributeEnricher after expansion.
            progress_callback: Called with each progress message.
            completed_callback: Called once with the final result.
            cancel_token: Token a caller on another thread may cancel.

        Returns:
            The CrawlResult; errors are reported through its outcome.

        Raises:
            BusyError: A crawl is already running on this analyzer.
            ValueError: Invalid arguments.
        """
        kinds = self._check_arguments(root_handle, relation_kinds, level, max_per_request)
        token = cancel_token or CancellationToken()
        self._acquire("get_network", token)
        try:
            result = self._crawl(root_handle, kinds, level, max_per_request, include_details,
                                 progress_callback, token)
        finally:
            self._release()

        if completed_callback is not None:
            completed_callback(result)
        return result

    def get_network_async(
        self,
        root_handle: str,
        relation_kinds: Sequence[RelationKind],
        level: ExpansionLevel,
        max_per_request: Optional[int] = None,
        include_details: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        completed_callback: Optional[CompletedCallback] = None,
    ) -> CrawlTask:
        """Start a crawl on the background worker.

        Callbacks run on the worker thread; marshalling them elsewhere is up
        to the caller.

        Raises:
            BusyError: A crawl is already running on this analyzer.
            ValueError: Invalid arguments.
        """
        kinds = self._check_arguments(root_handle, relation_kinds, level, max_per_request)
        token = CancellationToken()
        self._acquire("get_network_async", token)

        events: "queue.Queue" = queue.Queue()

        def report(message: str):
            events.put(ProgressEvent(message))
            if progress_callback is not None:
                progress_callback(message)

        def work() -> CrawlResult:
            try:
                result = self._crawl(root_handle, kinds, level, max_per_request,
                                     include_details, report, token)
            finally:
                self._release()
            events.put(CompletedEvent(result))
            if completed_callback is not None:
                completed_callback(result)
            return result

        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="network-crawl")
            future = self._executor.submit(work)
        except Exception:
            self._release()
            raise

        return CrawlTask(future, token, events)

    def close(self):
        """Shut down the background worker, waiting for a running crawl."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _crawl(
        self,
        root_handle: str,
        kinds: List[RelationKind],
        level: ExpansionLevel,
        max_per_request: Optional[int],
        include_details: bool,
        progress: Optional[ProgressCallback],
        token: CancellationToken,
    ) -> CrawlResult:
        statistics = RequestStatistics()
        graph = GraphDocument()
        graph.metadata.update({
            "root_handle": root_handle,
            "level": level.value,
            "relation_kinds": [kind.value for kind in kinds],
            "max_per_request": max_per_request,
            "include_details": include_details,
        })
        root = None

        try:
            token.raise_if_cancelled()
            root = EntityResolver(self.client, self.debug).resolve(root_handle)
            graph.metadata["root_id"] = root.id
            graph.metadata["root_handle"] = root.handle

            fetcher = RelationshipFetcher(self.client, statistics, token, self.debug, progress)
            expander = NetworkExpander(
                fetcher, graph, level, max_per_request, progress, token, self.debug
            )
            expander.expand(root, kinds)

            if include_details:
                enricher = AttributeEnricher(
                    self.client, graph, statistics, progress, token, self.debug
                )
                enricher.enrich(expander.visited)

            outcome, message = self._outcome_for(graph, statistics, expander.failures)

        except CrawlCancelledError:
            outcome, message = Outcome.CANCELLED, "The crawl was cancelled"
        except Exception as e:
            outcome, message = Outcome.FAILED, str(e) or type(e).__name__
            if self.debug:
                traceback.print_exc()

        statistics.finish()
        return CrawlResult(graph, statistics, outcome, message, root)

    @staticmethod
    def _outcome_for(
        graph: GraphDocument,
        statistics: RequestStatistics,
        failures: List[Tuple[RelationKind, ServiceError]],
    ) -> Tuple[Outcome, Optional[str]]:
        if failures:
            kind, error = failures[0]
            message = f"Could not get {kind.progress_text} the network: {error}"
            if not graph.has_vertices:
                return Outcome.FAILED, message
            return Outcome.PARTIAL_SUCCESS, message

        if statistics.first_page_errors_absorbed:
            return (
                Outcome.PARTIAL_SUCCESS,
                f"{statistics.first_page_errors_absorbed} listing(s) could not be fetched",
            )

        return Outcome.SUCCESS, None

    @staticmethod
    def _check_arguments(root_handle, relation_kinds, level, max_per_request) -> List[RelationKind]:
        if not root_handle or not str(root_handle).strip():
            raise ValueError("root_handle is required")
        kinds = list(relation_kinds)
        if not kinds:
            raise ValueError("At least one relation kind is required")
        for kind in kinds:
            if not isinstance(kind, RelationKind):
                raise ValueError(f"Not a RelationKind: {kind!r}")
        # Drop repeated kinds, keeping first-seen order.
        kinds = list(dict.fromkeys(kinds))
        if not isinstance(level, ExpansionLevel):
            raise ValueError(f"Not an ExpansionLevel: {level!r}")
        if max_per_request is not None and max_per_request <= 0:
            raise ValueError("max_per_request must be positive or None")
        return kinds

    def _acquire(self, method_name: str, token: CancellationToken):
        with self._lock:
            if self._busy:
                raise BusyError(
                    f"{type(self).__name__}.{method_name}: "
                    "An asynchronous operation is already in progress."
                )
            self._busy = True
            self._cancel_token = token

    def _release(self):
        with self._lock:
            self._busy = False
            self._cancel_token = None

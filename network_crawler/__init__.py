"""
Network crawler package — The crawl pipeline modules.

This package contains all the modules that build a Flickr user network. Each
module handles one concern:

  orchestrator.py         Pipeline coordination (Steps 1-3)
  analyzer.py             One crawl as a cancellable unit of work
  flickr_client.py        HTTP communication with the Flickr REST API
  entity_resolver.py      Username -> canonical user identity
  network_expander.py     Level-bounded recursive traversal
  relationship_fetcher.py Relation kind -> relationship records
  pagination.py           Paged listing -> lazy item sequence
  attribute_enricher.py   Optional per-user detail attributes
  graph_document.py       The graph sink vertices and edges are written to
  output_manager.py       Timestamped output folders and retention cleanup
  models.py               Shared value types
  errors.py               Exception taxonomy
"""

from .analyzer import CrawlTask, NetworkAnalyzer
from .attribute_enricher import AttributeEnricher
from .entity_resolver import EntityResolver
from .errors import (
    BusyError,
    CrawlCancelledError,
    CrawlerError,
    EntityNotFoundError,
    PermanentServiceError,
    ProtocolFormatError,
    ServiceError,
    TransientServiceError,
)
from .flickr_client import FlickrClient
from .graph_document import Edge, GraphAssembler, GraphDocument, Vertex
from .models import (
    CancellationToken,
    CompletedEvent,
    CrawlResult,
    Entity,
    ExpansionLevel,
    Outcome,
    ProgressEvent,
    RelationKind,
    RelationshipRecord,
    RequestStatistics,
)
from .network_expander import NetworkExpander
from .orchestrator import CrawlOrchestrator
from .output_manager import OutputManager
from .pagination import enumerate_pages
from .relationship_fetcher import RelationshipFetcher

"""
Graph Document — The sink the crawl writes vertices, edges and attributes into.

GraphAssembler is the contract the traversal core depends on:

  append_vertex(id, label) -> Vertex
  append_edge(source, target, kind) -> Edge
  set_attribute(handle, key, value)
  has_vertices

GraphDocument is the in-memory implementation used by the analyzer. It keeps
vertices in the order they were appended and refuses anything that would
break the graph's invariants: a second vertex with the same id, an edge whose
endpoint was never appended, or an attribute key that is not declared below.

Attribute keys are declared up front, the same way the attribute schema of a
graph file has to be defined before any value is written:

  Vertex: label, profile_url, real_name, location, photo_count,
          first_photo_date, is_pro, image_url, photos_url
  Edge:   relationship, relation_kind, timestamp, reference_url

Serialization to GraphML or any other file format is outside this module;
to_dict() gives a JSON-ready view for the orchestrator's output step.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .models import RelationKind, utc_now_iso


VERTEX_ATTRIBUTE_KEYS = (
    "label",
    "profile_url",
    "real_name",
    "location",
    "photo_count",
    "first_photo_date",
    "is_pro",
    "image_url",
    "photos_url",
)

EDGE_ATTRIBUTE_KEYS = (
    "relationship",
    "relation_kind",
    "timestamp",
    "reference_url",
)


@dataclass
class Vertex:
    id: str
    label: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "attributes": dict(self.attributes)}


@dataclass
class Edge:
    source: str
    target: str
    relation_kind: RelationKind
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "relation_kind": self.relation_kind.value,
            "attributes": dict(self.attributes),
        }


class GraphAssembler:
    """Minimal graph sink contract.

    Subclasses implement the three write operations; the traversal core never
    reads anything back except has_vertices.
    """

    @property
    def has_vertices(self) -> bool:
        raise NotImplementedError

    def append_vertex(self, vertex_id: str, label: str) -> Vertex:
        raise NotImplementedError

    def append_edge(self, source: Vertex, target: Vertex, kind: RelationKind) -> Edge:
        raise NotImplementedError

    def set_attribute(self, handle: Union[Vertex, Edge], key: str, value: Any):
        raise NotImplementedError


class GraphDocument(GraphAssembler):
    """In-memory directed graph document.

    Attributes:
        metadata: Graph-level values (root, level, relation kinds, created_at)
                  filled in by the analyzer and written out by to_dict().
    """

    def __init__(self):
        self._vertices: Dict[str, Vertex] = {}
        self._edges: List[Edge] = []
        self.metadata: Dict[str, Any] = {"created_at": utc_now_iso()}

    @property
    def has_vertices(self) -> bool:
        return bool(self._vertices)

    @property
    def vertices(self) -> List[Vertex]:
        return list(self._vertices.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    @property
    def vertex_count(self) -> int:
        return len(self._vertices)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def get_vertex(self, vertex_id: str) -> Optional[Vertex]:
        return self._vertices.get(vertex_id)

    def append_vertex(self, vertex_id: str, label: str) -> Vertex:
        """Append a vertex. The caller guarantees ids are never repeated.

        Raises:
            ValueError: If a vertex with this id was already appended.
        """
        if vertex_id in self._vertices:
            raise ValueError(f"Vertex {vertex_id!r} was already appended")
        vertex = Vertex(id=vertex_id, label=label)
        vertex.attributes["label"] = label
        self._vertices[vertex_id] = vertex
        return vertex

    def append_edge(self, source: Vertex, target: Vertex, kind: RelationKind) -> Edge:
        """Append a directed edge between two appended vertices.

        Raises:
            ValueError: If either endpoint is not part of this document.
        """
        for endpoint in (source, target):
            if self._vertices.get(endpoint.id) is not endpoint:
                raise ValueError(f"Edge endpoint {endpoint.id!r} is not a vertex of this graph")
        edge = Edge(source=source.id, target=target.id, relation_kind=kind)
        self._edges.append(edge)
        return edge

    def set_attribute(self, handle: Union[Vertex, Edge], key: str, value: Any):
        """Set one declared attribute on a vertex or an edge.

        Raises:
            ValueError: If key is not declared for that kind of handle.
        """
        if isinstance(handle, Vertex):
            allowed = VERTEX_ATTRIBUTE_KEYS
        elif isinstance(handle, Edge):
            allowed = EDGE_ATTRIBUTE_KEYS
        else:
            raise TypeError(f"Unsupported graph handle: {type(handle)}")
        if key not in allowed:
            raise ValueError(f"Undeclared attribute key: {key!r}")
        handle.attributes[key] = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graph": dict(self.metadata),
            "vertices": [v.to_dict() for v in self._vertices.values()],
            "edges": [e.to_dict() for e in self._edges],
        }

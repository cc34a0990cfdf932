"""Core data structures for the layout pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

NodeId = str
EdgeId = str
Point2D = Tuple[float, float]

EDGE_ID_SEPARATOR = "---"

K = TypeVar("K")
V = TypeVar("V")


class LayoutInputError(ValueError):
    """Raised when raw node/edge records cannot be turned into a graph."""


@dataclass
class Node:
    id: NodeId
    x: Optional[float] = None
    y: Optional[float] = None
    rank: Optional[int] = None
    degree: int = 0
    attrs: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_placed(self) -> bool:
        return self.x is not None and self.y is not None

    @property
    def center(self) -> Point2D:
        return (float(self.x), float(self.y))  # type: ignore[arg-type]


@dataclass
class Edge:
    source: NodeId
    target: NodeId
    points: Optional[List[Point2D]] = None
    id: EdgeId = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = edge_id(self.source, self.target)

    @property
    def is_loop(self) -> bool:
        return self.source == self.target


@dataclass(frozen=True)
class CachedNode:
    """Layout-relevant subset of a node kept between calls."""

    x: Optional[float]
    y: Optional[float]
    rank: Optional[int] = None

    @classmethod
    def from_node(cls, node: Node) -> "CachedNode":
        return cls(x=node.x, y=node.y, rank=node.rank)


NodeMap = Dict[NodeId, Node]
EdgeMap = Dict[EdgeId, Edge]
NodeCache = Dict[NodeId, CachedNode]
EdgeCache = Dict[EdgeId, Edge]


@dataclass
class Layout:
    nodes: NodeMap
    edges: EdgeMap
    width: float = 0.0
    height: float = 0.0
    graph_width: Optional[float] = None
    graph_height: Optional[float] = None


@dataclass(frozen=True)
class Margins:
    left: float = 0.0
    top: float = 0.0


@dataclass
class LayoutOptions:
    """Per-call options understood by :class:`topolayout.layout.NodesLayout`."""

    topology_id: Optional[str] = None
    topology_options: Optional[Mapping[str, Any]] = None
    no_cache: bool = False
    force_relayout: bool = False
    cached_layout: Optional[Layout] = None
    node_cache: Optional[NodeCache] = None
    edge_cache: Optional[EdgeCache] = None
    margins: Margins = field(default_factory=Margins)


def edge_id(source: NodeId, target: NodeId) -> EdgeId:
    return f"{source}{EDGE_ID_SEPARATOR}{target}"


def merge_cache(old: Mapping[K, V], new: Mapping[K, V]) -> Dict[K, V]:
    """Return ``old`` overlaid with ``new``; keys only present in ``old`` survive."""

    merged = dict(old)
    merged.update(new)
    return merged


def update_node_degrees(nodes: Mapping[NodeId, Node], edges: Mapping[EdgeId, Edge]) -> NodeMap:
    """Return copies of ``nodes`` whose degree matches ``edges``."""

    degrees: Dict[NodeId, int] = {node_id: 0 for node_id in nodes}
    for edge in edges.values():
        if edge.source in degrees:
            degrees[edge.source] += 1
        if edge.target in degrees and edge.target != edge.source:
            degrees[edge.target] += 1
    return {node_id: replace(node, degree=degrees[node_id]) for node_id, node in nodes.items()}


def _optional_float(value: object, *, what: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise LayoutInputError(f"{what} must be a number, got {value!r}") from exc


def nodes_from_records(records: Iterable[Mapping[str, Any]]) -> NodeMap:
    """Build a node map from JSON-like records (``{"id": ..., "rank": ...}``)."""

    nodes: NodeMap = {}
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise LayoutInputError(f"node record #{index} must be an object")
        raw_id = record.get("id")
        if raw_id is None or raw_id == "":
            raise LayoutInputError(f"node record #{index} has no id")
        node_id = str(raw_id)
        if node_id in nodes:
            raise LayoutInputError(f"duplicate node id {node_id!r}")
        rank = record.get("rank")
        if rank is not None and not isinstance(rank, int):
            raise LayoutInputError(f"node {node_id!r} rank must be an integer, got {rank!r}")
        attrs = {key: value for key, value in record.items() if key not in {"id", "x", "y", "rank", "degree"}}
        nodes[node_id] = Node(
            id=node_id,
            x=_optional_float(record.get("x"), what=f"node {node_id!r} x"),
            y=_optional_float(record.get("y"), what=f"node {node_id!r} y"),
            rank=rank,
            attrs=attrs,
        )
    return nodes


def edges_from_records(records: Iterable[Mapping[str, Any]], nodes: Mapping[NodeId, Node]) -> EdgeMap:
    """Build an edge map from ``{"source": ..., "target": ...}`` records."""

    edges: EdgeMap = {}
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise LayoutInputError(f"edge record #{index} must be an object")
        source = record.get("source")
        target = record.get("target")
        if source is None or target is None:
            raise LayoutInputError(f"edge record #{index} needs both source and target")
        source, target = str(source), str(target)
        for endpoint in (source, target):
            if endpoint not in nodes:
                raise LayoutInputError(f"edge {source}->{target} references unknown node {endpoint!r}")
        edge = Edge(source=source, target=target)
        edges[edge.id] = edge
    return edges


def layout_to_dict(layout: Layout) -> Dict[str, Any]:
    return {
        "width": layout.width,
        "height": layout.height,
        "graph_width": layout.graph_width,
        "graph_height": layout.graph_height,
        "nodes": {
            node_id: {"x": node.x, "y": node.y, "rank": node.rank, "degree": node.degree}
            for node_id, node in layout.nodes.items()
        },
        "edges": {
            eid: {
                "source": edge.source,
                "target": edge.target,
                "points": [list(point) for point in edge.points] if edge.points is not None else None,
            }
            for eid, edge in layout.edges.items()
        },
    }


__all__ = [
    "CachedNode",
    "EDGE_ID_SEPARATOR",
    "Edge",
    "EdgeCache",
    "EdgeId",
    "EdgeMap",
    "Layout",
    "LayoutInputError",
    "LayoutOptions",
    "Margins",
    "Node",
    "NodeCache",
    "NodeId",
    "NodeMap",
    "Point2D",
    "edge_id",
    "edges_from_records",
    "layout_to_dict",
    "merge_cache",
    "nodes_from_records",
    "update_node_degrees",
]

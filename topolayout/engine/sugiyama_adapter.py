"""Layered layout engine adapter built on grandalf's Sugiyama layout."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Mapping, Optional, Protocol, Tuple

from grandalf.graphs import Edge as GEdge
from grandalf.graphs import Graph, Vertex
from grandalf.layouts import SugiyamaLayout

from ..config import LayoutConfig, get_layout_config
from ..geometry import corrected_edge_path
from ..model import EdgeId, EdgeMap, Layout, Margins, NodeId, NodeMap, Point2D
from ..strategies import layout_single_nodes

logger = logging.getLogger(__name__)

EdgeKey = Tuple[NodeId, NodeId]


@dataclass
class EngineNode:
    width: float
    height: float


@dataclass
class EngineEdge:
    edge_id: EdgeId
    min_length: int = 0


@dataclass
class EngineResult:
    """Coordinates produced by one engine run; positions are node centers."""

    positions: Dict[NodeId, Point2D] = field(default_factory=dict)
    ranks: Dict[NodeId, int] = field(default_factory=dict)
    paths: Dict[EdgeId, List[Point2D]] = field(default_factory=dict)
    width: float = 0.0
    height: float = 0.0


class LayoutEngine(Protocol):
    """Persistent, incrementally mutated graph handed to an external layout solver."""

    def set_graph(self, node_separation: float, rank_separation: float) -> None:
        ...

    def has_node(self, node_id: NodeId) -> bool:
        ...

    def add_node(self, node_id: NodeId, width: float, height: float) -> None:
        ...

    def remove_node(self, node_id: NodeId) -> None:
        """Remove ``node_id`` together with its incident edges."""

    def node_ids(self) -> List[NodeId]:
        ...

    def has_edge(self, source: NodeId, target: NodeId) -> bool:
        ...

    def add_edge(self, source: NodeId, target: NodeId, edge_id: EdgeId, min_length: int = 0) -> None:
        ...

    def remove_edge(self, source: NodeId, target: NodeId) -> None:
        ...

    def edge_keys(self) -> List[EdgeKey]:
        ...

    def run(self) -> EngineResult:
        ...


class _VertexView:
    """View object grandalf reads sizes from and writes centers to."""

    def __init__(self, w: float, h: float) -> None:
        self.w = w
        self.h = h
        self.xy = (0.0, 0.0)


class _EdgeView:
    def __init__(self) -> None:
        self.points: List[Point2D] = []

    def setpath(self, pts) -> None:
        self.points = [(float(p[0]), float(p[1])) for p in pts]


def _box_boundary_point(center: Point2D, toward: Point2D, half_w: float, half_h: float) -> Point2D:
    """Where the ray from ``center`` to ``toward`` leaves the node's box."""

    dx = toward[0] - center[0]
    dy = toward[1] - center[1]
    scales = []
    if dx:
        scales.append(half_w / abs(dx))
    if dy:
        scales.append(half_h / abs(dy))
    if not scales:
        return center
    scale = min(scales)
    if scale >= 1.0:
        return toward
    return (center[0] + dx * scale, center[1] + dy * scale)


@dataclass
class _PlacedComponent:
    positions: Dict[NodeId, Point2D]
    ranks: Dict[NodeId, int]
    paths: Dict[EdgeKey, List[Point2D]]
    min_x: float
    min_y: float
    max_x: float
    max_y: float


class SugiyamaEngine:
    """Keeps the node/edge registry of one topology and lays it out on demand.

    grandalf has no incremental solver, so every :meth:`run` builds a fresh
    grandalf graph from the registry. Self-loops never reach grandalf; they
    are drawn as a loop sticking out ``min_length`` hops to the right of
    their node.
    """

    def __init__(self, node_separation: float = 100.0, rank_separation: float = 200.0) -> None:
        self.node_separation = node_separation
        self.rank_separation = rank_separation
        self._nodes: Dict[NodeId, EngineNode] = {}
        self._edges: Dict[EdgeKey, EngineEdge] = {}

    def set_graph(self, node_separation: float, rank_separation: float) -> None:
        self.node_separation = node_separation
        self.rank_separation = rank_separation

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def add_node(self, node_id: NodeId, width: float, height: float) -> None:
        self._nodes[node_id] = EngineNode(width=width, height=height)

    def remove_node(self, node_id: NodeId) -> None:
        self._nodes.pop(node_id, None)
        for key in [key for key in self._edges if node_id in key]:
            del self._edges[key]

    def node_ids(self) -> List[NodeId]:
        return list(self._nodes)

    def has_edge(self, source: NodeId, target: NodeId) -> bool:
        return (source, target) in self._edges

    def add_edge(self, source: NodeId, target: NodeId, edge_id: EdgeId, min_length: int = 0) -> None:
        if source not in self._nodes or target not in self._nodes:
            raise KeyError(f"unknown node in edge: {source}->{target}")
        self._edges[(source, target)] = EngineEdge(edge_id=edge_id, min_length=min_length)

    def remove_edge(self, source: NodeId, target: NodeId) -> None:
        self._edges.pop((source, target), None)

    def edge_keys(self) -> List[EdgeKey]:
        return list(self._edges)

    def _loop_hop(self, key: EdgeKey) -> float:
        return 0.5 * self.node_separation * max(self._edges[key].min_length, 1)

    def _loop_path(self, key: EdgeKey, center: Point2D) -> List[Point2D]:
        size = self._nodes[key[0]]
        cx, cy = center
        right = cx + size.width / 2
        out = right + self._loop_hop(key)
        top = cy - size.height / 4
        bottom = cy + size.height / 4
        return [center, (right, top), (out, top), (out, bottom), (right, bottom), center]

    def _iter_loops(self) -> Iterator[EdgeKey]:
        return (key for key in self._edges if key[0] == key[1])

    def _place_component(self, component, edge_views: Mapping[EdgeKey, Tuple[GEdge, _EdgeView]]) -> _PlacedComponent:
        vertices = list(component.sV)
        if len(vertices) == 1:
            vertices[0].view.xy = (0.0, 0.0)
            ranks = {vertices[0].data: 0}
        else:
            sug = SugiyamaLayout(component)
            sug.xspace = self.node_separation
            sug.yspace = self.rank_separation
            roots = [v for v in vertices if len(v.e_in()) == 0] or vertices[:1]
            sug.init_all(roots=roots)
            sug.draw()
            ranks = {v.data: int(sug.grx[v].rank) for v in vertices}

        positions = {v.data: (float(v.view.xy[0]), float(v.view.xy[1])) for v in vertices}
        paths: Dict[EdgeKey, List[Point2D]] = {}
        for key, (_gedge, view) in edge_views.items():
            if key[0] not in positions:
                continue
            raw = view.points or [positions[key[0]], positions[key[1]]]
            paths[key] = self._clip_path(key, raw, positions)

        xs: List[float] = []
        ys: List[float] = []
        for node_id, (x, y) in positions.items():
            size = self._nodes[node_id]
            xs.extend((x - size.width / 2, x + size.width / 2))
            ys.extend((y - size.height / 2, y + size.height / 2))
        for key in self._iter_loops():
            if key[0] in positions:
                x, _y = positions[key[0]]
                xs.append(x + self._nodes[key[0]].width / 2 + self._loop_hop(key))
        for points in paths.values():
            xs.extend(p[0] for p in points)
            ys.extend(p[1] for p in points)
        return _PlacedComponent(positions, ranks, paths, min(xs), min(ys), max(xs), max(ys))

    def _clip_path(self, key: EdgeKey, raw: List[Point2D], positions: Mapping[NodeId, Point2D]) -> List[Point2D]:
        source, target = key
        src_size = self._nodes[source]
        tgt_size = self._nodes[target]
        src_center = positions[source]
        tgt_center = positions[target]
        inner = raw[1:-1]
        exit_toward = inner[0] if inner else tgt_center
        entrance_from = inner[-1] if inner else src_center
        return [
            _box_boundary_point(src_center, exit_toward, src_size.width / 2, src_size.height / 2),
            *inner,
            _box_boundary_point(tgt_center, entrance_from, tgt_size.width / 2, tgt_size.height / 2),
        ]

    def run(self) -> EngineResult:
        if not self._nodes:
            return EngineResult()

        vertices: Dict[NodeId, Vertex] = {}
        for node_id, size in self._nodes.items():
            vertex = Vertex(node_id)
            vertex.view = _VertexView(size.width, size.height)
            vertices[node_id] = vertex

        edge_views: Dict[EdgeKey, Tuple[GEdge, _EdgeView]] = {}
        for key in self._edges:
            source, target = key
            if source == target:
                continue
            gedge = GEdge(vertices[source], vertices[target])
            view = _EdgeView()
            gedge.view = view
            edge_views[key] = (gedge, view)

        graph = Graph(list(vertices.values()), [gedge for gedge, _view in edge_views.values()])

        result = EngineResult()
        cursor = 0.0
        height = 0.0
        for component in graph.C:
            placed = self._place_component(component, edge_views)
            dx = cursor - placed.min_x
            dy = -placed.min_y
            for node_id, (x, y) in placed.positions.items():
                result.positions[node_id] = (x + dx, y + dy)
            result.ranks.update(placed.ranks)
            for key, points in placed.paths.items():
                result.paths[self._edges[key].edge_id] = [(x + dx, y + dy) for x, y in points]
            cursor += (placed.max_x - placed.min_x) + self.node_separation
            height = max(height, placed.max_y - placed.min_y)

        for key in self._iter_loops():
            center = result.positions.get(key[0])
            if center is not None:
                result.paths[self._edges[key].edge_id] = self._loop_path(key, center)

        result.width = max(cursor - self.node_separation, 0.0)
        result.height = height
        logger.info(
            "Engine run placed %d node(s) in %d component(s), canvas %.1fx%.1f",
            len(result.positions),
            len(graph.C),
            result.width,
            result.height,
        )
        return result


def run_layout_engine(
    engine: LayoutEngine,
    nodes: NodeMap,
    edges: EdgeMap,
    margins: Margins = Margins(),
    config: Optional[LayoutConfig] = None,
) -> Layout:
    """Sync ``engine`` with the current graph, run it and build a full layout.

    ``nodes`` must carry degrees computed from ``edges``. 0-degree nodes are
    kept out of the engine and placed on the single-node grid afterwards.
    """

    config = config or get_layout_config()
    node_size = config.node_size

    engine.set_graph(config.node_separation, config.rank_separation)

    for node_id in nodes:
        if not engine.has_node(node_id):
            engine.add_node(node_id, node_size, node_size)

    for node_id in engine.node_ids():
        node = nodes.get(node_id)
        if node is None or node.degree == 0:
            engine.remove_node(node_id)

    for edge in edges.values():
        if engine.has_edge(edge.source, edge.target):
            continue
        if not (engine.has_node(edge.source) and engine.has_node(edge.target)):
            logger.warning("Skipping edge %s with endpoint outside the node set", edge.id)
            continue
        # A loop needs one extra hop or it collapses onto its node.
        engine.add_edge(edge.source, edge.target, edge.id, min_length=1 if edge.is_loop else 0)

    current_keys = {(edge.source, edge.target) for edge in edges.values()}
    for key in engine.edge_keys():
        if key not in current_keys:
            engine.remove_edge(*key)

    result = engine.run()

    laid_out: NodeMap = {}
    for node_id, node in nodes.items():
        position = result.positions.get(node_id)
        if position is None:
            laid_out[node_id] = node
            continue
        rank = node.rank if node.rank is not None else result.ranks.get(node_id)
        laid_out[node_id] = replace(node, x=position[0], y=position[1], rank=rank)

    laid_out_edges: EdgeMap = dict(edges)
    for eid, edge in edges.items():
        source = laid_out.get(edge.source)
        target = laid_out.get(edge.target)
        if source is None or target is None or not source.is_placed or not target.is_placed:
            continue
        points = corrected_edge_path(
            result.paths.get(eid, []),
            source.center,
            target.center,
            config.edge_waypoints_cap,
            is_loop=edge.is_loop,
        )
        laid_out_edges[eid] = replace(edge, points=points)

    layout = Layout(
        nodes=laid_out,
        edges=laid_out_edges,
        width=result.width,
        height=result.height,
        graph_width=result.width,
        graph_height=result.height,
    )
    return layout_single_nodes(layout, margins, config)


__all__ = [
    "EngineEdge",
    "EngineNode",
    "EngineResult",
    "LayoutEngine",
    "SugiyamaEngine",
    "run_layout_engine",
]

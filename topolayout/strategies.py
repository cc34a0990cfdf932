"""Incremental placement strategies that reuse a previous layout."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Dict, List, Mapping, Optional

from .config import LayoutConfig, get_layout_config
from .geometry import straight_edge_points
from .logging_utils import apply_debug_logging
from .model import (
    CachedNode,
    Edge,
    EdgeCache,
    EdgeMap,
    Layout,
    Margins,
    Node,
    NodeCache,
    NodeId,
    NodeMap,
)

logger = logging.getLogger(__name__)


def clone_layout(layout: Layout, nodes: NodeMap, edges: EdgeMap) -> Layout:
    """Return ``layout`` with its dimensions but the given node and edge sets."""

    return replace(layout, nodes=dict(nodes), edges=dict(edges))


def _has_same_endpoints(cached_edge: Edge, nodes: Mapping[NodeId, Node]) -> bool:
    if not cached_edge.points:
        return False
    source = nodes.get(cached_edge.source)
    target = nodes.get(cached_edge.target)
    if source is None or target is None or not source.is_placed or not target.is_placed:
        return False
    first = cached_edge.points[0]
    last = cached_edge.points[-1]
    return (
        first[0] == source.x
        and first[1] == source.y
        and last[0] == target.x
        and last[1] == target.y
    )


def _copy_node(node: Node, cached: Optional[CachedNode]) -> Node:
    if cached is None:
        return node
    rank = cached.rank if cached.rank is not None else node.rank
    return replace(node, x=cached.x, y=cached.y, rank=rank)


def copy_layout_properties(layout: Layout, node_cache: NodeCache, edge_cache: EdgeCache) -> Layout:
    """Overwrite positions and edge paths with cached values wherever they still apply."""

    nodes = {node_id: _copy_node(node, node_cache.get(node_id)) for node_id, node in layout.nodes.items()}

    edges: EdgeMap = {}
    for eid, edge in layout.edges.items():
        cached_edge = edge_cache.get(eid)
        source = node_cache.get(edge.source)
        target = node_cache.get(edge.target)
        if cached_edge is not None and _has_same_endpoints(cached_edge, nodes):
            edges[eid] = replace(edge, points=list(cached_edge.points or []))
        elif (
            source is not None
            and target is not None
            and None not in (source.x, source.y, target.x, target.y)
        ):
            edges[eid] = replace(
                edge,
                points=straight_edge_points((source.x, source.y), (target.x, target.y)),  # type: ignore[arg-type]
            )
        else:
            edges[eid] = edge
    return replace(layout, nodes=nodes, edges=edges)


def _rank_sort_key(item):
    index, node = item
    return (node.rank is None, node.rank if node.rank is not None else 0, index)


def layout_single_nodes(
    layout: Layout,
    margins: Margins = Margins(),
    config: Optional[LayoutConfig] = None,
) -> Layout:
    """Place every 0-degree node on a square grid next to the connected graph.

    The grid goes to the right of tall graphs and below wide ones.
    """

    config = config or get_layout_config()
    node_width = node_height = config.node_size
    nodesep = config.node_separation
    # The engine splits the rank separation between both sides of a rank.
    ranksep = config.rank_separation / 2

    single = [node for node in layout.nodes.values() if node.degree == 0]
    if not single:
        return layout

    graph_width = layout.graph_width or layout.width
    graph_height = layout.graph_height or layout.height
    aspect_ratio = graph_width / graph_height if graph_height else 1.0

    connected = [node for node in layout.nodes.values() if node.degree != 0 and node.is_placed]
    offset_x: Optional[float] = None
    offset_y: Optional[float] = None
    if connected:
        if aspect_ratio < 1:
            logger.debug("Laying out %d single node(s) to the right (aspect=%.3f)", len(single), aspect_ratio)
            offset_x = max(node.x for node in connected) + node_width + nodesep  # type: ignore[type-var]
            offset_y = min(node.y for node in connected)  # type: ignore[type-var]
        else:
            logger.debug("Laying out %d single node(s) below (aspect=%.3f)", len(single), aspect_ratio)
            offset_x = min(node.x for node in connected)  # type: ignore[type-var]
            offset_y = max(node.y for node in connected) + node_height + ranksep  # type: ignore[type-var]

    if offset_x is None:
        offset_x = margins.left + node_width / 2
    if offset_y is None:
        offset_y = margins.top + node_height / 2

    columns = math.ceil(math.sqrt(len(single)))
    ordered = sorted(enumerate(single), key=_rank_sort_key)
    placed: Dict[NodeId, Node] = {}
    single_x = offset_x
    single_y = offset_y
    for position, (_index, node) in enumerate(ordered):
        row, col = divmod(position, columns)
        single_x = col * (nodesep + node_width) + offset_x
        single_y = row * (ranksep + node_height) + offset_y
        placed[node.id] = replace(node, x=single_x, y=single_y)

    nodes = {node_id: placed.get(node_id, node) for node_id, node in layout.nodes.items()}
    return replace(
        layout,
        nodes=nodes,
        width=max(layout.width, single_x + node_width / 2 + nodesep),
        height=max(layout.height, single_y + node_height / 2 + ranksep),
    )


def layout_new_nodes_of_existing_rank(
    layout: Layout,
    node_cache: NodeCache,
    config: Optional[LayoutConfig] = None,
) -> Layout:
    """Append new connected nodes to the right end of their rank's row.

    Nodes of one rank are assumed to share a y coordinate; the first cached
    node of the rank supplies it.
    """

    config = config or get_layout_config()
    nodesep = config.node_separation
    node_width = config.node_size

    cached_by_rank: Dict[int, List[CachedNode]] = {}
    for cached in node_cache.values():
        if cached.rank is not None and cached.x is not None and cached.y is not None:
            cached_by_rank.setdefault(cached.rank, []).append(cached)

    nodes: NodeMap = {}
    for node_id, node in layout.nodes.items():
        if node_id in node_cache or node.degree == 0:
            nodes[node_id] = node
            continue
        same_rank = cached_by_rank.get(node.rank) if node.rank is not None else None
        if not same_rank:
            logger.warning("No cached node shares rank %s of new node %s; leaving it unplaced", node.rank, node_id)
            nodes[node_id] = node
            continue
        y = same_rank[0].y
        x = max(cached.x for cached in same_rank) + nodesep + node_width  # type: ignore[type-var]
        nodes[node_id] = replace(node, x=x, y=y)

    edges: EdgeMap = {}
    for eid, edge in layout.edges.items():
        source = nodes.get(edge.source)
        target = nodes.get(edge.target)
        if edge.points is None and source is not None and target is not None and source.is_placed and target.is_placed:
            edges[eid] = replace(edge, points=straight_edge_points(source.center, target.center))
        else:
            edges[eid] = edge
    return replace(layout, nodes=nodes, edges=edges)


apply_debug_logging(globals(), logger=logger)

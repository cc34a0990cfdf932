"""Incremental layout orchestrator."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from .cache import TopologyCache, TopologyCacheStore, build_topology_cache_id
from .collaborators import (
    OVERLAP_EVENT,
    FeatureFlags,
    LoggingTelemetry,
    StaticFeatureFlags,
    TelemetrySink,
    emit_event,
    feature_is_enabled_any,
)
from .config import LayoutConfig, get_layout_config
from .diff import UpdateStrategy, classify_update
from .engine import run_layout_engine
from .geometry import min_euclidean_distance
from .model import (
    CachedNode,
    Edge,
    EdgeCache,
    EdgeId,
    Layout,
    LayoutOptions,
    Node,
    NodeCache,
    NodeId,
    NodeMap,
    merge_cache,
    update_node_degrees,
)
from .strategies import (
    clone_layout,
    copy_layout_properties,
    layout_new_nodes_of_existing_rank,
    layout_single_nodes,
)

logger = logging.getLogger(__name__)

SINGLE_NODES_FLAGS = ("layout-dance", "layout-dance-single")
SAME_RANK_FLAGS = ("layout-dance", "layout-dance-rank")


class NodesLayout:
    """Lays out successive snapshots of topologies, reusing earlier results when safe."""

    def __init__(
        self,
        store: Optional[TopologyCacheStore] = None,
        telemetry: Optional[TelemetrySink] = None,
        feature_flags: Optional[FeatureFlags] = None,
        config: Optional[LayoutConfig] = None,
    ) -> None:
        self.store = store if store is not None else TopologyCacheStore()
        self.telemetry = telemetry if telemetry is not None else LoggingTelemetry()
        self.feature_flags = feature_flags if feature_flags is not None else StaticFeatureFlags()
        self.config = config or get_layout_config()
        self.layout_runs = 0
        self.layout_runs_trivial = 0

    def _classify(
        self,
        nodes: NodeMap,
        edges: Mapping[EdgeId, Edge],
        node_cache: NodeCache,
    ) -> UpdateStrategy:
        return classify_update(
            nodes,
            edges,
            node_cache,
            single_nodes_enabled=feature_is_enabled_any(self.feature_flags, *SINGLE_NODES_FLAGS),
            same_rank_enabled=feature_is_enabled_any(self.feature_flags, *SAME_RANK_FLAGS),
        )

    def _apply_strategy(
        self,
        strategy: UpdateStrategy,
        cache: TopologyCache,
        cached_layout: Optional[Layout],
        nodes: NodeMap,
        edges: Mapping[EdgeId, Edge],
        node_cache: NodeCache,
        edge_cache: EdgeCache,
        options: LayoutOptions,
    ) -> Layout:
        if strategy is UpdateStrategy.FULL_RELAYOUT or cached_layout is None:
            return run_layout_engine(cache.engine, nodes, dict(edges), options.margins, self.config)

        layout = clone_layout(cached_layout, nodes, dict(edges))
        layout = copy_layout_properties(layout, node_cache, edge_cache)
        if strategy is UpdateStrategy.POSITION_COPY:
            return layout
        if strategy is UpdateStrategy.SAME_RANK:
            layout = layout_new_nodes_of_existing_rank(layout, node_cache, self.config)
        return layout_single_nodes(layout, options.margins, self.config)

    def layout(
        self,
        nodes: Mapping[NodeId, Node],
        edges: Mapping[EdgeId, Edge],
        options: Optional[LayoutOptions] = None,
    ) -> Layout:
        """Return positions for ``nodes`` and paths for ``edges``.

        The result is committed to the topology's cache so the next snapshot
        of the same topology can reuse it.
        """

        options = options or LayoutOptions()
        cache_id = build_topology_cache_id(options.topology_id, options.topology_options)
        cache = self.store.get_or_create(cache_id, reset=options.no_cache)

        cached_layout = options.cached_layout or cache.cached_layout
        node_cache = options.node_cache if options.node_cache is not None else cache.node_cache
        edge_cache = options.edge_cache if options.edge_cache is not None else cache.edge_cache
        use_cache = not options.force_relayout and cached_layout is not None

        nodes_with_degrees = update_node_degrees(nodes, edges)
        if use_cache:
            strategy = self._classify(nodes_with_degrees, edges, node_cache)
        else:
            strategy = UpdateStrategy.FULL_RELAYOUT

        self.layout_runs += 1
        if strategy is UpdateStrategy.POSITION_COPY:
            self.layout_runs_trivial += 1
        logger.info(
            "Topology %r: %d node(s), %d edge(s), strategy=%s (trivial %d/%d)",
            cache_id,
            len(nodes_with_degrees),
            len(edges),
            strategy.value,
            self.layout_runs_trivial,
            self.layout_runs,
        )

        layout = self._apply_strategy(
            strategy, cache, cached_layout, nodes_with_degrees, edges, node_cache, edge_cache, options
        )

        if strategy is not UpdateStrategy.FULL_RELAYOUT:
            unplaced = [node_id for node_id, node in layout.nodes.items() if not node.is_placed]
            if unplaced:
                logger.info("Strategy %s left %d node(s) unplaced, running full layout", strategy.value, len(unplaced))
                strategy = UpdateStrategy.FULL_RELAYOUT
                layout = run_layout_engine(cache.engine, nodes_with_degrees, dict(edges), options.margins, self.config)

        min_distance = min_euclidean_distance(
            node.center if node.is_placed else None for node in layout.nodes.values()
        )
        if min_distance < self.config.node_centers_separation:
            logger.warning(
                "Nodes %.1f apart after %s (minimum %.1f), re-running full layout",
                min_distance,
                strategy.value,
                self.config.node_centers_separation,
            )
            if strategy is not UpdateStrategy.FULL_RELAYOUT:
                layout = run_layout_engine(cache.engine, nodes_with_degrees, dict(edges), options.margins, self.config)
            emit_event(self.telemetry, OVERLAP_EVENT)

        self._commit(cache, layout)
        return layout

    def _commit(self, cache: TopologyCache, layout: Layout) -> None:
        cache.cached_layout = layout
        cache.node_cache = merge_cache(
            cache.node_cache,
            {node_id: CachedNode.from_node(node) for node_id, node in layout.nodes.items()},
        )
        # Callers own the returned paths; the cache keeps its own lists.
        cache.edge_cache = merge_cache(
            cache.edge_cache,
            {
                eid: replace(edge, points=list(edge.points) if edge.points is not None else None)
                for eid, edge in layout.edges.items()
            },
        )

    def invalidate(
        self,
        topology_id: Optional[str],
        topology_options: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Drop the cache (and engine) kept for a topology view."""

        return self.store.evict(build_topology_cache_id(topology_id, topology_options))


__all__ = [
    "NodesLayout",
    "SAME_RANK_FLAGS",
    "SINGLE_NODES_FLAGS",
]

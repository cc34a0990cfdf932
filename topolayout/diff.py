"""Classify a graph snapshot against the cached previous layout."""

from __future__ import annotations

import enum
import logging
from typing import Mapping, Set

from .model import Edge, EdgeId, Node, NodeCache, NodeId

logger = logging.getLogger(__name__)


class UpdateStrategy(enum.Enum):
    """How a new snapshot gets its coordinates, cheapest first."""

    POSITION_COPY = "position-copy"
    SINGLE_NODES = "single-nodes"
    SAME_RANK = "same-rank"
    FULL_RELAYOUT = "full-relayout"


def _unseen_node_ids(nodes: Mapping[NodeId, Node], node_cache: NodeCache) -> Set[NodeId]:
    return {node_id for node_id in nodes if node_id not in node_cache}


def has_unseen_nodes(nodes: Mapping[NodeId, Node], node_cache: NodeCache) -> bool:
    """Return ``True`` if ``nodes`` contains ids the cache has never laid out."""

    unseen = _unseen_node_ids(nodes, node_cache)
    if unseen:
        logger.debug("Unseen nodes: %s", sorted(unseen))
    return len(nodes) > len(node_cache) or bool(unseen)


def has_new_single_nodes(nodes: Mapping[NodeId, Node], node_cache: NodeCache) -> bool:
    """Return ``True`` if every unseen node has degree 0 (requires a previous layout)."""

    if not node_cache:
        return False
    return all(nodes[node_id].degree == 0 for node_id in _unseen_node_ids(nodes, node_cache))


def has_new_nodes_of_existing_rank(
    nodes: Mapping[NodeId, Node],
    edges: Mapping[EdgeId, Edge],
    node_cache: NodeCache,
) -> bool:
    """Return ``True`` if every unseen node is single or joins a rank already laid out.

    An edge between two unseen nodes has no cached anchor, so it always
    rejects the snapshot.
    """

    if not node_cache:
        return False
    unseen = _unseen_node_ids(nodes, node_cache)

    for edge in edges.values():
        if edge.source in unseen and edge.target in unseen:
            logger.debug("Edge %s connects two unseen nodes", edge.id)
            return False

    old_ranks = {cached.rank for cached in node_cache.values() if cached.rank is not None}
    return all(
        nodes[node_id].degree == 0 or (nodes[node_id].rank is not None and nodes[node_id].rank in old_ranks)
        for node_id in unseen
    )


def classify_update(
    nodes: Mapping[NodeId, Node],
    edges: Mapping[EdgeId, Edge],
    node_cache: NodeCache,
    *,
    single_nodes_enabled: bool = True,
    same_rank_enabled: bool = True,
) -> UpdateStrategy:
    """Pick the cheapest strategy that cannot visibly misplace anything.

    ``nodes`` must carry degrees computed from ``edges``.
    """

    if not has_unseen_nodes(nodes, node_cache):
        return UpdateStrategy.POSITION_COPY
    if single_nodes_enabled and has_new_single_nodes(nodes, node_cache):
        return UpdateStrategy.SINGLE_NODES
    if same_rank_enabled and has_new_nodes_of_existing_rank(nodes, edges, node_cache):
        return UpdateStrategy.SAME_RANK
    return UpdateStrategy.FULL_RELAYOUT


__all__ = [
    "UpdateStrategy",
    "classify_update",
    "has_new_nodes_of_existing_rank",
    "has_new_single_nodes",
    "has_unseen_nodes",
]

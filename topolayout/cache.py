"""Per-topology layout caches."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from .engine import LayoutEngine, SugiyamaEngine
from .model import EdgeCache, Layout, NodeCache

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], LayoutEngine]


def build_topology_cache_id(
    topology_id: Optional[str],
    topology_options: Optional[Mapping[str, Any]] = None,
) -> str:
    """Return the cache key of a topology view; options only count with an id."""

    if not topology_id:
        return ""
    cache_id = str(topology_id)
    if topology_options:
        cache_id += json.dumps(topology_options, sort_keys=True, default=str)
    return cache_id


@dataclass
class TopologyCache:
    engine: LayoutEngine
    cached_layout: Optional[Layout] = None
    node_cache: NodeCache = field(default_factory=dict)
    edge_cache: EdgeCache = field(default_factory=dict)


class TopologyCacheStore:
    """Owns one :class:`TopologyCache` per cache id."""

    def __init__(self, engine_factory: EngineFactory = SugiyamaEngine) -> None:
        self._engine_factory = engine_factory
        self._caches: Dict[str, TopologyCache] = {}

    def __contains__(self, cache_id: object) -> bool:
        return cache_id in self._caches

    def __len__(self) -> int:
        return len(self._caches)

    def get(self, cache_id: str) -> Optional[TopologyCache]:
        return self._caches.get(cache_id)

    def create(self, cache_id: str) -> TopologyCache:
        """Create (or replace) the cache of ``cache_id`` with a fresh engine."""

        cache = TopologyCache(engine=self._engine_factory())
        self._caches[cache_id] = cache
        logger.info("Created layout cache for topology %r", cache_id)
        return cache

    def get_or_create(self, cache_id: str, *, reset: bool = False) -> TopologyCache:
        cache = self._caches.get(cache_id)
        if reset or cache is None:
            return self.create(cache_id)
        return cache

    def evict(self, cache_id: str) -> bool:
        removed = self._caches.pop(cache_id, None) is not None
        if removed:
            logger.info("Evicted layout cache for topology %r", cache_id)
        return removed

    def clear(self) -> None:
        self._caches.clear()


__all__ = [
    "EngineFactory",
    "TopologyCache",
    "TopologyCacheStore",
    "build_topology_cache_id",
]

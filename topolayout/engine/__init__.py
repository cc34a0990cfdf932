"""Layout engine adapters."""

from .sugiyama_adapter import (
    EngineEdge,
    EngineNode,
    EngineResult,
    LayoutEngine,
    SugiyamaEngine,
    run_layout_engine,
)

__all__ = [
    "EngineEdge",
    "EngineNode",
    "EngineResult",
    "LayoutEngine",
    "SugiyamaEngine",
    "run_layout_engine",
]

"""Configuration helpers for layout components."""

from __future__ import annotations

import copy
from dataclasses import dataclass


@dataclass
class LayoutConfig:
    """Sizing constants shared by the engine adapter and the placement strategies."""

    node_base_size: float = 100.0
    edge_waypoints_cap: int = 10

    def __post_init__(self) -> None:
        # Source, entrance (twice) and target are always kept.
        if self.edge_waypoints_cap < 4:
            raise ValueError(f"edge_waypoints_cap must be at least 4, got {self.edge_waypoints_cap}")
        if self.node_base_size <= 0:
            raise ValueError(f"node_base_size must be positive, got {self.node_base_size}")

    @property
    def node_size(self) -> float:
        # Layout box, larger than the rendered node.
        return 1.5 * self.node_base_size

    @property
    def node_separation(self) -> float:
        return 1.0 * self.node_base_size

    @property
    def rank_separation(self) -> float:
        return 2.0 * self.node_base_size

    @property
    def node_centers_separation(self) -> float:
        return self.node_size + self.node_separation


_LAYOUT_CONFIG = LayoutConfig()


def get_layout_config() -> LayoutConfig:
    return copy.deepcopy(_LAYOUT_CONFIG)


def set_layout_config(config: LayoutConfig) -> None:
    global _LAYOUT_CONFIG
    _LAYOUT_CONFIG = copy.deepcopy(config)

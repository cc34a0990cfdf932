from .model import (
    CachedNode,
    Edge,
    Layout,
    LayoutInputError,
    LayoutOptions,
    Margins,
    Node,
    edge_id,
    edges_from_records,
    layout_to_dict,
    merge_cache,
    nodes_from_records,
    update_node_degrees,
)
from .config import LayoutConfig, get_layout_config, set_layout_config
from .geometry import corrected_edge_path, min_euclidean_distance, uniform_select
from .diff import UpdateStrategy, classify_update
from .strategies import copy_layout_properties, layout_new_nodes_of_existing_rank, layout_single_nodes
from .engine import LayoutEngine, SugiyamaEngine, run_layout_engine
from .cache import TopologyCache, TopologyCacheStore, build_topology_cache_id
from .collaborators import LoggingTelemetry, RecordingTelemetry, StaticFeatureFlags
from .layout import NodesLayout

__all__ = [
    'CachedNode',
    'Edge',
    'Layout',
    'LayoutInputError',
    'LayoutOptions',
    'Margins',
    'Node',
    'edge_id',
    'edges_from_records',
    'layout_to_dict',
    'merge_cache',
    'nodes_from_records',
    'update_node_degrees',
    'LayoutConfig',
    'get_layout_config',
    'set_layout_config',
    'corrected_edge_path',
    'min_euclidean_distance',
    'uniform_select',
    'UpdateStrategy',
    'classify_update',
    'copy_layout_properties',
    'layout_new_nodes_of_existing_rank',
    'layout_single_nodes',
    'LayoutEngine',
    'SugiyamaEngine',
    'run_layout_engine',
    'TopologyCache',
    'TopologyCacheStore',
    'build_topology_cache_id',
    'LoggingTelemetry',
    'RecordingTelemetry',
    'StaticFeatureFlags',
    'NodesLayout',
]

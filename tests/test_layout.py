import pytest

from topolayout.cache import TopologyCacheStore
from topolayout.collaborators import RecordingTelemetry, StaticFeatureFlags
from topolayout.config import LayoutConfig
from topolayout.engine import EngineResult, SugiyamaEngine
from topolayout.layout import NodesLayout
from topolayout.model import CachedNode, Edge, Layout, LayoutOptions, Node, edge_id

CONFIG = LayoutConfig()


class _RowEngine(SugiyamaEngine):
    """Deterministic engine: nodes on one row, 400 apart."""

    def __init__(self) -> None:
        super().__init__()
        self.runs = 0

    def run(self) -> EngineResult:
        self.runs += 1
        result = EngineResult()
        for index, node_id in enumerate(self.node_ids()):
            result.positions[node_id] = (100.0 + 400.0 * index, 100.0)
            result.ranks[node_id] = 0
        for source, target in self.edge_keys():
            result.paths[edge_id(source, target)] = [result.positions[source], result.positions[target]]
        result.width = 400.0 * len(result.positions)
        result.height = 200.0
        return result


class _FailingTelemetry:
    def track(self, event_name):
        raise RuntimeError("sink down")


class _FailingFlags:
    def is_enabled(self, name):
        raise RuntimeError("flag service down")


def _graph(node_ranks, edge_pairs):
    nodes = {node_id: Node(node_id, rank=rank) for node_id, rank in node_ranks.items()}
    edges = {}
    for source, target in edge_pairs:
        edge = Edge(source, target)
        edges[edge.id] = edge
    return nodes, edges


def _row_layouter(**kwargs):
    store = TopologyCacheStore(engine_factory=_RowEngine)
    return NodesLayout(store=store, config=CONFIG, **kwargs), store


def _positions(layout):
    return {node_id: (node.x, node.y) for node_id, node in layout.nodes.items()}


def test_repeated_snapshot_is_idempotent():
    layouter = NodesLayout(store=TopologyCacheStore(), config=CONFIG)
    nodes, edges = _graph({"a": None, "b": None, "c": None}, [("a", "b"), ("b", "c")])
    options = LayoutOptions(topology_id="hosts")

    first = layouter.layout(nodes, edges, options)
    second = layouter.layout(nodes, edges, options)

    assert _positions(first) == _positions(second)
    assert {eid: e.points for eid, e in first.edges.items()} == {eid: e.points for eid, e in second.edges.items()}
    assert layouter.layout_runs == 2
    assert layouter.layout_runs_trivial == 1


def test_removed_nodes_keep_cached_positions():
    layouter = NodesLayout(store=TopologyCacheStore(), config=CONFIG)
    nodes, edges = _graph({"a": None, "b": None, "c": None}, [("a", "b"), ("b", "c")])
    first = layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    second = layouter.layout(nodes, edges)

    assert _positions(second) == {node_id: _positions(first)[node_id] for node_id in ("a", "b")}
    assert second.nodes["b"].degree == 1


def test_waypoints_are_bounded_and_end_at_centers():
    layouter = NodesLayout(store=TopologyCacheStore(), config=CONFIG)
    nodes, edges = _graph(
        {name: None for name in "abcdef"},
        [("a", "b"), ("b", "c"), ("c", "d"), ("d", "e"), ("e", "f"), ("a", "f"), ("c", "c")],
    )

    layout = layouter.layout(nodes, edges)

    for edge in layout.edges.values():
        assert len(edge.points) <= CONFIG.edge_waypoints_cap
        if not edge.is_loop:
            assert edge.points[0] == pytest.approx(layout.nodes[edge.source].center)
            assert edge.points[-1] == pytest.approx(layout.nodes[edge.target].center)


def test_new_single_node_is_placed_without_engine_run():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    first = layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": None, "b": None, "s": None}, [("a", "b")])
    second = layouter.layout(nodes, edges)

    assert store.get("").engine.runs == 1
    assert second.nodes["a"].center == first.nodes["a"].center
    assert second.nodes["b"].center == first.nodes["b"].center
    # Wide graph: the grid goes below it.
    assert second.nodes["s"].center == (100.0, 100.0 + CONFIG.node_size + CONFIG.rank_separation / 2)
    assert second.height > first.height


def test_new_node_of_existing_rank_is_appended():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": 1, "b": 1}, [("a", "b")])
    layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": 1, "b": 1, "n": 1}, [("a", "b"), ("b", "n")])
    layout = layouter.layout(nodes, edges)

    assert store.get("").engine.runs == 1
    expected_x = 500.0 + CONFIG.node_separation + CONFIG.node_size
    assert layout.nodes["n"].center == (expected_x, 100.0)
    assert layout.edges["b---n"].points == [(500.0, 100.0), (expected_x, 100.0)]


def test_disabled_flags_force_engine_run():
    layouter, store = _row_layouter(feature_flags=StaticFeatureFlags(()))
    nodes, edges = _graph({"a": 1, "b": 1}, [("a", "b")])
    layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": 1, "b": 1, "n": 1}, [("a", "b"), ("b", "n")])
    layouter.layout(nodes, edges)

    assert store.get("").engine.runs == 2


def test_failing_flag_lookup_reads_as_disabled():
    layouter, store = _row_layouter(feature_flags=_FailingFlags())
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": None, "b": None, "s": None}, [("a", "b")])
    layout = layouter.layout(nodes, edges)

    assert store.get("").engine.runs == 2
    assert layout.nodes["s"].is_placed


def test_unknown_rank_triggers_full_layout():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": 1, "b": 1}, [("a", "b")])
    layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": 1, "b": 1, "n": 5}, [("a", "b"), ("b", "n")])
    layout = layouter.layout(nodes, edges)

    assert store.get("").engine.runs == 2
    assert layout.nodes["n"].center == (900.0, 100.0)


def test_overlapping_cached_layout_forces_relayout():
    telemetry = RecordingTelemetry()
    layouter, store = _row_layouter(telemetry=telemetry)
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    close = {"a": Node("a", x=100.0, y=100.0, degree=1), "b": Node("b", x=105.0, y=100.0, degree=1)}
    options = LayoutOptions(
        cached_layout=Layout(nodes=close, edges={}, width=300.0, height=200.0),
        node_cache={"a": CachedNode(100.0, 100.0), "b": CachedNode(105.0, 100.0)},
        edge_cache={},
    )

    layout = layouter.layout(nodes, edges, options)

    assert store.get("").engine.runs == 1
    assert _positions(layout) == {"a": (100.0, 100.0), "b": (500.0, 100.0)}
    assert telemetry.events == ["layout.graph.overlap"]
    assert store.get("").node_cache["b"].x == 500.0


def test_telemetry_failure_does_not_break_layout():
    layouter, _store = _row_layouter(telemetry=_FailingTelemetry())
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    options = LayoutOptions(
        cached_layout=Layout(nodes={}, edges={}),
        node_cache={"a": CachedNode(0.0, 0.0), "b": CachedNode(1.0, 0.0)},
        edge_cache={},
    )

    layout = layouter.layout(nodes, edges, options)

    assert _positions(layout) == {"a": (100.0, 100.0), "b": (500.0, 100.0)}


def test_force_relayout_and_no_cache():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    layouter.layout(nodes, edges, LayoutOptions(topology_id="t"))
    engine = store.get("t").engine

    layouter.layout(nodes, edges, LayoutOptions(topology_id="t", force_relayout=True))
    assert engine.runs == 2
    assert layouter.layout_runs_trivial == 0

    layouter.layout(nodes, edges, LayoutOptions(topology_id="t", no_cache=True))
    assert store.get("t").engine is not engine
    assert store.get("t").engine.runs == 1


def test_topologies_are_cached_independently():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])

    layouter.layout(nodes, edges, LayoutOptions(topology_id="hosts"))
    layouter.layout(nodes, edges, LayoutOptions(topology_id="hosts", topology_options={"view": "table"}))
    layouter.layout(nodes, edges, LayoutOptions(topology_id="containers"))

    assert len(store) == 3
    assert layouter.layout_runs_trivial == 0
    assert layouter.invalidate("hosts")
    assert "hosts" not in store


def test_caches_merge_and_keep_removed_entries():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": None, "b": None, "c": None}, [("a", "b"), ("b", "c")])
    layouter.layout(nodes, edges)

    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    layouter.layout(nodes, edges)

    cache = store.get("")
    assert set(cache.node_cache) == {"a", "b", "c"}
    assert set(cache.edge_cache) == {"a---b", "b---c"}
    assert set(cache.cached_layout.nodes) == {"a", "b"}


def test_editing_returned_paths_leaves_cache_untouched():
    layouter = NodesLayout(store=TopologyCacheStore(), config=CONFIG)
    nodes, edges = _graph({"a": None, "b": None, "c": None}, [("a", "b"), ("b", "c")])
    first = layouter.layout(nodes, edges)
    original = list(first.edges["a---b"].points)

    first.edges["a---b"].points.insert(1, (9999.0, 9999.0))
    second = layouter.layout(nodes, edges)

    assert second.edges["a---b"].points == original
    assert layouter.layout_runs_trivial == 1


def test_invalidate_with_topology_options():
    layouter, store = _row_layouter()
    nodes, edges = _graph({"a": None, "b": None}, [("a", "b")])
    layouter.layout(nodes, edges, LayoutOptions(topology_id="hosts", topology_options={"view": "table"}))

    assert not layouter.invalidate("hosts")
    assert layouter.invalidate("hosts", {"view": "table"})
    assert len(store) == 0

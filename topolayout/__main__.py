import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from topolayout import (
    Layout,
    LayoutInputError,
    LayoutOptions,
    NodesLayout,
    StaticFeatureFlags,
    edges_from_records,
    layout_to_dict,
    nodes_from_records,
)

logger = logging.getLogger(__name__)

ALL_FLAGS = ("layout-dance", "layout-dance-single", "layout-dance-rank")


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _load_snapshots(path: str) -> List[Dict[str, Any]]:
    with open(path) as fin:
        data = json.load(fin)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise LayoutInputError("expected a snapshot object or a list of snapshots")
    for index, snapshot in enumerate(data):
        if not isinstance(snapshot, dict):
            raise LayoutInputError(f"snapshot #{index} must be an object, got {type(snapshot).__name__}")
        for key in ("nodes", "edges"):
            if not isinstance(snapshot.get(key, []), list):
                raise LayoutInputError(f"snapshot #{index} {key!r} must be a list")
    return data


def _print_layout(index: int, layout: Layout) -> None:
    print(f"Snapshot {index}: {layout.width:.1f}x{layout.height:.1f}")
    for node_id, node in layout.nodes.items():
        rank = "-" if node.rank is None else node.rank
        print(f"  {node_id}: ({node.x:.1f}, {node.y:.1f}) rank={rank} degree={node.degree}")
    for eid, edge in layout.edges.items():
        count = 0 if edge.points is None else len(edge.points)
        print(f"  {eid}: {count} point(s)")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Lay out successive topology snapshots")
    parser.add_argument("path", help="JSON file with a snapshot or a list of snapshots")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--topology-id",
        default="cli",
        help="Topology id used as cache key (default: cli)",
    )
    parser.add_argument(
        "--force-relayout",
        action="store_true",
        help="Run the layout engine for every snapshot",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Reset the topology cache before every snapshot",
    )
    parser.add_argument(
        "--disable-flag",
        action="append",
        default=[],
        choices=ALL_FLAGS,
        help="Turn off an incremental-layout feature flag (repeatable)",
    )
    parser.add_argument(
        "--output-path",
        help="Write the layout of the last snapshot as JSON to the given path",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    try:
        snapshots = _load_snapshots(args.path)
        graphs = []
        for snapshot in snapshots:
            nodes = nodes_from_records(snapshot.get("nodes", []))
            edges = edges_from_records(snapshot.get("edges", []), nodes)
            graphs.append((nodes, edges))
    except (LayoutInputError, json.JSONDecodeError) as exc:
        logger.error("Invalid snapshot input: %s", exc)
        raise SystemExit(1)

    flags = StaticFeatureFlags(flag for flag in ALL_FLAGS if flag not in args.disable_flag)
    layouter = NodesLayout(feature_flags=flags)
    options = LayoutOptions(
        topology_id=args.topology_id,
        force_relayout=args.force_relayout,
        no_cache=args.no_cache,
    )

    logger.info("Laying out %d snapshot(s) from %s", len(graphs), args.path)
    layout: Optional[Layout] = None
    for index, (nodes, edges) in enumerate(graphs):
        layout = layouter.layout(nodes, edges, options)
        _print_layout(index, layout)

    print(f"Layout runs: {layouter.layout_runs} (trivial: {layouter.layout_runs_trivial})")

    if args.output_path and layout is not None:
        output_path = Path(args.output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Writing layout to %s", output_path)
        output_path.write_text(json.dumps(layout_to_dict(layout), indent=2), encoding="utf-8")
        print(f"Layout written to {output_path}")


if __name__ == "__main__":
    main(sys.argv[1:])

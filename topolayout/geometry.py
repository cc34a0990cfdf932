"""Geometry helpers: distances, waypoint sub-sampling and edge path correction."""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence, TypeVar

import numpy as np
from scipy.spatial import cKDTree

from .logging_utils import apply_debug_logging
from .model import Point2D

logger = logging.getLogger(__name__)

T = TypeVar("T")


def min_euclidean_distance(points: Iterable[Optional[Point2D]]) -> float:
    """Return the smallest distance between any two points, ``inf`` for fewer than two.

    ``None`` entries (unplaced nodes) are ignored.
    """

    coords = [point for point in points if point is not None]
    if len(coords) < 2:
        return math.inf
    coords_array = np.asarray(coords, dtype=float)
    # Column 0 is each point itself, column 1 its nearest neighbour.
    distances, _ = cKDTree(coords_array).query(coords_array, k=2)
    return float(distances[:, 1].min())


def uniform_select(items: Sequence[T], size: int) -> List[T]:
    """Pick ``size`` evenly spaced items, always keeping the first and the last."""

    if size >= len(items):
        return list(items)
    if size <= 0:
        return []
    indices = np.linspace(0, len(items) - 1, num=size).round().astype(int)
    return [items[int(idx)] for idx in indices]


def straight_edge_points(source: Point2D, target: Point2D) -> List[Point2D]:
    return [(float(source[0]), float(source[1])), (float(target[0]), float(target[1]))]


def corrected_edge_path(
    waypoints: Sequence[Point2D],
    source: Point2D,
    target: Point2D,
    cap: int,
    *,
    is_loop: bool = False,
) -> List[Point2D]:
    """Bound ``waypoints`` to ``cap`` points that start and end at the node centers.

    For regular edges the last four points are always
    ``entrance, entrance, target`` preceded by the last kept waypoint, so an
    arrow head drawn from a fixed tail window lands the same way whatever the
    path length.
    """

    source_point = (float(source[0]), float(source[1]))
    target_point = (float(target[0]), float(target[1]))
    if not waypoints:
        return straight_edge_points(source_point, target_point)

    if is_loop:
        path = uniform_select(list(waypoints), cap)
        path[0] = source_point
        path[-1] = target_point
        return path

    entrance = (float(waypoints[-1][0]), float(waypoints[-1][1]))
    path = uniform_select(list(waypoints[:-1]), cap - 4)
    return [source_point, *path, entrance, entrance, target_point]


apply_debug_logging(globals(), logger=logger)

"""
Squared-distance kernels shared by every index implementation.

Candidates are always compared by squared distance; callers take the square
root once, when a winner is reported. The scalar and vectorized kernels use the
same operation order so they agree bit for bit.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from nearseg.domain.entities.geography import Point, Segment
from nearseg.domain.errors import CoordinateRangeError, NonFiniteCoordinateError

# |dx|, |dy| <= 2e153 keeps dx*dx + dy*dy below the float64 maximum
MAX_COORD = 1e153


def point_segment_dist2(px: float, py: float, ax: float, ay: float, bx: float, by: float) -> float:
    dx, dy = bx - ax, by - ay
    L2 = dx * dx + dy * dy
    wx, wy = px - ax, py - ay
    if L2 == 0.0:
        return wx * wx + wy * wy
    t = (wx * dx + wy * dy) / L2
    # endpoints are taken verbatim so distance 0 is exact on them
    if t <= 0.0:
        cx, cy = ax, ay
    elif t >= 1.0:
        cx, cy = bx, by
    else:
        cx, cy = ax + t * dx, ay + t * dy
    ex, ey = px - cx, py - cy
    return ex * ex + ey * ey


def point_segment_distance(p: Point, seg: Segment) -> float:
    a, b = seg.start, seg.end
    return math.sqrt(point_segment_dist2(p.x, p.y, a.x, a.y, b.x, b.y))


def segments_dist2(px: float, py: float, coords: np.ndarray) -> np.ndarray:
    """Squared distance from (px, py) to every row [x1, y1, x2, y2] of `coords`."""
    ax, ay, bx, by = coords[:, 0], coords[:, 1], coords[:, 2], coords[:, 3]
    dx, dy = bx - ax, by - ay
    L2 = dx * dx + dy * dy
    wx, wy = px - ax, py - ay
    # overflow only happens for query points past MAX_COORD
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        t = np.where(L2 > 0.0, (wx * dx + wy * dy) / L2, 0.0)
        cx = np.where(t <= 0.0, ax, np.where(t >= 1.0, bx, ax + t * dx))
        cy = np.where(t <= 0.0, ay, np.where(t >= 1.0, by, ay + t * dy))
        ex, ey = px - cx, py - cy
        return ex * ex + ey * ey


def bbox_dist2(px: float, py: float, boxes: np.ndarray) -> np.ndarray:
    """Squared distance lower bound from (px, py) to rows [min_x, min_y, max_x, max_y]."""
    dx = np.maximum(np.maximum(boxes[:, 0] - px, px - boxes[:, 2]), 0.0)
    dy = np.maximum(np.maximum(boxes[:, 1] - py, py - boxes[:, 3]), 0.0)
    with np.errstate(over="ignore"):
        return dx * dx + dy * dy


def segment_bboxes(coords: np.ndarray) -> np.ndarray:
    return np.column_stack(
        (
            np.minimum(coords[:, 0], coords[:, 2]),
            np.minimum(coords[:, 1], coords[:, 3]),
            np.maximum(coords[:, 0], coords[:, 2]),
            np.maximum(coords[:, 1], coords[:, 3]),
        )
    )


def bbox_centers(boxes: np.ndarray) -> np.ndarray:
    return np.column_stack(
        (0.5 * (boxes[:, 0] + boxes[:, 2]), 0.5 * (boxes[:, 1] + boxes[:, 3]))
    )


def segments_to_arrays(segments: Sequence[Segment]) -> tuple[np.ndarray, np.ndarray]:
    """Pack segments into a (n, 4) coordinate array and a (n,) id array."""
    coords = np.empty((len(segments), 4), dtype=np.float64)
    ids = np.empty(len(segments), dtype=np.float64)
    for i, s in enumerate(segments):
        coords[i] = (s.start.x, s.start.y, s.end.x, s.end.y)
        ids[i] = s.seg_id
    return coords, ids


def frozen_segment_arrays(coords, ids) -> tuple[np.ndarray, np.ndarray]:
    """Copy coords/ids into read-only float64 arrays of shape (n, 4) and (n,)."""
    coords = np.array(coords, dtype=np.float64).reshape(-1, 4)
    ids = np.array(ids, dtype=np.float64).reshape(-1)
    if len(coords) != len(ids):
        raise ValueError(f"got {len(coords)} segments but {len(ids)} ids")
    check_coordinates(coords, "segments", ids=ids)
    coords.setflags(write=False)
    ids.setflags(write=False)
    return coords, ids


def pick_nearest(d2: np.ndarray, ids: np.ndarray, *, lowest_id: bool) -> tuple[float, float]:
    """Return (id, squared distance) of the closest row; first hit or lowest id on ties."""
    j = int(np.argmin(d2))
    m = float(d2[j])
    if lowest_id:
        return float(ids[d2 == m].min()), m
    return float(ids[j]), m


def check_coordinates(xy: np.ndarray, what: str, *, ids: np.ndarray | None = None) -> None:
    """Raise on the first row holding a non-finite value or an out-of-range coordinate."""
    finite = np.isfinite(xy).all(axis=1)
    if ids is not None:
        finite &= np.isfinite(ids)
    bad = np.flatnonzero(~finite)
    if len(bad):
        raise NonFiniteCoordinateError(what, int(bad[0]))
    bad = np.flatnonzero((np.abs(xy) > MAX_COORD).any(axis=1))
    if len(bad):
        raise CoordinateRangeError(what, int(bad[0]), MAX_COORD)

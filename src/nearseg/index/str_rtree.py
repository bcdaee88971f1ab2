# index/str_rtree.py
"""
Bulk-loaded R-tree over segment bounding boxes.

Construction uses Sort-Tile-Recursive packing: entries are sorted by bbox
centre x, cut into sqrt(nodes) vertical slices, each slice sorted by centre y
and chunked into nodes of `node_capacity` entries. The same packing runs on the
node boxes of each level until one root is left. All sorts are stable, so the
layout (and therefore the winner on exact ties) is fixed for a fixed input.

Queries walk the tree best-first: a heap of nodes keyed by the squared distance
from the point to the node box. A node is expanded only while that lower bound
can still beat the best squared distance found so far, so the result is exact.
"""

from __future__ import annotations

import heapq
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from nearseg.app.protocols import TIE_BREAKS, TieBreak
from nearseg.domain.entities.geography import Segment
from nearseg.domain.errors import EmptyIndexError
from nearseg.domain.geometry import (
    bbox_centers,
    bbox_dist2,
    frozen_segment_arrays,
    pick_nearest,
    segment_bboxes,
    segments_dist2,
    segments_to_arrays,
)


@dataclass(frozen=True)
class _Level:
    boxes: np.ndarray  # (k, 4) node bounding boxes
    first: np.ndarray  # (k,) first child row in the level below (entries for level 0)
    stop: np.ndarray  # (k,) one past the last child row


def _str_tiles(centers: np.ndarray, capacity: int) -> tuple[np.ndarray, np.ndarray]:
    """Return (order, starts): a permutation of rows and the first row of each node."""
    k = len(centers)
    n_nodes = -(-k // capacity)
    per_slice = math.ceil(math.sqrt(n_nodes)) * capacity
    by_x = np.argsort(centers[:, 0], kind="stable")
    parts, starts = [], []
    for lo in range(0, k, per_slice):
        tile = by_x[lo : lo + per_slice]
        parts.append(tile[np.argsort(centers[tile, 1], kind="stable")])
        starts.extend(range(lo, lo + len(tile), capacity))
    return np.concatenate(parts), np.asarray(starts, dtype=np.intp)


def _union(boxes: np.ndarray, starts: np.ndarray) -> np.ndarray:
    return np.column_stack(
        (
            np.minimum.reduceat(boxes[:, 0], starts),
            np.minimum.reduceat(boxes[:, 1], starts),
            np.maximum.reduceat(boxes[:, 2], starts),
            np.maximum.reduceat(boxes[:, 3], starts),
        )
    )


def _stops(starts: np.ndarray, total: int) -> np.ndarray:
    return np.append(starts[1:], total).astype(np.intp)


def _freeze(level: _Level) -> _Level:
    for a in (level.boxes, level.first, level.stop):
        a.setflags(write=False)
    return level


class SegmentRTree:
    kind = "str_rtree"

    def __init__(self, coords, ids, *, node_capacity: int = 16, tie_break: TieBreak = "traversal"):
        if node_capacity < 2:
            raise ValueError(f"node_capacity must be >= 2, got {node_capacity}")
        if tie_break not in TIE_BREAKS:
            raise ValueError(f"Unknown tie_break {tie_break!r}")
        self.node_capacity, self.tie_break = node_capacity, tie_break

        coords, ids = frozen_segment_arrays(coords, ids)
        self._levels: list[_Level] = []
        if len(coords):
            coords, ids = self._pack(coords, ids)
            coords.setflags(write=False)
            ids.setflags(write=False)
        self._coords, self._ids = coords, ids

    # --------------- Construction -----------------------------

    @classmethod
    def bulk_load(
        cls,
        segments: Sequence[Segment],
        *,
        node_capacity: int = 16,
        tie_break: TieBreak = "traversal",
    ) -> SegmentRTree:
        coords, ids = segments_to_arrays(segments)
        return cls(coords, ids, node_capacity=node_capacity, tie_break=tie_break)

    def _pack(self, coords: np.ndarray, ids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        M = self.node_capacity
        boxes = segment_bboxes(coords)
        order, starts = _str_tiles(bbox_centers(boxes), M)
        coords, ids, boxes = coords[order], ids[order], boxes[order]
        level = _Level(_union(boxes, starts), starts, _stops(starts, len(order)))
        levels = [level]

        while len(level.boxes) > 1:
            order, starts = _str_tiles(bbox_centers(level.boxes), M)
            # reorder the level so every parent owns a contiguous run of children
            levels[-1] = _Level(level.boxes[order], level.first[order], level.stop[order])
            child = levels[-1]
            level = _Level(_union(child.boxes, starts), starts, _stops(starts, len(order)))
            levels.append(level)

        self._levels = [_freeze(lv) for lv in levels]
        return coords, ids

    # --------------- Introspection ----------------------------

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def depth(self) -> int:
        return len(self._levels)

    @property
    def node_count(self) -> int:
        return sum(len(lv.boxes) for lv in self._levels)

    @property
    def bounds(self) -> tuple[float, float, float, float] | None:
        if not self._levels:
            return None
        return tuple(float(v) for v in self._levels[-1].boxes[0])

    # --------------- Queries ----------------------------------

    def nearest(self, px: float, py: float) -> tuple[float, float]:
        if not self._levels:
            raise EmptyIndexError(1)
        lowest_id = self.tie_break == "lowest_id"
        best_d2, best_id = math.inf, None

        top = len(self._levels) - 1
        heap: list[tuple[float, int, int, int]] = [(0.0, 0, top, 0)]
        seq = 1
        while heap:
            lb, _, depth, node = heapq.heappop(heap)
            # nothing left in the queue can improve on the current best
            if best_id is not None and (lb > best_d2 or (lb == best_d2 and not lowest_id)):
                break
            level = self._levels[depth]
            lo, hi = int(level.first[node]), int(level.stop[node])

            if depth == 0:
                d2 = segments_dist2(px, py, self._coords[lo:hi])
                cid, m = pick_nearest(d2, self._ids[lo:hi], lowest_id=lowest_id)
                if (
                    best_id is None
                    or m < best_d2
                    or (lowest_id and m == best_d2 and cid < best_id)
                ):
                    best_d2, best_id = m, cid
                continue

            d2 = bbox_dist2(px, py, self._levels[depth - 1].boxes[lo:hi])
            # until a leaf has been scanned every child stays, even at an overflowed bound
            keep = d2 <= best_d2 if (lowest_id or best_id is None) else d2 < best_d2
            for off in np.flatnonzero(keep):
                heapq.heappush(heap, (float(d2[off]), seq, depth - 1, lo + int(off)))
                seq += 1

        return best_id, best_d2

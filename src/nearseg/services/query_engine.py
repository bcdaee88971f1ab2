# services/query_engine.py
"""
Nearest query engine: one exact nearest-segment search per point against a
single immutable index.

Results never depend on other points in the batch, so a batch can be split
into chunks and evaluated on a thread pool; every chunk writes its own rows
of the output, which keeps input order.
"""

from __future__ import annotations

import math
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from nearseg.app.protocols import SpatialIndex
from nearseg.domain.entities.geography import Point, QueryResult
from nearseg.domain.errors import EmptyIndexError, MalformedInputError, NearSegError
from nearseg.domain.geometry import check_coordinates
from nearseg.services.hooks import NoopHooks, QueryHooks


class NearestQueryEngine:
    def __init__(
        self,
        index: SpatialIndex,
        *,
        hooks: QueryHooks | None = None,
        workers: int = 1,
        chunk_size: int = 4096,
    ):
        if workers < 1 or chunk_size < 1:
            raise ValueError("workers and chunk_size must be >= 1")
        self._index = index
        self._hooks = hooks or NoopHooks()
        self.workers, self.chunk_size = workers, chunk_size

    @property
    def index(self) -> SpatialIndex:
        return self._index

    # --------------- Public API -----------------------------

    def nearest(self, p: Point) -> QueryResult:
        seg_id, distance = self.nearest_array(np.array([[p.x, p.y]], dtype=np.float64))[0]
        return QueryResult(float(seg_id), float(distance))

    def nearest_many(self, points: Iterable[Point]) -> list[QueryResult]:
        xy = np.array([(p.x, p.y) for p in points], dtype=np.float64).reshape(-1, 2)
        return [QueryResult(float(i), float(d)) for i, d in self.nearest_array(xy)]

    def nearest_array(self, xy) -> np.ndarray:
        """(m, 2) query coordinates -> (m, 2) rows of [seg_id, distance]."""
        xy = np.asarray(xy, dtype=np.float64)
        if xy.ndim != 2 or xy.shape[1] != 2:
            raise MalformedInputError(
                "points", xy.size, 2, message=f"points must have shape (m, 2), got {xy.shape}"
            )
        m = len(xy)
        try:
            self._check_batch(xy)
        except NearSegError as exc:
            self._hooks.error(reason=type(exc).__name__, error=str(exc), points=m)
            raise

        out = np.empty((m, 2), dtype=np.float64)
        if m == 0:
            return out

        t0 = time.perf_counter()
        self._hooks.batch_start(points=m, workers=self.workers)
        spans = [(lo, min(lo + self.chunk_size, m)) for lo in range(0, m, self.chunk_size)]
        if self.workers > 1 and len(spans) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                # list() re-raises the first worker exception
                list(pool.map(lambda span: self._fill(xy, out, *span), spans))
        else:
            for lo, hi in spans:
                self._fill(xy, out, lo, hi)
        self._hooks.batch_end(points=m, wall_ms=(time.perf_counter() - t0) * 1000)
        return out

    # --------------- Helpers -----------------------------

    def _check_batch(self, xy: np.ndarray) -> None:
        check_coordinates(xy, "points")
        if len(xy) and len(self._index) == 0:
            raise EmptyIndexError(len(xy))

    def _fill(self, xy: np.ndarray, out: np.ndarray, lo: int, hi: int) -> None:
        nearest, hooks = self._index.nearest, self._hooks
        for i in range(lo, hi):
            seg_id, d2 = nearest(float(xy[i, 0]), float(xy[i, 1]))
            distance = math.sqrt(d2)
            out[i, 0], out[i, 1] = seg_id, distance
            hooks.query(QueryResult(seg_id, distance), seq=i)

# io/flat.py
"""
Flat-array boundary.

  segments: [x1, y1, x2, y2, id] * n
  points:   [x, y] * m
  results:  [id, distance] * m, in point order

Input is validated completely before anything is built, so a call either
returns every result or raises.
"""

from collections.abc import Iterable, Mapping

import numpy as np

from nearseg.app.build import build, build_engine
from nearseg.config.models import EngineModel
from nearseg.domain.entities.geography import Point, QueryResult, Segment
from nearseg.domain.errors import MalformedInputError
from nearseg.domain.geometry import check_coordinates

SEGMENT_WIDTH = 5
POINT_WIDTH = 2


def _groups(values, width: int, what: str) -> np.ndarray:
    flat = np.asarray(values, dtype=np.float64).ravel()
    if flat.size % width:
        raise MalformedInputError(what, flat.size, width)
    return flat.reshape(-1, width)


def segment_arrays_from_flat(values) -> tuple[np.ndarray, np.ndarray]:
    rows = _groups(values, SEGMENT_WIDTH, "segments")
    check_coordinates(rows[:, :4], "segments", ids=rows[:, 4])
    return rows[:, :4], rows[:, 4]


def segments_from_flat(values) -> list[Segment]:
    coords, ids = segment_arrays_from_flat(values)
    return [
        Segment(Point(float(x1), float(y1)), Point(float(x2), float(y2)), float(i))
        for (x1, y1, x2, y2), i in zip(coords, ids)
    ]


def points_from_flat(values) -> np.ndarray:
    rows = _groups(values, POINT_WIDTH, "points")
    check_coordinates(rows, "points")
    return rows


def results_to_flat(results: Iterable[QueryResult]) -> np.ndarray:
    return np.array(
        [v for r in results for v in (r.seg_id, r.distance)], dtype=np.float64
    )


def compute_nearest(
    lines, points, cfg: EngineModel | Mapping | None = None, *, use_logging: bool = False
) -> np.ndarray:
    coords, ids = segment_arrays_from_flat(lines)
    xy = points_from_flat(points)
    app = build(cfg, use_logging=use_logging)
    engine = build_engine(app, coords, ids)
    return engine.nearest_array(xy).ravel()

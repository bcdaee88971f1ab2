# io/polylines.py
"""
Polyline features -> flat segments.

Every consecutive vertex pair of a LineString (or of each part of a
MultiLineString) becomes one segment whose id is the feature's position in the
input list, so a nearest query answers "which feature is closest".
Coordinates beyond x, y are dropped.
"""

from collections.abc import Mapping, Sequence

import numpy as np

from nearseg.config.models import EngineModel
from nearseg.domain.errors import UnsupportedGeometryError
from nearseg.io.flat import SEGMENT_WIDTH, compute_nearest


def linestring_to_rows(coords, feature_id: int) -> np.ndarray:
    pts = np.asarray(coords, dtype=np.float64)
    if len(pts) < 2:
        return np.empty((0, SEGMENT_WIDTH))
    pts = pts.reshape(len(pts), -1)[:, :2]
    ids = np.full(len(pts) - 1, float(feature_id))
    return np.column_stack((pts[:-1], pts[1:], ids))


def geometries_to_flat(geometries: Sequence[Mapping]) -> np.ndarray:
    rows = []
    for i, geom in enumerate(geometries):
        kind = geom.get("type")
        if kind == "LineString":
            parts = [geom["coordinates"]]
        elif kind == "MultiLineString":
            parts = geom["coordinates"]
        else:
            raise UnsupportedGeometryError(kind, i)
        rows.extend(linestring_to_rows(part, i) for part in parts)
    if not rows:
        return np.empty(0)
    return np.concatenate(rows).ravel()


def nearest_features(
    points,
    geometries: Sequence[Mapping],
    cfg: EngineModel | Mapping | None = None,
    *,
    use_logging: bool = False,
) -> list[tuple[int, float]]:
    """Return (feature index, distance) for each (x, y) in `points`."""
    flat = compute_nearest(
        geometries_to_flat(geometries),
        np.asarray(points, dtype=np.float64).ravel(),
        cfg,
        use_logging=use_logging,
    )
    return [(int(i), float(d)) for i, d in flat.reshape(-1, 2)]

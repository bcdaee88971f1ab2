import math

import numpy as np
import pytest

from nearseg.domain.entities.geography import Point, Segment
from nearseg.domain.errors import CoordinateRangeError, NonFiniteCoordinateError
from nearseg.domain.geometry import (
    MAX_COORD,
    bbox_dist2,
    check_coordinates,
    point_segment_dist2,
    point_segment_distance,
    segment_bboxes,
    segments_dist2,
    segments_to_arrays,
)


def test_perpendicular_foot_inside_segment():
    assert point_segment_dist2(5.0, 5.0, 0.0, 0.0, 10.0, 0.0) == 25.0


def test_beyond_endpoint_measures_to_endpoint():
    assert point_segment_dist2(13.0, 4.0, 0.0, 0.0, 10.0, 0.0) == 25.0
    assert point_segment_dist2(-3.0, -4.0, 0.0, 0.0, 10.0, 0.0) == 25.0


def test_degenerate_segment_is_a_point():
    seg = Segment(Point(0.0, 0.0), Point(0.0, 0.0), 2.0)
    assert seg.is_degenerate
    assert point_segment_distance(Point(3.0, 4.0), seg) == 5.0


def test_zero_on_interior_and_endpoints():
    assert point_segment_dist2(4.0, 0.0, 0.0, 0.0, 10.0, 0.0) == 0.0
    # endpoints are returned verbatim, no rounding drift
    assert point_segment_dist2(0.3, 0.7, 0.1, 0.1, 0.3, 0.7) == 0.0
    assert point_segment_dist2(0.1, 0.1, 0.1, 0.1, 0.3, 0.7) == 0.0


def test_vectorized_kernel_matches_scalar_bitwise():
    rng = np.random.default_rng(7)
    coords = rng.uniform(-50, 50, size=(200, 4))
    coords[::10, 2:] = coords[::10, :2]  # sprinkle degenerate rows
    px, py = 3.25, -11.5
    vec = segments_dist2(px, py, coords)
    ref = [point_segment_dist2(px, py, *row) for row in coords]
    assert np.array_equal(vec, np.array(ref))


def test_bbox_lower_bound():
    boxes = np.array([[0.0, 0.0, 10.0, 10.0], [20.0, 0.0, 30.0, 10.0], [0.0, 20.0, 10.0, 30.0]])
    d2 = bbox_dist2(5.0, 5.0, boxes)
    assert d2.tolist() == [0.0, 225.0, 225.0]


def test_bbox_never_exceeds_segment_distance():
    rng = np.random.default_rng(11)
    coords = rng.uniform(-10, 10, size=(500, 4))
    boxes = segment_bboxes(coords)
    for px, py in rng.uniform(-20, 20, size=(20, 2)):
        lower, exact = bbox_dist2(px, py, boxes), segments_dist2(px, py, coords)
        assert np.all(lower <= exact * (1 + 1e-12) + 1e-12)


def test_segments_to_arrays_and_bbox():
    segs = [
        Segment(Point(1.0, 2.0), Point(-1.0, 5.0), 7.0),
        Segment(Point(0.0, 0.0), Point(0.0, 0.0), 8.0),
    ]
    coords, ids = segments_to_arrays(segs)
    assert coords.shape == (2, 4) and ids.tolist() == [7.0, 8.0]
    assert segment_bboxes(coords)[0].tolist() == list(segs[0].bbox) == [-1.0, 2.0, 1.0, 5.0]
    assert math.isclose(point_segment_distance(Point(0.0, 3.0), segs[1]), 3.0)


def test_check_coordinates_reports_first_bad_row():
    xy = np.array([[0.0, 0.0], [1.0, np.nan], [np.inf, 0.0]])
    with pytest.raises(NonFiniteCoordinateError) as ei:
        check_coordinates(xy, "points")
    assert ei.value.position == 1

    with pytest.raises(NonFiniteCoordinateError) as ei:
        check_coordinates(np.zeros((3, 4)), "segments", ids=np.array([1.0, 2.0, -np.inf]))
    assert ei.value.position == 2


def test_check_coordinates_range_limit():
    check_coordinates(np.array([[MAX_COORD, -MAX_COORD]]), "points")
    with pytest.raises(CoordinateRangeError) as ei:
        check_coordinates(np.array([[0.0, 0.0], [0.0, -2 * MAX_COORD]]), "points")
    assert ei.value.position == 1 and ei.value.limit == MAX_COORD
    # the largest in-range separation still squares to a finite value
    m = MAX_COORD
    d2 = point_segment_dist2(-m, -m, m, m, m, -m)
    assert math.isfinite(d2)

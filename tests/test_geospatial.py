import itertools

import pytest

from velotour.models.domain import BoundingBox, ParsedRoute, RouteBounds, RoutePoint, RouteVariant, ViewportBounds
from velotour.services.geospatial import (
    bounds_nearly_equal,
    bounds_of_points,
    boxes_overlap,
    find_nearest_point_index,
    haversine_km,
    haversine_m,
    route_delta,
    simplify_points,
    union_bounds,
)


def _box(south: float, west: float, north: float, east: float) -> BoundingBox:
    return BoundingBox(south=south, west=west, north=north, east=east)


BOXES = [
    _box(0, 0, 1, 1),
    _box(0.5, 0.5, 2, 2),
    _box(1, 1, 3, 3),
    _box(5, 5, 6, 6),
    _box(-1, -1, 0, 0),
    _box(0.2, -3, 0.4, 10),
]


def test_haversine_one_hundredth_degree_latitude() -> None:
    assert haversine_km(48.0, 2.0, 48.01, 2.0) == pytest.approx(1.112, abs=0.001)
    assert haversine_m(48.0, 2.0, 48.01, 2.0) == pytest.approx(1112.0, abs=1.0)


def test_overlap_is_symmetric() -> None:
    for a, b in itertools.product(BOXES, repeat=2):
        assert boxes_overlap(a, b) == boxes_overlap(b, a)


def test_overlap_is_reflexive() -> None:
    for box in BOXES:
        assert boxes_overlap(box, box)


def test_touching_edges_overlap_and_disjoint_boxes_do_not() -> None:
    assert boxes_overlap(_box(0, 0, 1, 1), _box(1, 1, 2, 2))
    assert not boxes_overlap(_box(0, 0, 1, 1), _box(5, 5, 6, 6))
    assert boxes_overlap(_box(0, 0, 1, 1), _box(0.2, -3, 0.4, 10))


def test_bounds_nearly_equal_uses_every_edge() -> None:
    base = _box(48.0, 2.0, 48.1, 2.1)
    assert bounds_nearly_equal(base, _box(48.00001, 2.0, 48.1, 2.1), 1e-4)
    assert not bounds_nearly_equal(base, _box(48.0, 2.0, 48.1, 2.2), 1e-4)


def test_viewport_bounds_convert_to_bounding_box() -> None:
    viewport = ViewportBounds(north_east=(2.5, 48.9), south_west=(2.2, 48.8))
    assert viewport.to_bounding_box() == _box(48.8, 2.2, 48.9, 2.5)


def test_bounds_of_points_applies_buffer() -> None:
    points = [RoutePoint(48.0, 2.0), RoutePoint(48.1, 2.2)]
    tight = bounds_of_points(points)
    buffered = bounds_of_points(points, buffer_km=1.0)

    assert tight == _box(48.0, 2.0, 48.1, 2.2)
    assert buffered.south < tight.south and buffered.north > tight.north
    assert buffered.west < tight.west and buffered.east > tight.east
    assert bounds_of_points([]) is None


def test_union_bounds() -> None:
    assert union_bounds([]) is None
    assert union_bounds([_box(0, 0, 1, 1), _box(2, -1, 3, 0.5)]) == _box(0, -1, 3, 1)


def test_route_delta_has_minimum_span() -> None:
    route = ParsedRoute(
        id="ev1-full",
        source_id=1,
        variant=RouteVariant.FULL,
        name="tiny",
        points=(),
        segments=(),
        total_distance=0.0,
        elevation_gain=0.0,
        elevation_loss=0.0,
        bounds=RouteBounds(min_lat=48.0, max_lat=48.1, min_lon=2.0, max_lon=4.0),
    )
    lat_delta, lon_delta = route_delta(route)
    assert lat_delta == 0.5
    assert lon_delta == pytest.approx(2.4)


def test_simplify_keeps_endpoints_and_original_points() -> None:
    points = [RoutePoint(48.0, 2.0 + i * 0.001, elevation=float(i)) for i in range(10)]
    simplified = simplify_points(points, tolerance=0.0001)

    assert simplified[0] is points[0]
    assert simplified[-1] is points[-1]
    assert len(simplified) == 2
    assert simplify_points(points, tolerance=0) == points


def test_find_nearest_point_index() -> None:
    points = [RoutePoint(48.0, 2.0), RoutePoint(48.5, 2.5), RoutePoint(49.0, 3.0)]
    assert find_nearest_point_index(points, 48.45, 2.55) == 1
    with pytest.raises(ValueError):
        find_nearest_point_index([], 0, 0)

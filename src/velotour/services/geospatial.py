"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from shapely.geometry import LineString

from ..models.domain import BoundingBox, ParsedRoute, RoutePoint

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.0
ROUTE_VIEW_PADDING = 1.2
MIN_ROUTE_DELTA_DEG = 0.5


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def boxes_overlap(a: BoundingBox, b: BoundingBox) -> bool:
    """Return True unless one box lies entirely on one side of the other."""

    return a.south <= b.north and a.north >= b.south and a.west <= b.east and a.east >= b.west


def bounds_nearly_equal(a: BoundingBox, b: BoundingBox, epsilon: float) -> bool:
    return (
        abs(a.north - b.north) < epsilon
        and abs(a.south - b.south) < epsilon
        and abs(a.east - b.east) < epsilon
        and abs(a.west - b.west) < epsilon
    )


def point_in_bounds(lat: float, lon: float, box: BoundingBox) -> bool:
    return box.south <= lat <= box.north and box.west <= lon <= box.east


def box_center(box: BoundingBox) -> tuple[float, float]:
    """Return the ``(lat, lon)`` midpoint of a box."""

    return (box.south + box.north) / 2, (box.west + box.east) / 2


def union_bounds(boxes: Iterable[BoundingBox]) -> BoundingBox | None:
    boxes = list(boxes)
    if not boxes:
        return None
    return BoundingBox(
        south=min(box.south for box in boxes),
        west=min(box.west for box in boxes),
        north=max(box.north for box in boxes),
        east=max(box.east for box in boxes),
    )


def bounds_of_points(points: Sequence[RoutePoint], buffer_km: float = 0.0) -> BoundingBox | None:
    """Tightest box around ``points`` grown by ``buffer_km`` on every side.

    The buffer uses ~111 km per degree of latitude; the longitude buffer is
    widened by the cosine of the box's mid latitude.
    """

    if not points:
        return None
    lats = [point.latitude for point in points]
    lons = [point.longitude for point in points]
    south, north = min(lats), max(lats)
    west, east = min(lons), max(lons)
    lat_buffer = buffer_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians((south + north) / 2))
    lon_buffer = lat_buffer / cos_lat if cos_lat > 1e-6 else lat_buffer
    return BoundingBox(
        south=south - lat_buffer,
        west=west - lon_buffer,
        north=north + lat_buffer,
        east=east + lon_buffer,
    )


def route_center(route: ParsedRoute) -> tuple[float, float]:
    bounds = route.bounds
    return (bounds.min_lat + bounds.max_lat) / 2, (bounds.min_lon + bounds.max_lon) / 2


def route_delta(route: ParsedRoute) -> tuple[float, float]:
    """Latitude/longitude span needed to frame the whole route on a map."""

    bounds = route.bounds
    lat_delta = (bounds.max_lat - bounds.min_lat) * ROUTE_VIEW_PADDING
    lon_delta = (bounds.max_lon - bounds.min_lon) * ROUTE_VIEW_PADDING
    return max(lat_delta, MIN_ROUTE_DELTA_DEG), max(lon_delta, MIN_ROUTE_DELTA_DEG)


def find_nearest_point_index(points: Sequence[RoutePoint], lat: float, lon: float) -> int:
    if not points:
        raise ValueError("Cannot search an empty point list.")
    best_index = 0
    best_distance = math.inf
    for index, point in enumerate(points):
        distance = haversine_km(lat, lon, point.latitude, point.longitude)
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index


def simplify_points(points: Sequence[RoutePoint], tolerance: float) -> list[RoutePoint]:
    """Douglas-Peucker simplification that keeps the original point objects."""

    if tolerance <= 0 or len(points) <= 2:
        return list(points)

    line = LineString([(point.longitude, point.latitude) for point in points])
    simplified = line.simplify(tolerance, preserve_topology=False)

    by_coordinate: dict[tuple[float, float], RoutePoint] = {}
    for point in points:
        by_coordinate.setdefault((point.longitude, point.latitude), point)
    return [by_coordinate[(x, y)] for x, y in simplified.coords if (x, y) in by_coordinate]

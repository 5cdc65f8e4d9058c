"""GPX track parsing and conversion into route geometry."""

from __future__ import annotations

from dataclasses import dataclass

import gpxpy
import gpxpy.gpx

from ..geospatial import haversine_km
from ...models.domain import RouteBounds, RoutePoint


class GPXParseError(ValueError):
    """Raised when a track source is not a usable GPX document."""


@dataclass(slots=True)
class RouteGeometry:
    """Route geometry and statistics derived from a GPX document."""

    name: str
    points: list[RoutePoint]
    segments: list[list[RoutePoint]]
    total_distance: float
    elevation_gain: float
    elevation_loss: float
    bounds: RouteBounds


def parse_gpx(gpx_text: str) -> gpxpy.gpx.GPX:
    """Parse a GPX document with gpxpy, mapping its errors to ``GPXParseError``."""

    try:
        return gpxpy.parse(gpx_text)
    except gpxpy.gpx.GPXException as exc:
        raise GPXParseError(f"Invalid GPX file: {exc}") from exc


def gpx_to_geometry(gpx: gpxpy.gpx.GPX, fallback_name: str) -> RouteGeometry:
    """Flatten GPX tracks into route points, keeping each segment separate.

    Distance and elevation deltas accumulate only between consecutive points
    of the same segment, so a gap between segments never counts as distance.
    ``distance_from_start`` is the running total at each point.
    """

    points: list[RoutePoint] = []
    segments: list[list[RoutePoint]] = []
    total_distance = 0.0
    elevation_gain = 0.0
    elevation_loss = 0.0

    for track in gpx.tracks:
        for raw_segment in track.segments:
            segment: list[RoutePoint] = []
            for raw in raw_segment.points:
                if segment:
                    previous = segment[-1]
                    total_distance += haversine_km(previous.latitude, previous.longitude, raw.latitude, raw.longitude)
                    if raw.elevation is not None and previous.elevation is not None:
                        delta = raw.elevation - previous.elevation
                        if delta > 0:
                            elevation_gain += delta
                        else:
                            elevation_loss += -delta
                point = RoutePoint(
                    latitude=raw.latitude,
                    longitude=raw.longitude,
                    elevation=raw.elevation,
                    distance_from_start=total_distance,
                )
                segment.append(point)
                points.append(point)
            if segment:
                segments.append(segment)

    if not points:
        raise GPXParseError("GPX file contains no track points")

    bounds = RouteBounds(
        min_lat=min(point.latitude for point in points),
        max_lat=max(point.latitude for point in points),
        min_lon=min(point.longitude for point in points),
        max_lon=max(point.longitude for point in points),
    )
    return RouteGeometry(
        name=gpx.name or fallback_name,
        points=points,
        segments=segments,
        total_distance=total_distance,
        elevation_gain=elevation_gain,
        elevation_loss=elevation_loss,
        bounds=bounds,
    )

"""Surface tag mapping and point-to-way matching for Overpass payloads."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from ..geospatial import bounds_of_points
from ...models.domain import RoutePoint, SurfaceSegment, SurfaceType

SURFACE_TAG_MAP: dict[str, SurfaceType] = {
    **{
        tag: SurfaceType.PAVED
        for tag in (
            "asphalt",
            "paved",
            "concrete",
            "concrete:plates",
            "concrete:lanes",
            "paving_stones",
            "sett",
            "cobblestone",
            "metal",
            "wood",
        )
    },
    **{tag: SurfaceType.GRAVEL for tag in ("gravel", "fine_gravel", "compacted", "pebblestone")},
    **{
        tag: SurfaceType.UNPAVED
        for tag in ("unpaved", "dirt", "earth", "ground", "grass", "sand", "mud", "clay", "rock")
    },
}

SURFACE_COLORS: dict[SurfaceType, str] = {
    SurfaceType.PAVED: "#4CAF50",
    SurfaceType.GRAVEL: "#FF9800",
    SurfaceType.UNPAVED: "#795548",
    SurfaceType.UNKNOWN: "#9E9E9E",
}

# Rough km -> degree factor used for the query bbox buffer.
DEGREES_PER_KM = 0.01


def parse_surface_tag(surface: Optional[str]) -> SurfaceType:
    """Map an OSM ``surface`` tag to a surface type; unmapped values are ``unknown``."""
    if not surface or not isinstance(surface, str):
        return SurfaceType.UNKNOWN
    return SURFACE_TAG_MAP.get(surface.strip().lower(), SurfaceType.UNKNOWN)


def build_surface_query(points: Sequence[RoutePoint], buffer_km: float = 0.5, timeout_seconds: int = 30) -> str:
    box = bounds_of_points(points)
    buffer = buffer_km * DEGREES_PER_KM
    bbox = f"{box.south - buffer},{box.west - buffer},{box.north + buffer},{box.east + buffer}"
    return (
        f"[out:json][timeout:{timeout_seconds}];\n"
        "(\n"
        f'  way["highway"]["surface"]({bbox});\n'
        f'  way["highway"]({bbox});\n'
        ");\n"
        "out body;\n"
        ">;\n"
        "out skel qt;"
    )


def _node_coordinate(element: dict[str, Any]) -> Optional[tuple[float, float]]:
    try:
        lat = float(element["lat"])
        lon = float(element["lon"])
    except (KeyError, TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return lat, lon


@dataclass(slots=True)
class WayIndex:
    """Flattened (way, node) pairs of a payload for vectorized nearest-way lookups."""

    surfaces: list[SurfaceType]
    way_of_node: np.ndarray
    lats: np.ndarray
    lons: np.ndarray

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WayIndex":
        """Index a payload, skipping elements that are not well-formed nodes or ways."""
        nodes: dict[int, tuple[float, float]] = {}
        ways: list[dict[str, Any]] = []
        for element in payload.get("elements", []):
            if not isinstance(element, dict) or not isinstance(element.get("id"), int):
                continue
            kind = element.get("type")
            if kind == "node":
                coordinate = _node_coordinate(element)
                if coordinate is not None:
                    nodes[element["id"]] = coordinate
            elif kind == "way" and isinstance(element.get("nodes"), list):
                ways.append(element)

        surfaces: list[SurfaceType] = []
        way_of_node: list[int] = []
        lats: list[float] = []
        lons: list[float] = []
        for way in ways:
            tags = way.get("tags")
            surfaces.append(parse_surface_tag(tags.get("surface") if isinstance(tags, dict) else None))
            way_position = len(surfaces) - 1
            for node_id in way["nodes"]:
                node = nodes.get(node_id) if isinstance(node_id, int) else None
                if node is None:
                    continue
                way_of_node.append(way_position)
                lats.append(node[0])
                lons.append(node[1])

        return cls(
            surfaces=surfaces,
            way_of_node=np.asarray(way_of_node, dtype=np.int64),
            lats=np.asarray(lats, dtype=float),
            lons=np.asarray(lons, dtype=float),
        )

    def surface_near(self, point: RoutePoint, threshold_deg: float) -> SurfaceType:
        """Surface of the way whose nearest node is closest to ``point``.

        Distances are planar in degree space. Ties go to the first way in
        payload order; nothing within ``threshold_deg`` means ``unknown``.
        """
        if self.lats.size == 0:
            return SurfaceType.UNKNOWN
        squared = (self.lons - point.longitude) ** 2 + (self.lats - point.latitude) ** 2
        nearest = int(np.argmin(squared))
        if squared[nearest] > threshold_deg * threshold_deg:
            return SurfaceType.UNKNOWN
        return self.surfaces[int(self.way_of_node[nearest])]


def classify_points(
    points: Sequence[RoutePoint],
    index: WayIndex,
    threshold_deg: float,
    index_offset: int = 0,
) -> list[SurfaceSegment]:
    """Split ``points`` into runs of equal surface.

    ``start_index``/``end_index`` refer to the caller's full point array,
    i.e. they are shifted by ``index_offset``.
    """
    segments: list[SurfaceSegment] = []
    current: SurfaceSegment | None = None
    for position, point in enumerate(points):
        surface = index.surface_near(point, threshold_deg)
        absolute = index_offset + position
        if current is None or surface != current.surface_type:
            current = SurfaceSegment(
                surface_type=surface,
                coordinates=[],
                start_index=absolute,
                end_index=absolute,
            )
            segments.append(current)
        current.coordinates.append((point.longitude, point.latitude))
        current.end_index = absolute
    return segments

"""GeoJSON FeatureCollection export for map layers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from shapely.geometry import LineString, Point, mapping

from ..pois.categories import category_color, category_group, category_priority
from ..surface.classification import SURFACE_COLORS
from ...models.domain import POI, Cluster, ParsedRoute, RouteSurfaceData


def feature_collection(features: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": features}


def _line(coordinates: Iterable[tuple[float, float]]) -> Optional[Dict[str, Any]]:
    coordinates = list(coordinates)
    if len(coordinates) < 2:
        return None
    return mapping(LineString(coordinates))


def pois_to_feature_collection(pois: Iterable[POI], selected_id: Optional[str] = None) -> Dict[str, Any]:
    """Point features keyed by POI id, tagged for data-driven styling."""

    features: List[Dict[str, Any]] = []
    for poi in pois:
        features.append(
            {
                "type": "Feature",
                "id": poi.id,
                "geometry": mapping(Point(poi.longitude, poi.latitude)),
                "properties": {
                    "id": poi.id,
                    "name": poi.name,
                    "category": poi.category.value,
                    "priority": category_priority(poi.category).value,
                    "group": category_group(poi.category).value,
                    "color": category_color(poi.category),
                    "isDownloaded": poi.is_downloaded,
                    "selected": poi.id == selected_id,
                },
            }
        )
    return feature_collection(features)


def clusters_to_feature_collection(clusters: Iterable[Cluster]) -> Dict[str, Any]:
    features = [
        {
            "type": "Feature",
            "id": cluster.id,
            "geometry": mapping(Point(*cluster.coordinate)),
            "properties": {
                "id": cluster.id,
                "cluster": True,
                "point_count": cluster.point_count,
                "memberIds": list(cluster.member_ids),
            },
        }
        for cluster in clusters
    ]
    return feature_collection(features)


def route_to_feature_collection(route: ParsedRoute, points_override: Optional[list] = None) -> Dict[str, Any]:
    """One LineString per GPX segment so gaps between segments stay open.

    ``points_override`` replaces the segment layout with a single line, used
    for simplified geometry.
    """
    if points_override is not None:
        segments = [points_override]
    else:
        segments = list(route.segments)

    features: List[Dict[str, Any]] = []
    for index, segment in enumerate(segments):
        geometry = _line((point.longitude, point.latitude) for point in segment)
        if geometry is None:
            continue
        features.append(
            {
                "type": "Feature",
                "id": f"{route.id}:{index}",
                "geometry": geometry,
                "properties": {
                    "routeId": route.id,
                    "segmentIndex": index,
                    "name": route.name,
                    "color": route.color,
                    "variant": route.variant.value,
                },
            }
        )
    return feature_collection(features)


def surface_to_feature_collection(data: RouteSurfaceData) -> Dict[str, Any]:
    features: List[Dict[str, Any]] = []
    for segment in data.segments:
        geometry = _line(segment.coordinates)
        if geometry is None:
            continue
        features.append(
            {
                "type": "Feature",
                "id": f"{data.route_id}:surface:{segment.start_index}-{segment.end_index}",
                "geometry": geometry,
                "properties": {
                    "surface": segment.surface_type.value,
                    "color": SURFACE_COLORS[segment.surface_type],
                    "startIndex": segment.start_index,
                    "endIndex": segment.end_index,
                },
            }
        )
    return feature_collection(features)

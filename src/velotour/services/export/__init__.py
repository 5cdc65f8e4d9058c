"""Export services."""

from .geojson import (
    clusters_to_feature_collection,
    pois_to_feature_collection,
    route_to_feature_collection,
    surface_to_feature_collection,
)

__all__ = [
    "pois_to_feature_collection",
    "clusters_to_feature_collection",
    "route_to_feature_collection",
    "surface_to_feature_collection",
]

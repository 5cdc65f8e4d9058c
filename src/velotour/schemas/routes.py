"""Route and surface response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RouteCatalogItem(BaseModel):
    source_id: int
    name: str
    variants: List[str]
    colors: Dict[str, str]
    advertised_distance: str
    countries: int


class RouteBoundsModel(BaseModel):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


class RouteResponse(BaseModel):
    id: str
    source_id: int
    variant: str
    name: str
    color: str
    total_distance_km: float
    elevation_gain_m: float
    elevation_loss_m: float
    point_count: int
    segment_count: int
    bounds: RouteBoundsModel
    center: List[float] = Field(..., description="[lat, lon] of the route bounds midpoint.")
    delta: List[float] = Field(..., description="[lat_delta, lon_delta] needed to frame the route.")
    geojson: Dict[str, Any]


class SurfaceSummaryModel(BaseModel):
    paved: int
    gravel: int
    unpaved: int
    unknown: int


class SurfaceSegmentModel(BaseModel):
    surface: str
    start_index: int
    end_index: int
    coordinates: List[List[float]]


class SurfaceResponse(BaseModel):
    route_id: str
    summary: SurfaceSummaryModel
    segments: List[SurfaceSegmentModel]
    geojson: Dict[str, Any]


class CacheStatsResponse(BaseModel):
    route_count: int
    segment_count: int
    oldest_parsed_at: Optional[datetime] = None
    cached_routes: List[str] = Field(default_factory=list)

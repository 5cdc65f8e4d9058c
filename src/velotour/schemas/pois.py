"""POI viewport request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.domain import BoundingBox, ViewportBounds


class ViewportBoundsModel(BaseModel):
    """Map viewport corners as [longitude, latitude] pairs."""

    north_east: List[float] = Field(..., min_length=2, max_length=2, alias="northEast")
    south_west: List[float] = Field(..., min_length=2, max_length=2, alias="southWest")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _check_order(self) -> "ViewportBoundsModel":
        if self.south_west[1] > self.north_east[1]:
            raise ValueError("southWest latitude must not exceed northEast latitude")
        return self

    def to_domain(self) -> ViewportBounds:
        return ViewportBounds(
            north_east=(self.north_east[0], self.north_east[1]),
            south_west=(self.south_west[0], self.south_west[1]),
        )


class ViewportRequest(BaseModel):
    bounds: ViewportBoundsModel
    zoom: float = Field(10.0, ge=0, le=24)
    categories: List[str] = Field(default_factory=list, description="Explicit category selection; empty means default.")
    show_pois: bool = Field(True, description="When false only downloaded POIs are loaded.")
    selected_id: Optional[str] = None

    @field_validator("categories", mode="before")
    @classmethod
    def _split_categories(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value or []


class ViewportResponse(BaseModel):
    is_loading: bool
    total_active: int
    rendered: int
    pois: Dict[str, Any]
    clusters: Dict[str, Any]
    error: Optional[str] = None


class BoundingBoxModel(BaseModel):
    south: float = Field(..., ge=-90, le=90)
    west: float = Field(..., ge=-180, le=180)
    north: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> BoundingBox:
        return BoundingBox(south=self.south, west=self.west, north=self.north, east=self.east)


class RegionDownloadRequest(BaseModel):
    name: str = Field(..., min_length=1)
    bounds: BoundingBoxModel


class RegionModel(BaseModel):
    id: str
    name: str
    bounds: BoundingBoxModel
    poi_count: int
    downloaded_at: Optional[datetime] = None

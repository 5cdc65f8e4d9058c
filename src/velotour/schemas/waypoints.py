"""Waypoint plan request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import Waypoint, WaypointType


class WaypointCreate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    name: Optional[str] = None


class WaypointMove(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class WaypointReorder(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class WaypointModel(BaseModel):
    id: str
    order: int
    type: WaypointType
    latitude: float
    longitude: float
    name: Optional[str] = None

    @classmethod
    def from_domain(cls, waypoint: Waypoint) -> "WaypointModel":
        return cls(
            id=waypoint.id,
            order=waypoint.order,
            type=waypoint.type,
            latitude=waypoint.latitude,
            longitude=waypoint.longitude,
            name=waypoint.name,
        )


class WaypointPlanResponse(BaseModel):
    waypoints: List[WaypointModel]
    coordinates: List[List[float]] = Field(default_factory=list, description="[longitude, latitude] in travel order.")
    can_undo: bool
    can_redo: bool

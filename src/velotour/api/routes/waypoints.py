"""Waypoint plan editing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import get_services
from ...schemas.waypoints import (
    WaypointCreate,
    WaypointModel,
    WaypointMove,
    WaypointPlanResponse,
    WaypointReorder,
)
from ...services.container import ServiceContainer
from ...services.routing.waypoints import WaypointPlan

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/waypoints", tags=["waypoints"])


def _plan_response(plan: WaypointPlan) -> WaypointPlanResponse:
    return WaypointPlanResponse(
        waypoints=[WaypointModel.from_domain(waypoint) for waypoint in plan.waypoints],
        coordinates=[[lon, lat] for lon, lat in plan.as_coordinates()],
        can_undo=plan.can_undo,
        can_redo=plan.can_redo,
    )


@router.get("", response_model=WaypointPlanResponse)
def get_plan(services: ServiceContainer = Depends(get_services)) -> WaypointPlanResponse:
    return _plan_response(services.waypoint_plan)


@router.post("", response_model=WaypointPlanResponse, status_code=status.HTTP_201_CREATED)
def add_waypoint(payload: WaypointCreate, services: ServiceContainer = Depends(get_services)) -> WaypointPlanResponse:
    plan = services.waypoint_plan
    waypoint = plan.add(payload.latitude, payload.longitude, name=payload.name)
    logger.debug(f"Added waypoint {waypoint.id} at ({waypoint.latitude}, {waypoint.longitude})")
    return _plan_response(plan)


@router.put("/{waypoint_id}", response_model=WaypointPlanResponse)
def move_waypoint(
    waypoint_id: str, payload: WaypointMove, services: ServiceContainer = Depends(get_services)
) -> WaypointPlanResponse:
    plan = services.waypoint_plan
    try:
        plan.move(waypoint_id, payload.latitude, payload.longitude)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Waypoint {waypoint_id} not found") from exc
    return _plan_response(plan)


@router.delete("/{waypoint_id}", response_model=WaypointPlanResponse)
def remove_waypoint(waypoint_id: str, services: ServiceContainer = Depends(get_services)) -> WaypointPlanResponse:
    plan = services.waypoint_plan
    try:
        plan.remove(waypoint_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Waypoint {waypoint_id} not found") from exc
    return _plan_response(plan)


@router.delete("", response_model=WaypointPlanResponse)
def clear_waypoints(services: ServiceContainer = Depends(get_services)) -> WaypointPlanResponse:
    services.waypoint_plan.clear()
    return _plan_response(services.waypoint_plan)


@router.post("/reorder", response_model=WaypointPlanResponse)
def reorder_waypoints(
    payload: WaypointReorder, services: ServiceContainer = Depends(get_services)
) -> WaypointPlanResponse:
    plan = services.waypoint_plan
    try:
        plan.reorder(payload.from_index, payload.to_index)
    except IndexError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _plan_response(plan)


@router.post("/undo", response_model=WaypointPlanResponse)
def undo(services: ServiceContainer = Depends(get_services)) -> WaypointPlanResponse:
    if not services.waypoint_plan.undo():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to undo")
    return _plan_response(services.waypoint_plan)


@router.post("/redo", response_model=WaypointPlanResponse)
def redo(services: ServiceContainer = Depends(get_services)) -> WaypointPlanResponse:
    if not services.waypoint_plan.redo():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to redo")
    return _plan_response(services.waypoint_plan)

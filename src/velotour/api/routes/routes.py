"""Route geometry and surface endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_services
from ...models.domain import ParsedRoute, RouteVariant
from ...schemas.routes import (
    CacheStatsResponse,
    RouteBoundsModel,
    RouteCatalogItem,
    RouteResponse,
    SurfaceResponse,
    SurfaceSegmentModel,
    SurfaceSummaryModel,
)
from ...services.container import ServiceContainer
from ...services.export.geojson import route_to_feature_collection, surface_to_feature_collection
from ...services.geospatial import route_center, route_delta, simplify_points
from ...services.routes.catalog import ROUTE_CATALOG

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def _to_response(route: ParsedRoute, simplify: float) -> RouteResponse:
    points_override = simplify_points(route.points, simplify) if simplify > 0 else None
    return RouteResponse(
        id=route.id,
        source_id=route.source_id,
        variant=route.variant.value,
        name=route.name,
        color=route.color,
        total_distance_km=round(route.total_distance, 3),
        elevation_gain_m=round(route.elevation_gain, 1),
        elevation_loss_m=round(route.elevation_loss, 1),
        point_count=len(route.points),
        segment_count=len(route.segments),
        bounds=RouteBoundsModel(
            min_lat=route.bounds.min_lat,
            max_lat=route.bounds.max_lat,
            min_lon=route.bounds.min_lon,
            max_lon=route.bounds.max_lon,
        ),
        center=list(route_center(route)),
        delta=list(route_delta(route)),
        geojson=route_to_feature_collection(route, points_override),
    )


@router.get("", response_model=List[RouteCatalogItem])
def list_routes() -> List[RouteCatalogItem]:
    return [
        RouteCatalogItem(
            source_id=entry.source_id,
            name=entry.name,
            variants=[variant.value for variant in entry.variants],
            colors={variant.value: entry.color_for(variant) for variant in entry.variants},
            advertised_distance=entry.advertised_distance,
            countries=entry.countries,
        )
        for entry in ROUTE_CATALOG.values()
    ]


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(services: ServiceContainer = Depends(get_services)) -> CacheStatsResponse:
    stats = await services.route_cache.stats()
    return CacheStatsResponse(
        route_count=stats.route_count,
        segment_count=stats.segment_count,
        oldest_parsed_at=stats.oldest_parsed_at,
        cached_routes=await services.route_cache.cached_route_keys(),
    )


@router.delete("/cache", status_code=status.HTTP_200_OK)
async def clear_cache(services: ServiceContainer = Depends(get_services)) -> dict:
    await services.route_cache.clear_all()
    services.surface_engine.clear_cache()
    return {"success": True}


async def _load_or_404(services: ServiceContainer, source_id: int, variant: RouteVariant) -> ParsedRoute:
    route = await services.route_loader.load(source_id, variant)
    if route is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Route EV{source_id} ({variant.value}) is not available",
        )
    return route


@router.get("/{source_id}/{variant}", response_model=RouteResponse)
async def get_route(
    source_id: int,
    variant: RouteVariant,
    simplify: float = Query(0.0, ge=0.0, le=1.0, description="Douglas-Peucker tolerance in degrees."),
    services: ServiceContainer = Depends(get_services),
) -> RouteResponse:
    route = await _load_or_404(services, source_id, variant)
    return _to_response(route, simplify)


@router.get("/{source_id}/{variant}/surface", response_model=SurfaceResponse)
async def get_route_surface(
    source_id: int,
    variant: RouteVariant,
    services: ServiceContainer = Depends(get_services),
) -> SurfaceResponse:
    route = await _load_or_404(services, source_id, variant)
    try:
        data = await services.surface_engine.query_for_route(route.id, route.points)
    except Exception as exc:
        logger.exception(f"Error querying surface for {route.id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to query surface data: {str(exc)}",
        ) from exc
    return SurfaceResponse(
        route_id=data.route_id,
        summary=SurfaceSummaryModel(
            paved=data.summary.paved,
            gravel=data.summary.gravel,
            unpaved=data.summary.unpaved,
            unknown=data.summary.unknown,
        ),
        segments=[
            SurfaceSegmentModel(
                surface=segment.surface_type.value,
                start_index=segment.start_index,
                end_index=segment.end_index,
                coordinates=[list(coordinate) for coordinate in segment.coordinates],
            )
            for segment in data.segments
        ],
        geojson=surface_to_feature_collection(data),
    )

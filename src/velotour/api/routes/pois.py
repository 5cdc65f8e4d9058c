"""POI viewport, counts and offline region endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import get_services
from ...models.domain import DownloadedRegion
from ...schemas.pois import BoundingBoxModel, RegionDownloadRequest, RegionModel, ViewportRequest, ViewportResponse
from ...services.container import ServiceContainer
from ...services.export.geojson import clusters_to_feature_collection, pois_to_feature_collection
from ...services.pois.categories import parse_category
from ...services.pois.clustering import cluster_pois

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pois", tags=["pois"])


def _region_model(region: DownloadedRegion) -> RegionModel:
    return RegionModel(
        id=region.id,
        name=region.name,
        bounds=BoundingBoxModel(
            south=region.bounds.south,
            west=region.bounds.west,
            north=region.bounds.north,
            east=region.bounds.east,
        ),
        poi_count=region.poi_count,
        downloaded_at=region.downloaded_at,
    )


@router.post("/viewport", response_model=ViewportResponse, status_code=status.HTTP_200_OK)
async def load_viewport(payload: ViewportRequest, services: ServiceContainer = Depends(get_services)) -> ViewportResponse:
    """Fetch, filter and cluster POIs for the visible map area."""
    categories = []
    for value in payload.categories:
        category = parse_category(value)
        if category is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown POI category: {value}")
        categories.append(category)

    viewport = payload.bounds.to_domain().to_bounding_box()
    services.poi_fetcher.set_filters(categories, include_remote=payload.show_pois)
    try:
        await services.poi_fetcher.load_for_viewport(viewport)
    except Exception as exc:
        logger.exception(f"Error loading POIs for viewport: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load POIs: {str(exc)}",
        ) from exc

    store = services.poi_store
    visible = services.viewport_filter.filter(
        store.pois,
        categories=categories,
        bounds=viewport,
        is_loading=store.is_loading,
    )
    services.filter_throttle.publish(visible)
    clustered = cluster_pois(visible, payload.zoom)
    return ViewportResponse(
        is_loading=store.is_loading,
        total_active=len(store),
        rendered=len(visible),
        pois=pois_to_feature_collection(clustered.unclustered, selected_id=payload.selected_id),
        clusters=clusters_to_feature_collection(clustered.clusters),
        error=store.error,
    )


@router.get("/visible", status_code=status.HTTP_200_OK)
def visible_pois(services: ServiceContainer = Depends(get_services)) -> dict:
    """Last filtered POI set delivered through the update throttle."""
    throttle = services.filter_throttle
    return {"pending": throttle.pending, "pois": pois_to_feature_collection(throttle.current)}


@router.get("/counts", status_code=status.HTTP_200_OK)
def poi_counts(services: ServiceContainer = Depends(get_services)) -> dict:
    return {"total": len(services.poi_store), "by_category": services.poi_store.counts_by_category()}


@router.get("/regions", response_model=List[RegionModel])
async def list_regions(services: ServiceContainer = Depends(get_services)) -> List[RegionModel]:
    return [_region_model(region) for region in await services.refresh_regions()]


@router.post("/regions", response_model=RegionModel, status_code=status.HTTP_201_CREATED)
async def download_region(
    payload: RegionDownloadRequest, services: ServiceContainer = Depends(get_services)
) -> RegionModel:
    bounds = payload.bounds.to_domain()
    if bounds.south > bounds.north or bounds.west > bounds.east:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Region bounds are inverted")
    region = await services.download_region(payload.name, bounds)
    if region is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to download region {payload.name}",
        )
    return _region_model(region)


@router.delete("/regions/{region_id}", status_code=status.HTTP_200_OK)
async def delete_region(region_id: str, services: ServiceContainer = Depends(get_services)) -> dict:
    await services.delete_region(region_id)
    return {"success": True, "region_id": region_id}

"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..deps import get_services
from ...persistence.database import check_database
from ...services.container import ServiceContainer

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/overpass", status_code=status.HTTP_200_OK)
async def health_overpass(services: ServiceContainer = Depends(get_services)) -> dict:
    """Check that the geodata service answers queries."""
    try:
        healthy = await services.overpass.check_health()
        return {"service": "overpass", "healthy": healthy}
    except Exception as e:
        return {"service": "overpass", "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
async def health_database(services: ServiceContainer = Depends(get_services)) -> dict:
    """Check the local store and report what it holds."""
    connected = await check_database(services.engine)
    if not connected:
        return {"connected": False, "message": "Local store is not reachable."}
    stats = await services.route_cache.stats()
    regions = await services.poi_repository.list_downloaded_regions()
    return {
        "connected": True,
        "cached_routes": stats.route_count,
        "cached_segments": stats.segment_count,
        "downloaded_regions": len(regions),
    }

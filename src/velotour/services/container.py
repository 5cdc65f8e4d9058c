"""Wiring of the long-lived service instances shared by the API."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from .overpass_client import GeodataServiceError, OverpassClient
from .pois.fetcher import POIFetcher
from .pois.filtering import FilterThrottle, ViewportFilter
from .pois.overpass import OverpassPOISource
from .pois.repository import POIRepository
from .pois.store import POIStore
from .pois.viewport import POIViewportSource
from .routes.cache import RouteCacheRepository
from .routes.loader import DirectoryTrackSource, RouteLoader, TrackSource
from .routing.waypoints import WaypointPlan
from .surface.service import SurfaceQueryEngine
from ..config import settings
from ..models.domain import POI, BoundingBox, DownloadedRegion
from ..persistence.database import create_engine, init_database

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Builds every service once and hands the same instances to each request."""

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        track_source: TrackSource | None = None,
        overpass: OverpassClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.engine = engine or create_engine()
        self.overpass = overpass or OverpassClient()

        self.route_cache = RouteCacheRepository(self.engine)
        self.route_loader = RouteLoader(track_source or DirectoryTrackSource(), self.route_cache)
        self.surface_engine = SurfaceQueryEngine(client=self.overpass)

        self.poi_repository = POIRepository(self.engine)
        self.poi_remote = OverpassPOISource(client=self.overpass)
        self.viewport_source = POIViewportSource(self.poi_repository, remote=self.poi_remote)
        self.poi_store = POIStore(clock=clock)
        self.poi_fetcher = POIFetcher(self.poi_store, self.viewport_source)

        self._region_bounds: list[BoundingBox] = []
        self.viewport_filter = ViewportFilter(region_provider=lambda: self._region_bounds)
        self.filter_throttle = FilterThrottle(on_update=self._on_visible_update)

        self.waypoint_plan = WaypointPlan()

    async def startup(self) -> None:
        await init_database(self.engine)
        await self.refresh_regions()

    def _on_visible_update(self, pois: list[POI]) -> None:
        logger.debug(f"Visible POI set updated: {len(pois)} POIs")

    async def shutdown(self) -> None:
        self.filter_throttle.cancel()
        await self.route_cache.drain()
        await self.poi_repository.drain()
        await self.engine.dispose()

    async def refresh_regions(self) -> list[DownloadedRegion]:
        regions = await self.poi_repository.list_downloaded_regions()
        self._region_bounds = [region.bounds for region in regions]
        return regions

    async def download_region(self, name: str, bounds: BoundingBox) -> Optional[DownloadedRegion]:
        """Fetch every POI category for ``bounds`` and keep it as an offline region."""

        try:
            fetched = await self.poi_remote.fetch_pois(bounds)
        except GeodataServiceError as exc:
            logger.warning(f"Region download {name} failed: {exc}")
            return None
        downloaded = [replace(poi, is_downloaded=True) for poi in fetched]
        region = await self.poi_repository.save_downloaded_region(
            DownloadedRegion(id="", name=name, bounds=bounds), downloaded
        )
        if region is None:
            return None
        self.poi_store.add_pois(downloaded)
        self.poi_store.set_download_protection(settings.download_protection_seconds)
        await self.refresh_regions()
        logger.info(f"Downloaded region {name} with {len(downloaded)} POIs")
        return region

    async def delete_region(self, region_id: str) -> None:
        await self.poi_repository.delete_downloaded_region(region_id)
        await self.refresh_regions()

"""Viewport-scoped POI loading: downloaded, cached and remote POIs combined."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Sequence

from .overpass import OverpassPOISource
from .repository import POIRepository
from ..overpass_client import GeodataServiceError
from ...config import settings
from ...models.domain import POI, BoundingBox, POICategory
from ...utils.concurrency import CancellationToken

logger = logging.getLogger(__name__)


def dedupe_pois(items: Iterable[POI]) -> list[POI]:
    """Unique POIs by id, keeping first-seen order; a downloaded copy always wins."""
    unique: dict[str, POI] = {}
    for poi in items:
        existing = unique.get(poi.id)
        if existing is None or (poi.is_downloaded and not existing.is_downloaded):
            unique[poi.id] = poi
    return list(unique.values())


def _filter_categories(items: Iterable[POI], categories: Sequence[POICategory]) -> list[POI]:
    if not categories:
        return list(items)
    wanted = set(categories)
    return [poi for poi in items if poi.category in wanted]


class POIViewportSource:
    def __init__(
        self,
        repository: POIRepository,
        remote: OverpassPOISource | None = None,
        max_uncached_tiles: int | None = None,
        tile_concurrency: int | None = None,
        tile_timeout: float | None = None,
    ) -> None:
        self.repository = repository
        self.remote = remote or OverpassPOISource()
        self.max_uncached_tiles = (
            max_uncached_tiles if max_uncached_tiles is not None else settings.poi_max_uncached_tiles
        )
        self.tile_concurrency = tile_concurrency if tile_concurrency is not None else settings.poi_tile_concurrency
        self.tile_timeout = tile_timeout if tile_timeout is not None else settings.poi_request_timeout_seconds

    async def _fetch_tile(
        self, tile_key: str, tile: BoundingBox, categories: Sequence[POICategory]
    ) -> list[POI]:
        try:
            fresh = await asyncio.wait_for(self.remote.fetch_pois(tile, categories), timeout=self.tile_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"POI tile {tile_key} timed out after {self.tile_timeout:.0f}s")
            return []
        except GeodataServiceError as exc:
            logger.warning(f"POI tile {tile_key} failed: {exc}")
            return []
        # only answered tiles are marked, empty ones included
        self.repository.mark_tile_cached(tile_key, tile, categories)
        if fresh:
            self.repository.save_pois(fresh)
        return fresh

    async def fetch_for_viewport(
        self,
        bbox: BoundingBox,
        categories: Sequence[POICategory] = (),
        include_remote: bool = True,
        token: Optional[CancellationToken] = None,
    ) -> list[POI]:
        """POIs for ``bbox``.

        Downloaded POIs are always part of the result regardless of the
        category selection. With ``include_remote`` the uncached tiles are
        fetched from Overpass unless there are too many of them, in which
        case only local data is returned.
        """
        collected: list[POI] = list(await self.repository.get_downloaded_pois_in_bounds(bbox))
        if not include_remote:
            return dedupe_pois(collected)

        uncached = await self.repository.get_uncached_tiles(bbox, categories)
        collected.extend(_filter_categories(await self.repository.get_pois_in_bounds(bbox), categories))

        if len(uncached) > self.max_uncached_tiles:
            logger.warning(
                f"{len(uncached)} uncached tiles exceed the limit of {self.max_uncached_tiles}; "
                "returning local POIs only"
            )
            return dedupe_pois(collected)

        for start in range(0, len(uncached), self.tile_concurrency):
            if token is not None and token.cancelled:
                logger.debug("Viewport POI fetch cancelled between tile batches")
                break
            batch = uncached[start:start + self.tile_concurrency]
            results = await asyncio.gather(*(self._fetch_tile(key, tile, categories) for key, tile in batch))
            for fresh in results:
                collected.extend(fresh)

        return dedupe_pois(collected)

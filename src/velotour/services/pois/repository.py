"""Local persistence for cached and downloaded POIs."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from .categories import parse_category
from ...config import settings
from ...models.domain import POI, BoundingBox, DownloadedRegion, POICategory
from ...persistence.database import downloaded_regions, poi_cache_tiles, pois, utcnow
from ...utils.concurrency import WriteQueue

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "*"


def tiles_covering(bbox: BoundingBox, tile_size: float) -> list[tuple[str, BoundingBox]]:
    """Grid-aligned tiles (key, box) covering ``bbox``."""

    lat_start = math.floor(bbox.south / tile_size)
    lat_stop = max(math.ceil(bbox.north / tile_size), lat_start + 1)
    lon_start = math.floor(bbox.west / tile_size)
    lon_stop = max(math.ceil(bbox.east / tile_size), lon_start + 1)
    tiles = []
    for i in range(lat_start, lat_stop):
        for j in range(lon_start, lon_stop):
            tiles.append(
                (
                    f"{i}_{j}",
                    BoundingBox(
                        south=i * tile_size,
                        west=j * tile_size,
                        north=(i + 1) * tile_size,
                        east=(j + 1) * tile_size,
                    ),
                )
            )
    return tiles


def _categories_token(categories: Iterable[POICategory] | None) -> str:
    values = sorted({category.value for category in categories or ()})
    return ",".join(values) if values else ALL_CATEGORIES


def _tile_covers(stored: str, requested: Iterable[POICategory] | None) -> bool:
    if stored == ALL_CATEGORIES:
        return True
    wanted = {category.value for category in requested or ()}
    if not wanted:
        return False
    return wanted <= set(stored.split(","))


def _row_to_poi(row: Mapping[str, Any]) -> Optional[POI]:
    category = parse_category(row["category"])
    if category is None:
        return None
    return POI(
        id=row["id"],
        name=row["name"],
        category=category,
        latitude=row["latitude"],
        longitude=row["longitude"],
        is_downloaded=bool(row["is_downloaded"]),
        osm_type=row["osm_type"],
        tags=json.loads(row["tags_json"] or "{}"),
    )


def _in_bounds(bbox: BoundingBox):
    return and_(
        pois.c.latitude >= bbox.south,
        pois.c.latitude <= bbox.north,
        pois.c.longitude >= bbox.west,
        pois.c.longitude <= bbox.east,
    )


class POIRepository:
    """SQLite-backed POI cache with tile bookkeeping and downloaded regions.

    Mutations are serialized through one write queue per repository.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        tile_size: float | None = None,
        ttl_hours: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.engine = engine
        self.tile_size = tile_size if tile_size is not None else settings.poi_tile_size_deg
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.poi_cache_ttl_hours)
        self._clock = clock
        self._writes = WriteQueue(name="poi-store")

    async def drain(self) -> None:
        await self._writes.drain()

    async def _select_pois(self, condition) -> list[POI]:
        async with self.engine.connect() as conn:
            rows = (await conn.execute(select(pois).where(condition))).mappings().all()
        return [poi for poi in (_row_to_poi(row) for row in rows) if poi is not None]

    async def get_pois_in_bounds(self, bbox: BoundingBox) -> list[POI]:
        """Downloaded POIs plus cached POIs that have not expired."""
        fresh = or_(pois.c.is_downloaded.is_(True), pois.c.expires_at > self._clock())
        try:
            return await self._select_pois(and_(_in_bounds(bbox), fresh))
        except Exception as exc:
            logger.warning(f"Failed to read cached POIs: {exc}")
            return []

    async def get_downloaded_pois_in_bounds(self, bbox: BoundingBox) -> list[POI]:
        try:
            return await self._select_pois(and_(_in_bounds(bbox), pois.c.is_downloaded.is_(True)))
        except Exception as exc:
            logger.warning(f"Failed to read downloaded POIs: {exc}")
            return []

    async def get_uncached_tiles(
        self, bbox: BoundingBox, categories: Iterable[POICategory] | None = None
    ) -> list[tuple[str, BoundingBox]]:
        tiles = tiles_covering(bbox, self.tile_size)
        keys = [key for key, _ in tiles]
        try:
            async with self.engine.connect() as conn:
                rows = (
                    await conn.execute(
                        select(poi_cache_tiles.c.tile_key, poi_cache_tiles.c.categories).where(
                            poi_cache_tiles.c.tile_key.in_(keys),
                            poi_cache_tiles.c.expires_at > self._clock(),
                        )
                    )
                ).all()
        except Exception as exc:
            logger.warning(f"Failed to read tile cache: {exc}")
            return tiles
        cached = {key for key, stored in rows if _tile_covers(stored, categories)}
        return [(key, tile) for key, tile in tiles if key not in cached]

    def mark_tile_cached(
        self, tile_key: str, tile: BoundingBox, categories: Iterable[POICategory] | None = None
    ) -> asyncio.Task:
        token = _categories_token(categories)

        async def _write() -> None:
            now = self._clock()
            statement = sqlite_insert(poi_cache_tiles).values(
                tile_key=tile_key,
                south=tile.south,
                west=tile.west,
                north=tile.north,
                east=tile.east,
                categories=token,
                fetched_at=now,
                expires_at=now + self.ttl,
            )
            statement = statement.on_conflict_do_update(
                index_elements=[poi_cache_tiles.c.tile_key],
                set_={
                    "categories": statement.excluded.categories,
                    "fetched_at": statement.excluded.fetched_at,
                    "expires_at": statement.excluded.expires_at,
                },
            )
            async with self.engine.begin() as conn:
                await conn.execute(statement)

        return self._writes.enqueue(_write, description=f"mark tile {tile_key}")

    def save_pois(self, items: list[POI]) -> asyncio.Task:
        """Upsert freshly fetched POIs; rows of downloaded POIs keep their flag."""

        async def _write() -> None:
            if not items:
                return
            now = self._clock()
            rows = [
                {
                    "id": poi.id,
                    "osm_type": poi.osm_type,
                    "category": poi.category.value,
                    "name": poi.name,
                    "latitude": poi.latitude,
                    "longitude": poi.longitude,
                    "tags_json": json.dumps(poi.tags),
                    "is_downloaded": False,
                    "region_id": None,
                    "fetched_at": now,
                    "expires_at": now + self.ttl,
                }
                for poi in items
            ]
            statement = sqlite_insert(pois)
            statement = statement.on_conflict_do_update(
                index_elements=[pois.c.id],
                set_={
                    "category": statement.excluded.category,
                    "name": statement.excluded.name,
                    "latitude": statement.excluded.latitude,
                    "longitude": statement.excluded.longitude,
                    "tags_json": statement.excluded.tags_json,
                    "fetched_at": statement.excluded.fetched_at,
                    "expires_at": statement.excluded.expires_at,
                },
            )
            async with self.engine.begin() as conn:
                await conn.execute(statement, rows)
            logger.debug(f"Cached {len(rows)} POIs")

        return self._writes.enqueue(_write, description=f"save {len(items)} POIs")

    async def save_downloaded_region(self, region: DownloadedRegion, items: list[POI]) -> Optional[DownloadedRegion]:
        """Persist a region and its POIs atomically; returns None if the write failed."""

        region_id = region.id or uuid.uuid4().hex
        stored = DownloadedRegion(
            id=region_id,
            name=region.name,
            bounds=region.bounds,
            poi_count=len(items),
            downloaded_at=self._clock(),
        )
        failures: list[Exception] = []

        async def _write() -> None:
            rows = [
                {
                    "id": poi.id,
                    "osm_type": poi.osm_type,
                    "category": poi.category.value,
                    "name": poi.name,
                    "latitude": poi.latitude,
                    "longitude": poi.longitude,
                    "tags_json": json.dumps(poi.tags),
                    "is_downloaded": True,
                    "region_id": region_id,
                    "fetched_at": stored.downloaded_at,
                    "expires_at": None,
                }
                for poi in items
            ]
            async with self.engine.begin() as conn:
                await conn.execute(delete(downloaded_regions).where(downloaded_regions.c.id == region_id))
                await conn.execute(
                    downloaded_regions.insert().values(
                        id=region_id,
                        name=stored.name,
                        south=stored.bounds.south,
                        west=stored.bounds.west,
                        north=stored.bounds.north,
                        east=stored.bounds.east,
                        poi_count=stored.poi_count,
                        downloaded_at=stored.downloaded_at,
                    )
                )
                if rows:
                    statement = sqlite_insert(pois)
                    statement = statement.on_conflict_do_update(
                        index_elements=[pois.c.id],
                        set_={
                            "category": statement.excluded.category,
                            "name": statement.excluded.name,
                            "latitude": statement.excluded.latitude,
                            "longitude": statement.excluded.longitude,
                            "tags_json": statement.excluded.tags_json,
                            "is_downloaded": True,
                            "region_id": region_id,
                            "fetched_at": statement.excluded.fetched_at,
                            "expires_at": None,
                        },
                    )
                    await conn.execute(statement, rows)
            logger.info(f"Saved downloaded region {stored.name} ({len(rows)} POIs)")

        def _on_error(exc: Exception) -> None:
            logger.error(f"Failed to save downloaded region {stored.name}: {exc}")
            failures.append(exc)

        await self._writes.enqueue(_write, description=f"download region {stored.name}", on_error=_on_error)
        return None if failures else stored

    async def list_downloaded_regions(self) -> list[DownloadedRegion]:
        try:
            async with self.engine.connect() as conn:
                rows = (
                    await conn.execute(select(downloaded_regions).order_by(downloaded_regions.c.downloaded_at))
                ).mappings().all()
        except Exception as exc:
            logger.warning(f"Failed to list downloaded regions: {exc}")
            return []
        return [
            DownloadedRegion(
                id=row["id"],
                name=row["name"],
                bounds=BoundingBox(south=row["south"], west=row["west"], north=row["north"], east=row["east"]),
                poi_count=row["poi_count"],
                downloaded_at=row["downloaded_at"],
            )
            for row in rows
        ]

    def delete_downloaded_region(self, region_id: str) -> asyncio.Task:
        async def _write() -> None:
            async with self.engine.begin() as conn:
                await conn.execute(delete(pois).where(pois.c.region_id == region_id))
                await conn.execute(delete(downloaded_regions).where(downloaded_regions.c.id == region_id))
            logger.info(f"Deleted downloaded region {region_id}")

        return self._writes.enqueue(_write, description=f"delete region {region_id}")

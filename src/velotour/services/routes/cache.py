"""Content-addressed cache of parsed routes in the local store."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncEngine

from ...models.domain import CacheStats, ParsedRoute, RouteBounds, RoutePoint, RouteVariant
from ...persistence.database import route_cache_routes, route_cache_segments, utcnow
from ...utils.concurrency import WriteQueue

logger = logging.getLogger(__name__)


def compute_content_hash(content: str) -> str:
    """Deterministic fingerprint of a track source, used only for cache validity."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _encode_points(points: tuple[RoutePoint, ...]) -> str:
    return json.dumps(
        [[p.latitude, p.longitude, p.elevation, p.distance_from_start] for p in points],
        separators=(",", ":"),
    )


def _decode_points(payload: str) -> tuple[RoutePoint, ...]:
    return tuple(
        RoutePoint(latitude=lat, longitude=lon, elevation=ele, distance_from_start=dist)
        for lat, lon, ele, dist in json.loads(payload)
    )


class RouteCacheRepository:
    """Stores parsed routes keyed by route key and validated by content hash.

    Writes (``put``, ``invalidate``, ``clear_all``) are serialized through a
    single queue and return the queued task; a failed write is logged and
    never raised. Reads degrade to "not cached" on error.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._writes = WriteQueue(name="route-cache")

    async def is_cached(self, route_key: str, content_hash: str) -> bool:
        try:
            async with self.engine.connect() as conn:
                stored = await conn.scalar(
                    select(route_cache_routes.c.content_hash).where(route_cache_routes.c.route_key == route_key)
                )
        except Exception as exc:
            logger.warning(f"Route cache lookup failed for {route_key}: {exc}")
            return False
        return stored is not None and stored == content_hash

    async def get(self, route_key: str) -> Optional[ParsedRoute]:
        try:
            async with self.engine.connect() as conn:
                row = (
                    await conn.execute(select(route_cache_routes).where(route_cache_routes.c.route_key == route_key))
                ).mappings().first()
                if row is None:
                    return None
                segment_rows = (
                    await conn.execute(
                        select(route_cache_segments.c.points_json)
                        .where(route_cache_segments.c.route_key == route_key)
                        .order_by(route_cache_segments.c.segment_index)
                    )
                ).scalars().all()
        except Exception as exc:
            logger.warning(f"Failed to read cached route {route_key}: {exc}")
            return None

        segments = tuple(_decode_points(payload) for payload in segment_rows)
        bounds = json.loads(row["bounds_json"])
        return ParsedRoute(
            id=row["route_key"],
            source_id=row["source_id"],
            variant=RouteVariant(row["variant"]),
            name=row["name"],
            points=tuple(point for segment in segments for point in segment),
            segments=segments,
            total_distance=row["total_distance"],
            elevation_gain=row["elevation_gain"],
            elevation_loss=row["elevation_loss"],
            bounds=RouteBounds(**bounds),
        )

    def put(self, route: ParsedRoute, content_hash: str) -> asyncio.Task:
        """Queue an atomic replace of the route row and all of its segments."""

        async def _write() -> None:
            route_row = {
                "route_key": route.id,
                "source_id": route.source_id,
                "variant": route.variant.value,
                "name": route.name,
                "total_distance": route.total_distance,
                "elevation_gain": route.elevation_gain,
                "elevation_loss": route.elevation_loss,
                "bounds_json": json.dumps(
                    {
                        "min_lat": route.bounds.min_lat,
                        "max_lat": route.bounds.max_lat,
                        "min_lon": route.bounds.min_lon,
                        "max_lon": route.bounds.max_lon,
                    }
                ),
                "parsed_at": utcnow(),
                "content_hash": content_hash,
            }
            segment_rows = [
                {"route_key": route.id, "segment_index": index, "points_json": _encode_points(segment)}
                for index, segment in enumerate(route.segments)
            ]
            async with self.engine.begin() as conn:
                await conn.execute(delete(route_cache_routes).where(route_cache_routes.c.route_key == route.id))
                await conn.execute(delete(route_cache_segments).where(route_cache_segments.c.route_key == route.id))
                await conn.execute(insert(route_cache_routes), [route_row])
                if segment_rows:
                    await conn.execute(insert(route_cache_segments), segment_rows)
            logger.info(f"Cached route {route.id} ({len(segment_rows)} segments, {len(route.points)} points)")

        return self._writes.enqueue(_write, description=f"cache route {route.id}")

    def invalidate(self, route_key: str) -> asyncio.Task:
        async def _delete() -> None:
            async with self.engine.begin() as conn:
                await conn.execute(delete(route_cache_segments).where(route_cache_segments.c.route_key == route_key))
                await conn.execute(delete(route_cache_routes).where(route_cache_routes.c.route_key == route_key))
            logger.info(f"Invalidated cached route {route_key}")

        return self._writes.enqueue(_delete, description=f"invalidate route {route_key}")

    def clear_all(self) -> asyncio.Task:
        async def _clear() -> None:
            async with self.engine.begin() as conn:
                await conn.execute(delete(route_cache_segments))
                await conn.execute(delete(route_cache_routes))
            logger.info("Cleared route cache")

        return self._writes.enqueue(_clear, description="clear route cache")

    async def drain(self) -> None:
        await self._writes.drain()

    async def cached_route_keys(self) -> list[str]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(select(route_cache_routes.c.route_key).order_by(route_cache_routes.c.route_key))
                return list(result.scalars().all())
        except Exception as exc:
            logger.warning(f"Failed to list cached routes: {exc}")
            return []

    async def stats(self) -> CacheStats:
        try:
            async with self.engine.connect() as conn:
                route_count = await conn.scalar(select(func.count()).select_from(route_cache_routes))
                segment_count = await conn.scalar(select(func.count()).select_from(route_cache_segments))
                oldest = await conn.scalar(select(func.min(route_cache_routes.c.parsed_at)))
        except Exception as exc:
            logger.warning(f"Failed to read route cache stats: {exc}")
            return CacheStats(route_count=0, segment_count=0)
        return CacheStats(route_count=route_count or 0, segment_count=segment_count or 0, oldest_parsed_at=oldest)

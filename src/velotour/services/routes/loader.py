"""Route loading with content-hash cache validation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Protocol

from .cache import RouteCacheRepository, compute_content_hash
from .catalog import ROUTE_CATALOG, RouteCatalogEntry, get_entry, route_key, track_file_key
from .gpx_parser import gpx_to_geometry, parse_gpx
from ...config import settings
from ...models.domain import ParsedRoute, RouteVariant

logger = logging.getLogger(__name__)


class TrackSource(Protocol):
    async def read(self, file_key: str) -> Optional[str]:
        """Return the raw GPX text for ``file_key`` or None when it does not exist."""


class DirectoryTrackSource:
    """Reads bundled GPX tracks from ``<root>/<file_key>.gpx``."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root) if root is not None else settings.route_assets_dir

    async def read(self, file_key: str) -> Optional[str]:
        path = self.root / f"{file_key}.gpx"
        if not path.is_file():
            logger.warning(f"GPX asset not found: {path}")
            return None
        return await asyncio.to_thread(path.read_text, encoding="utf-8")


class RouteLoader:
    def __init__(self, source: TrackSource, cache: RouteCacheRepository) -> None:
        self.source = source
        self.cache = cache

    def _decorate(self, route: ParsedRoute, entry: RouteCatalogEntry, variant: RouteVariant) -> ParsedRoute:
        return replace(route, name=entry.display_name(variant), color=entry.color_for(variant))

    async def load(self, source_id: int, variant: RouteVariant) -> Optional[ParsedRoute]:
        """Load a route, preferring the cached parse when the source is unchanged.

        Returns None when the track cannot be resolved or parsed; nothing is
        raised to the caller.
        """
        variant = RouteVariant(variant)
        entry = get_entry(source_id)
        file_key = track_file_key(source_id, variant)
        key = route_key(source_id, variant)
        if entry is None or file_key is None:
            logger.warning(f"No bundled track for EV{source_id} {variant.value}")
            return None

        try:
            content = await self.source.read(file_key)
        except Exception as exc:
            logger.error(f"Failed to read GPX for {key}: {exc}")
            return None
        if content is None:
            return None

        content_hash = compute_content_hash(content)
        if await self.cache.is_cached(key, content_hash):
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug(f"Route cache hit for {key}")
                return self._decorate(cached, entry, variant)

        try:
            geometry = gpx_to_geometry(parse_gpx(content), fallback_name=key)
        except Exception as exc:
            logger.error(f"Failed to parse GPX for EV{source_id} {variant.value}: {exc}")
            return None

        route = ParsedRoute(
            id=key,
            source_id=source_id,
            variant=variant,
            name=entry.display_name(variant),
            points=tuple(geometry.points),
            segments=tuple(tuple(segment) for segment in geometry.segments),
            total_distance=geometry.total_distance,
            elevation_gain=geometry.elevation_gain,
            elevation_loss=geometry.elevation_loss,
            bounds=geometry.bounds,
        )
        logger.info(
            f"Parsed {key}: {len(route.points)} points, {len(route.segments)} segments, "
            f"{route.total_distance:.1f} km"
        )
        # fire-and-forget, the write queue logs failures
        self.cache.put(route, content_hash)
        return self._decorate(route, entry, variant)

    async def load_from_cache(self, source_id: int, variant: RouteVariant) -> Optional[ParsedRoute]:
        variant = RouteVariant(variant)
        entry = get_entry(source_id)
        if entry is None:
            return None
        cached = await self.cache.get(route_key(source_id, variant))
        if cached is None:
            return None
        return self._decorate(cached, entry, variant)

    async def load_all(self) -> list[ParsedRoute]:
        routes: list[ParsedRoute] = []
        for source_id, entry in ROUTE_CATALOG.items():
            for variant in entry.variants:
                route = await self.load(source_id, variant)
                if route is not None:
                    routes.append(route)
        return routes

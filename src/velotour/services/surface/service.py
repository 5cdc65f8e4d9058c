"""Road-surface querying and segment merging along a route."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional, Sequence

from .classification import WayIndex, build_surface_query, classify_points
from ..overpass_client import GeodataServiceError, OverpassClient
from ...config import settings
from ...models.domain import RoutePoint, RouteSurfaceData, SurfaceSegment, SurfaceSummary, SurfaceType
from ...utils.concurrency import CancellationToken

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def chunk_bounds(total_points: int, chunk_size: int) -> list[tuple[int, int]]:
    """``(start, stop)`` slices of a point array; every chunk after the first
    starts one point early so neighbouring chunks share a vertex."""

    bounds = []
    for i in range(0, total_points, chunk_size):
        start = i - 1 if i > 0 else i
        bounds.append((start, min(i + chunk_size, total_points)))
    return bounds


def merge_adjacent_segments(segments: Sequence[SurfaceSegment]) -> list[SurfaceSegment]:
    """Concatenate consecutive segments of the same surface type.

    When the later segment starts on the vertex that closes the earlier
    one, that duplicated vertex is dropped.
    """
    merged: list[SurfaceSegment] = []
    for segment in segments:
        if merged and merged[-1].surface_type == segment.surface_type:
            current = merged[-1]
            coordinates = segment.coordinates
            if coordinates and current.coordinates and coordinates[0] == current.coordinates[-1]:
                coordinates = coordinates[1:]
            current.coordinates.extend(coordinates)
            current.end_index = segment.end_index
        else:
            merged.append(replace(segment, coordinates=list(segment.coordinates)))
    return merged


def summarize_segments(segments: Sequence[SurfaceSegment]) -> SurfaceSummary:
    """Rounded share (0-100) of classified route points per surface type.

    Each point index is counted once, so a vertex shared by two chunks does
    not count twice. Percentages are rounded independently.
    """
    by_index: dict[int, SurfaceType] = {}
    for segment in segments:
        for index in range(segment.start_index, segment.end_index + 1):
            by_index[index] = segment.surface_type

    total = len(by_index)
    if total == 0:
        return SurfaceSummary()
    counts = {surface: 0 for surface in SurfaceType}
    for surface in by_index.values():
        counts[surface] += 1
    return SurfaceSummary(
        paved=round(counts[SurfaceType.PAVED] / total * 100),
        gravel=round(counts[SurfaceType.GRAVEL] / total * 100),
        unpaved=round(counts[SurfaceType.UNPAVED] / total * 100),
        unknown=round(counts[SurfaceType.UNKNOWN] / total * 100),
    )


class SurfaceQueryEngine:
    """Classifies route points by road surface using Overpass way data.

    Results are kept per route id for the lifetime of the engine.
    """

    def __init__(
        self,
        client: OverpassClient | None = None,
        chunk_size: int | None = None,
        buffer_km: float | None = None,
        match_threshold_deg: float | None = None,
    ) -> None:
        self.client = client or OverpassClient()
        self.chunk_size = chunk_size if chunk_size is not None else settings.surface_chunk_size
        self.buffer_km = buffer_km if buffer_km is not None else settings.surface_buffer_km
        self.match_threshold_deg = (
            match_threshold_deg if match_threshold_deg is not None else settings.surface_match_threshold_deg
        )
        self._cache: dict[str, RouteSurfaceData] = {}

    def cached(self, route_id: str) -> Optional[RouteSurfaceData]:
        return self._cache.get(route_id)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def query_chunk(self, points: Sequence[RoutePoint], index_offset: int = 0) -> list[SurfaceSegment]:
        """Surface segments for one chunk; any service failure yields an empty list."""

        if len(points) < 2:
            return []
        query = build_surface_query(points, self.buffer_km, timeout_seconds=int(self.client.timeout))
        try:
            payload = await self.client.query(query)
        except GeodataServiceError as exc:
            logger.warning(f"Surface query failed for points {index_offset}-{index_offset + len(points) - 1}: {exc}")
            return []
        return classify_points(points, WayIndex.from_payload(payload), self.match_threshold_deg, index_offset)

    async def query_for_route(
        self,
        route_id: str,
        points: Sequence[RoutePoint],
        on_progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> RouteSurfaceData:
        if route_id in self._cache:
            return self._cache[route_id]

        chunks = chunk_bounds(len(points), self.chunk_size)
        logger.info(f"Querying surface data for {route_id} in {len(chunks)} chunks")

        raw_segments: list[SurfaceSegment] = []
        for done, (start, stop) in enumerate(chunks, start=1):
            if token is not None and token.cancelled:
                break
            raw_segments.extend(await self.query_chunk(points[start:stop], index_offset=start))
            if on_progress is not None:
                on_progress(done, len(chunks))
        # a cancel during the final chunk also skips the cache
        cancelled = token is not None and token.cancelled

        data = RouteSurfaceData(
            route_id=route_id,
            segments=merge_adjacent_segments(raw_segments),
            summary=summarize_segments(raw_segments),
        )
        if cancelled:
            logger.info(f"Surface query for {route_id} cancelled after {len(raw_segments)} raw segments")
            return data

        self._cache[route_id] = data
        logger.info(f"Surface data complete for {route_id}: {len(data.segments)} segments, summary={data.summary}")
        return data

"""Category, bounds and render-cap filtering of the active POI set."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from .categories import HIDDEN_BY_DEFAULT, parse_categories
from ..geospatial import box_center, boxes_overlap, point_in_bounds, union_bounds
from ...config import settings
from ...models.domain import POI, BoundingBox, POICategory

logger = logging.getLogger(__name__)

RegionProvider = Callable[[], Iterable[BoundingBox]]


def filter_by_categories(
    pois: Iterable[POI],
    categories: Sequence[POICategory],
    hidden: frozenset[POICategory] = HIDDEN_BY_DEFAULT,
) -> list[POI]:
    """An explicit selection keeps exactly those categories; no selection
    keeps everything except the hidden-by-default categories."""
    if categories:
        wanted = set(categories)
        return [poi for poi in pois if poi.category in wanted]
    return [poi for poi in pois if poi.category not in hidden]


def nearest_to_center(pois: Sequence[POI], center: tuple[float, float], limit: int) -> list[POI]:
    """The ``limit`` POIs closest to ``center`` (lat, lon), nearest first.

    Ranking uses squared planar distance in degrees; ties keep input order.
    """
    if len(pois) <= limit:
        return list(pois)
    lats = np.fromiter((poi.latitude for poi in pois), dtype=float, count=len(pois))
    lons = np.fromiter((poi.longitude for poi in pois), dtype=float, count=len(pois))
    squared = (lats - center[0]) ** 2 + (lons - center[1]) ** 2
    order = np.argsort(squared, kind="stable")[:limit]
    return [pois[int(i)] for i in order]


class ViewportFilter:
    """Turns the active POI set into the list that should be rendered."""

    def __init__(
        self,
        region_provider: RegionProvider | None = None,
        max_rendered: int | None = None,
        hidden_categories: Iterable[str] | None = None,
    ) -> None:
        self._regions = region_provider or (lambda: ())
        self.max_rendered = max_rendered if max_rendered is not None else settings.max_rendered_pois
        hidden = hidden_categories if hidden_categories is not None else settings.hidden_categories
        self.hidden = frozenset(parse_categories(hidden))
        self._last_result: list[POI] = []

    @property
    def last_result(self) -> list[POI]:
        return list(self._last_result)

    def effective_bounds(self, viewport: BoundingBox) -> BoundingBox:
        """Bounds of downloaded regions touching the viewport, else the viewport."""
        overlapping = [region for region in self._regions() if boxes_overlap(region, viewport)]
        return union_bounds(overlapping) or viewport

    def filter(
        self,
        pois: Sequence[POI],
        categories: Sequence[POICategory] = (),
        bounds: Optional[BoundingBox] = None,
        is_loading: bool = False,
    ) -> list[POI]:
        if is_loading:
            return list(self._last_result)

        visible = filter_by_categories(pois, categories, self.hidden)
        if bounds is not None:
            area = self.effective_bounds(bounds)
            visible = [poi for poi in visible if point_in_bounds(poi.latitude, poi.longitude, area)]
            if len(visible) > self.max_rendered:
                logger.debug(f"Capping {len(visible)} POIs to the nearest {self.max_rendered}")
                visible = nearest_to_center(visible, box_center(bounds), self.max_rendered)

        self._last_result = visible
        return list(visible)


class FilterThrottle:
    """Delivers filter results to ``on_update`` at most once per ``delay``.

    A newer result replaces one still waiting, so delivery follows arrival
    order. The first non-empty result is delivered immediately.
    """

    def __init__(self, on_update: Callable[[list[POI]], None], delay: float | None = None) -> None:
        self.on_update = on_update
        self.delay = delay if delay is not None else settings.filter_update_delay_seconds
        self.current: list[POI] = []
        self._has_delivered_non_empty = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def _deliver(self, result: list[POI]) -> None:
        self._handle = None
        self.current = result
        if result:
            self._has_delivered_non_empty = True
        self.on_update(result)

    def publish(self, result: list[POI]) -> None:
        self.cancel()
        if result and not self._has_delivered_non_empty:
            self._deliver(result)
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._deliver, result)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

"""Viewport-driven POI fetching with coalescing and cancellation."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, Union

from .store import POIStore
from ..geospatial import bounds_nearly_equal
from ...config import settings
from ...models.domain import POI, BoundingBox, POICategory, ViewportBounds
from ...utils.concurrency import CancellationToken

logger = logging.getLogger(__name__)


class ViewportSource(Protocol):
    async def fetch_for_viewport(
        self,
        bbox: BoundingBox,
        categories: Sequence[POICategory] = (),
        include_remote: bool = True,
        token: Optional[CancellationToken] = None,
    ) -> list[POI]:
        ...


def to_bounding_box(bounds: Union[BoundingBox, ViewportBounds]) -> BoundingBox:
    if isinstance(bounds, ViewportBounds):
        return bounds.to_bounding_box()
    return bounds


class POIFetcher:
    """Loads POIs for the visible map area into a ``POIStore``.

    At most one fetch is in flight. A request arriving meanwhile replaces
    the pending bounds and cancels the in-flight fetch; once that fetch
    settles, the latest pending bounds are fetched next. Only a fetch that
    was not superseded commits its result, and the loading flag is cleared
    only by the fetch that currently owns it.
    """

    def __init__(
        self,
        store: POIStore,
        source: ViewportSource,
        epsilon: float | None = None,
    ) -> None:
        self.store = store
        self.source = source
        self.epsilon = epsilon if epsilon is not None else settings.poi_viewport_epsilon_deg
        self.categories: tuple[POICategory, ...] = ()
        self.include_remote = True
        self._in_flight = False
        self._pending_bounds: Optional[BoundingBox] = None
        self._token: Optional[CancellationToken] = None
        self._generation = 0
        self._last_requested: Optional[BoundingBox] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending_bounds(self) -> Optional[BoundingBox]:
        return self._pending_bounds

    def set_filters(self, categories: Sequence[POICategory], include_remote: bool = True) -> None:
        """Change what is fetched; the next request is never skipped as a duplicate."""
        categories = tuple(categories)
        if categories != self.categories or include_remote != self.include_remote:
            self.categories = categories
            self.include_remote = include_remote
            self._last_requested = None

    def cancel(self) -> None:
        self._pending_bounds = None
        self._last_requested = None
        self._generation += 1
        if self._token is not None:
            self._token.cancel()
        self.store.set_loading(False)

    async def load_for_viewport(self, bounds: Union[BoundingBox, ViewportBounds], force: bool = False) -> None:
        bbox = to_bounding_box(bounds)

        if self.store.is_download_protected():
            logger.debug("Skipping viewport fetch during download protection")
            return
        if not force and self._last_requested is not None and bounds_nearly_equal(
            bbox, self._last_requested, self.epsilon
        ):
            logger.debug("Skipping viewport fetch for unchanged bounds")
            return

        self._generation += 1
        self._last_requested = bbox

        if self._in_flight:
            self._pending_bounds = bbox
            if self._token is not None:
                self._token.cancel()
            return

        self._in_flight = True
        try:
            next_bounds: Optional[BoundingBox] = bbox
            while next_bounds is not None:
                self._pending_bounds = None
                await self._fetch(next_bounds, self._generation)
                next_bounds = self._pending_bounds
        finally:
            self._in_flight = False

    def _forget_request(self, generation: int) -> None:
        # an uncommitted viewport must not be skipped as a duplicate next time
        if generation == self._generation:
            self._last_requested = None

    async def _fetch(self, bbox: BoundingBox, generation: int) -> None:
        token = CancellationToken()
        self._token = token
        self.store.set_loading(True)
        try:
            if token.cancelled:
                return
            pois = await self.source.fetch_for_viewport(
                bbox,
                categories=self.categories,
                include_remote=self.include_remote,
                token=token,
            )
            if token.cancelled:
                logger.debug(f"Discarding superseded viewport result ({len(pois)} POIs)")
                return
            if self.store.is_download_protected():
                logger.debug("Discarding viewport result during download protection")
                self._forget_request(generation)
                return
            self.store.set_pois(pois)
            logger.info(f"Loaded {len(pois)} POIs for viewport")
        except Exception as exc:
            logger.warning(f"Viewport POI fetch failed: {exc}")
            self.store.set_error(str(exc))
            self._forget_request(generation)
        finally:
            if generation == self._generation:
                self.store.set_loading(False)

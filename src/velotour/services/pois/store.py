"""In-memory active POI set for the current viewport."""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Callable, Iterable, Optional

from ...models.domain import POI, POICategory

logger = logging.getLogger(__name__)


class POIStore:
    """Holds the POIs of the current viewport.

    The active set is replaced wholesale on every commit; the only additive
    path is ``add_pois`` for freshly downloaded regions. A short download
    protection window keeps viewport fetches from replacing those POIs.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._pois: list[POI] = []
        self._ids: set[str] = set()
        self._by_category: dict[POICategory, list[POI]] = {}
        self.is_loading = False
        self.error: Optional[str] = None
        self._protected_until = 0.0

    @property
    def pois(self) -> list[POI]:
        return list(self._pois)

    def __len__(self) -> int:
        return len(self._pois)

    def _reindex(self) -> None:
        self._ids = {poi.id for poi in self._pois}
        by_category: dict[POICategory, list[POI]] = {}
        for poi in self._pois:
            by_category.setdefault(poi.category, []).append(poi)
        self._by_category = by_category

    def set_pois(self, pois: Iterable[POI]) -> None:
        self._pois = list(pois)
        self._reindex()
        self.error = None

    def add_pois(self, pois: Iterable[POI]) -> int:
        """Append POIs whose ids are not yet present; returns how many were added."""
        added = 0
        for poi in pois:
            if poi.id in self._ids:
                continue
            self._pois.append(poi)
            self._ids.add(poi.id)
            self._by_category.setdefault(poi.category, []).append(poi)
            added += 1
        return added

    def clear(self) -> None:
        self._pois = []
        self._reindex()

    def contains(self, poi_id: str) -> bool:
        return poi_id in self._ids

    def by_category(self, category: POICategory) -> list[POI]:
        return list(self._by_category.get(category, ()))

    def counts_by_category(self) -> dict[str, int]:
        counts = Counter(poi.category.value for poi in self._pois)
        return dict(sorted(counts.items()))

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading

    def set_error(self, message: Optional[str]) -> None:
        self.error = message

    def set_download_protection(self, seconds: float) -> None:
        self._protected_until = self._clock() + seconds
        logger.info(f"Download protection active for {seconds:.1f}s")

    def is_download_protected(self) -> bool:
        return self._clock() < self._protected_until

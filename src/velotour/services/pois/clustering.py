"""Zoom-aware grid clustering of POIs."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ...config import settings
from ...models.domain import POI, Cluster, ClusterResult


def cell_size_for_zoom(zoom: float, base_grid: float, reference_zoom: int) -> float:
    """Grid cell edge in degrees; halves with every zoom level above ``reference_zoom``."""
    return base_grid / (2 ** (zoom - reference_zoom))


def cluster_pois(
    pois: Sequence[POI],
    zoom: float,
    max_zoom: int | None = None,
    base_grid: float | None = None,
    reference_zoom: int | None = None,
) -> ClusterResult:
    """Group POIs sharing a grid cell into clusters.

    Cells holding a single POI leave it unclustered. At or above
    ``max_zoom`` nothing is clustered. Output depends only on the set of
    POIs: clusters come out sorted by cell and centroids are exact means.
    """
    max_zoom = max_zoom if max_zoom is not None else settings.cluster_max_zoom
    base_grid = base_grid if base_grid is not None else settings.cluster_base_grid_deg
    reference_zoom = reference_zoom if reference_zoom is not None else settings.cluster_reference_zoom

    if zoom >= max_zoom or not pois:
        return ClusterResult(clusters=[], unclustered=list(pois))

    cell = cell_size_for_zoom(zoom, base_grid, reference_zoom)
    lat_cells = np.floor(np.array([poi.latitude for poi in pois], dtype=float) / cell).astype(np.int64)
    lon_cells = np.floor(np.array([poi.longitude for poi in pois], dtype=float) / cell).astype(np.int64)

    cells: dict[tuple[int, int], list[POI]] = {}
    for poi, lat_cell, lon_cell in zip(pois, lat_cells.tolist(), lon_cells.tolist()):
        cells.setdefault((lat_cell, lon_cell), []).append(poi)

    clusters: list[Cluster] = []
    singles: set[str] = set()
    for key in sorted(cells):
        members = cells[key]
        if len(members) == 1:
            singles.add(members[0].id)
            continue
        count = len(members)
        clusters.append(
            Cluster(
                id=f"cluster_{key[0] * cell:.6f}_{key[1] * cell:.6f}",
                coordinate=(
                    math.fsum(poi.longitude for poi in members) / count,
                    math.fsum(poi.latitude for poi in members) / count,
                ),
                point_count=count,
                member_ids=tuple(poi.id for poi in members),
            )
        )

    unclustered = [poi for poi in pois if poi.id in singles]
    return ClusterResult(clusters=clusters, unclustered=unclustered)

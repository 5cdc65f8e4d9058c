"""Catalog of bundled EuroVelo routes: names, colors and available variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...models.domain import RouteVariant


@dataclass(slots=True, frozen=True)
class RouteCatalogEntry:
    source_id: int
    name: str
    full_color: str
    developed_color: str
    advertised_distance: str
    countries: int
    has_developed: bool = True

    def color_for(self, variant: RouteVariant) -> str:
        return self.developed_color if variant is RouteVariant.DEVELOPED else self.full_color

    def display_name(self, variant: RouteVariant) -> str:
        suffix = " (Developed)" if variant is RouteVariant.DEVELOPED else ""
        return f"EV{self.source_id} - {self.name}{suffix}"

    @property
    def variants(self) -> tuple[RouteVariant, ...]:
        if self.has_developed:
            return (RouteVariant.FULL, RouteVariant.DEVELOPED)
        return (RouteVariant.FULL,)


ROUTE_CATALOG: dict[int, RouteCatalogEntry] = {
    entry.source_id: entry
    for entry in (
        RouteCatalogEntry(1, "Atlantic Coast Route", "#42A5F5", "#1565C0", "11,150 km", 6, has_developed=False),
        RouteCatalogEntry(2, "Capitals Route", "#66BB6A", "#2E7D32", "5,500 km", 8),
        RouteCatalogEntry(3, "Pilgrims Route", "#FFA726", "#EF6C00", "5,300 km", 7),
        RouteCatalogEntry(4, "Central Europe Route", "#AB47BC", "#7B1FA2", "5,100 km", 11),
        RouteCatalogEntry(5, "Via Romea Francigena", "#26C6DA", "#00838F", "3,200 km", 5),
        RouteCatalogEntry(6, "Atlantic - Black Sea", "#EF5350", "#C62828", "4,450 km", 10),
        RouteCatalogEntry(7, "Sun Route", "#FFEE58", "#F9A825", "7,700 km", 7),
        RouteCatalogEntry(8, "Mediterranean Route", "#8D6E63", "#5D4037", "7,500 km", 11),
        RouteCatalogEntry(9, "Baltic - Adriatic", "#78909C", "#455A64", "2,050 km", 9),
        RouteCatalogEntry(10, "Baltic Sea Cycle Route", "#EC407A", "#AD1457", "9,000 km", 9),
        RouteCatalogEntry(11, "East Europe Route", "#4CAF50", "#388E3C", "5,984 km", 9),
        RouteCatalogEntry(12, "North Sea Cycle Route", "#29B6F6", "#0277BD", "5,932 km", 7),
        RouteCatalogEntry(13, "Iron Curtain Trail", "#FF7043", "#E65100", "10,400 km", 20),
        RouteCatalogEntry(14, "Waters of Central Europe", "#5C6BC0", "#303F9F", "1,125 km", 5),
        RouteCatalogEntry(15, "Rhine Cycle Route", "#26A69A", "#00695C", "1,500 km", 4),
        RouteCatalogEntry(17, "Rhone Cycle Route", "#C0CA33", "#9E9D24", "1,115 km", 2),
        RouteCatalogEntry(19, "Meuse Cycle Route", "#FF5722", "#D84315", "1,050 km", 3),
    )
}


def route_key(source_id: int, variant: RouteVariant) -> str:
    return f"ev{source_id}-{RouteVariant(variant).value}"


def get_entry(source_id: int) -> Optional[RouteCatalogEntry]:
    return ROUTE_CATALOG.get(source_id)


def track_file_key(source_id: int, variant: RouteVariant) -> Optional[str]:
    """Asset name of the GPX track, or None when the route/variant is not bundled."""

    entry = ROUTE_CATALOG.get(source_id)
    if entry is None or variant not in entry.variants:
        return None
    if variant is RouteVariant.DEVELOPED:
        return f"{source_id}-developed"
    return str(source_id)

"""POI category catalog: priorities, groups, colors and OSM tag mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from ...models.domain import POICategory, POIGroup, POIPriority


@dataclass(slots=True, frozen=True)
class CategoryConfig:
    category: POICategory
    name: str
    osm_key: str
    osm_value: str


CATEGORY_CONFIGS: tuple[CategoryConfig, ...] = (
    CategoryConfig(POICategory.CAMPSITE, "Campsite", "tourism", "camp_site"),
    CategoryConfig(POICategory.MOTORHOME_SPOT, "Motorhome spot", "tourism", "caravan_site"),
    CategoryConfig(POICategory.CARAVAN_SITE, "Caravan site", "tourism", "caravan_site"),
    CategoryConfig(POICategory.WILD_CAMPING, "Wild camping", "tourism", "camp_pitch"),
    CategoryConfig(POICategory.SERVICE_AREA, "Service area", "amenity", "sanitary_dump_station"),
    CategoryConfig(POICategory.DRINKING_WATER, "Drinking water", "amenity", "drinking_water"),
    CategoryConfig(POICategory.TOILET, "Toilet", "amenity", "toilets"),
    CategoryConfig(POICategory.SHOWER, "Shower", "amenity", "shower"),
    CategoryConfig(POICategory.LAUNDRY, "Laundry", "shop", "laundry"),
    CategoryConfig(POICategory.HOTEL, "Hotel", "tourism", "hotel"),
    CategoryConfig(POICategory.HOSTEL, "Hostel", "tourism", "hostel"),
    CategoryConfig(POICategory.GUEST_HOUSE, "Guest house", "tourism", "guest_house"),
    CategoryConfig(POICategory.SHELTER, "Shelter", "amenity", "shelter"),
    CategoryConfig(POICategory.BIKE_SHOP, "Bike shop", "shop", "bicycle"),
    CategoryConfig(POICategory.BIKE_REPAIR, "Bike repair station", "amenity", "bicycle_repair_station"),
    CategoryConfig(POICategory.RESTAURANT, "Restaurant", "amenity", "restaurant"),
    CategoryConfig(POICategory.SUPERMARKET, "Supermarket", "shop", "supermarket"),
    CategoryConfig(POICategory.PICNIC_SITE, "Picnic site", "leisure", "picnic_table"),
    CategoryConfig(POICategory.HOSPITAL, "Hospital", "amenity", "hospital"),
    CategoryConfig(POICategory.PHARMACY, "Pharmacy", "amenity", "pharmacy"),
    CategoryConfig(POICategory.POLICE, "Police", "amenity", "police"),
)

CATEGORY_PRIORITY: dict[POICategory, POIPriority] = {
    POICategory.CAMPSITE: POIPriority.ESSENTIAL,
    POICategory.WILD_CAMPING: POIPriority.ESSENTIAL,
    POICategory.SHELTER: POIPriority.ESSENTIAL,
    POICategory.BIKE_SHOP: POIPriority.IMPORTANT,
    POICategory.BIKE_REPAIR: POIPriority.IMPORTANT,
    POICategory.DRINKING_WATER: POIPriority.SECONDARY,
    POICategory.TOILET: POIPriority.SECONDARY,
    POICategory.SHOWER: POIPriority.SECONDARY,
    POICategory.HOTEL: POIPriority.SECONDARY,
    POICategory.HOSTEL: POIPriority.SECONDARY,
    POICategory.MOTORHOME_SPOT: POIPriority.SECONDARY,
    POICategory.GUEST_HOUSE: POIPriority.SECONDARY,
    POICategory.CARAVAN_SITE: POIPriority.SECONDARY,
    POICategory.LAUNDRY: POIPriority.SECONDARY,
    POICategory.SERVICE_AREA: POIPriority.SECONDARY,
    POICategory.HOSPITAL: POIPriority.OPTIONAL,
    POICategory.PHARMACY: POIPriority.OPTIONAL,
    POICategory.POLICE: POIPriority.OPTIONAL,
    POICategory.RESTAURANT: POIPriority.OPTIONAL,
    POICategory.SUPERMARKET: POIPriority.OPTIONAL,
    POICategory.PICNIC_SITE: POIPriority.OPTIONAL,
}

CATEGORY_GROUP: dict[POICategory, POIGroup] = {
    POICategory.DRINKING_WATER: POIGroup.SERVICES,
    POICategory.TOILET: POIGroup.SERVICES,
    POICategory.SHOWER: POIGroup.SERVICES,
    POICategory.LAUNDRY: POIGroup.SERVICES,
    POICategory.SERVICE_AREA: POIGroup.SERVICES,
    POICategory.CAMPSITE: POIGroup.REST,
    POICategory.MOTORHOME_SPOT: POIGroup.REST,
    POICategory.WILD_CAMPING: POIGroup.REST,
    POICategory.CARAVAN_SITE: POIGroup.REST,
    POICategory.HOTEL: POIGroup.REST,
    POICategory.HOSTEL: POIGroup.REST,
    POICategory.GUEST_HOUSE: POIGroup.REST,
    POICategory.SHELTER: POIGroup.REST,
    POICategory.PICNIC_SITE: POIGroup.REST,
    POICategory.BIKE_SHOP: POIGroup.BIKE,
    POICategory.BIKE_REPAIR: POIGroup.BIKE,
    POICategory.HOSPITAL: POIGroup.EMERGENCY,
    POICategory.PHARMACY: POIGroup.EMERGENCY,
    POICategory.POLICE: POIGroup.EMERGENCY,
    POICategory.RESTAURANT: POIGroup.FOOD,
    POICategory.SUPERMARKET: POIGroup.FOOD,
}

GROUP_COLORS: dict[POIGroup, str] = {
    POIGroup.SERVICES: "#0EA5E9",
    POIGroup.REST: "#16A34A",
    POIGroup.BIKE: "#F97316",
    POIGroup.EMERGENCY: "#DC2626",
    POIGroup.FOOD: "#6B7280",
}

HIDDEN_BY_DEFAULT: frozenset[POICategory] = frozenset({POICategory.RESTAURANT, POICategory.SUPERMARKET})

# First matching (key, value) wins; several categories share one OSM tag.
_TAG_RULES: tuple[tuple[str, str, POICategory], ...] = (
    ("tourism", "camp_site", POICategory.CAMPSITE),
    ("tourism", "caravan_site", POICategory.MOTORHOME_SPOT),
    ("tourism", "camp_pitch", POICategory.WILD_CAMPING),
    ("amenity", "sanitary_dump_station", POICategory.SERVICE_AREA),
    ("amenity", "drinking_water", POICategory.DRINKING_WATER),
    ("amenity", "toilets", POICategory.TOILET),
    ("amenity", "shower", POICategory.SHOWER),
    ("shop", "laundry", POICategory.LAUNDRY),
    ("tourism", "hotel", POICategory.HOTEL),
    ("tourism", "hostel", POICategory.HOSTEL),
    ("tourism", "guest_house", POICategory.GUEST_HOUSE),
    ("amenity", "shelter", POICategory.SHELTER),
    ("shop", "bicycle", POICategory.BIKE_SHOP),
    ("amenity", "bicycle_repair_station", POICategory.BIKE_REPAIR),
    ("amenity", "restaurant", POICategory.RESTAURANT),
    ("shop", "supermarket", POICategory.SUPERMARKET),
    ("leisure", "picnic_table", POICategory.PICNIC_SITE),
    ("amenity", "hospital", POICategory.HOSPITAL),
    ("amenity", "pharmacy", POICategory.PHARMACY),
    ("amenity", "police", POICategory.POLICE),
)


def category_priority(category: POICategory | str) -> POIPriority:
    """Priority of a category; anything unrecognised is ``secondary``."""
    parsed = parse_category(category)
    if parsed is None:
        return POIPriority.SECONDARY
    return CATEGORY_PRIORITY.get(parsed, POIPriority.SECONDARY)


def category_group(category: POICategory | str) -> POIGroup:
    """Display group of a category; anything unrecognised is ``rest``."""
    parsed = parse_category(category)
    if parsed is None:
        return POIGroup.REST
    return CATEGORY_GROUP.get(parsed, POIGroup.REST)


def category_color(category: POICategory | str) -> str:
    return GROUP_COLORS[category_group(category)]


def is_hidden_by_default(category: POICategory | str, hidden: Iterable[POICategory] = HIDDEN_BY_DEFAULT) -> bool:
    return parse_category(category) in frozenset(hidden)


def parse_category(value: POICategory | str | None) -> Optional[POICategory]:
    if isinstance(value, POICategory):
        return value
    if not value:
        return None
    try:
        return POICategory(str(value).strip().lower())
    except ValueError:
        return None


def parse_categories(values: Iterable[str]) -> list[POICategory]:
    parsed = (parse_category(value) for value in values)
    return [category for category in parsed if category is not None]


def category_from_tags(tags: Mapping[str, str]) -> Optional[POICategory]:
    for key, value, category in _TAG_RULES:
        if tags.get(key) == value:
            return category
    return None


def configs_for(categories: Iterable[POICategory] | None) -> list[CategoryConfig]:
    """Query configs for ``categories``; an empty or missing selection means all."""
    wanted = set(categories or ())
    if not wanted:
        return list(CATEGORY_CONFIGS)
    return [config for config in CATEGORY_CONFIGS if config.category in wanted]

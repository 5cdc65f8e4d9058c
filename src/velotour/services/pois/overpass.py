"""POI queries against the Overpass geodata service."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional, Sequence

from .categories import CategoryConfig, category_from_tags, configs_for
from ..overpass_client import MalformedPayloadError, OverpassClient
from ...config import settings
from ...models.domain import POI, BoundingBox, POICategory

logger = logging.getLogger(__name__)

ESSENTIAL_TAGS: tuple[str, ...] = (
    "name",
    "description",
    "website",
    "phone",
    "contact:phone",
    "contact:website",
    "opening_hours",
    "addr:street",
    "addr:housenumber",
    "addr:city",
    "addr:postcode",
    "addr:country",
    "operator",
    "fee",
    "capacity",
    "toilets",
    "shower",
    "drinking_water",
    "power_supply",
    "internet_access",
    "wheelchair",
    "dog",
    "reservation",
)


def build_multi_category_query(bbox: BoundingBox, configs: Sequence[CategoryConfig], timeout_seconds: int = 25) -> str:
    area = f"{bbox.south},{bbox.west},{bbox.north},{bbox.east}"
    selectors: list[str] = []
    seen: set[tuple[str, str]] = set()
    for config in configs:
        tag = (config.osm_key, config.osm_value)
        if tag in seen:
            continue
        seen.add(tag)
        selectors.append(f'  node["{config.osm_key}"="{config.osm_value}"]({area});')
        selectors.append(f'  way["{config.osm_key}"="{config.osm_value}"]({area});')
    body = "\n".join(selectors)
    return f"[out:json][timeout:{timeout_seconds}];\n(\n{body}\n);\nout center;"


def _remark_message(remark: str) -> str:
    lowered = remark.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return "Query timed out - try a smaller area"
    if "rate" in lowered or "too many" in lowered:
        return "Rate limited - please try again in a few minutes"
    if "memory" in lowered or "out of" in lowered:
        return "Area too large - try a smaller region"
    return f"Map data request failed: {remark}"


def parse_poi_element(element: Any) -> Optional[POI]:
    """A POI for one Overpass element, or None when it has no known category or position."""
    if not isinstance(element, dict):
        return None
    tags = element.get("tags")
    if not isinstance(tags, dict):
        return None
    category = category_from_tags(tags)
    if category is None:
        return None

    center = element.get("center")
    if not isinstance(center, dict):
        center = {}
    try:
        lat = float(element.get("lat", center.get("lat")))
        lon = float(element.get("lon", center.get("lon")))
    except (TypeError, ValueError):
        logger.debug(f"Skipping OSM element {element.get('id')} without a usable position")
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None

    osm_type = element.get("type", "node")
    return POI(
        id=f"{osm_type}/{element.get('id')}",
        name=str(tags.get("name") or ""),
        category=category,
        latitude=lat,
        longitude=lon,
        osm_type=osm_type,
        tags={key: tags[key] for key in ESSENTIAL_TAGS if tags.get(key)},
    )


def parse_overpass_response(payload: dict[str, Any]) -> list[POI]:
    """Convert an Overpass payload to POIs, skipping elements with no known category.

    Raises:
        MalformedPayloadError: when the payload carries a ``remark`` or lacks ``elements``.
    """
    remark = payload.get("remark")
    if remark:
        error = MalformedPayloadError(f"Overpass remark: {remark}")
        error.user_message = _remark_message(str(remark))
        raise error
    elements = payload.get("elements")
    if not isinstance(elements, list):
        raise MalformedPayloadError("Overpass payload is missing an elements list")

    pois: list[POI] = []
    for element in elements:
        poi = parse_poi_element(element)
        if poi is not None:
            pois.append(poi)
    return pois


class OverpassPOISource:
    def __init__(self, client: OverpassClient | None = None, timeout: float | None = None) -> None:
        self.client = client or OverpassClient()
        self.timeout = timeout if timeout is not None else settings.poi_request_timeout_seconds

    async def fetch_pois(self, bbox: BoundingBox, categories: Iterable[POICategory] | None = None) -> list[POI]:
        """POIs inside ``bbox``.

        Raises:
            GeodataServiceError: on a timeout, an HTTP or transport failure, or a
                malformed payload.
        """

        configs = configs_for(categories)
        if not configs:
            return []
        query = build_multi_category_query(bbox, configs, timeout_seconds=int(self.timeout))
        payload = await self.client.query(query, timeout=self.timeout)
        return parse_overpass_response(payload)

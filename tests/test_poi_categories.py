import asyncio

import httpx
import pytest

from velotour.models.domain import BoundingBox, POICategory, POIGroup, POIPriority
from velotour.services.overpass_client import MalformedPayloadError, OverpassClient
from velotour.services.pois.categories import (
    CATEGORY_CONFIGS,
    category_color,
    category_from_tags,
    category_group,
    category_priority,
    configs_for,
    is_hidden_by_default,
    parse_categories,
)
from velotour.services.pois.overpass import (
    OverpassPOISource,
    build_multi_category_query,
    parse_overpass_response,
    parse_poi_element,
)

BBOX = BoundingBox(south=48.0, west=2.0, north=48.1, east=2.1)


def test_every_category_has_a_query_config() -> None:
    assert len(POICategory) == 21
    assert {config.category for config in CATEGORY_CONFIGS} == set(POICategory)


@pytest.mark.parametrize(
    "category, priority, group",
    [
        (POICategory.CAMPSITE, POIPriority.ESSENTIAL, POIGroup.REST),
        (POICategory.BIKE_REPAIR, POIPriority.IMPORTANT, POIGroup.BIKE),
        (POICategory.DRINKING_WATER, POIPriority.SECONDARY, POIGroup.SERVICES),
        (POICategory.PHARMACY, POIPriority.OPTIONAL, POIGroup.EMERGENCY),
        ("restaurant", POIPriority.OPTIONAL, POIGroup.FOOD),
    ],
)
def test_category_priority_and_group(category, priority, group) -> None:
    assert category_priority(category) is priority
    assert category_group(category) is group


def test_unknown_category_falls_back() -> None:
    assert category_priority("fuel_station") is POIPriority.SECONDARY
    assert category_group("fuel_station") is POIGroup.REST
    assert category_color("fuel_station") == category_color(POICategory.CAMPSITE)


def test_hidden_by_default_and_parsing() -> None:
    assert is_hidden_by_default("restaurant")
    assert is_hidden_by_default(POICategory.SUPERMARKET)
    assert not is_hidden_by_default(POICategory.CAMPSITE)
    assert parse_categories(["Campsite", "nonsense", "toilet"]) == [POICategory.CAMPSITE, POICategory.TOILET]


def test_category_from_tags_first_rule_wins() -> None:
    assert category_from_tags({"tourism": "caravan_site"}) is POICategory.MOTORHOME_SPOT
    assert category_from_tags({"amenity": "drinking_water", "name": "Fountain"}) is POICategory.DRINKING_WATER
    assert category_from_tags({"amenity": "bench"}) is None


def test_configs_for_empty_selection_means_all() -> None:
    assert configs_for([]) == list(CATEGORY_CONFIGS)
    assert [c.category for c in configs_for([POICategory.HOTEL])] == [POICategory.HOTEL]


def test_query_deduplicates_shared_tags() -> None:
    configs = configs_for([POICategory.MOTORHOME_SPOT, POICategory.CARAVAN_SITE, POICategory.TOILET])
    query = build_multi_category_query(BBOX, configs, timeout_seconds=25)

    assert query.startswith("[out:json][timeout:25];")
    assert query.count('node["tourism"="caravan_site"](48.0,2.0,48.1,2.1);') == 1
    assert 'way["amenity"="toilets"](48.0,2.0,48.1,2.1);' in query
    assert query.endswith("out center;")


def test_parse_poi_element_node_and_way_center() -> None:
    node = parse_poi_element(
        {
            "type": "node",
            "id": 42,
            "lat": 48.05,
            "lon": 2.05,
            "tags": {"tourism": "camp_site", "name": "Camping du Lac", "fee": "yes", "internal": "x"},
        }
    )
    way = parse_poi_element(
        {"type": "way", "id": 7, "center": {"lat": 48.01, "lon": 2.02}, "tags": {"shop": "bicycle"}}
    )

    assert node.id == "node/42"
    assert node.name == "Camping du Lac"
    assert node.tags == {"name": "Camping du Lac", "fee": "yes"}
    assert way.id == "way/7"
    assert way.osm_type == "way"
    assert (way.latitude, way.longitude) == (48.01, 2.02)
    assert way.category is POICategory.BIKE_SHOP


def test_parse_response_skips_unknown_and_positionless_elements() -> None:
    pois = parse_overpass_response(
        {
            "elements": [
                {"type": "node", "id": 1, "lat": 48.0, "lon": 2.0, "tags": {"amenity": "toilets"}},
                {"type": "node", "id": 2, "lat": 48.0, "lon": 2.0, "tags": {"amenity": "bench"}},
                {"type": "way", "id": 3, "tags": {"amenity": "shelter"}},
            ]
        }
    )
    assert [poi.id for poi in pois] == ["node/1"]


def test_remark_payload_is_malformed_with_user_message() -> None:
    with pytest.raises(MalformedPayloadError) as excinfo:
        parse_overpass_response({"elements": [], "remark": "runtime error: Query timed out in \"query\""})
    assert excinfo.value.user_message == "Query timed out - try a smaller area"

    with pytest.raises(MalformedPayloadError):
        parse_overpass_response({"version": 0.6})


def test_poi_source_raises_on_remark() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"elements": [], "remark": "runtime error: out of memory"})
    )
    source = OverpassPOISource(OverpassClient(base_url="https://overpass.test/api", transport=transport), timeout=5)

    with pytest.raises(MalformedPayloadError) as excinfo:
        asyncio.run(source.fetch_pois(BBOX, [POICategory.CAMPSITE]))
    assert excinfo.value.user_message == "Area too large - try a smaller region"


@pytest.mark.parametrize(
    "element",
    [
        1,
        None,
        {"type": "node", "id": 1, "lat": "n/a", "lon": 2.0, "tags": {"tourism": "camp_site"}},
        {"type": "node", "id": 2, "lat": 48.0, "lon": 2.0, "tags": "tourism=camp_site"},
        {"type": "way", "id": 3, "center": [48.0, 2.0], "tags": {"tourism": "camp_site"}},
        {"type": "node", "id": 4, "lat": "nan", "lon": 2.0, "tags": {"tourism": "camp_site"}},
    ],
)
def test_malformed_elements_are_skipped(element) -> None:
    assert parse_poi_element(element) is None
    assert parse_overpass_response({"elements": [element]}) == []

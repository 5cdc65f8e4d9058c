"""Domain models for routes, points of interest and map viewports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class RouteVariant(str, Enum):
    FULL = "full"
    DEVELOPED = "developed"


class SurfaceType(str, Enum):
    PAVED = "paved"
    GRAVEL = "gravel"
    UNPAVED = "unpaved"
    UNKNOWN = "unknown"


class POICategory(str, Enum):
    DRINKING_WATER = "drinking_water"
    TOILET = "toilet"
    SHOWER = "shower"
    LAUNDRY = "laundry"
    SERVICE_AREA = "service_area"
    CAMPSITE = "campsite"
    MOTORHOME_SPOT = "motorhome_spot"
    WILD_CAMPING = "wild_camping"
    CARAVAN_SITE = "caravan_site"
    HOTEL = "hotel"
    HOSTEL = "hostel"
    GUEST_HOUSE = "guest_house"
    SHELTER = "shelter"
    PICNIC_SITE = "picnic_site"
    BIKE_SHOP = "bike_shop"
    BIKE_REPAIR = "bike_repair"
    HOSPITAL = "hospital"
    PHARMACY = "pharmacy"
    POLICE = "police"
    RESTAURANT = "restaurant"
    SUPERMARKET = "supermarket"


class POIPriority(str, Enum):
    ESSENTIAL = "essential"
    IMPORTANT = "important"
    SECONDARY = "secondary"
    OPTIONAL = "optional"


class POIGroup(str, Enum):
    SERVICES = "services"
    REST = "rest"
    BIKE = "bike"
    EMERGENCY = "emergency"
    FOOD = "food"


class WaypointType(str, Enum):
    START = "start"
    VIA = "via"
    END = "end"


@dataclass(slots=True, frozen=True)
class RoutePoint:
    latitude: float
    longitude: float
    elevation: Optional[float] = None
    distance_from_start: Optional[float] = None


@dataclass(slots=True, frozen=True)
class RouteBounds:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


@dataclass(slots=True, frozen=True)
class ParsedRoute:
    """A parsed long-distance route.

    ``points`` is always the flattening of ``segments``; distances are
    kilometres, elevation deltas metres. ``color`` is presentation data and
    is never persisted.
    """

    id: str
    source_id: int
    variant: RouteVariant
    name: str
    points: tuple[RoutePoint, ...]
    segments: tuple[tuple[RoutePoint, ...], ...]
    total_distance: float
    elevation_gain: float
    elevation_loss: float
    bounds: RouteBounds
    color: str = ""


@dataclass(slots=True, frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float


@dataclass(slots=True, frozen=True)
class ViewportBounds:
    """Map viewport corners as ``(longitude, latitude)`` pairs."""

    north_east: tuple[float, float]
    south_west: tuple[float, float]

    def to_bounding_box(self) -> BoundingBox:
        return BoundingBox(
            south=self.south_west[1],
            west=self.south_west[0],
            north=self.north_east[1],
            east=self.north_east[0],
        )


@dataclass(slots=True)
class POI:
    id: str
    name: str
    category: POICategory
    latitude: float
    longitude: float
    is_downloaded: bool = False
    distance_from_user: Optional[float] = None
    osm_type: str = "node"
    tags: dict = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Cluster:
    id: str
    coordinate: tuple[float, float]
    point_count: int
    member_ids: tuple[str, ...]


@dataclass(slots=True)
class ClusterResult:
    clusters: list[Cluster]
    unclustered: list[POI]


@dataclass(slots=True)
class SurfaceSegment:
    surface_type: SurfaceType
    coordinates: list[tuple[float, float]]
    start_index: int
    end_index: int


@dataclass(slots=True, frozen=True)
class SurfaceSummary:
    paved: int = 0
    gravel: int = 0
    unpaved: int = 0
    unknown: int = 0


@dataclass(slots=True)
class RouteSurfaceData:
    route_id: str
    segments: list[SurfaceSegment]
    summary: SurfaceSummary


@dataclass(slots=True)
class Waypoint:
    id: str
    order: int
    type: WaypointType
    latitude: float
    longitude: float
    name: Optional[str] = None


@dataclass(slots=True)
class DownloadedRegion:
    id: str
    name: str
    bounds: BoundingBox
    poi_count: int = 0
    downloaded_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class CacheStats:
    route_count: int
    segment_count: int
    oldest_parsed_at: Optional[datetime] = None

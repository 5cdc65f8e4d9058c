"""Local SQLite store: table definitions and async engine helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..config import settings

logger = logging.getLogger(__name__)

metadata = MetaData()

route_cache_routes = Table(
    "route_cache_routes",
    metadata,
    Column("route_key", String, primary_key=True),
    Column("source_id", Integer, nullable=False),
    Column("variant", String, nullable=False),
    Column("name", String, nullable=False),
    Column("total_distance", Float, nullable=False),
    Column("elevation_gain", Float, nullable=False),
    Column("elevation_loss", Float, nullable=False),
    Column("bounds_json", Text, nullable=False),
    Column("parsed_at", DateTime(), nullable=False),
    Column("content_hash", String, nullable=False),
)

route_cache_segments = Table(
    "route_cache_segments",
    metadata,
    Column("route_key", String, nullable=False),
    Column("segment_index", Integer, nullable=False),
    Column("points_json", Text, nullable=False),
    PrimaryKeyConstraint("route_key", "segment_index"),
)

pois = Table(
    "pois",
    metadata,
    Column("id", String, primary_key=True),
    Column("osm_type", String, nullable=False),
    Column("category", String, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("latitude", Float, nullable=False, index=True),
    Column("longitude", Float, nullable=False, index=True),
    Column("tags_json", Text, nullable=False, default="{}"),
    Column("is_downloaded", Boolean, nullable=False, default=False),
    Column("region_id", String, nullable=True),
    Column("fetched_at", DateTime(), nullable=False),
    Column("expires_at", DateTime(), nullable=True),
)

poi_cache_tiles = Table(
    "poi_cache_tiles",
    metadata,
    Column("tile_key", String, primary_key=True),
    Column("south", Float, nullable=False),
    Column("west", Float, nullable=False),
    Column("north", Float, nullable=False),
    Column("east", Float, nullable=False),
    Column("categories", String, nullable=False, default="*"),
    Column("fetched_at", DateTime(), nullable=False),
    Column("expires_at", DateTime(), nullable=False),
)

downloaded_regions = Table(
    "downloaded_regions",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("south", Float, nullable=False),
    Column("west", Float, nullable=False),
    Column("north", Float, nullable=False),
    Column("east", Float, nullable=False),
    Column("poi_count", Integer, nullable=False, default=0),
    Column("downloaded_at", DateTime(), nullable=False),
)


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine, making sure a file-backed SQLite directory exists."""

    url = make_url(database_url or settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url)


async def init_database(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info(f"Local store ready at {engine.url.render_as_string(hide_password=True)}")


async def check_database(engine: AsyncEngine) -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning(f"Local store health check failed: {exc}")
        return False


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite stores datetimes without an offset."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

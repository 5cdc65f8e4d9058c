import asyncio
import logging

from velotour.models.domain import ParsedRoute, RouteBounds, RoutePoint, RouteVariant
from velotour.persistence.database import create_engine, init_database
from velotour.services.routes.cache import RouteCacheRepository, compute_content_hash


def _route(segment_count: int = 2, route_id: str = "ev2-full") -> ParsedRoute:
    segments = tuple(
        tuple(
            RoutePoint(
                latitude=48.0 + s + i * 0.01,
                longitude=2.0 + i * 0.01,
                elevation=None if i == 0 else 100.0 + i,
                distance_from_start=float(s * 10 + i),
            )
            for i in range(3)
        )
        for s in range(segment_count)
    )
    points = tuple(point for segment in segments for point in segment)
    return ParsedRoute(
        id=route_id,
        source_id=2,
        variant=RouteVariant.FULL,
        name="EV2 - Capitals Route",
        points=points,
        segments=segments,
        total_distance=12.5,
        elevation_gain=30.0,
        elevation_loss=5.0,
        bounds=RouteBounds(
            min_lat=min(p.latitude for p in points),
            max_lat=max(p.latitude for p in points),
            min_lon=min(p.longitude for p in points),
            max_lon=max(p.longitude for p in points),
        ),
    )


def _url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cache.sqlite3'}"


def test_content_hash_is_deterministic_and_content_sensitive() -> None:
    assert compute_content_hash("<gpx/>") == compute_content_hash("<gpx/>")
    assert compute_content_hash("<gpx/>") != compute_content_hash("<gpx />")


def test_put_then_get_round_trips_route(tmp_path) -> None:
    route = _route()

    async def scenario():
        engine = create_engine(_url(tmp_path))
        await init_database(engine)
        cache = RouteCacheRepository(engine)
        await cache.put(route, "h1")
        result = (
            await cache.is_cached(route.id, "h1"),
            await cache.is_cached(route.id, "h2"),
            await cache.is_cached("ev3-full", "h1"),
            await cache.get(route.id),
        )
        await engine.dispose()
        return result

    hit, stale, missing, cached = asyncio.run(scenario())

    assert hit is True
    assert stale is False
    assert missing is False
    assert cached == route


def test_put_replaces_all_segments_of_previous_version(tmp_path) -> None:
    async def scenario():
        engine = create_engine(_url(tmp_path))
        await init_database(engine)
        cache = RouteCacheRepository(engine)
        cache.put(_route(segment_count=3), "h1")
        cache.put(_route(segment_count=1), "h2")
        await cache.drain()
        result = await cache.get("ev2-full"), await cache.is_cached("ev2-full", "h2"), await cache.stats()
        await engine.dispose()
        return result

    cached, fresh, stats = asyncio.run(scenario())

    assert fresh is True
    assert len(cached.segments) == 1
    assert len(cached.points) == 3
    assert stats.route_count == 1
    assert stats.segment_count == 1
    assert stats.oldest_parsed_at is not None


def test_invalidate_and_clear_all(tmp_path) -> None:
    async def scenario():
        engine = create_engine(_url(tmp_path))
        await init_database(engine)
        cache = RouteCacheRepository(engine)
        cache.put(_route(route_id="ev2-full"), "a")
        cache.put(_route(route_id="ev3-full"), "b")
        cache.invalidate("ev2-full")
        await cache.drain()
        after_invalidate = await cache.cached_route_keys()
        await cache.clear_all()
        after_clear = await cache.cached_route_keys(), await cache.stats()
        await engine.dispose()
        return after_invalidate, after_clear

    after_invalidate, (keys, stats) = asyncio.run(scenario())

    assert after_invalidate == ["ev3-full"]
    assert keys == []
    assert stats.route_count == 0
    assert stats.segment_count == 0


def test_failed_write_is_logged_not_raised(tmp_path, caplog) -> None:
    async def scenario():
        # tables were never created
        engine = create_engine(_url(tmp_path))
        cache = RouteCacheRepository(engine)
        await cache.put(_route(), "h1")
        result = await cache.is_cached("ev2-full", "h1"), await cache.get("ev2-full")
        await engine.dispose()
        return result

    with caplog.at_level(logging.WARNING):
        cached, route = asyncio.run(scenario())

    assert cached is False
    assert route is None
    assert "cache route ev2-full failed" in caplog.text

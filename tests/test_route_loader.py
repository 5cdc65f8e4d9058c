import asyncio

import pytest

from velotour.models.domain import RouteVariant
from velotour.persistence.database import create_engine, init_database
from velotour.services.routes import loader as loader_module
from velotour.services.routes.cache import RouteCacheRepository, compute_content_hash
from velotour.services.routes.loader import DirectoryTrackSource, RouteLoader

GPX_V1 = """<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <trkseg>
      <trkpt lat="50.0" lon="4.0"><ele>10</ele></trkpt>
      <trkpt lat="50.01" lon="4.0"><ele>20</ele></trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="51.0" lon="5.0"><ele>30</ele></trkpt>
      <trkpt lat="51.01" lon="5.0"><ele>25</ele></trkpt>
    </trkseg>
  </trk>
</gpx>"""

GPX_V2 = """<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <trkseg>
      <trkpt lat="50.0" lon="4.0"/>
      <trkpt lat="50.02" lon="4.0"/>
      <trkpt lat="50.04" lon="4.0"/>
    </trkseg>
  </trk>
</gpx>"""


class DictTrackSource:
    def __init__(self, files: dict[str, str]) -> None:
        self.files = files
        self.reads: list[str] = []

    async def read(self, file_key: str):
        self.reads.append(file_key)
        return self.files.get(file_key)


def _counting_parser(monkeypatch) -> list[str]:
    calls: list[str] = []
    original = loader_module.parse_gpx

    def counting(text: str):
        calls.append(text)
        return original(text)

    monkeypatch.setattr(loader_module, "parse_gpx", counting)
    return calls


def _run(tmp_path, source, scenario):
    async def wrapper():
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'routes.sqlite3'}")
        await init_database(engine)
        cache = RouteCacheRepository(engine)
        try:
            return await scenario(RouteLoader(source, cache), cache)
        finally:
            await cache.drain()
            await engine.dispose()

    return asyncio.run(wrapper())


def test_load_parses_and_decorates_route(tmp_path) -> None:
    source = DictTrackSource({"2": GPX_V1})

    async def scenario(loader, cache):
        return await loader.load(2, RouteVariant.FULL)

    route = _run(tmp_path, source, scenario)

    assert route.id == "ev2-full"
    assert route.name == "EV2 - Capitals Route"
    assert route.color == "#66BB6A"
    assert len(route.segments) == 2
    assert route.total_distance == pytest.approx(2.224, abs=0.01)
    assert source.reads == ["2"]


def test_developed_variant_uses_its_own_asset_and_color(tmp_path) -> None:
    source = DictTrackSource({"2-developed": GPX_V2})

    async def scenario(loader, cache):
        return await loader.load(2, "developed")

    route = _run(tmp_path, source, scenario)

    assert route.id == "ev2-developed"
    assert route.name == "EV2 - Capitals Route (Developed)"
    assert route.color == "#2E7D32"


def test_unchanged_source_is_served_from_cache_then_reparsed_after_change(tmp_path, monkeypatch) -> None:
    parse_calls = _counting_parser(monkeypatch)
    source = DictTrackSource({"2": GPX_V1})

    async def scenario(loader, cache):
        first = await loader.load(2, RouteVariant.FULL)
        await cache.drain()
        second = await loader.load(2, RouteVariant.FULL)
        parses_before_change = len(parse_calls)

        source.files["2"] = GPX_V2
        new_hash = compute_content_hash(GPX_V2)
        before = await cache.is_cached("ev2-full", new_hash)
        third = await loader.load(2, RouteVariant.FULL)
        await cache.drain()
        after = await cache.is_cached("ev2-full", new_hash)
        stale = await cache.is_cached("ev2-full", compute_content_hash(GPX_V1))
        cached = await cache.get("ev2-full")
        return first, second, parses_before_change, third, cached, (before, after, stale)

    first, second, parses_before_change, third, cached, validity = _run(tmp_path, source, scenario)

    assert validity == (False, True, False)
    assert parses_before_change == 1
    assert second == first
    assert second.color == "#66BB6A"
    assert len(parse_calls) == 2
    assert len(third.segments) == 1
    assert len(third.points) == 3
    assert len(cached.segments) == 1
    assert [p.latitude for p in cached.points] == [50.0, 50.02, 50.04]


@pytest.mark.parametrize(
    "source_id, variant, files",
    [
        (99, RouteVariant.FULL, {"99": GPX_V1}),
        (1, RouteVariant.DEVELOPED, {"1-developed": GPX_V1}),
        (3, RouteVariant.FULL, {}),
    ],
)
def test_unresolvable_routes_return_none(tmp_path, source_id, variant, files) -> None:
    async def scenario(loader, cache):
        return await loader.load(source_id, variant)

    assert _run(tmp_path, DictTrackSource(files), scenario) is None


@pytest.mark.parametrize("content", ["<not-gpx", "<html/>", "<gpx><trk/></gpx>"])
def test_malformed_track_returns_none_and_is_not_cached(tmp_path, content) -> None:
    async def scenario(loader, cache):
        route = await loader.load(2, RouteVariant.FULL)
        await cache.drain()
        return route, await cache.cached_route_keys()

    route, keys = _run(tmp_path, DictTrackSource({"2": content}), scenario)

    assert route is None
    assert keys == []


def test_load_from_cache_without_source(tmp_path) -> None:
    source = DictTrackSource({"5": GPX_V2})

    async def scenario(loader, cache):
        missing = await loader.load_from_cache(5, RouteVariant.FULL)
        await loader.load(5, RouteVariant.FULL)
        await cache.drain()
        return missing, await loader.load_from_cache(5, RouteVariant.FULL)

    missing, cached = _run(tmp_path, source, scenario)

    assert missing is None
    assert cached.name == "EV5 - Via Romea Francigena"
    assert cached.color == "#26C6DA"


def test_directory_track_source_reads_gpx_files(tmp_path) -> None:
    (tmp_path / "7.gpx").write_text(GPX_V2, encoding="utf-8")
    source = DirectoryTrackSource(tmp_path)

    async def scenario():
        return await source.read("7"), await source.read("8")

    found, missing = asyncio.run(scenario())

    assert found == GPX_V2
    assert missing is None


def test_load_all_returns_every_available_track(tmp_path) -> None:
    source = DictTrackSource({"2": GPX_V1, "2-developed": GPX_V2, "15": GPX_V2, "17": "<broken"})

    async def scenario(loader, cache):
        return await loader.load_all()

    routes = _run(tmp_path, source, scenario)

    assert [route.id for route in routes] == ["ev2-full", "ev2-developed", "ev15-full"]
    assert "1" in source.reads
    assert "1-developed" not in source.reads

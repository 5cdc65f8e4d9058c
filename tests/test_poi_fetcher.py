import asyncio

from velotour.models.domain import POI, BoundingBox, POICategory, ViewportBounds
from velotour.services.pois.fetcher import POIFetcher
from velotour.services.pois.store import POIStore

A = BoundingBox(south=48.0, west=2.0, north=48.1, east=2.1)
B = BoundingBox(south=45.0, west=5.0, north=45.1, east=5.1)
C = BoundingBox(south=46.0, west=6.0, north=46.1, east=6.1)
D = BoundingBox(south=47.0, west=7.0, north=47.1, east=7.1)


def _poi(poi_id: str, category: POICategory = POICategory.CAMPSITE) -> POI:
    return POI(id=poi_id, name=poi_id, category=category, latitude=48.05, longitude=2.05)


class RecordingStore(POIStore):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.commits: list[list[str]] = []

    def set_pois(self, pois) -> None:
        pois = list(pois)
        self.commits.append([poi.id for poi in pois])
        super().set_pois(pois)


class GatedSource:
    """Returns one POI named after the requested box; the first call blocks until released."""

    def __init__(self) -> None:
        self.calls: list[BoundingBox] = []
        self.tokens = []
        self.release = asyncio.Event()

    async def fetch_for_viewport(self, bbox, categories=(), include_remote=True, token=None):
        self.calls.append(bbox)
        self.tokens.append(token)
        if len(self.calls) == 1:
            await self.release.wait()
        return [_poi(_name(bbox))]


class ImmediateSource:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.calls = []
        self.result = result or []
        self.error = error

    async def fetch_for_viewport(self, bbox, categories=(), include_remote=True, token=None):
        self.calls.append((bbox, tuple(categories), include_remote))
        if self.error is not None:
            raise self.error
        return list(self.result)


def _name(bbox: BoundingBox) -> str:
    return {A: "a", B: "b", C: "c", D: "d"}[bbox]


def test_newer_viewport_supersedes_in_flight_fetch() -> None:
    store = RecordingStore()

    async def scenario():
        source = GatedSource()
        fetcher = POIFetcher(store, source, epsilon=1e-6)
        first = asyncio.create_task(fetcher.load_for_viewport(A))
        await asyncio.sleep(0)
        assert store.is_loading
        assert fetcher.in_flight

        await fetcher.load_for_viewport(B)
        assert fetcher.pending_bounds == B
        assert source.tokens[0].cancelled

        source.release.set()
        await first
        return source

    source = asyncio.run(scenario())

    assert source.calls == [A, B]
    assert store.commits == [["b"]]
    assert [poi.id for poi in store.pois] == ["b"]
    assert store.is_loading is False


def test_requests_during_flight_coalesce_to_latest() -> None:
    store = RecordingStore()

    async def scenario():
        source = GatedSource()
        fetcher = POIFetcher(store, source, epsilon=1e-6)
        first = asyncio.create_task(fetcher.load_for_viewport(A))
        await asyncio.sleep(0)
        for bounds in (B, C, D):
            await fetcher.load_for_viewport(bounds)
        # the superseded fetch must not clear the flag the next one owns
        assert store.is_loading
        source.release.set()
        await first
        return source, fetcher

    source, fetcher = asyncio.run(scenario())

    assert source.calls == [A, D]
    assert store.commits == [["d"]]
    assert fetcher.pending_bounds is None
    assert not fetcher.in_flight


def test_unchanged_bounds_are_skipped_unless_forced() -> None:
    store = POIStore()
    source = ImmediateSource([_poi("x")])
    fetcher = POIFetcher(store, source, epsilon=1e-4)
    nearly_a = BoundingBox(south=A.south + 1e-6, west=A.west, north=A.north, east=A.east)

    async def scenario():
        await fetcher.load_for_viewport(A)
        await fetcher.load_for_viewport(nearly_a)
        await fetcher.load_for_viewport(A, force=True)
        fetcher.set_filters([POICategory.HOTEL])
        await fetcher.load_for_viewport(A)

    asyncio.run(scenario())

    assert len(source.calls) == 3
    assert source.calls[-1] == (A, (POICategory.HOTEL,), True)


def test_viewport_bounds_are_accepted() -> None:
    store = POIStore()
    source = ImmediateSource([_poi("x")])
    fetcher = POIFetcher(store, source)

    asyncio.run(fetcher.load_for_viewport(ViewportBounds(north_east=(2.1, 48.1), south_west=(2.0, 48.0))))

    assert source.calls[0][0] == A
    assert len(store) == 1


def test_download_protection_blocks_viewport_fetches() -> None:
    now = [100.0]
    store = POIStore(clock=lambda: now[0])
    store.add_pois([_poi("downloaded")])
    store.set_download_protection(5)
    source = ImmediateSource([_poi("viewport")])
    fetcher = POIFetcher(store, source)

    asyncio.run(fetcher.load_for_viewport(A))
    assert source.calls == []
    assert [poi.id for poi in store.pois] == ["downloaded"]

    now[0] += 6
    asyncio.run(fetcher.load_for_viewport(A))
    assert len(source.calls) == 1
    assert [poi.id for poi in store.pois] == ["viewport"]


def test_failed_fetch_sets_error_and_clears_loading() -> None:
    store = POIStore()
    store.set_pois([_poi("old")])
    fetcher = POIFetcher(store, ImmediateSource(error=RuntimeError("overpass down")))

    asyncio.run(fetcher.load_for_viewport(A))

    assert store.error == "overpass down"
    assert store.is_loading is False
    assert [poi.id for poi in store.pois] == ["old"]


def test_cancel_discards_result_and_clears_loading() -> None:
    store = RecordingStore()

    async def scenario():
        source = GatedSource()
        fetcher = POIFetcher(store, source)
        task = asyncio.create_task(fetcher.load_for_viewport(A))
        await asyncio.sleep(0)
        fetcher.cancel()
        assert store.is_loading is False
        source.release.set()
        await task
        return source

    source = asyncio.run(scenario())

    assert source.calls == [A]
    assert store.commits == []
    assert store.is_loading is False


def test_store_add_pois_skips_known_ids() -> None:
    store = POIStore()
    store.set_pois([_poi("a"), _poi("b", POICategory.TOILET)])

    added = store.add_pois([_poi("b"), _poi("c", POICategory.TOILET)])

    assert added == 1
    assert store.contains("c")
    assert [poi.id for poi in store.by_category(POICategory.TOILET)] == ["b", "c"]
    assert store.counts_by_category() == {"campsite": 1, "toilet": 2}
    store.clear()
    assert len(store) == 0
    assert not store.contains("a")


class FlakySource:
    """Fails on the first call and answers every later one."""

    def __init__(self) -> None:
        self.calls = 0

    async def fetch_for_viewport(self, bbox, categories=(), include_remote=True, token=None):
        self.calls += 1
        if self.calls == 1:
            raise ConnectionError("overpass unreachable")
        return [_poi(_name(bbox))]


def test_same_viewport_is_fetched_again_after_failure() -> None:
    store = POIStore()
    source = FlakySource()
    fetcher = POIFetcher(store, source)

    async def scenario():
        await fetcher.load_for_viewport(A)
        await fetcher.load_for_viewport(A)

    asyncio.run(scenario())

    assert source.calls == 2
    assert [poi.id for poi in store.pois] == ["a"]
    assert store.error is None


def test_viewport_discarded_by_protection_is_fetched_again() -> None:
    now = [100.0]
    store = POIStore(clock=lambda: now[0])

    class DownloadDuringFetch(ImmediateSource):
        async def fetch_for_viewport(self, bbox, categories=(), include_remote=True, token=None):
            result = await super().fetch_for_viewport(bbox, categories, include_remote, token)
            if len(self.calls) == 1:
                store.set_download_protection(5)
            return result

    source = DownloadDuringFetch([_poi("viewport")])
    fetcher = POIFetcher(store, source)

    asyncio.run(fetcher.load_for_viewport(A))
    assert store.pois == []

    now[0] += 6
    asyncio.run(fetcher.load_for_viewport(A))

    assert len(source.calls) == 2
    assert [poi.id for poi in store.pois] == ["viewport"]

import asyncio
import random
from typing import Dict, List, Optional

import pytest

from music_quiz.catalog.base import CatalogCriteria, CatalogError, CatalogProvider
from music_quiz.models import Track
from music_quiz.selector import (
    AcquisitionError,
    OptionCache,
    TrackSelector,
    present_options,
    select_tracks,
)


class FakeCatalog(CatalogProvider):
    def __init__(
        self,
        charts: Optional[Dict[Optional[int], List[Track]]] = None,
        searches: Optional[Dict[str, List[Track]]] = None,
        fail: bool = False,
    ) -> None:
        self.charts = charts or {}
        self.searches = searches or {}
        self.fail = fail
        self.calls: List[CatalogCriteria] = []

    async def fetch_pool(self, criteria: CatalogCriteria, limit: int) -> List[Track]:
        self.calls.append(criteria)
        if self.fail:
            raise CatalogError("catalog unreachable")
        if criteria.query:
            return list(self.searches.get(criteria.query, []))[:limit]
        return list(self.charts.get(criteria.genre_id, []))[:limit]

    async def search(self, query: str, limit: int = 20) -> List[Track]:
        return await self.fetch_pool(CatalogCriteria(query=query), limit)


def test_select_tracks_keeps_one_track_per_artist(make_track):
    pool = [make_track(1, "A"), make_track(2, "A"), make_track(3, "B"), make_track(4, "C")]
    selected = select_tracks(pool, 3)
    assert len(selected) == 3
    assert sorted(track.artist for track in selected) == ["A", "B", "C"]


def test_select_tracks_compares_artists_loosely(make_track):
    pool = [make_track(1, "Daft Punk"), make_track(2, "  daft punk "), make_track(3, "DAFT PUNK")]
    for seed in range(20):
        assert len(select_tracks(pool, 3, rng=random.Random(seed))) == 1


def test_select_tracks_never_repeats_an_artist(make_track):
    rng = random.Random(7)
    artists = ["A", "B", "C", "D", "E"]
    for _ in range(50):
        pool = [make_track(i, rng.choice(artists), preview=rng.random() > 0.2) for i in range(30)]
        selected = select_tracks(pool, 4, rng=rng)
        keys = [track.artist_key() for track in selected]
        assert len(keys) == len(set(keys))
        assert len(selected) <= 4
        assert all(track.has_preview() for track in selected)


def test_select_tracks_skips_tracks_without_preview(make_track):
    pool = [make_track(1, "A", preview=False), make_track(2, "B")]
    assert [track.id for track in select_tracks(pool, 2)] == ["track-2"]


def test_select_tracks_returns_short_list(make_track):
    pool = [make_track(1, "A"), make_track(2, "A")]
    assert len(select_tracks(pool, 5)) == 1
    assert select_tracks([], 5) == []


def test_present_options_shuffles_a_copy(make_track):
    target = make_track(1, "A")
    options = [target, make_track(2, "B"), make_track(3, "C"), make_track(4, "D")]
    shown = present_options(target, options, rng=random.Random(3))
    assert shown is not options
    assert {track.id for track in shown} == {track.id for track in options}
    assert [track.id for track in options] == ["track-1", "track-2", "track-3", "track-4"]


def test_present_options_adds_missing_target(make_track):
    target = make_track(1, "A")
    shown = present_options(target, [make_track(2, "B")])
    assert sorted(track.id for track in shown) == ["track-1", "track-2"]


@pytest.mark.asyncio
async def test_pick_game_tracks_from_chart(make_track):
    chart = [make_track(i, f"Artist {i % 4}") for i in range(12)]
    selector = TrackSelector(FakeCatalog(charts={None: chart}))
    tracks = await selector.pick_game_tracks(3)
    assert len(tracks) == 3
    assert len({track.artist_key() for track in tracks}) == 3


@pytest.mark.asyncio
async def test_pick_game_tracks_uses_genre_chart(make_track):
    catalog = FakeCatalog(charts={132: [make_track(1, "A", genre_id=132)]})
    selector = TrackSelector(catalog)
    tracks = await selector.pick_game_tracks(1, genre_id=132)
    assert tracks[0].genre_id == 132
    assert catalog.calls[0] == CatalogCriteria(genre_id=132)


@pytest.mark.asyncio
async def test_pick_game_tracks_falls_back_to_search_when_chart_empty(make_track):
    catalog = FakeCatalog(searches={"jazz": [make_track(1, "A"), make_track(2, "B")]})
    selector = TrackSelector(catalog, fallback_terms=["jazz"])
    tracks = await selector.pick_game_tracks(2)
    assert len(tracks) == 2
    assert catalog.calls[-1] == CatalogCriteria(query="jazz")


@pytest.mark.asyncio
async def test_pick_game_tracks_raises_when_catalog_fails():
    selector = TrackSelector(FakeCatalog(fail=True))
    with pytest.raises(AcquisitionError):
        await selector.pick_game_tracks(5)


@pytest.mark.asyncio
async def test_pick_game_tracks_raises_when_nothing_playable(make_track):
    catalog = FakeCatalog(charts={None: [make_track(1, "A", preview=False)]})
    selector = TrackSelector(catalog, fallback_terms=[])
    with pytest.raises(AcquisitionError):
        await selector.pick_game_tracks(5)


@pytest.mark.asyncio
async def test_build_options_excludes_session_tracks(make_track):
    session = [make_track(1, "A", genre_id=5), make_track(2, "B", genre_id=5)]
    chart = session + [make_track(i, f"Decoy {i}", genre_id=5) for i in range(10, 16)]
    catalog = FakeCatalog(charts={5: chart})
    selector = TrackSelector(catalog)

    options = await selector.build_options(session[0], session)
    assert len(options) == 4
    assert options[0].id == "track-1"
    assert [track.id for track in options].count("track-1") == 1
    assert "track-2" not in {track.id for track in options}
    assert catalog.calls[0] == CatalogCriteria(genre_id=5)


@pytest.mark.asyncio
async def test_build_options_can_ignore_genre(make_track):
    target = make_track(1, "A", genre_id=5)
    catalog = FakeCatalog(charts={None: [make_track(i, f"Decoy {i}") for i in range(10, 14)]})
    options = await TrackSelector(catalog).build_options(target, [target], same_genre=False)
    assert len(options) == 4
    assert catalog.calls[0] == CatalogCriteria(genre_id=None)


@pytest.mark.asyncio
async def test_build_options_skips_other_copies_of_the_target_song(make_track):
    target = make_track(1, "A", title="Hit")
    chart = [make_track(2, "a", title="hit "), make_track(3, "B"), make_track(4, "C"), make_track(5, "D")]
    options = await TrackSelector(FakeCatalog(charts={None: chart})).build_options(target, [target])
    assert "track-2" not in {track.id for track in options}
    assert len(options) == 4


@pytest.mark.asyncio
async def test_build_options_falls_back_to_session_tracks_on_failure(make_track):
    session = [make_track(1, "A"), make_track(2, "B"), make_track(3, "C"), make_track(4, "D")]
    options = await TrackSelector(FakeCatalog(fail=True)).build_options(session[0], session)
    assert options[0].id == "track-1"
    assert sorted(track.id for track in options) == ["track-1", "track-2", "track-3", "track-4"]


@pytest.mark.asyncio
async def test_build_options_tops_up_short_decoy_pool(make_track):
    session = [make_track(1, "A"), make_track(2, "B")]
    chart = [make_track(10, "X")]
    options = await TrackSelector(FakeCatalog(charts={None: chart})).build_options(session[0], session)
    assert sorted(track.id for track in options) == ["track-1", "track-10", "track-2"]


@pytest.mark.asyncio
async def test_build_options_returns_target_alone_when_nothing_else(make_track):
    target = make_track(1, "A")
    options = await TrackSelector(FakeCatalog(fail=True)).build_options(target, [target])
    assert [track.id for track in options] == ["track-1"]


@pytest.mark.asyncio
async def test_option_cache_returns_same_set(make_track):
    cache = OptionCache()
    calls = []

    async def factory():
        calls.append(1)
        return [make_track(len(calls), "A"), make_track(100, "B")]

    first = await cache.get_or_build("track-1", factory)
    second = await cache.get_or_build("track-1", factory)
    assert [track.id for track in first] == [track.id for track in second]
    assert len(calls) == 1
    assert "track-1" in cache
    assert len(cache) == 1

    cache.clear()
    assert "track-1" not in cache


@pytest.mark.asyncio
async def test_option_cache_shares_in_flight_build(make_track):
    cache = OptionCache()
    started = []
    release = asyncio.Event()

    async def factory():
        started.append(1)
        await release.wait()
        return [make_track(1, "A")]

    pending = [asyncio.ensure_future(cache.get_or_build("track-1", factory)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*pending)
    assert len(started) == 1
    assert all([track.id for track in result] == ["track-1"] for result in results)


@pytest.mark.asyncio
async def test_option_cache_returns_copies(make_track):
    cache = OptionCache()

    async def factory():
        return [make_track(1, "A"), make_track(2, "B")]

    first = await cache.get_or_build("track-1", factory)
    first.clear()
    second = await cache.get_or_build("track-1", factory)
    assert len(second) == 2


@pytest.mark.asyncio
async def test_option_cache_forgets_failed_builds(make_track):
    cache = OptionCache()
    attempts = []

    async def factory():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        return [make_track(1, "A")]

    with pytest.raises(RuntimeError):
        await cache.get_or_build("track-1", factory)
    assert "track-1" not in cache

    options = await cache.get_or_build("track-1", factory)
    assert [track.id for track in options] == ["track-1"]

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from music_quiz.catalog.base import CatalogCriteria, CatalogError, CatalogProvider
from music_quiz.models import Track

DEFAULT_DECOY_COUNT = 3
FALLBACK_TERMS = ("pop", "rock", "hip hop", "electronic", "jazz", "country", "r&b", "indie")


class AcquisitionError(Exception):
    """Raised when no playable tracks could be gathered for a new game."""


def select_tracks(
    candidate_pool: Iterable[Track],
    count: int,
    rng: random.Random | None = None,
) -> List[Track]:
    """Sample up to ``count`` playable tracks, at most one per artist.

    Artists are compared lower-cased and trimmed. A short result is returned
    as is when the pool does not hold enough distinct artists.
    """
    rng = rng or random.Random()
    playable = [track for track in candidate_pool if track.has_preview()]
    rng.shuffle(playable)

    selected: List[Track] = []
    used_artists: Set[str] = set()
    for track in playable:
        if len(selected) >= count:
            break
        artist = track.artist_key()
        if artist in used_artists:
            continue
        selected.append(track)
        used_artists.add(artist)
    return selected


def present_options(
    target: Track,
    options: Sequence[Track],
    rng: random.Random | None = None,
) -> List[Track]:
    """Return a freshly shuffled copy of an option set for display."""
    rng = rng or random.Random()
    shuffled = list(options)
    if not any(option.id == target.id for option in shuffled):
        shuffled.append(target)
    rng.shuffle(shuffled)
    return shuffled


class TrackSelector:
    def __init__(
        self,
        catalog: CatalogProvider,
        pool_size: int = 100,
        fallback_terms: Sequence[str] = FALLBACK_TERMS,
        rng: random.Random | None = None,
    ) -> None:
        self.catalog = catalog
        self.pool_size = pool_size
        self.fallback_terms = tuple(fallback_terms)
        self.rng = rng or random.Random()

    async def _fetch_candidates(self, criteria: CatalogCriteria) -> List[Track]:
        pool = await self.catalog.fetch_pool(criteria, self.pool_size)
        if pool or criteria.query or not self.fallback_terms:
            return pool
        term = self.rng.choice(self.fallback_terms)
        logger.info("Chart pool empty, searching for '{}' instead", term)
        return await self.catalog.fetch_pool(CatalogCriteria(query=term), self.pool_size)

    async def pick_game_tracks(self, count: int, genre_id: Optional[int] = None) -> List[Track]:
        try:
            pool = await self._fetch_candidates(CatalogCriteria(genre_id=genre_id))
        except CatalogError as exc:
            raise AcquisitionError(f"Failed to retrieve tracks: {exc}") from exc

        selected = select_tracks(pool, count, rng=self.rng)
        if not selected:
            raise AcquisitionError("Failed to find tracks with previews")
        if len(selected) < count:
            logger.warning(
                "Only found {} tracks from different artists, requested {}",
                len(selected),
                count,
            )
        logger.info(
            "Prepared {} tracks: {}",
            len(selected),
            ", ".join(f"{track.title} - {track.artist}" for track in selected),
        )
        return selected

    async def build_options(
        self,
        target: Track,
        session_tracks: Sequence[Track],
        same_genre: bool = True,
        decoy_count: int = DEFAULT_DECOY_COUNT,
    ) -> List[Track]:
        """Return the target followed by up to ``decoy_count`` decoys.

        Decoys come from the catalog when possible and from the session's own
        tracks otherwise, so a round is always answerable.
        """
        genre_id = target.genre_id if same_genre else None
        excluded_ids = {target.id} | {track.id for track in session_tracks}
        excluded_catalog_ids = {target.catalog_id} | {track.catalog_id for track in session_tracks}

        try:
            pool = await self._fetch_candidates(CatalogCriteria(genre_id=genre_id))
        except CatalogError as exc:
            logger.warning("Failed to load option tracks, using game tracks: {}", exc)
            pool = []

        candidates = [
            track
            for track in pool
            if track.has_preview()
            and track.id not in excluded_ids
            and track.catalog_id not in excluded_catalog_ids
            and not track.same_song_as(target)
        ]
        candidates = list({track.id: track for track in candidates}.values())
        self.rng.shuffle(candidates)
        decoys = candidates[:decoy_count]

        if len(decoys) < decoy_count:
            used = {target.id} | {track.id for track in decoys}
            fallback = [track for track in session_tracks if track.id not in used]
            self.rng.shuffle(fallback)
            decoys.extend(fallback[: decoy_count - len(decoys)])
            if len(decoys) < decoy_count:
                logger.warning(
                    "Only {} decoys available for {}, requested {}",
                    len(decoys),
                    target.id,
                    decoy_count,
                )
        return [target, *decoys]


class OptionCache:
    """Per-track option sets, built at most once per key.

    The pending future is stored rather than the result, so concurrent
    requests for the same track share one build.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, asyncio.Future] = {}

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_build(
        self,
        track_id: str,
        factory: Callable[[], Awaitable[List[Track]]],
    ) -> List[Track]:
        future = self._entries.get(track_id)
        if future is None:
            future = asyncio.ensure_future(factory())
            self._entries[track_id] = future
        try:
            options = await asyncio.shield(future)
        except Exception:
            if self._entries.get(track_id) is future:
                del self._entries[track_id]
            raise
        return list(options)

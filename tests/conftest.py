from typing import Callable, Optional

import pytest

from music_quiz.models import Track


@pytest.fixture()
def make_track() -> Callable[..., Track]:
    def _make(
        catalog_id: int,
        artist: str = "Artist",
        title: Optional[str] = None,
        preview: bool = True,
        genre_id: Optional[int] = None,
    ) -> Track:
        return Track(
            catalog_id=catalog_id,
            title=title or f"Song {catalog_id}",
            artist=artist,
            preview_url=f"https://cdn.example/{catalog_id}.mp3" if preview else None,
            cover_image=f"https://cdn.example/{catalog_id}.jpg",
            genre_id=genre_id,
        )

    return _make

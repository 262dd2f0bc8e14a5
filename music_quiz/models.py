from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class GameStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass
class Track:
    catalog_id: int
    title: str
    artist: str
    preview_url: Optional[str] = None
    cover_image: Optional[str] = None
    album: Optional[str] = None
    link: Optional[str] = None
    genre_id: Optional[int] = None
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = f"track-{self.catalog_id}"

    def has_preview(self) -> bool:
        return bool(self.preview_url)

    def artist_key(self) -> str:
        return self.artist.lower().strip()

    def same_song_as(self, other: "Track") -> bool:
        return (
            self.title.lower().strip() == other.title.lower().strip()
            and self.artist_key() == other.artist_key()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "catalogId": self.catalog_id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "link": self.link,
            "previewUrl": self.preview_url,
            "coverImage": self.cover_image,
            "genreId": self.genre_id,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Track":
        return cls(
            id=payload.get("id") or "",
            catalog_id=payload["catalogId"],
            title=payload["title"],
            artist=payload["artist"],
            album=payload.get("album"),
            link=payload.get("link"),
            preview_url=payload.get("previewUrl"),
            cover_image=payload.get("coverImage"),
            genre_id=payload.get("genreId"),
        )


@dataclass(frozen=True)
class AnswerRecord:
    selected_track_id: Optional[str] = None
    listen_time_seconds: Optional[float] = None


@dataclass(frozen=True)
class Score:
    correct_count: int = 0
    total_points: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"correctCount": self.correct_count, "totalPoints": self.total_points}


@dataclass
class RoundResult:
    track: Track
    is_correct: bool
    user_answer_track: Optional[Track]
    listen_time: float
    points: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "track": self.track.to_dict(),
            "isCorrect": self.is_correct,
            "userAnswer": self.user_answer_track.to_dict() if self.user_answer_track else None,
            "listenTime": self.listen_time,
            "points": self.points,
        }

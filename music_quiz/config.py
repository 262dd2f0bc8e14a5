from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from music_quiz.catalog.deezer import DEEZER_API_URL
from music_quiz.catalog.endpoints import DIRECT, PUBLIC_CORS_PROXIES


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value).expanduser() if value else None


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    if raw.strip().lower() == "public":
        return list(PUBLIC_CORS_PROXIES)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class AppConfig:
    """Static configuration for the service."""

    host: str = field(default_factory=lambda: os.getenv("MUSIC_QUIZ_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("MUSIC_QUIZ_PORT", "3000")))
    track_count: int = field(default_factory=lambda: int(os.getenv("MUSIC_QUIZ_TRACK_COUNT", "5")))
    max_track_count: int = field(
        default_factory=lambda: int(os.getenv("MUSIC_QUIZ_MAX_TRACK_COUNT", "20"))
    )
    pool_size: int = field(default_factory=lambda: int(os.getenv("MUSIC_QUIZ_POOL_SIZE", "100")))
    log_level: str = field(default_factory=lambda: os.getenv("MUSIC_QUIZ_LOG_LEVEL", "INFO"))
    log_file: Path | None = field(default_factory=lambda: _env_path("MUSIC_QUIZ_LOG_FILE"))


@dataclass
class CatalogConfig:
    """Where and how the music catalog is reached."""

    api_url: str = DEEZER_API_URL
    endpoints: List[str] = field(default_factory=lambda: [DIRECT])
    timeout_seconds: float = 30.0
    max_attempts: int | None = None

    @classmethod
    def from_env(cls) -> "CatalogConfig":
        attempts = os.getenv("MUSIC_QUIZ_MAX_ATTEMPTS")
        return cls(
            api_url=os.getenv("DEEZER_API_URL", DEEZER_API_URL),
            endpoints=_env_list("MUSIC_QUIZ_PROXIES") or [DIRECT],
            timeout_seconds=float(os.getenv("MUSIC_QUIZ_HTTP_TIMEOUT", "30")),
            max_attempts=int(attempts) if attempts else None,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "endpoints": list(self.endpoints),
            "timeout_seconds": self.timeout_seconds,
            "max_attempts": self.max_attempts,
        }

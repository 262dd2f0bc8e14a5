from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import List, Optional

from music_quiz.models import Track


class CatalogError(Exception):
    """Raised when the catalog cannot be reached after every endpoint was tried."""


@dataclass(frozen=True)
class CatalogCriteria:
    genre_id: Optional[int] = None
    query: Optional[str] = None


class CatalogProvider(abc.ABC):
    """Shared contract for music catalogs feeding the quiz."""

    @abc.abstractmethod
    async def fetch_pool(self, criteria: CatalogCriteria, limit: int) -> List[Track]:
        """Return candidate tracks for a genre, a search query or the overall chart."""

    @abc.abstractmethod
    async def search(self, query: str, limit: int = 20) -> List[Track]:
        """Return tracks matching a free-text query."""

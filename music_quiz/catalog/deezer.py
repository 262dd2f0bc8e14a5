from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from loguru import logger

from music_quiz.catalog.base import CatalogCriteria, CatalogError, CatalogProvider
from music_quiz.catalog.endpoints import EndpointRotation
from music_quiz.models import Track

DEEZER_API_URL = "https://api.deezer.com"
OVERALL_CHART = 0


class DeezerCatalog(CatalogProvider):
    def __init__(
        self,
        rotation: EndpointRotation | None = None,
        api_base: str = DEEZER_API_URL,
        timeout: float = 30.0,
        max_attempts: int | None = None,
    ) -> None:
        self.rotation = rotation or EndpointRotation()
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts or len(self.rotation)

    async def fetch_pool(self, criteria: CatalogCriteria, limit: int) -> List[Track]:
        if criteria.query:
            return await self.search(criteria.query, limit)
        return await self.chart_tracks(criteria.genre_id, limit)

    async def chart_tracks(self, genre_id: Optional[int] = None, limit: int = 50) -> List[Track]:
        chart = genre_id if genre_id is not None else OVERALL_CHART
        payload = await self._get(f"/chart/{chart}/tracks", {"limit": limit})
        tracks = self._parse_items(payload, genre_id)
        logger.debug("Received {} chart tracks for genre {}", len(tracks), chart)
        return tracks

    async def search(self, query: str, limit: int = 20) -> List[Track]:
        payload = await self._get("/search/track", {"q": query, "limit": limit})
        tracks = self._parse_items(payload)
        if not tracks:
            logger.warning("No tracks found for query: {}", query)
        logger.debug("Received {} tracks for query: {}", len(tracks), query)
        return tracks

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        target = f"{self.api_base}{path}?{urlencode(params)}"
        last_error: Exception | None = None
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_attempts + 1):
                url = self.rotation.wrap(target)
                try:
                    response = await client.get(url, headers={"Accept": "application/json"})
                    response.raise_for_status()
                    return self._unwrap(response.json())
                except (httpx.HTTPError, ValueError, CatalogError) as exc:
                    last_error = exc
                    logger.warning(
                        "Catalog request {} failed on attempt {}/{}: {}",
                        path,
                        attempt,
                        self.max_attempts,
                        exc,
                    )
                    self.rotation.advance()
        raise CatalogError(f"Deezer request {path} failed: {last_error}") from last_error

    @staticmethod
    def _unwrap(payload: Any) -> Dict[str, Any]:
        # Some relays wrap the upstream body as {"contents": "<json text>"}.
        if isinstance(payload, dict) and isinstance(payload.get("contents"), str):
            try:
                payload = json.loads(payload["contents"])
            except json.JSONDecodeError as exc:
                raise CatalogError("Invalid response format from relay") from exc
        if not isinstance(payload, dict):
            raise CatalogError("Unexpected catalog payload")
        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise CatalogError(f"Deezer error: {message}")
        return payload

    @classmethod
    def _parse_items(cls, payload: Dict[str, Any], genre_id: Optional[int] = None) -> List[Track]:
        items = payload.get("data") or []
        if not isinstance(items, list):
            raise CatalogError(f"Unexpected catalog data: {type(items).__name__}")
        tracks: List[Track] = []
        for item in items:
            try:
                tracks.append(cls._parse_track(item, genre_id))
            except (KeyError, TypeError, AttributeError) as exc:
                logger.warning("Skipping malformed catalog item {!r}: {}", item, exc)
        return tracks

    @staticmethod
    def _parse_track(item: Dict[str, Any], genre_id: Optional[int] = None) -> Track:
        artist = str((item.get("artist") or {}).get("name") or "Unknown Artist")
        album = item.get("album") or {}
        preview = item.get("preview") or None
        if not preview:
            logger.debug("No preview URL found for track: {} - {}", item.get("title"), artist)
        return Track(
            catalog_id=item["id"],
            title=str(item.get("title") or ""),
            artist=artist,
            album=album.get("title") or "Unknown Album",
            link=item.get("link") or "",
            preview_url=preview,
            cover_image=album.get("cover_medium") or album.get("cover_big") or album.get("cover") or None,
            genre_id=genre_id,
        )

from __future__ import annotations

from pathlib import Path
from typing import AsyncContextManager, Callable, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from music_quiz.catalog.base import CatalogError, CatalogProvider
from music_quiz.config import AppConfig
from music_quiz.scoring import ScoringPolicy
from music_quiz.selector import AcquisitionError, TrackSelector

DEFAULT_SEARCH_LIMIT = 10


def _parse_positive(raw: Optional[str], default: int, ceiling: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, ceiling)


def build_app(
    *,
    config: AppConfig,
    catalog: CatalogProvider,
    selector: TrackSelector,
    scoring: ScoringPolicy,
    lifespan: Optional[Callable[[FastAPI], AsyncContextManager[None]]] = None,
) -> FastAPI:
    templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
    app = FastAPI(lifespan=lifespan)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "tiers": scoring.tiers,
                "overflow_points": scoring.overflow_points,
                "extension_options": scoring.extension_options,
                "track_count": config.track_count,
            },
        )

    @app.get("/api/health")
    async def health():
        return JSONResponse({"status": "ok"})

    @app.get("/api/game/tracks")
    async def game_tracks(count: Optional[str] = None, genre: Optional[str] = None):
        requested = _parse_positive(count, config.track_count, config.max_track_count)
        genre_id = None
        if genre:
            try:
                genre_id = int(genre)
            except ValueError as exc:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Query parameter 'genre' must be an integer",
                ) from exc
        logger.info("Request received for {} tracks (genre {})", requested, genre_id)
        try:
            tracks = await selector.pick_game_tracks(requested, genre_id=genre_id)
        except AcquisitionError as exc:
            logger.error("Error getting tracks: {}", exc)
            return JSONResponse(
                {"error": str(exc), "tracks": []},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return JSONResponse({"tracks": [track.to_dict() for track in tracks]})

    @app.get("/api/search")
    async def search(q: Optional[str] = None, limit: Optional[str] = None):
        if not q:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter 'q' is required")
        size = _parse_positive(limit, DEFAULT_SEARCH_LIMIT, config.pool_size)
        try:
            tracks = await catalog.search(q, size)
        except CatalogError as exc:
            logger.error("Error searching tracks: {}", exc)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        return JSONResponse({"tracks": [track.to_dict() for track in tracks]})

    return app

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from music_quiz.catalog import DeezerCatalog, EndpointRotation
from music_quiz.config import AppConfig, CatalogConfig
from music_quiz.log import setup_logging
from music_quiz.scoring import DEFAULT_POLICY
from music_quiz.selector import TrackSelector
from music_quiz.web import build_app


def create_catalog(catalog_config: CatalogConfig | None = None) -> DeezerCatalog:
    catalog_config = catalog_config or CatalogConfig.from_env()
    return DeezerCatalog(
        rotation=EndpointRotation(catalog_config.endpoints),
        api_base=catalog_config.api_url,
        timeout=catalog_config.timeout_seconds,
        max_attempts=catalog_config.max_attempts,
    )


def create_app(config: AppConfig | None = None, catalog_config: CatalogConfig | None = None) -> FastAPI:
    config = config or AppConfig()
    setup_logging(config.log_level, config.log_file)
    catalog = create_catalog(catalog_config)
    selector = TrackSelector(catalog, pool_size=config.pool_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Music quiz serving on http://{}:{} via {} catalog endpoint(s)",
            config.host,
            config.port,
            len(catalog.rotation),
        )
        yield
        logger.info("Music quiz stopped")

    app = build_app(
        config=config,
        catalog=catalog,
        selector=selector,
        scoring=DEFAULT_POLICY,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.catalog = catalog
    app.state.selector = selector
    return app

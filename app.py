from __future__ import annotations

import argparse
import asyncio

import uvicorn

from music_quiz import create_app
from music_quiz.app import create_catalog
from music_quiz.config import AppConfig
from music_quiz.console import ConsoleView, play
from music_quiz.log import setup_logging
from music_quiz.selector import TrackSelector
from music_quiz.session import SessionOrchestrator


async def _play(config: AppConfig, count: int | None, genre_id: int | None) -> bool:
    view = ConsoleView()
    selector = TrackSelector(create_catalog(), pool_size=config.pool_size)
    orchestrator = SessionOrchestrator(selector, view, track_count=config.track_count)
    return await play(orchestrator, view, count, genre_id=genre_id)


def main() -> None:
    parser = argparse.ArgumentParser(description="Music guessing quiz")
    parser.add_argument("mode", nargs="?", choices=("serve", "play"), default="serve")
    parser.add_argument("--count", type=int, default=None, help="tracks per game (play mode)")
    parser.add_argument("--genre", type=int, default=None, help="Deezer genre id to draw tracks from")
    args = parser.parse_args()

    config = AppConfig()
    if args.mode == "play":
        setup_logging("WARNING", config.log_file)
        if not asyncio.run(_play(config, args.count, args.genre)):
            raise SystemExit(1)
        return
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()

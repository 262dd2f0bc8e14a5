from __future__ import annotations

import abc
import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from loguru import logger

from music_quiz.game import GameState
from music_quiz.models import RoundResult, Score, Track
from music_quiz.selector import AcquisitionError, OptionCache, TrackSelector, present_options

ADVANCE_DELAY_SECONDS = 1.5
RESULTS_DELAY_SECONDS = 0.5


class GameOutcome(str, Enum):
    PERFECT = "perfect"
    PARTIAL = "partial"
    ZERO = "zero"


@dataclass(frozen=True)
class AnswerSelected:
    track_id: str


@dataclass(frozen=True)
class TimeLimitChanged:
    seconds: float


Intent = Union[AnswerSelected, TimeLimitChanged]


class GameView(abc.ABC):
    """Rendering side of a session. Receives plain data, holds no game logic."""

    @abc.abstractmethod
    def show_loading(self) -> None:
        """Signal that tracks are being fetched."""

    @abc.abstractmethod
    def show_error(self, message: str) -> None:
        """Show a retryable error; no session is running."""

    @abc.abstractmethod
    def show_track(self, number: int, track: Track, options: List[Track], extension_options: List[float]) -> None:
        """Present a round: the preview to play and the answers to pick from."""

    @abc.abstractmethod
    def show_feedback(self, selected_track_id: str, correct_track: Track) -> None:
        """Reveal whether the selected answer was right."""

    @abc.abstractmethod
    def update_score(self, score: Score, total_tracks: int) -> None:
        """Refresh the running score."""

    @abc.abstractmethod
    def show_results(self, score: Score, total_tracks: int, results: List[RoundResult], outcome: GameOutcome) -> None:
        """Show the final results of the session."""


class SessionOrchestrator:
    """Runs a quiz session: start, present each round, take answers, finish."""

    def __init__(
        self,
        selector: TrackSelector,
        view: GameView,
        state: GameState | None = None,
        track_count: int = 5,
        advance_delay: float = ADVANCE_DELAY_SECONDS,
        results_delay: float = RESULTS_DELAY_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        self.selector = selector
        self.view = view
        self.state = state or GameState()
        self.track_count = track_count
        self.advance_delay = advance_delay
        self.results_delay = results_delay
        self.rng = rng or random.Random()
        self.options = OptionCache()
        self._listen_time = self.state.scoring.initial_listen_time
        self._advance_task: Optional[asyncio.Task] = None

    @property
    def listen_time(self) -> float:
        return self._listen_time

    @property
    def round_pending(self) -> bool:
        return self._advance_task is not None and not self._advance_task.done()

    async def start(self, count: int | None = None, genre_id: int | None = None) -> bool:
        await self._cancel_advance()
        count = count if count is not None else self.track_count
        if count <= 0:
            self.view.show_error(f"Track count must be positive, got {count}")
            return False
        self.view.show_loading()
        try:
            tracks = await self.selector.pick_game_tracks(count, genre_id=genre_id)
        except AcquisitionError as exc:
            logger.error("Error initializing game: {}", exc)
            self.view.show_error(str(exc))
            return False

        self.state.set_tracks(tracks)
        self.state.reset()
        self.options.clear()
        self.view.update_score(self.state.calculate_score(), len(self.state.tracks))
        await self.show_current_track()
        return True

    async def show_current_track(self) -> None:
        if self.state.is_finished():
            await self.finish()
            return
        track = self.state.get_current_track()
        if track is None:
            return
        self._listen_time = self.state.scoring.initial_listen_time
        options = await self.options.get_or_build(
            track.id,
            lambda: self.selector.build_options(track, self.state.tracks),
        )
        self.view.show_track(
            self.state.current_index + 1,
            track,
            present_options(track, options, rng=self.rng),
            self.state.scoring.extension_options,
        )

    async def dispatch(self, intent: Intent) -> None:
        if isinstance(intent, AnswerSelected):
            self.answer_selected(intent.track_id)
        elif isinstance(intent, TimeLimitChanged):
            self.time_limit_changed(intent.seconds)
        else:
            raise TypeError(f"Unknown intent: {intent!r}")

    def time_limit_changed(self, seconds: float) -> None:
        if self.round_pending or seconds <= self._listen_time:
            return
        self._listen_time = seconds
        self.state.update_listen_time(seconds)
        self.view.update_score(self.state.calculate_score(), len(self.state.tracks))

    def answer_selected(self, track_id: str) -> None:
        track = self.state.get_current_track()
        if track is None or self.round_pending:
            return
        self.state.record_answer(track_id, self._listen_time)
        self.view.show_feedback(track_id, track)
        self.view.update_score(self.state.calculate_score(), len(self.state.tracks))
        self._advance_task = asyncio.ensure_future(self._advance())

    async def _advance(self) -> None:
        await asyncio.sleep(self.advance_delay)
        self.state.next_track()
        if self.state.is_finished():
            await self.finish()
        else:
            await self.show_current_track()

    async def finish(self) -> None:
        self.state.mark_finished()
        score = self.state.calculate_score()
        results = self.state.get_results()
        await asyncio.sleep(self.results_delay)
        total = len(self.state.tracks)
        if score.correct_count == total:
            outcome = GameOutcome.PERFECT
        elif score.correct_count == 0:
            outcome = GameOutcome.ZERO
        else:
            outcome = GameOutcome.PARTIAL
        logger.info("Game finished: {}/{} correct, {} points", score.correct_count, total, score.total_points)
        self.view.show_results(score, total, results, outcome)

    async def _cancel_advance(self) -> None:
        task, self._advance_task = self._advance_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("Cancelled pending round advance")

    async def wait_idle(self) -> None:
        while self._advance_task is not None and not self._advance_task.done():
            await self._advance_task

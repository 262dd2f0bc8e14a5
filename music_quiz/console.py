from __future__ import annotations

import asyncio
from typing import Callable, List

from music_quiz.models import RoundResult, Score, Track
from music_quiz.session import (
    AnswerSelected,
    GameOutcome,
    GameView,
    Intent,
    SessionOrchestrator,
    TimeLimitChanged,
)

OUTCOME_BANNERS = {
    GameOutcome.PERFECT: "Perfect game!",
    GameOutcome.PARTIAL: "Game over.",
    GameOutcome.ZERO: "No correct answers this time.",
}


class ConsoleView(GameView):
    """Plain-text rendering of a session for terminal play."""

    def __init__(self, write: Callable[[str], None] = print) -> None:
        self.write = write
        self.options: List[Track] = []
        self.extension_options: List[float] = []
        self.finished = False
        self.failed = False

    def show_loading(self) -> None:
        self.write("Loading tracks...")

    def show_error(self, message: str) -> None:
        self.failed = True
        self.write(f"Error: {message}")

    def show_track(self, number: int, track: Track, options: List[Track], extension_options: List[float]) -> None:
        self.options = options
        self.extension_options = extension_options
        self.write("")
        self.write(f"Track {number}")
        self.write(f"Preview: {track.preview_url or 'unavailable'}")
        for position, option in enumerate(options, start=1):
            self.write(f"  {position}. {option.title} - {option.artist}")
        if extension_options:
            listen_more = " ".join(f"+{seconds:g}" for seconds in extension_options)
            self.write(f"Listen longer: {listen_more}")

    def show_feedback(self, selected_track_id: str, correct_track: Track) -> None:
        if selected_track_id == correct_track.id:
            self.write("Correct!")
        else:
            self.write(f"Wrong, it was {correct_track.title} - {correct_track.artist}")

    def update_score(self, score: Score, total_tracks: int) -> None:
        self.write(f"Score: {score.total_points} ({score.correct_count}/{total_tracks})")

    def show_results(self, score: Score, total_tracks: int, results: List[RoundResult], outcome: GameOutcome) -> None:
        self.finished = True
        self.write("")
        self.write(OUTCOME_BANNERS[outcome])
        for number, result in enumerate(results, start=1):
            mark = "x" if result.is_correct else " "
            self.write(
                f"[{mark}] {number}. {result.track.title} - {result.track.artist} "
                f"({result.listen_time:g}s, {result.points} pts)"
            )
        self.write(f"Final score: {score.total_points} ({score.correct_count}/{total_tracks})")

    def parse(self, line: str) -> Intent | None:
        """Turn a line of input into an intent: ``2`` picks option 2, ``+5`` listens 5 seconds."""
        text = line.strip()
        if text.startswith("+"):
            try:
                return TimeLimitChanged(float(text[1:]))
            except ValueError:
                return None
        if text.isdigit():
            position = int(text)
            if 1 <= position <= len(self.options):
                return AnswerSelected(self.options[position - 1].id)
        return None


async def play(
    orchestrator: SessionOrchestrator,
    view: ConsoleView,
    count: int | None = None,
    genre_id: int | None = None,
) -> bool:
    if not await orchestrator.start(count, genre_id=genre_id):
        return False
    while not view.finished:
        line = await asyncio.to_thread(input, "> ")
        intent = view.parse(line)
        if intent is None:
            view.write("Pick an option number or +seconds to listen longer.")
            continue
        await orchestrator.dispatch(intent)
        await orchestrator.wait_idle()
    return True

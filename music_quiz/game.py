from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from loguru import logger

from music_quiz.models import AnswerRecord, GameStatus, RoundResult, Score, Track
from music_quiz.scoring import DEFAULT_POLICY, ScoringPolicy


class GameState:
    """State of one quiz session: tracks, position, answers and listen times.

    Answers are only written through ``record_answer`` and
    ``update_listen_time``. Correctness and points are derived on read.
    Misuse (answering with no current track) is ignored rather than raised;
    callers are expected to check ``is_finished()``.
    """

    def __init__(self, scoring: ScoringPolicy | None = None) -> None:
        self.scoring = scoring or DEFAULT_POLICY
        self.tracks: List[Track] = []
        self.current_index = 0
        self.finished = False
        self._answers: Dict[int, AnswerRecord] = {}
        self._started = False

    @property
    def answers(self) -> Mapping[int, AnswerRecord]:
        return MappingProxyType(self._answers)

    @property
    def status(self) -> GameStatus:
        if not self._started:
            return GameStatus.NOT_STARTED
        if self.finished or self.is_finished():
            return GameStatus.FINISHED
        return GameStatus.IN_PROGRESS

    def set_tracks(self, tracks: Iterable[Track]) -> None:
        self.tracks = list(tracks)

    def reset(self) -> None:
        self._answers = {}
        self.current_index = 0
        self.finished = False
        self._started = True

    def get_current_track(self) -> Optional[Track]:
        if 0 <= self.current_index < len(self.tracks):
            return self.tracks[self.current_index]
        return None

    def next_track(self) -> None:
        self.current_index += 1

    def is_finished(self) -> bool:
        return self.current_index >= len(self.tracks)

    def mark_finished(self) -> None:
        self.finished = True

    def record_answer(self, track_id: str, listen_time: float | None = None) -> None:
        if self.get_current_track() is None:
            logger.debug("Ignoring answer {} recorded with no current track", track_id)
            return
        if listen_time is None:
            listen_time = self.scoring.initial_listen_time
        previous = self._answers.get(self.current_index, AnswerRecord())
        if previous.listen_time_seconds is not None:
            listen_time = max(listen_time, previous.listen_time_seconds)
        self._answers[self.current_index] = AnswerRecord(
            selected_track_id=track_id,
            listen_time_seconds=listen_time,
        )

    def update_listen_time(self, seconds: float) -> None:
        if self.get_current_track() is None:
            return
        previous = self._answers.get(self.current_index, AnswerRecord())
        if previous.listen_time_seconds is not None and seconds <= previous.listen_time_seconds:
            return
        self._answers[self.current_index] = AnswerRecord(
            selected_track_id=previous.selected_track_id,
            listen_time_seconds=seconds,
        )

    def listen_time_at(self, index: int) -> float:
        record = self._answers.get(index)
        if record is None or record.listen_time_seconds is None:
            return self.scoring.initial_listen_time
        return record.listen_time_seconds

    def is_correct_at(self, index: int) -> bool:
        record = self._answers.get(index)
        if record is None or record.selected_track_id is None:
            return False
        return record.selected_track_id == self.tracks[index].id

    def calculate_score(self) -> Score:
        correct_count = 0
        total_points = 0
        for index in range(len(self.tracks)):
            if self.is_correct_at(index):
                correct_count += 1
                total_points += self.scoring.points_for(self.listen_time_at(index))
        return Score(correct_count=correct_count, total_points=total_points)

    def get_results(self) -> List[RoundResult]:
        by_id = {track.id: track for track in self.tracks}
        results: List[RoundResult] = []
        for index, track in enumerate(self.tracks):
            record = self._answers.get(index, AnswerRecord())
            is_correct = self.is_correct_at(index)
            listen_time = self.listen_time_at(index)
            results.append(
                RoundResult(
                    track=track,
                    is_correct=is_correct,
                    user_answer_track=by_id.get(record.selected_track_id) if record.selected_track_id else None,
                    listen_time=listen_time,
                    points=self.scoring.points_for(listen_time) if is_correct else 0,
                )
            )
        return results

from __future__ import annotations

from typing import List, Sequence, Tuple

LISTEN_STEPS: Tuple[float, ...] = (1, 2, 5, 10)
TIER_POINTS: Tuple[int, ...] = (100, 80, 50, 20)
OVERFLOW_POINTS = 10


class ScoringPolicy:
    """Maps the listen time of a correct answer to points.

    The first listen step is the initial preview length and the remaining
    steps are the "listen longer" extensions offered to the player. Each step
    is the inclusive upper bound of a points tier, so the UI buttons and the
    score table always come from the same numbers.
    """

    def __init__(
        self,
        listen_steps: Sequence[float] = LISTEN_STEPS,
        tier_points: Sequence[int] = TIER_POINTS,
        overflow_points: int = OVERFLOW_POINTS,
    ) -> None:
        if not listen_steps:
            raise ValueError("At least one listen step is required.")
        if len(listen_steps) != len(tier_points):
            raise ValueError("Each listen step needs exactly one points tier.")
        steps = list(listen_steps)
        if any(later <= earlier for earlier, later in zip(steps, steps[1:])):
            raise ValueError(f"Listen steps must be strictly increasing: {steps}")
        points = list(tier_points) + [overflow_points]
        if any(later > earlier for earlier, later in zip(points, points[1:])):
            raise ValueError(f"Tier points must not increase with listen time: {points}")
        self._tiers: List[Tuple[float, int]] = list(zip(steps, tier_points))
        self.overflow_points = overflow_points

    @classmethod
    def from_listen_steps(
        cls,
        listen_steps: Sequence[float],
        tier_points: Sequence[int] = TIER_POINTS,
        overflow_points: int = OVERFLOW_POINTS,
    ) -> "ScoringPolicy":
        return cls(listen_steps=listen_steps, tier_points=tier_points, overflow_points=overflow_points)

    @property
    def tiers(self) -> List[Tuple[float, int]]:
        return list(self._tiers)

    @property
    def initial_listen_time(self) -> float:
        return self._tiers[0][0]

    @property
    def extension_options(self) -> List[float]:
        """Listen times the player may extend the preview to, in order."""
        return [step for step, _ in self._tiers[1:]]

    def points_for(self, listen_time_seconds: float) -> int:
        listen_time = max(0, listen_time_seconds)
        for upper_bound, points in self._tiers:
            if listen_time <= upper_bound:
                return points
        return self.overflow_points


DEFAULT_POLICY = ScoringPolicy()


def points_for(listen_time_seconds: float) -> int:
    return DEFAULT_POLICY.points_for(listen_time_seconds)

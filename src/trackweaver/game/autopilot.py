"""
Obstacle avoidance heuristic.

Evaluated once per simulation tick. Looks a fixed distance ahead for
hazards in the car's lane and, when one is close enough to collide,
moves to the best-scoring lane that is clear within the conflict range.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np

from trackweaver.config import LANES, AutopilotConfig
from trackweaver.track.types import TreblePulse

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything with a numpy-style random() returning a float in [0, 1)."""

    def random(self) -> float: ...


@dataclass(frozen=True)
class LaneScore:
    """Score breakdown for one candidate lane."""

    lane: int
    nearest_obstacle: float
    obstacle_pressure: float
    lane_change_cost: float
    randomness: float

    @property
    def score(self) -> float:
        return (
            self.nearest_obstacle
            - self.obstacle_pressure
            - self.lane_change_cost
            + self.randomness
        )


class AvoidanceHeuristic:
    """
    Chooses a lane that dodges imminent hazards.

    Holds the timestamp of its last decision to enforce the cooldown.
    The random source is injectable so scores can be made deterministic.
    """

    def __init__(
        self,
        config: AutopilotConfig | None = None,
        rng: RandomSource | None = None,
        seed: int | None = None,
    ):
        """
        Initialize the heuristic.

        Args:
            config: Lookahead, conflict range, cooldown and scoring weights.
            rng: Random source for score jitter. Defaults to a seeded numpy Generator.
            seed: Seed for the default Generator.
        """
        self.config = config or AutopilotConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.last_decision_time: float | None = None

    def reset(self):
        """Forget the last decision so the cooldown does not apply."""
        self.last_decision_time = None

    def in_cooldown(self, current_time: float) -> bool:
        if self.last_decision_time is None:
            return False
        return current_time - self.last_decision_time < self.config.cooldown

    def upcoming(
        self,
        pulses: Sequence[TreblePulse],
        distance: float,
    ) -> list[TreblePulse]:
        """Hazards strictly ahead of distance and inside the lookahead window."""
        lookahead = self.config.lookahead
        return [p for p in pulses if 0 < p.distance - distance < lookahead]

    def _conflicts(self, pulse: TreblePulse, lane: int, distance: float) -> bool:
        return pulse.lane_index == lane and pulse.distance - distance < self.config.conflict_range

    def find_blocking(
        self,
        upcoming: Sequence[TreblePulse],
        lane: int,
        distance: float,
    ) -> TreblePulse | None:
        """First upcoming hazard in lane within the conflict range."""
        for pulse in upcoming:
            if self._conflicts(pulse, lane, distance):
                return pulse
        return None

    def safe_lanes(
        self,
        upcoming: Sequence[TreblePulse],
        blocked_lane: int,
        distance: float,
    ) -> list[int]:
        """Lanes other than blocked_lane with no hazard inside the conflict range."""
        return [
            lane
            for lane in LANES
            if lane != blocked_lane
            and not any(self._conflicts(p, lane, distance) for p in upcoming)
        ]

    def score_lane(
        self,
        lane: int,
        current_lane: int,
        upcoming: Sequence[TreblePulse],
        distance: float,
    ) -> LaneScore:
        """
        Score a candidate lane.

        score = nearest_obstacle - obstacle_pressure - lane_change_cost + randomness
        """
        cfg = self.config
        deltas = [p.distance - distance for p in upcoming if p.lane_index == lane]
        deltas = [d for d in deltas if d > 0]

        nearest = min(deltas, default=cfg.lookahead)
        nearest = min(nearest, cfg.lookahead)
        pressure = sum(1.0 / max(1.0, d) for d in deltas)
        change_cost = abs(lane - current_lane) * cfg.lane_change_cost
        randomness = float(self.rng.random()) * cfg.randomness

        return LaneScore(
            lane=lane,
            nearest_obstacle=nearest,
            obstacle_pressure=pressure,
            lane_change_cost=change_cost,
            randomness=randomness,
        )

    def decide(
        self,
        distance: float,
        current_lane: int,
        pulses: Sequence[TreblePulse],
        current_time: float,
    ) -> int | None:
        """
        Evaluate one tick.

        Args:
            distance: Car distance along the path.
            current_lane: Car lane index.
            pulses: All hazards on the track.
            current_time: Playback clock in seconds.

        Returns:
            The new lane, or None when no change is warranted (cooldown,
            nothing blocking, or no safe lane).
        """
        if self.in_cooldown(current_time):
            return None

        upcoming = self.upcoming(pulses, distance)
        blocking = self.find_blocking(upcoming, current_lane, distance)
        if blocking is None:
            return None

        candidates = self.safe_lanes(upcoming, blocking.lane_index, distance)
        if not candidates:
            logger.debug("No safe lane at distance %.2f, holding lane %d", distance, current_lane)
            return None

        scores = [
            self.score_lane(lane, current_lane, upcoming, distance) for lane in candidates
        ]
        # max() keeps the first of equal scores
        best = max(scores, key=lambda s: s.score)

        self.last_decision_time = current_time
        logger.debug(
            "Dodging hazard at %.2f: lane %d -> %d (score %.3f)",
            blocking.distance,
            current_lane,
            best.lane,
            best.score,
        )
        return best.lane

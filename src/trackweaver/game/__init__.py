"""Per-tick session state and lane control."""

from trackweaver.game.autopilot import AvoidanceHeuristic
from trackweaver.game.controller import GameSession

__all__ = ["AvoidanceHeuristic", "GameSession"]

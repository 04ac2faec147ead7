"""
Per-tick progress and lane state.

The lane index has two writers: manual input and the autopilot. The
last writer wins; `lane_source` records which one it was so a session
can tell whether the autopilot is currently overriding the player.
"""

from dataclasses import dataclass, field

from trackweaver.config import LANE_WIDTH, LANES

MANUAL = "manual"
AUTO = "auto"


def clamp_lane(lane: int) -> int:
    """Clamp a lane index into the valid lane range."""
    return max(LANES[0], min(LANES[-1], int(lane)))


def get_lane_offset(lane_index: int, lane_width: float = LANE_WIDTH) -> float:
    """Lateral offset of a lane's centre from the path centre line."""
    return lane_index * lane_width


@dataclass
class CarState:
    """Progress along the track and lane placement."""

    distance: float = 0.0
    lane_index: int = 0
    # Interpolated toward lane_index by the renderer
    lane_offset: float = 0.0
    lane_source: str = AUTO


@dataclass
class GameState:
    car: CarState = field(default_factory=CarState)


def init_game_state() -> GameState:
    return GameState()


def apply_lane_change(state: GameState, target_lane: int, source: str = MANUAL) -> int:
    """
    Set the car's lane, clamped to the valid range.

    Args:
        state: Session state to mutate.
        target_lane: Requested lane index.
        source: MANUAL or AUTO.

    Returns:
        The lane actually applied.
    """
    lane = clamp_lane(target_lane)
    state.car.lane_index = lane
    state.car.lane_source = source
    return lane


def advance_distance(state: GameState, target_distance: float, length: float) -> float:
    """
    Move the car to target_distance, clamped to [0, length].

    Distance never decreases while playing; a target behind the car is ignored.

    Returns:
        The car's distance after the update.
    """
    target = min(max(0.0, target_distance), max(0.0, length))
    if target > state.car.distance:
        state.car.distance = target
    return state.car.distance

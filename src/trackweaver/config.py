"""
Shared constants and tunable parameters.

The path speed couples playback time to distance along the track and the
lane width couples lane indices to lateral offsets. Both are read by the
generator, the session driver and the autopilot, so they live here once.
"""

import hashlib
import json
from dataclasses import asdict, dataclass, field

# Distance units travelled per second of playback
PATH_SPEED = 50.0

# Lateral spacing between adjacent lanes
LANE_WIDTH = 2.5

LANES = (-1, 0, 1)

# Analysis window length in seconds (75ms)
WINDOW_SECONDS = 0.075


@dataclass
class AnalyzerConfig:
    """Windowing and event thresholding parameters."""

    window_seconds: float = WINDOW_SECONDS
    # Threshold = mean + stddev_factor * stddev
    stddev_factor: float = 0.5


@dataclass
class TrackConfig:
    """Path geometry and hazard placement parameters."""

    speed: float = PATH_SPEED
    nodes_per_second: float = 10.0
    min_nodes: int = 100

    # Lateral sinusoid
    lateral_frequency: float = 0.1
    lateral_amplitude: float = 2.0

    # Vertical profile from smoothed RMS
    vertical_amplitude: float = 6.0

    # Jumps: every `jump_stride`-th strong beat starting at `jump_offset`
    jump_beat_factor: float = 1.2
    jump_stride: int = 4
    jump_offset: int = 3
    jump_tolerance: float = 0.1

    # Hazards
    lane_width: float = LANE_WIDTH
    hazard_base_height: float = 0.6
    hazard_height_range: float = 1.8
    lane_pattern: tuple[int, ...] = field(default_factory=lambda: (-1, 1, 0))


@dataclass
class AutopilotConfig:
    """Avoidance heuristic parameters."""

    lookahead: float = 25.0
    conflict_range: float = 8.0
    cooldown: float = 0.4
    lane_change_cost: float = 0.35
    randomness: float = 0.15


def config_fingerprint(*configs) -> str:
    """
    Hash a set of config dataclasses into a stable hex digest.

    Args:
        configs: Dataclass instances to include.

    Returns:
        MD5 hex digest of the sorted JSON representation.
    """
    payload = {type(cfg).__name__: asdict(cfg) for cfg in configs}
    return hashlib.md5(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()

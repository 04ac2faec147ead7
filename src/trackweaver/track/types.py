"""Track data structures shared by the generator, session and exporter."""

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True, eq=False)
class TrackNode:
    """One sampled station along the path."""

    t: float  # normalized progress, 0..1
    s: float  # cumulative distance
    pos: np.ndarray  # (3,)
    forward: np.ndarray  # unit vector toward the next station
    up: np.ndarray
    is_jump: bool = False


@dataclass(frozen=True, eq=False)
class TreblePulse:
    """A lane-tagged hazard placed relative to its nearest station."""

    time: float
    pos: np.ndarray
    intensity: float  # 0..1
    lane_index: int  # -1, 0 or 1

    @property
    def distance(self) -> float:
        """Position along the path (the z coordinate)."""
        return float(self.pos[2])


@dataclass(frozen=True, eq=False)
class TrackData:
    """Generated path and hazards for one recording."""

    nodes: tuple[TrackNode, ...]
    treble_pulses: tuple[TreblePulse, ...]
    length: float
    _stations: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        stations = np.array([node.s for node in self.nodes], dtype=np.float64)
        stations.setflags(write=False)
        object.__setattr__(self, "_stations", stations)

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    def node_at_distance(self, distance: float) -> TrackNode | None:
        """Last station whose s does not exceed distance (first station if before it)."""
        if not self.nodes:
            return None
        index = int(np.searchsorted(self._stations, distance, side="right")) - 1
        return self.nodes[max(0, min(index, len(self.nodes) - 1))]

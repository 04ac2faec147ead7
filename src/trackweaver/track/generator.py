"""
Procedural track generation module.

Turns a MusicMap into a sampled 3D path whose height follows the
smoothed loudness, flags jump stations on strong beats and places
lane hazards on treble transients.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from trackweaver.config import TrackConfig
from trackweaver.core.analyzer import BeatMarker, MusicMap
from trackweaver.core.smoothing import EnergySmoother
from trackweaver.track.types import TrackData, TrackNode, TreblePulse

logger = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_FORWARD = np.array([0.0, 0.0, 1.0])


@dataclass
class RawStations:
    """Per-station values that do not depend on neighbouring stations."""

    t: np.ndarray
    time: np.ndarray
    s: np.ndarray
    pos: np.ndarray  # (n, 3)
    is_jump: np.ndarray


def _unit(vector: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm <= 1e-12:
        return fallback.copy()
    return vector / norm


def _frozen(vector: np.ndarray) -> np.ndarray:
    vector = np.array(vector, dtype=np.float64)
    vector.setflags(write=False)
    return vector


class TrackGenerator:
    """
    Generates a path and hazards from analyzed music.

    Construction is two-phase: stations are laid out independently, then
    forward vectors are derived from adjacent positions.
    """

    def __init__(
        self,
        config: TrackConfig | None = None,
        smoother: EnergySmoother | None = None,
    ):
        """
        Initialize the generator.

        Args:
            config: Geometry and hazard parameters.
            smoother: Energy resampler for the vertical profile.
        """
        self.config = config or TrackConfig()
        self.smoother = smoother or EnergySmoother()

    def compute_node_count(self, duration: float) -> int:
        """Roughly nodes_per_second stations per second, never fewer than min_nodes."""
        cfg = self.config
        return max(cfg.min_nodes, int(np.floor(max(0.0, duration) * cfg.nodes_per_second)))

    def beat_threshold(self, beats: Sequence[BeatMarker]) -> float:
        """
        Strength a beat must exceed to count as strong.

        Uses the upper median (middle element of the sorted strengths).
        """
        if len(beats) == 0:
            return 0.0
        strengths = sorted(beat.strength for beat in beats)
        return strengths[len(strengths) // 2] * self.config.jump_beat_factor

    def jump_times(self, beats: Sequence[BeatMarker]) -> np.ndarray:
        """
        Timestamps of every jump_stride-th strong beat from jump_offset.

        Args:
            beats: Detected broadband beats.

        Returns:
            Sorted jump times.
        """
        threshold = self.beat_threshold(beats)
        strong = sorted(
            (beat for beat in beats if beat.strength > threshold),
            key=lambda beat: beat.time,
        )
        selected = strong[self.config.jump_offset :: self.config.jump_stride]
        return np.array([beat.time for beat in selected], dtype=np.float64)

    def build_stations(self, music_map: MusicMap, n_nodes: int) -> RawStations:
        """
        Phase one: lay out station progress, distance, position and jump flags.

        Args:
            music_map: Analyzed features.
            n_nodes: Number of stations.

        Returns:
            RawStations arrays of length n_nodes.
        """
        cfg = self.config
        duration = max(0.0, music_map.duration)

        if n_nodes > 1:
            t = np.arange(n_nodes) / (n_nodes - 1)
        else:
            t = np.zeros(n_nodes)
        time = t * duration
        s = time * cfg.speed

        x = np.sin(time * cfg.lateral_frequency) * cfg.lateral_amplitude
        y = self.smoother.resample(music_map.energy_samples, n_nodes) * cfg.vertical_amplitude
        pos = np.column_stack([x, y, s])

        jumps = self.jump_times(music_map.beats)
        if len(jumps) > 0:
            # Tolerate discretization of station times against beat times
            gap = np.abs(time[:, None] - jumps[None, :])
            is_jump = np.any(gap <= cfg.jump_tolerance + 1e-9, axis=1)
        else:
            is_jump = np.zeros(n_nodes, dtype=bool)

        return RawStations(t=t, time=time, s=s, pos=pos, is_jump=is_jump)

    def derive_forward(self, pos: np.ndarray) -> np.ndarray:
        """
        Phase two: unit direction from each station to the next.

        The last station repeats the previous direction. Zero-length
        segments fall back to the preceding direction, or world forward.

        Args:
            pos: Station positions, shape (n, 3).

        Returns:
            Forward vectors, shape (n, 3).
        """
        n = len(pos)
        forward = np.tile(WORLD_FORWARD, (n, 1))
        previous = WORLD_FORWARD
        for i in range(n - 1):
            forward[i] = _unit(pos[i + 1] - pos[i], previous)
            previous = forward[i]
        if n > 1:
            forward[-1] = forward[-2]
        return forward

    def create_treble_pulses(
        self,
        treble_peaks: Sequence[BeatMarker],
        nodes: Sequence[TrackNode],
        duration: float,
    ) -> tuple[TreblePulse, ...]:
        """
        Place one hazard per treble peak.

        Lanes cycle through lane_pattern by peak ordinal. Each hazard sits
        at its nearest station, shifted along the station's right vector by
        the lane offset and raised by an intensity-dependent height.

        Args:
            treble_peaks: Time-ordered treble events.
            nodes: Generated stations.
            duration: Recording duration in seconds.

        Returns:
            Hazards in peak order; empty for degenerate input.
        """
        cfg = self.config
        if len(treble_peaks) == 0 or len(nodes) == 0 or duration <= 0:
            return ()

        intensities = self.smoother.scale_to_peak(
            np.array([peak.strength for peak in treble_peaks])
        )
        fallback_right = np.cross(WORLD_FORWARD, WORLD_UP)
        last = len(nodes) - 1

        pulses = []
        for index, (peak, intensity) in enumerate(zip(treble_peaks, intensities)):
            normalized_time = min(1.0, max(0.0, peak.time / duration))
            node = nodes[min(last, int(np.floor(normalized_time * last + 0.5)))]

            right = _unit(np.cross(node.forward, node.up), fallback_right)
            lane_index = cfg.lane_pattern[index % len(cfg.lane_pattern)]
            height = cfg.hazard_base_height + float(intensity) * cfg.hazard_height_range

            pos = node.pos + right * (lane_index * cfg.lane_width) + WORLD_UP * height
            pulses.append(
                TreblePulse(
                    time=peak.time,
                    pos=_frozen(pos),
                    intensity=float(intensity),
                    lane_index=lane_index,
                )
            )
        return tuple(pulses)

    def generate(self, music_map: MusicMap) -> TrackData:
        """
        Generate the complete track for a recording.

        Args:
            music_map: Features from SignalAnalyzer.

        Returns:
            TrackData with stations, hazards and total length.
        """
        duration = max(0.0, music_map.duration)
        n_nodes = self.compute_node_count(duration)

        raw = self.build_stations(music_map, n_nodes)
        forward = self.derive_forward(raw.pos)
        up = _frozen(WORLD_UP)

        nodes = tuple(
            TrackNode(
                t=float(raw.t[i]),
                s=float(raw.s[i]),
                pos=_frozen(raw.pos[i]),
                forward=_frozen(forward[i]),
                up=up,
                is_jump=bool(raw.is_jump[i]),
            )
            for i in range(n_nodes)
        )

        pulses = self.create_treble_pulses(music_map.treble_peaks, nodes, duration)
        length = duration * self.config.speed

        logger.debug(
            "Generated track: %d nodes, %d pulses, %d jumps, length %.1f",
            len(nodes),
            len(pulses),
            int(np.count_nonzero(raw.is_jump)),
            length,
        )

        return TrackData(nodes=nodes, treble_pulses=pulses, length=length)

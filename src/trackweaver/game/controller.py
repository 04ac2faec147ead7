"""
Session driver.

Owns the loaded track and the per-tick state: maps the playback clock to
distance along the path and lets the autopilot adjust the lane.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from trackweaver.config import TrackConfig
from trackweaver.core.analyzer import MusicMap, SignalAnalyzer
from trackweaver.core.loader import DecodedAudio
from trackweaver.game.autopilot import AvoidanceHeuristic
from trackweaver.game.state import (
    AUTO,
    MANUAL,
    GameState,
    advance_distance,
    apply_lane_change,
    init_game_state,
)
from trackweaver.track.generator import TrackGenerator
from trackweaver.track.types import TrackData, TrackNode

logger = logging.getLogger(__name__)


class PlaybackClock(Protocol):
    """Elapsed playback time, monotonic while playing and frozen while paused."""

    def current_time(self) -> float: ...

    def is_playing(self) -> bool: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


class SimulatedClock:
    """Manually advanced clock for headless runs and tests."""

    def __init__(self):
        self._time = 0.0
        self._playing = False

    def current_time(self) -> float:
        return self._time

    def is_playing(self) -> bool:
        return self._playing

    def play(self):
        self._playing = True

    def pause(self):
        self._playing = False

    def advance(self, seconds: float):
        """Move the clock forward if playing."""
        if self._playing and seconds > 0:
            self._time += seconds

    def seek(self, seconds: float):
        self._time = max(0.0, seconds)


class GameSession:
    """
    Ties analysis, generation and per-tick updates together.

    Manual lane changes take effect immediately and stand until the
    autopilot next finds the car's lane blocked.
    """

    def __init__(
        self,
        clock: PlaybackClock | None = None,
        analyzer: SignalAnalyzer | None = None,
        generator: TrackGenerator | None = None,
        autopilot: AvoidanceHeuristic | None = None,
        autopilot_enabled: bool = True,
    ):
        self.clock = clock or SimulatedClock()
        self.analyzer = analyzer or SignalAnalyzer()
        self.generator = generator or TrackGenerator()
        self.autopilot = autopilot or AvoidanceHeuristic()
        self.autopilot_enabled = autopilot_enabled

        self.music_map: MusicMap | None = None
        self.track: TrackData | None = None
        self.state: GameState = init_game_state()

    @property
    def speed(self) -> float:
        return self.generator.config.speed

    def is_ready(self) -> bool:
        return self.track is not None

    def current_node(self) -> TrackNode | None:
        """Station at or just behind the car, for placing it on the path."""
        if self.track is None:
            return None
        return self.track.node_at_distance(self.state.car.distance)

    def load_audio(self, decoded: DecodedAudio) -> TrackData:
        """
        Analyze audio, generate its track and reset the session.

        Args:
            decoded: First-channel samples with rate and duration.

        Returns:
            The newly generated track.
        """
        music_map = self.analyzer.analyze(
            decoded.samples,
            decoded.sample_rate,
            decoded.duration,
        )
        return self.load_music_map(music_map)

    def load_music_map(self, music_map: MusicMap) -> TrackData:
        """Generate a track from existing analysis and reset the session."""
        self.music_map = music_map
        self.track = self.generator.generate(music_map)
        self.load_track(self.track)
        return self.track

    def load_track(self, track: TrackData):
        """Install a pre-built track, replacing any previous one."""
        self.track = track
        self.state = init_game_state()
        self.autopilot.reset()
        logger.info(
            "Loaded track: length %.1f, %d hazards",
            track.length,
            len(track.treble_pulses),
        )

    def play(self):
        self.clock.play()

    def pause(self):
        self.clock.pause()

    def handle_input(self, direction: str) -> int:
        """
        Apply a manual lane change.

        Args:
            direction: "left" or "right". Anything else is ignored.

        Returns:
            The car's lane after the input.
        """
        lane = self.state.car.lane_index
        if direction == "left":
            return apply_lane_change(self.state, lane - 1, source=MANUAL)
        if direction == "right":
            return apply_lane_change(self.state, lane + 1, source=MANUAL)
        return lane

    def update(self) -> GameState:
        """
        Advance one simulation tick from the playback clock.

        Returns:
            The session state after the tick.
        """
        if self.track is None or not self.clock.is_playing():
            return self.state

        now = self.clock.current_time()
        advance_distance(self.state, now * self.speed, self.track.length)

        if self.autopilot_enabled:
            lane = self.autopilot.decide(
                self.state.car.distance,
                self.state.car.lane_index,
                self.track.treble_pulses,
                now,
            )
            if lane is not None:
                apply_lane_change(self.state, lane, source=AUTO)

        return self.state


@dataclass
class SimulationReport:
    """Outcome of a headless run."""

    frames: int = 0
    lane_changes: list[tuple[float, int]] = field(default_factory=list)
    collisions: list[int] = field(default_factory=list)

    @property
    def n_collisions(self) -> int:
        return len(self.collisions)


def simulate(
    track: TrackData,
    fps: int = 60,
    duration: float | None = None,
    autopilot: AvoidanceHeuristic | None = None,
    generator_config: TrackConfig | None = None,
) -> SimulationReport:
    """
    Play a track headlessly at a fixed frame rate.

    A collision is recorded when the car passes a hazard's distance while
    in that hazard's lane.

    Args:
        track: Track to play.
        fps: Simulation ticks per second.
        duration: Seconds to simulate. Defaults to the whole track.
        autopilot: Heuristic to use. None disables automatic dodging.
        generator_config: Supplies the path speed.

    Returns:
        SimulationReport with lane changes and collisions.
    """
    clock = SimulatedClock()
    session = GameSession(
        clock=clock,
        generator=TrackGenerator(config=generator_config),
        autopilot=autopilot,
        autopilot_enabled=autopilot is not None,
    )
    session.load_track(track)

    if duration is None:
        duration = track.length / session.speed if session.speed > 0 else 0.0

    pending = sorted(range(len(track.treble_pulses)), key=lambda i: track.treble_pulses[i].distance)
    report = SimulationReport()
    step = 1.0 / max(1, fps)
    previous_distance = 0.0
    previous_lane = session.state.car.lane_index

    session.play()
    n_frames = int(duration * fps) + 1
    for frame in range(n_frames):
        clock.seek(min(frame * step, duration))
        state = session.update()
        report.frames += 1

        if state.car.lane_index != previous_lane:
            report.lane_changes.append((clock.current_time(), state.car.lane_index))
            previous_lane = state.car.lane_index

        while pending and track.treble_pulses[pending[0]].distance <= state.car.distance:
            index = pending.pop(0)
            pulse = track.treble_pulses[index]
            if pulse.distance > previous_distance and pulse.lane_index == state.car.lane_index:
                report.collisions.append(index)
        previous_distance = state.car.distance

    session.pause()
    logger.info(
        "Simulated %d frames: %d lane changes, %d collisions",
        report.frames,
        len(report.lane_changes),
        len(report.collisions),
    )
    return report

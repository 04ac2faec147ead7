"""Music-driven track generation with automatic hazard avoidance."""

from trackweaver.core.loader import AudioLoader, DecodedAudio
from trackweaver.core.analyzer import MusicMap, SignalAnalyzer
from trackweaver.core.smoothing import EnergySmoother
from trackweaver.track.generator import TrackGenerator
from trackweaver.track.types import TrackData, TrackNode, TreblePulse
from trackweaver.game.autopilot import AvoidanceHeuristic
from trackweaver.game.controller import GameSession, SimulatedClock, simulate
from trackweaver.io.exporter import TrackExporter, load_manifest
from trackweaver.pipeline import TrackPipeline

__version__ = "0.1.0"
__all__ = [
    "AudioLoader",
    "DecodedAudio",
    "MusicMap",
    "SignalAnalyzer",
    "EnergySmoother",
    "TrackGenerator",
    "TrackData",
    "TrackNode",
    "TreblePulse",
    "AvoidanceHeuristic",
    "GameSession",
    "SimulatedClock",
    "simulate",
    "TrackExporter",
    "load_manifest",
    "TrackPipeline",
]

"""Core audio processing modules."""

from trackweaver.core.loader import AudioLoader
from trackweaver.core.analyzer import SignalAnalyzer
from trackweaver.core.smoothing import EnergySmoother

__all__ = ["AudioLoader", "SignalAnalyzer", "EnergySmoother"]

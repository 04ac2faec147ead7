"""Track generation."""

from trackweaver.track.generator import TrackGenerator

__all__ = ["TrackGenerator"]

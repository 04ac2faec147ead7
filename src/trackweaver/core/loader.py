"""
Audio loading module.

Decodes audio files into a single-channel sample buffer with its
sample rate and duration, the only form the analyzer consumes.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from trackweaver.errors import AudioLoadError

logger = logging.getLogger(__name__)


@dataclass
class DecodedAudio:
    """Container for a decoded, single-channel audio buffer."""

    samples: np.ndarray
    sample_rate: int
    duration: float

    @property
    def n_samples(self) -> int:
        """Total number of samples in the buffer."""
        return len(self.samples)


class AudioLoader:
    """
    Loads audio from disk or wraps in-memory buffers.

    Multichannel sources are reduced to their first channel rather than
    downmixed, so analysis sees exactly one channel's waveform.
    """

    def __init__(self, sample_rate: int | None = None):
        """
        Initialize the loader.

        Args:
            sample_rate: Target sample rate. None preserves the file's rate.
        """
        self.sample_rate = sample_rate

    def load(self, audio_path: Union[str, Path]) -> DecodedAudio:
        """
        Decode an audio file.

        Args:
            audio_path: Path to audio file (wav, mp3, flac, ogg).

        Returns:
            DecodedAudio holding the first channel.

        Raises:
            AudioLoadError: If the file is missing or cannot be decoded.
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise AudioLoadError(f"Audio file not found: {audio_path}")

        try:
            y, sr = librosa.load(audio_path, sr=self.sample_rate, mono=False)
        except Exception as e:
            raise AudioLoadError(f"Could not decode {audio_path}: {e}") from e

        if y.ndim > 1:
            y = y[0]

        logger.debug("Decoded %s: %d samples at %d Hz", audio_path, len(y), sr)
        return self.from_array(y, sr)

    @staticmethod
    def from_array(samples: np.ndarray, sample_rate: int) -> DecodedAudio:
        """
        Wrap an in-memory buffer.

        Args:
            samples: Amplitudes in [-1, 1]. 2D input keeps its first channel.
            sample_rate: Sample rate in Hz.

        Returns:
            DecodedAudio with duration derived from the sample count.
        """
        y = np.asarray(samples, dtype=np.float64)
        if y.ndim > 1:
            y = y[0]
        duration = len(y) / sample_rate if sample_rate > 0 else 0.0
        return DecodedAudio(samples=y, sample_rate=int(sample_rate), duration=float(duration))

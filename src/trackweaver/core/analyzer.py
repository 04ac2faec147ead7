"""
Feature extraction module for audio analysis.

Splits a mono sample buffer into fixed windows and extracts the
broadband energy envelope, rhythmic beats and high-frequency
transients that drive track generation.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy import signal as scipy_signal

from trackweaver.config import AnalyzerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergySample:
    """Energy of one analysis window, stamped at the window start."""

    time: float
    rms: float


@dataclass(frozen=True)
class BeatMarker:
    """A detected event and the magnitude that triggered it."""

    time: float
    strength: float


@dataclass(frozen=True)
class MusicMap:
    """Complete feature set from audio analysis."""

    duration: float
    beats: tuple[BeatMarker, ...] = field(default_factory=tuple)
    energy_samples: tuple[EnergySample, ...] = field(default_factory=tuple)
    # Derivative-based energy (high-frequency proxy)
    treble_samples: tuple[EnergySample, ...] = field(default_factory=tuple)
    treble_peaks: tuple[BeatMarker, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True when no analysis windows were produced."""
        return len(self.energy_samples) == 0


class SignalAnalyzer:
    """
    Extracts energy and event features from a raw sample buffer.

    Each window yields one broadband RMS value and one treble RMS value
    computed over first differences, a cheap high-pass stand-in. Events
    are strict local maxima above a mean-plus-deviation threshold.
    """

    def __init__(self, config: AnalyzerConfig | None = None):
        """
        Initialize the analyzer.

        Args:
            config: Windowing and threshold parameters.
        """
        self.config = config or AnalyzerConfig()

    def compute_hop_length(self, sr: int) -> int:
        """
        Calculate the window length in samples.

        Args:
            sr: Sample rate.

        Returns:
            Samples per window, at least 1.
        """
        return max(1, int(np.floor(sr * self.config.window_seconds)))

    def window_energy(
        self,
        y: np.ndarray,
        hop_length: int,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Compute per-window broadband and treble RMS.

        The last window may be shorter than hop_length. First differences
        never cross a window boundary, and a single-sample window has a
        treble RMS of 0.

        Args:
            y: Mono samples.
            hop_length: Window length in samples.

        Returns:
            Tuple of (start_indices, rms, treble_rms).
        """
        n = len(y)
        starts = np.arange(0, n, hop_length)
        ends = np.minimum(starts + hop_length, n)
        lengths = ends - starts

        squares = y.astype(np.float64) ** 2
        rms = np.sqrt(np.add.reduceat(squares, starts) / lengths)

        # cumulative[k] = sum of squared differences d[0..k-1], d[i] = y[i+1] - y[i]
        diff_squares = np.diff(y.astype(np.float64)) ** 2
        cumulative = np.concatenate(([0.0], np.cumsum(diff_squares)))
        diff_sums = cumulative[ends - 1] - cumulative[starts]
        treble_rms = np.sqrt(diff_sums / np.maximum(1, lengths - 1))

        return starts, rms, treble_rms

    def compute_threshold(self, series: np.ndarray) -> float:
        """
        Event threshold: mean plus a fraction of the standard deviation.

        Args:
            series: Per-window energy values.

        Returns:
            Threshold, or 0.0 for an empty series.
        """
        if len(series) == 0:
            return 0.0
        return float(np.mean(series) + self.config.stddev_factor * np.std(series))

    def detect_peaks(self, series: np.ndarray, threshold: float) -> np.ndarray:
        """
        Find strict local maxima above threshold.

        The first and last windows are never reported.

        Args:
            series: Per-window energy values.
            threshold: Minimum magnitude (exclusive).

        Returns:
            Indices of qualifying windows, ascending.
        """
        if len(series) < 3:
            return np.array([], dtype=int)
        (maxima,) = scipy_signal.argrelextrema(series, np.greater)
        return maxima[series[maxima] > threshold]

    def analyze(
        self,
        samples: np.ndarray,
        sample_rate: int,
        duration: float,
    ) -> MusicMap:
        """
        Perform complete feature extraction on a sample buffer.

        Empty buffers and non-positive durations or sample rates produce
        an empty MusicMap instead of raising.

        Args:
            samples: Mono amplitudes in [-1, 1].
            sample_rate: Sample rate in Hz.
            duration: Duration in seconds.

        Returns:
            MusicMap with energy envelopes and detected events.
        """
        y = np.asarray(samples, dtype=np.float64)
        if y.ndim > 1:
            # Channel-first buffers: analyze the first channel only
            y = y[0]
        y = y.ravel()

        if duration <= 0 or len(y) == 0 or sample_rate <= 0:
            logger.debug(
                "Invalid analysis input (duration=%s, n_samples=%d, sr=%s)",
                duration,
                len(y),
                sample_rate,
            )
            return MusicMap(duration=max(0.0, float(duration)))

        hop_length = self.compute_hop_length(sample_rate)
        starts, rms, treble_rms = self.window_energy(y, hop_length)
        times = starts / sample_rate

        energy_samples = tuple(
            EnergySample(time=float(t), rms=float(v)) for t, v in zip(times, rms)
        )
        treble_samples = tuple(
            EnergySample(time=float(t), rms=float(v)) for t, v in zip(times, treble_rms)
        )

        beat_idx = self.detect_peaks(rms, self.compute_threshold(rms))
        beats = tuple(
            BeatMarker(time=float(times[i]), strength=float(rms[i])) for i in beat_idx
        )

        treble_idx = self.detect_peaks(treble_rms, self.compute_threshold(treble_rms))
        treble_peaks = tuple(
            BeatMarker(time=float(times[i]), strength=float(treble_rms[i]))
            for i in treble_idx
        )

        logger.debug(
            "Analyzed %d windows: %d beats, %d treble peaks",
            len(energy_samples),
            len(beats),
            len(treble_peaks),
        )

        return MusicMap(
            duration=float(duration),
            beats=beats,
            energy_samples=energy_samples,
            treble_samples=treble_samples,
            treble_peaks=treble_peaks,
        )

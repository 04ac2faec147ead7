"""
Energy smoothing and scaling module.

Resamples the per-window energy envelope onto an arbitrary number of
track stations with a triangular kernel, so the vertical profile of
the path follows loudness without per-window jitter.
"""

from typing import Sequence

import numpy as np

from trackweaver.core.analyzer import EnergySample


class EnergySmoother:
    """
    Triangular-kernel resampler for energy envelopes.

    The kernel half-width spans two average sample intervals, so every
    target time sees at least one source sample unless the envelope is
    empty.
    """

    def __init__(self, width_in_samples: float = 2.0):
        """
        Initialize the smoother.

        Args:
            width_in_samples: Kernel half-width in average sample intervals.
        """
        self.width_in_samples = width_in_samples

    def window_size(self, energy_samples: Sequence[EnergySample]) -> float:
        """Kernel half-width in seconds for the given envelope."""
        if len(energy_samples) == 0:
            return 0.0
        span = energy_samples[-1].time
        return span / len(energy_samples) * self.width_in_samples

    def resample(
        self,
        energy_samples: Sequence[EnergySample],
        target_count: int,
    ) -> np.ndarray:
        """
        Resample an energy envelope to exactly target_count points.

        Target times are spread evenly from 0 to the last sample's time.
        Each output is the weight-normalized sum of rms * (1 - dist / window)
        over samples strictly inside the window; targets with no sample in
        range get 0. A zero-width window (single sample) matches only
        samples at exactly the target time.

        Args:
            energy_samples: Time-ordered envelope.
            target_count: Number of output points.

        Returns:
            Smoothed values, shape (target_count,).
        """
        if target_count <= 0:
            return np.zeros(0)
        if len(energy_samples) == 0:
            return np.zeros(target_count)

        times = np.array([s.time for s in energy_samples], dtype=np.float64)
        values = np.array([s.rms for s in energy_samples], dtype=np.float64)

        span = times[-1]
        window = self.window_size(energy_samples)

        if target_count > 1:
            targets = np.arange(target_count) / (target_count - 1) * span
        else:
            targets = np.zeros(1)

        smoothed = np.zeros(target_count)
        for i, target in enumerate(targets):
            if window <= 0:
                mask = times == target
                if np.any(mask):
                    smoothed[i] = float(np.mean(values[mask]))
                continue

            lo = np.searchsorted(times, target - window, side="right")
            hi = np.searchsorted(times, target + window, side="left")
            dist = np.abs(times[lo:hi] - target)
            weights = 1.0 - dist / window
            total = weights.sum()
            if total > 0:
                smoothed[i] = float(np.dot(values[lo:hi], weights) / total)

        return smoothed

    def scale_to_peak(self, values: np.ndarray) -> np.ndarray:
        """
        Divide by the maximum so the largest value maps to 1.0.

        Args:
            values: Non-negative magnitudes.

        Returns:
            Scaled values, or zeros when empty or the maximum is not positive.
        """
        values = np.asarray(values, dtype=np.float64)
        if len(values) == 0:
            return values
        peak = float(np.max(values))
        if peak <= 0:
            return np.zeros_like(values)
        return values / peak

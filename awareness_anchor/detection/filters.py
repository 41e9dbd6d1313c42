"""
Signal filtering for the gesture pipelines.

This module contains the exponential low-pass filter applied to raw channels
and the baseline capture that turns smoothed readings into deltas from a
per-window zero reference.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from awareness_anchor.config import HeadPoseConfig

logger = logging.getLogger(__name__)

MAX_SMOOTHING_FACTOR = 0.99


class SignalSmoother:
    """
    Exponential (IIR) low-pass filter.

    Works on a scalar or on a numpy vector; each element of a vector is
    filtered independently. The first reading after a reset passes through
    unchanged.
    """

    def __init__(self, factor=None):
        """
        Initialize the smoother.

        Args:
            factor (float): Weight of the previous smoothed value, in [0, 1).
                Higher is smoother and slower. If None, uses config default.
        """
        self.value = None
        self.initialized = False
        self.factor = HeadPoseConfig.SMOOTHING_FACTOR if factor is None else factor

    @property
    def factor(self):
        return self._factor

    @factor.setter
    def factor(self, factor):
        # Applies from the next update on; filter state is kept
        self._factor = min(max(float(factor), 0.0), MAX_SMOOTHING_FACTOR)

    def update(self, raw):
        """
        Feed one raw reading and return the smoothed value.

        Args:
            raw (float or numpy.ndarray): New reading

        Returns:
            float or numpy.ndarray: Smoothed reading
        """
        if not self.initialized:
            self.value = raw
            self.initialized = True
        else:
            self.value = (1 - self._factor) * raw + self._factor * self.value
        return self.value

    def reset(self):
        """Forget all state; the next reading passes through unchanged."""
        self.value = None
        self.initialized = False


class BaselineCapture:
    """
    Zero reference for a pipeline's channels, captured once per activation.

    The first ``frames_to_skip`` observations are discarded so that stale
    frames delivered right after activation never become the baseline. The
    next observation becomes the baseline and yields no delta; every later
    observation yields ``current - baseline``.
    """

    def __init__(self, frames_to_skip: int = HeadPoseConfig.FRAMES_TO_SKIP,
                 reference: Optional[Sequence[float]] = None) -> None:
        """
        Args:
            frames_to_skip: Warm-up observations discarded after each reset.
            reference: Fixed zero reference. When given, it is used as the
                baseline instead of the first stable observation.
        """
        self.frames_to_skip = max(0, int(frames_to_skip))
        self.reference = None if reference is None else np.asarray(reference, dtype=float)
        self.values: Optional[np.ndarray] = None
        self.is_set = False
        self.frames_remaining_to_skip = self.frames_to_skip

    @property
    def warming_up(self) -> bool:
        return self.frames_remaining_to_skip > 0

    def observe(self, sample) -> Optional[np.ndarray]:
        """
        Observe one smoothed sample.

        Returns:
            numpy.ndarray or None: Delta from the baseline, or None while
            warming up and on the frame that sets the baseline.
        """
        if self.frames_remaining_to_skip > 0:
            self.frames_remaining_to_skip -= 1
            return None

        current = np.asarray(sample, dtype=float)

        if not self.is_set:
            if self.reference is not None:
                self.values = self.reference.copy()
                self.is_set = True
                logger.debug(f"Baseline fixed at reference {self.values}")
                return current - self.values

            self.values = current.copy()
            self.is_set = True
            logger.info(f"Baseline set: {np.round(self.values, 3).tolist()}")
            return None

        return current - self.values

    def reset(self) -> None:
        """Unset the baseline and restore the warm-up counter."""
        self.values = None
        self.is_set = False
        self.frames_remaining_to_skip = self.frames_to_skip

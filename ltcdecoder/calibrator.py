"""
Amplitude calibration for LTC audio.

LTC carries no amplitude or polarity reference, so what counts as high and low
is derived from the midpoint between the smallest and largest of the most
recent samples. The midpoint is recalculated once per full history window
rather than per sample.
"""

from enum import Enum
from typing import Optional

import numpy as np

from . import HISTORY_SIZE


class Level(Enum):
    """Classification of a sample against the calibrated threshold."""
    LOW = 0
    HIGH = 1


def _half(value: int) -> int:
    """Halve, rounding toward zero."""
    return -(-value // 2) if value < 0 else value // 2


class SampleBounds:
    """
    Tracks min, max and the high/low threshold of recent samples.

    Samples are stored in a fixed ring buffer of the configured integer dtype.
    Classification is unavailable until one full window has been received
    since construction or the last invalidation.
    """

    def __init__(self, dtype=np.int16, history_size: int = HISTORY_SIZE):
        """
        Initialize calibration state.

        Args:
            dtype: numpy integer dtype of the incoming samples
            history_size: Samples per recalculation window
        """
        self.dtype = np.dtype(dtype)
        if self.dtype.kind not in ("i", "u"):
            raise ValueError(f"Sample dtype must be an integer type (got {self.dtype})")
        info = np.iinfo(self.dtype)
        self._lowest = int(info.min)
        self._highest = int(info.max)

        self.history = np.zeros(history_size, dtype=self.dtype)
        self._cursor = 0
        self.received_count = 0

        self.valid = False
        self.min_value = 0
        self.max_value = 0
        self.threshold = 0

    def push_sample(self, sample: int):
        """Store a sample, recalculating once every full window."""
        self.history[self._cursor] = sample
        self._cursor = (self._cursor + 1) % len(self.history)
        self.received_count += 1
        if self.received_count == len(self.history):
            self.received_count = 0
            self.recalculate()

    def recalculate(self):
        """Recalculate min_value, max_value and threshold from the history."""
        self.min_value = int(self.history.min())
        self.max_value = int(self.history.max())
        self.recalculate_threshold()

    def recalculate_threshold(self):
        threshold = _half(self.max_value) + _half(self.min_value)
        if not all(self._fits(v) for v in (self.min_value, self.max_value, threshold)):
            self.valid = False
            return
        self.threshold = threshold
        self.valid = True

    def _fits(self, value: int) -> bool:
        return self._lowest <= value <= self._highest

    def classify(self, sample) -> Optional[Level]:
        """
        Record a sample and classify it.

        Returns:
            Level.HIGH if above the threshold, Level.LOW otherwise (ties are
            low), or None while calibration is not valid
        """
        sample = int(sample)
        self.push_sample(sample)
        if not self.valid:
            return None
        return Level.HIGH if sample > self.threshold else Level.LOW

    def invalidate(self):
        """Forget the current bounds. History is left to be overwritten."""
        self.threshold = 0
        self.max_value = 0
        self.min_value = 0
        self.valid = False
        self.received_count = 0

"""
Biphase-mark bit recovery for SMPTE/LTC.

Biphase-mark rules:
1. There's always a transition at the boundary of each bit cell
2. Logic 1: Additional transition in the middle of the cell
3. Logic 0: No transition in the middle

The decoder first waits for a full bit cell without a transition (a 0) to
find the bit grid. Once in sync, every level change is checked against the
window in which a change is legal at that point of the bit cell. A change
outside its window, or no boundary change in time, drops sync and starts
over with fresh calibration.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from . import MIN_BIT_DURATION_S, MAX_BIT_DURATION_S, BIT_COUNT_SLACK
from .calibrator import Level, SampleBounds

# Module-level logger
_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BitTiming:
    """Sample-count bounds for a full bit and a half bit at one sample rate."""
    min_samples_per_bit: int
    max_samples_per_bit: int
    min_samples_per_half_bit: int
    max_samples_per_half_bit: int

    @classmethod
    def from_sample_rate(cls, sample_rate: float) -> "BitTiming":
        """
        Derive bounds from the physical LTC bit duration limits.

        Args:
            sample_rate: Audio sample rate (Hz)

        Raises:
            ValueError: If the rate is not positive or too low to resolve a half bit
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive (got {sample_rate})")

        timing = cls(
            min_samples_per_bit=int(sample_rate * MIN_BIT_DURATION_S) - BIT_COUNT_SLACK,
            max_samples_per_bit=int(sample_rate * MAX_BIT_DURATION_S) + BIT_COUNT_SLACK,
            min_samples_per_half_bit=int(sample_rate * MIN_BIT_DURATION_S / 2.0) - BIT_COUNT_SLACK,
            max_samples_per_half_bit=int(sample_rate * MAX_BIT_DURATION_S / 2.0) + BIT_COUNT_SLACK,
        )
        if timing.min_samples_per_half_bit < 1:
            raise ValueError(f"Sample rate {sample_rate} Hz is too low to resolve LTC half bits")
        return timing


class ZeroDetector:
    """
    Finds the end of a 0 bit: a full bit duration without a level change.

    Used only to acquire sync. In biphase-mark code a run of that length can
    only be a 0, so the change ending it is a bit boundary.
    """

    def __init__(self, timing: BitTiming):
        self.min_sample_count = timing.min_samples_per_bit
        self.max_sample_count = timing.max_samples_per_bit
        self.level: Optional[Level] = None
        self.sample_count = 0

    def is_end_of_zero(self, level: Level) -> bool:
        """
        Feed one classified sample.

        Returns:
            True on the first sample after a run of full-bit length
        """
        if self.sample_count == 0:
            self.level = level
            self.sample_count = 1
            return False

        self.sample_count += 1
        if level != self.level:
            self.level = level
            is_zero = self.min_sample_count <= self.sample_count <= self.max_sample_count
            self.invalidate()
            return is_zero

        if self.sample_count > self.max_sample_count:
            self.invalidate()
        return False

    def invalidate(self):
        """Restart the search from the next sample."""
        self.sample_count = 0


class ExpectedEvent(Enum):
    """What the signal may legally do at the current position in a bit cell."""
    MUST_BE_STEADY = "must_be_steady"
    CAN_CHANGE_IN_MIDDLE = "can_change_in_middle"
    CAN_CHANGE_IN_END = "can_change_in_end"
    OVERDUE = "overdue"


class Anomaly(Enum):
    """Reasons for dropping sync."""
    ILLEGAL_TRANSITION = "illegal_transition"
    OVERDUE = "overdue"


class BitDecoder:
    """
    Turns audio samples into LTC bits, one sample at a time.

    Owns the amplitude calibration and the heartbeat (bit grid) tracking.
    sample_count is the number of samples since the last bit boundary,
    which is sample 0.
    """

    def __init__(self, sample_rate: float, dtype=np.int16, debug: bool = False):
        """
        Initialize bit decoder.

        Args:
            sample_rate: Audio sample rate (Hz)
            dtype: numpy integer dtype of the samples
            debug: Log sync acquisition and loss
        """
        self.timing = BitTiming.from_sample_rate(sample_rate)
        self.debug = debug

        self.sample_bounds = SampleBounds(dtype)
        self.zero_detector = ZeroDetector(self.timing)

        self.heartbeat_in_sync = False
        self.sample_count = 0
        self.last_level: Optional[Level] = None
        self.mid_bit_change = False

        # Classification of the last sample, None while calibrating
        self.level: Optional[Level] = None
        # Set by the last push_sample() call if it dropped sync
        self.last_anomaly: Optional[Anomaly] = None

    def expected_event(self) -> ExpectedEvent:
        """Legal behaviour of the signal at the current sample_count."""
        count = self.sample_count
        timing = self.timing
        if count < timing.min_samples_per_half_bit:
            return ExpectedEvent.MUST_BE_STEADY
        if count <= timing.max_samples_per_half_bit:
            if self.mid_bit_change:
                return ExpectedEvent.MUST_BE_STEADY
            return ExpectedEvent.CAN_CHANGE_IN_MIDDLE
        if count < timing.min_samples_per_bit:
            return ExpectedEvent.MUST_BE_STEADY
        if count <= timing.max_samples_per_bit:
            return ExpectedEvent.CAN_CHANGE_IN_END
        return ExpectedEvent.OVERDUE

    def push_sample(self, sample) -> Optional[bool]:
        """
        Process one audio sample.

        Returns:
            True (1) or False (0) when a bit cell completes on this sample,
            None otherwise
        """
        self.last_anomaly = None

        level = self.sample_bounds.classify(sample)
        self.level = level
        if level is None:
            # Still calibrating
            return None

        if not self.heartbeat_in_sync:
            if not self.zero_detector.is_end_of_zero(level):
                return None
            self.heartbeat_in_sync = True
            self.sample_count = 0
            self.last_level = level
            self.mid_bit_change = False
            if self.debug:
                _logger.debug(f"Heartbeat locked (threshold={self.sample_bounds.threshold})")
            return None

        self.sample_count += 1
        changed = level != self.last_level
        self.last_level = level

        event = self.expected_event()
        if event is ExpectedEvent.OVERDUE:
            self._invalidate(Anomaly.OVERDUE)
            return None
        if not changed:
            return None
        if event is ExpectedEvent.MUST_BE_STEADY:
            self._invalidate(Anomaly.ILLEGAL_TRANSITION)
            return None
        if event is ExpectedEvent.CAN_CHANGE_IN_MIDDLE:
            self.mid_bit_change = True
            return None

        # Bit boundary
        bit = self.mid_bit_change
        self.sample_count = 0
        self.mid_bit_change = False
        return bit

    def _invalidate(self, anomaly: Anomaly):
        if self.debug:
            _logger.debug(f"Sync lost: {anomaly.value} at {self.sample_count} samples into bit")
        self.invalidate()
        self.last_anomaly = anomaly

    def invalidate(self):
        """Drop sync and calibration; both are re-acquired from new samples."""
        self.heartbeat_in_sync = False
        self.sample_count = 0
        self.last_level = None
        self.mid_bit_change = False
        self.sample_bounds.invalidate()
        self.zero_detector.invalidate()

    @property
    def in_sync(self) -> bool:
        return self.heartbeat_in_sync

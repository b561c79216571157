"""
SMPTE timecode value and frame-rate classification.

The frame rate is not carried in the LTC payload reliably, so it is estimated
from how many samples the 64 payload bits took to arrive.
"""

import dataclasses
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from . import BITS_PER_FRAME, PAYLOAD_BITS

# Accepted deviation from the nominal payload duration
FRAME_DURATION_TOLERANCE = 0.02


class FramesPerSecond(IntEnum):
    """SMPTE frame rates distinguishable by timing."""
    UNKNOWN = 0
    FPS_24 = 24
    FPS_25 = 25
    FPS_30 = 30

    @property
    def payload_duration_s(self) -> Optional[float]:
        """Nominal duration of the 64 payload bits (excluding the sync word)."""
        if self == FramesPerSecond.UNKNOWN:
            return None
        return (1.0 / int(self)) * PAYLOAD_BITS / BITS_PER_FRAME

    @classmethod
    def from_frame_duration(cls, duration_s: float) -> "FramesPerSecond":
        """
        Classify the duration of a frame's payload (sync word excluded).

        Args:
            duration_s: Time taken by the payload bits, in seconds

        Returns:
            Matching frame rate, or UNKNOWN if outside every tolerance band
        """
        for fps in (cls.FPS_24, cls.FPS_25, cls.FPS_30):
            nominal = fps.payload_duration_s
            low = nominal * (1.0 - FRAME_DURATION_TOLERANCE)
            high = nominal * (1.0 + FRAME_DURATION_TOLERANCE)
            if low < duration_s < high:
                return fps
        return cls.UNKNOWN


@dataclass
class TimecodeFrame:
    """
    One decoded LTC frame.

    user_bits holds the eight 4-bit user fields in transmission order when the
    decoder was asked to retain them, otherwise None.
    """
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    frames: int = 0
    frames_per_second: FramesPerSecond = FramesPerSecond.UNKNOWN
    user_bits: Optional[tuple[int, ...]] = None

    def __post_init__(self):
        if self.user_bits is not None:
            self.user_bits = tuple(self.user_bits)
            if len(self.user_bits) != 8:
                raise ValueError(f"user_bits must have 8 fields (got {len(self.user_bits)})")

    def advance_one_frame(self):
        """
        Step to the next frame, carrying into seconds, minutes and hours.

        With an UNKNOWN frame rate the frame count is never wrapped. Hours are
        not wrapped.
        """
        self.frames += 1
        if self.frames_per_second != FramesPerSecond.UNKNOWN:
            if self.frames >= int(self.frames_per_second):
                self.frames = 0
                self.seconds += 1
        if self.seconds > 59:
            self.seconds = 0
            self.minutes += 1
        if self.minutes > 59:
            self.minutes = 0
            self.hours += 1

    def copy(self) -> "TimecodeFrame":
        return dataclasses.replace(self)

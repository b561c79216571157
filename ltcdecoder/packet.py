"""
LTC frame payload structure and field encoding.

The 64 payload bits are numbered in transmission order (SMPTE 12M):
- Bits 0-3: Frame units
- Bits 4-7: User bits field 1
- Bits 8-9: Frame tens
- Bits 10-11: Drop frame / color frame flags (not decoded)
- Bits 12-15: User bits field 2
- Bits 16-19: Seconds units
- Bits 20-23: User bits field 3
- Bits 24-26: Seconds tens
- Bit 27: Polarity / binary group flag (not decoded)
- Bits 28-31: User bits field 4
- Bits 32-35: Minutes units
- Bits 36-39: User bits field 5
- Bits 40-42: Minutes tens
- Bit 43: Binary group flag (not decoded)
- Bits 44-47: User bits field 6
- Bits 48-51: Hours units
- Bits 52-55: User bits field 7
- Bits 56-57: Hours tens
- Bits 58-59: Clock / binary group flags (not decoded)
- Bits 60-63: User bits field 8

Every field is LSB first. The decoder shifts received bits in at the bottom
of a 64-bit register, so transmission bit i ends up at register bit 63 - i.
"""

from typing import NamedTuple, Optional, Sequence

from . import PAYLOAD_BITS, SYNC_WORD
from .timecode import FramesPerSecond, TimecodeFrame

PAYLOAD_MASK = (1 << PAYLOAD_BITS) - 1


class BitRange(NamedTuple):
    """Half-open range of payload bits, in transmission order."""
    start: int
    stop: int


FRAME_UNITS = BitRange(0, 4)
FRAME_UNITS_USER_BITS = BitRange(4, 8)
FRAME_TENS = BitRange(8, 10)
FRAME_TENS_USER_BITS = BitRange(12, 16)
SECOND_UNITS = BitRange(16, 20)
SECOND_UNITS_USER_BITS = BitRange(20, 24)
SECOND_TENS = BitRange(24, 27)
SECOND_TENS_USER_BITS = BitRange(28, 32)
MINUTE_UNITS = BitRange(32, 36)
MINUTE_UNITS_USER_BITS = BitRange(36, 40)
MINUTE_TENS = BitRange(40, 43)
MINUTE_TENS_USER_BITS = BitRange(44, 48)
HOUR_UNITS = BitRange(48, 52)
HOUR_UNITS_USER_BITS = BitRange(52, 56)
HOUR_TENS = BitRange(56, 58)
HOUR_TENS_USER_BITS = BitRange(60, 64)

USER_BIT_RANGES = (
    FRAME_UNITS_USER_BITS,
    FRAME_TENS_USER_BITS,
    SECOND_UNITS_USER_BITS,
    SECOND_TENS_USER_BITS,
    MINUTE_UNITS_USER_BITS,
    MINUTE_TENS_USER_BITS,
    HOUR_UNITS_USER_BITS,
    HOUR_TENS_USER_BITS,
)


def split_digits(value: int) -> tuple[int, int]:
    """Split a two-digit decimal value into (tens, units)."""
    units = value % 10
    tens = (value - units) // 10
    return tens, units


class FrameData:
    """
    The 64 payload bits of one LTC frame, without the sync word.

    Field values written through the setters are truncated to the field width;
    callers are responsible for supplying digits in range.
    """

    def __init__(self, value: int = 0):
        self.value = value & PAYLOAD_MASK

    def _get_bits(self, bit_range: BitRange) -> int:
        val = 0
        for weight, index in enumerate(range(bit_range.start, bit_range.stop)):
            if (self.value >> (63 - index)) & 1:
                val |= 1 << weight
        return val

    def _set_bits(self, bit_range: BitRange, val: int):
        for weight, index in enumerate(range(bit_range.start, bit_range.stop)):
            mask = 1 << (63 - index)
            if (val >> weight) & 1:
                self.value |= mask
            else:
                self.value &= ~mask

    def _get_digits(self, tens: BitRange, units: BitRange) -> int:
        return self._get_bits(units) + 10 * self._get_bits(tens)

    def _set_digits(self, tens: BitRange, units: BitRange, value: int):
        tens_val, units_val = split_digits(value)
        self._set_bits(units, units_val)
        self._set_bits(tens, tens_val)

    @property
    def frames(self) -> int:
        return self._get_digits(FRAME_TENS, FRAME_UNITS)

    @property
    def seconds(self) -> int:
        return self._get_digits(SECOND_TENS, SECOND_UNITS)

    @property
    def minutes(self) -> int:
        return self._get_digits(MINUTE_TENS, MINUTE_UNITS)

    @property
    def hours(self) -> int:
        return self._get_digits(HOUR_TENS, HOUR_UNITS)

    def set_frames(self, frames: int):
        self._set_digits(FRAME_TENS, FRAME_UNITS, frames)

    def set_seconds(self, seconds: int):
        self._set_digits(SECOND_TENS, SECOND_UNITS, seconds)

    def set_minutes(self, minutes: int):
        self._set_digits(MINUTE_TENS, MINUTE_UNITS, minutes)

    def set_hours(self, hours: int):
        self._set_digits(HOUR_TENS, HOUR_UNITS, hours)

    @property
    def user_bits(self) -> tuple[int, ...]:
        """The eight user bit fields, in transmission order."""
        return tuple(self._get_bits(r) for r in USER_BIT_RANGES)

    def get_user_bits(self, field: int) -> int:
        """Read user bit field 0-7."""
        return self._get_bits(USER_BIT_RANGES[field])

    def set_user_bits(self, field: int, nibble: int):
        """Write user bit field 0-7 (truncated to 4 bits)."""
        self._set_bits(USER_BIT_RANGES[field], nibble)

    @classmethod
    def encode(
        cls,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        frames: int = 0,
        user_bits: Optional[Sequence[int]] = None,
    ) -> "FrameData":
        """
        Build a payload from timecode digits.

        Args:
            hours: Hours (0-39 fit the field)
            minutes: Minutes (0-79 fit the field)
            seconds: Seconds (0-79 fit the field)
            frames: Frames (0-39 fit the field)
            user_bits: Optional eight 4-bit user fields, transmission order

        Returns:
            FrameData with the digits written
        """
        data = cls()
        data.set_hours(hours)
        data.set_minutes(minutes)
        data.set_seconds(seconds)
        data.set_frames(frames)
        if user_bits is not None:
            if len(user_bits) != len(USER_BIT_RANGES):
                raise ValueError(f"user_bits must have 8 fields (got {len(user_bits)})")
            for field, nibble in enumerate(user_bits):
                data.set_user_bits(field, nibble)
        return data

    def to_bits(self) -> list[int]:
        """Get payload as list of bits in transmission order."""
        return [(self.value >> (63 - i)) & 1 for i in range(PAYLOAD_BITS)]

    def shift_bit_with_overflow(self, bit: bool) -> int:
        """
        Append a received bit at the bottom of the register.

        Returns:
            The bit pushed out of the top
        """
        overflow = (self.value >> 63) & 1
        self.value = ((self.value << 1) | int(bit)) & PAYLOAD_MASK
        return overflow

    def next_bit_is_start_of_frame(self) -> bool:
        """
        True when the last 16 received bits are a complete sync word.

        Checked as two byte halves: 1111 1101 in the low byte and 0011 1111
        above it.
        """
        first_half = self.value & 0xFF
        second_half = (self.value >> 8) & 0xFF
        return first_half == SYNC_WORD & 0xFF and second_half == SYNC_WORD >> 8

    def invalidate(self):
        self.value = 0

    def copy(self) -> "FrameData":
        return FrameData(self.value)

    def make_timecode_frame(self, duration_s: float, with_user_bits: bool = False) -> TimecodeFrame:
        """
        Build the timecode value for this payload.

        Args:
            duration_s: Time the payload bits took to arrive, for frame-rate estimation
            with_user_bits: Keep the user bit fields in the result
        """
        return TimecodeFrame(
            hours=self.hours,
            minutes=self.minutes,
            seconds=self.seconds,
            frames=self.frames,
            frames_per_second=FramesPerSecond.from_frame_duration(duration_s),
            user_bits=self.user_bits if with_user_bits else None,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, FrameData):
            return NotImplemented
        return self.value == other.value

    def __repr__(self) -> str:
        return (
            f"FrameData({self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}:{self.frames:02d}, "
            f"value=0x{self.value:016X})"
        )

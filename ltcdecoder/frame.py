"""
LTC frame assembly from a stream of decoded bits.
"""

from typing import Optional

from . import SYNC_WORD, SYNC_WORD_BITS
from .packet import FrameData

SYNC_WORD_MASK = (1 << SYNC_WORD_BITS) - 1


class LtcFrame:
    """
    Rolling 80-bit window over the received bit stream.

    Bits are shifted into a 64-bit payload register; the bit falling out of
    its top is shifted into a 16-bit sync register. When the sync register
    holds the sync word, the payload register holds the 64 bits that
    followed it, which is one complete frame.
    """

    def __init__(self, sync_word: int = 0, data: int = 0):
        self.sync_word = sync_word & SYNC_WORD_MASK
        self.data = FrameData(data)
        # Samples since the payload following a sync word started arriving
        self.frame_data_sample_count = 0

    @classmethod
    def get_sync_bits(cls) -> list[int]:
        """Get sync word as list of bits (MSB first, transmission order)."""
        return [(SYNC_WORD >> i) & 1 for i in range(SYNC_WORD_BITS - 1, -1, -1)]

    def shift_bit(self, bit: bool):
        overflow = self.data.shift_bit_with_overflow(bit)
        self.sync_word = ((self.sync_word << 1) | overflow) & SYNC_WORD_MASK

    def data_valid(self) -> bool:
        """Tells if a whole payload has been received after a sync word."""
        return self.sync_word == SYNC_WORD

    def sample_received(self):
        """
        Count one raw audio sample towards the current payload duration.

        Must be called for every sample, whether or not it completed a bit.
        The count restarts while the payload register ends in a sync word.
        """
        if self.data.next_bit_is_start_of_frame():
            self.frame_data_sample_count = 0
        else:
            self.frame_data_sample_count += 1

    def get_data(self) -> Optional[tuple[FrameData, int]]:
        """
        Returns:
            (payload copy, sample count) once a full frame is in the
            registers, None otherwise
        """
        if self.data_valid():
            return self.data.copy(), self.frame_data_sample_count
        return None

    def invalidate(self):
        self.data.invalidate()
        self.sync_word = 0
        self.frame_data_sample_count = 0

    def __eq__(self, other) -> bool:
        if not isinstance(other, LtcFrame):
            return NotImplemented
        return self.data == other.data and self.sync_word == other.sync_word

    def __repr__(self) -> str:
        return f"LtcFrame(sync_word=0b{self.sync_word:016b}, data={self.data!r})"

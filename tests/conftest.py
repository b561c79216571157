"""
Shared fixtures.
"""

import pytest

from ltcdecoder import FramesPerSecond, TimecodeFrame
from ltc_signal import encode_biphase, ltc_bits, timecode_sequence


@pytest.fixture
def ltc_audio():
    """
    Factory for LTC audio.

    ltc_audio(start, count, sample_rate, **kwargs) returns (samples, timecodes).
    """
    def make(start: TimecodeFrame, count: int, sample_rate: float = 44100, **kwargs):
        timecodes = timecode_sequence(start, count)
        fps = int(start.frames_per_second)
        samples = encode_biphase(ltc_bits(timecodes), sample_rate, fps, **kwargs)
        return samples, timecodes

    return make


@pytest.fixture
def tc25():
    """00:10:00:00 at 25 fps."""
    return TimecodeFrame(0, 10, 0, 0, FramesPerSecond.FPS_25)

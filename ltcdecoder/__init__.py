"""
LTC Decoder - SMPTE/EBU Linear Timecode from raw audio samples.
Decodes one sample at a time without buffering whole frames.
"""

__version__ = "0.1.0"

# Protocol constants
BITS_PER_FRAME = 80
PAYLOAD_BITS = 64  # timecode digits + user bits
SYNC_WORD_BITS = 16
SYNC_WORD = 0x3FFD  # 0011 1111 1111 1101, MSB first as received

# Bit duration at 30fps is 416.7us and at 24fps 520.8us, widened for margin
MIN_BIT_DURATION_S = (405.0 + 2.0 / 3.0) / 1_000_000.0
MAX_BIT_DURATION_S = (530.0 + 2.0 / 3.0) / 1_000_000.0
BIT_COUNT_SLACK = 2  # samples, absorbs rounding

# Amplitude calibration
HISTORY_SIZE = 255  # samples per threshold recalculation

SAMPLE_RATE = 44100  # Hz (default)

from .timecode import FramesPerSecond, TimecodeFrame
from .packet import FrameData
from .frame import LtcFrame
from .calibrator import SampleBounds, Level
from .bit_decoder import BitDecoder, BitTiming, ZeroDetector, ExpectedEvent, Anomaly
from .decoder import LtcDecoder, SampleTrace, decode_file

__all__ = [
    "FramesPerSecond",
    "TimecodeFrame",
    "FrameData",
    "LtcFrame",
    "SampleBounds",
    "Level",
    "BitDecoder",
    "BitTiming",
    "ZeroDetector",
    "ExpectedEvent",
    "Anomaly",
    "LtcDecoder",
    "SampleTrace",
    "decode_file",
]

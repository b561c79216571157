"""
LTC Decoder - Decodes SMPTE/LTC timecode from a stream of audio samples.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

import numpy as np
import soundfile as sf

from . import PAYLOAD_BITS, SAMPLE_RATE
from .bit_decoder import Anomaly, BitDecoder
from .calibrator import Level
from .frame import LtcFrame
from .timecode import TimecodeFrame

# Module-level logger
_logger = logging.getLogger(__name__)


@dataclass
class SampleTrace:
    """Decoder state after one sample, for diagnostics and plotting."""
    index: int
    sample: int
    threshold: Optional[int]
    level: Optional[Level]
    bit: Optional[bool]
    anomaly: Optional[Anomaly]


class LtcDecoder:
    """
    SMPTE/LTC decoder for one audio channel.

    Push samples one at a time; a TimecodeFrame is returned whenever a
    complete frame has been received. Glitches are never raised, the decoder
    resynchronizes on its own and simply emits nothing until then.
    """

    def __init__(
        self,
        sample_rate: float = SAMPLE_RATE,
        dtype=np.int16,
        user_bits: bool = False,
        trace: Optional[Callable[[SampleTrace], None]] = None,
        debug: bool = False,
    ):
        """
        Initialize decoder.

        Args:
            sample_rate: Audio sample rate (Hz)
            dtype: numpy integer dtype of the samples
            user_bits: Include user bit fields in decoded frames
            trace: Optional callback receiving a SampleTrace for every sample
            debug: Enable debug logging
        """
        self.sample_rate = float(sample_rate)
        self.user_bits = user_bits
        self.trace = trace
        self.debug = debug

        self.bit_decoder = BitDecoder(self.sample_rate, dtype, debug=debug)
        self.ltc_frame = LtcFrame()

        # Statistics
        self.samples_received = 0
        self.frames_decoded = 0
        self.invalidations = 0
        self.current_timecode: Optional[TimecodeFrame] = None

        if self.debug:
            timing = self.bit_decoder.timing
            _logger.debug(
                f"Decoder initialized: sample_rate={self.sample_rate}, dtype={np.dtype(dtype)}, "
                f"bit=[{timing.min_samples_per_bit}, {timing.max_samples_per_bit}], "
                f"half_bit=[{timing.min_samples_per_half_bit}, {timing.max_samples_per_half_bit}]"
            )

    def push_sample(self, sample) -> Optional[TimecodeFrame]:
        """
        Push the next audio sample.

        Returns:
            The decoded frame if this sample completed one, None otherwise
        """
        self.ltc_frame.sample_received()

        timecode = None
        bit = self.bit_decoder.push_sample(sample)
        anomaly = self.bit_decoder.last_anomaly
        if anomaly is not None:
            self.ltc_frame.invalidate()
            self.invalidations += 1
            if self.debug:
                _logger.debug(f"Invalidated at sample {self.samples_received}: {anomaly.value}")
        elif bit is not None:
            self.ltc_frame.shift_bit(bit)
            received = self.ltc_frame.get_data()
            if received is not None:
                data, sample_count = received
                timecode = data.make_timecode_frame(
                    self._sample_count_to_duration_s(sample_count), self.user_bits
                )
                self.frames_decoded += 1
                self.current_timecode = timecode

        if self.trace is not None:
            bounds = self.bit_decoder.sample_bounds
            self.trace(SampleTrace(
                index=self.samples_received,
                sample=int(sample),
                threshold=bounds.threshold if bounds.valid else None,
                level=self.bit_decoder.level,
                bit=bit,
                anomaly=anomaly,
            ))

        self.samples_received += 1
        return timecode

    def decode(self, samples: Iterable) -> Iterator[TimecodeFrame]:
        """
        Decode a sequence of samples lazily.

        Yields:
            Each TimecodeFrame in arrival order
        """
        for sample in samples:
            timecode = self.push_sample(sample)
            if timecode is not None:
                yield timecode

    def _sample_count_to_duration_s(self, sample_count: int) -> float:
        # The count starts once the first payload bit is in, so it spans 63 of 64 bits
        return sample_count * PAYLOAD_BITS / (PAYLOAD_BITS - 1) / self.sample_rate

    def invalidate(self):
        """Drop all synchronization state and start over."""
        self.bit_decoder.invalidate()
        self.ltc_frame.invalidate()

    def get_statistics(self) -> dict:
        """
        Get decoder statistics.

        Returns:
            Dict with current status
        """
        return {
            "samples_received": self.samples_received,
            "frames_decoded": self.frames_decoded,
            "invalidations": self.invalidations,
            "in_sync": self.bit_decoder.in_sync,
            "timecode": self.current_timecode,
        }


def decode_file(
    file_path: str,
    channel: int = 0,
    user_bits: bool = False,
    debug: bool = False,
) -> list[tuple[float, TimecodeFrame]]:
    """
    Decode SMPTE/LTC from an audio file.

    Args:
        file_path: Path to audio file
        channel: Channel carrying the LTC signal (0 = first/left)
        user_bits: Include user bit fields in decoded frames
        debug: Enable debug logging

    Returns:
        List of (time_seconds, timecode) tuples, time being the file position
        at which each frame completed
    """
    samples, sr = sf.read(file_path, dtype="int32", always_2d=True)
    if not 0 <= channel < samples.shape[1]:
        raise ValueError(f"Channel {channel} not available, file has {samples.shape[1]} channel(s)")

    _logger.info(f"Decoding {file_path}: {len(samples)} samples at {sr} Hz, channel {channel}")

    decoder = LtcDecoder(sr, dtype=np.int32, user_bits=user_bits, debug=debug)
    results = []
    for timecode in decoder.decode(samples[:, channel]):
        results.append((decoder.samples_received / sr, timecode))

    stats = decoder.get_statistics()
    _logger.info(f"Decoded {stats['frames_decoded']} frames, {stats['invalidations']} resyncs")
    return results

"""
Real-time LTC decoding from an audio input device.
"""

import logging
import time
from typing import Callable, Optional

import numpy as np

from . import SAMPLE_RATE
from .decoder import LtcDecoder
from .timecode import TimecodeFrame

# Module-level logger
_logger = logging.getLogger(__name__)


class LiveDecoder:
    """
    Feeds one channel of a sounddevice input stream into an LtcDecoder.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        callback: Optional[Callable[[TimecodeFrame], None]] = None,
        device: Optional[int] = None,
        channel: int = 0,
        user_bits: bool = False,
        debug: bool = False,
    ):
        """
        Initialize live decoder.

        Args:
            sample_rate: Audio sample rate (Hz)
            callback: Optional callback for each decoded frame
            device: Audio input device (None = default)
            channel: Audio channel to listen to (0 = first/left)
            user_bits: Include user bit fields in decoded frames
            debug: Enable debug logging
        """
        self.sample_rate = sample_rate
        self.callback = callback
        self.device = device
        self.channel = channel

        self.decoder = LtcDecoder(sample_rate, dtype=np.int16, user_bits=user_bits, debug=debug)

        self.current_timecode: Optional[TimecodeFrame] = None
        self.last_update_time: Optional[float] = None
        self.callback_errors = 0

        # Audio stream
        self.stream = None

    def _audio_callback(self, indata: np.ndarray, frames, time_info, status):
        """Called by sounddevice for each audio block."""
        if status:
            _logger.warning(f"Audio status: {status}")

        try:
            if indata.shape[1] > self.channel:
                samples = indata[:, self.channel]
            else:
                # Channel not available, use first channel
                samples = indata[:, 0]

            for timecode in self.decoder.decode(samples):
                self._handle_timecode(timecode)
        except Exception as e:
            # Audio callback must not raise
            _logger.error(f"Error in audio callback: {e}")
            self.callback_errors += 1
            self.decoder.invalidate()

    def _handle_timecode(self, timecode: TimecodeFrame):
        self.current_timecode = timecode
        self.last_update_time = time.time()
        if self.callback:
            self.callback(timecode)

    def start(self):
        """Start decoding from audio input."""
        if self.stream is not None:
            return  # Already running

        import sounddevice as sd

        self.stream = sd.InputStream(
            device=self.device,
            channels=self.channel + 1,
            samplerate=self.sample_rate,
            dtype="int16",
            callback=self._audio_callback,
            blocksize=0,  # Use default
        )
        self.stream.start()
        _logger.info(f"Listening on device {self.device} channel {self.channel} at {self.sample_rate} Hz")

    def stop(self):
        """Stop decoding."""
        if self.stream is not None:
            self.stream.stop()
            self.stream.close()
            self.stream = None

    def get_timecode(self) -> Optional[TimecodeFrame]:
        """
        Get the last decoded timecode.

        Returns:
            TimecodeFrame, or None if nothing was decoded in the last second
        """
        if self.last_update_time is None:
            return None

        if time.time() - self.last_update_time > 1.0:
            return None

        return self.current_timecode

    def get_statistics(self) -> dict:
        """
        Get decoder statistics.

        Returns:
            Dict with current status
        """
        stats = self.decoder.get_statistics()
        stats["timecode"] = self.get_timecode()
        stats["callback_errors"] = self.callback_errors
        return stats

"""
Tests for biphase-mark bit recovery.
"""

import numpy as np
import pytest

from ltcdecoder import (
    HISTORY_SIZE,
    Anomaly,
    BitDecoder,
    BitTiming,
    ExpectedEvent,
    Level,
    ZeroDetector,
)
from ltc_signal import encode_biphase


def decode_bits(decoder: BitDecoder, samples) -> list[int]:
    bits = []
    for sample in samples:
        bit = decoder.push_sample(sample)
        if bit is not None:
            bits.append(int(bit))
    return bits


def is_subsequence(needle: list[int], haystack: list[int]) -> bool:
    """True if needle appears contiguously in haystack."""
    n = len(needle)
    return any(haystack[i:i + n] == needle for i in range(len(haystack) - n + 1))


class TestBitTiming:
    """Test sample-count bounds."""

    def test_44100(self):
        timing = BitTiming.from_sample_rate(44100)
        assert timing.min_samples_per_bit == 15
        assert timing.max_samples_per_bit == 25
        assert timing.min_samples_per_half_bit == 6
        assert timing.max_samples_per_half_bit == 13

    def test_48000(self):
        timing = BitTiming.from_sample_rate(48000)
        assert timing.min_samples_per_bit == 17
        assert timing.max_samples_per_bit == 27
        assert timing.min_samples_per_half_bit == 7
        assert timing.max_samples_per_half_bit == 14

    def test_zero_rate(self):
        with pytest.raises(ValueError):
            BitTiming.from_sample_rate(0)

    def test_rate_too_low(self):
        """Test rates that cannot resolve a half bit are rejected."""
        with pytest.raises(ValueError):
            BitTiming.from_sample_rate(8000)

    def test_decoder_rejects_bad_rate(self):
        with pytest.raises(ValueError):
            BitDecoder(-44100)


class TestZeroDetector:
    """Test sync acquisition on a full-length run."""

    def run(self, detector: ZeroDetector, levels) -> list[bool]:
        return [detector.is_end_of_zero(level) for level in levels]

    def test_full_bit_run(self):
        """Test the change ending a full-bit run is reported."""
        detector = ZeroDetector(BitTiming.from_sample_rate(44100))
        levels = [Level.HIGH] * 22 + [Level.LOW]

        results = self.run(detector, levels)

        assert results[-1] is True
        assert not any(results[:-1])

    def test_half_bit_run_ignored(self):
        """Test half-bit runs (the halves of a 1) never lock."""
        detector = ZeroDetector(BitTiming.from_sample_rate(44100))
        levels = ([Level.HIGH] * 11 + [Level.LOW] * 11) * 4

        assert not any(self.run(detector, levels))

    def test_overlong_run_ignored(self):
        """Test runs longer than a bit never lock."""
        detector = ZeroDetector(BitTiming.from_sample_rate(44100))
        levels = [Level.HIGH] * 30 + [Level.LOW]

        assert not any(self.run(detector, levels))

    def test_invalidate(self):
        detector = ZeroDetector(BitTiming.from_sample_rate(44100))
        self.run(detector, [Level.HIGH] * 10)

        detector.invalidate()

        assert detector.sample_count == 0


class TestExpectedEvent:
    """Test the legal-event windows within a bit cell."""

    def event_at(self, decoder: BitDecoder, count: int, mid_bit_change: bool = False) -> ExpectedEvent:
        decoder.sample_count = count
        decoder.mid_bit_change = mid_bit_change
        return decoder.expected_event()

    def test_windows_44100(self):
        decoder = BitDecoder(44100)

        assert self.event_at(decoder, 1) == ExpectedEvent.MUST_BE_STEADY
        assert self.event_at(decoder, 5) == ExpectedEvent.MUST_BE_STEADY
        assert self.event_at(decoder, 6) == ExpectedEvent.CAN_CHANGE_IN_MIDDLE
        assert self.event_at(decoder, 13) == ExpectedEvent.CAN_CHANGE_IN_MIDDLE
        assert self.event_at(decoder, 14) == ExpectedEvent.MUST_BE_STEADY
        assert self.event_at(decoder, 15) == ExpectedEvent.CAN_CHANGE_IN_END
        assert self.event_at(decoder, 25) == ExpectedEvent.CAN_CHANGE_IN_END
        assert self.event_at(decoder, 26) == ExpectedEvent.OVERDUE

    def test_second_mid_bit_change_illegal(self):
        """Test only one change is allowed in the middle of a bit."""
        decoder = BitDecoder(44100)

        assert self.event_at(decoder, 10, mid_bit_change=True) == ExpectedEvent.MUST_BE_STEADY
        assert self.event_at(decoder, 20, mid_bit_change=True) == ExpectedEvent.CAN_CHANGE_IN_END


class TestFirstBitAfterLock:
    """
    Test the windows of the first bit cell after lock at 44100 Hz.

    The sample that ends the zero run is the bit boundary, count 0, exactly
    like the boundary sample after every decoded bit.
    """

    HIGH = 1000
    LOW = -1000

    def locked_decoder(self) -> BitDecoder:
        decoder = BitDecoder(44100)
        # Calibrates on the last of these samples, threshold 0
        for i in range(HISTORY_SIZE - 1):
            decoder.push_sample(self.HIGH if i % 2 else self.LOW)
        for _ in range(22):
            decoder.push_sample(self.HIGH)
        decoder.push_sample(self.LOW)
        assert decoder.in_sync
        assert decoder.sample_count == 0
        return decoder

    def push(self, decoder: BitDecoder, level: int, count: int):
        for _ in range(count):
            assert decoder.push_sample(level) is None
            assert decoder.last_anomaly is None

    def test_mid_change_before_window(self):
        decoder = self.locked_decoder()
        self.push(decoder, self.LOW, 4)

        assert decoder.push_sample(self.HIGH) is None
        assert decoder.last_anomaly == Anomaly.ILLEGAL_TRANSITION

    def test_mid_change_at_window_start(self):
        decoder = self.locked_decoder()
        self.push(decoder, self.LOW, 5)

        assert decoder.push_sample(self.HIGH) is None
        assert decoder.last_anomaly is None
        assert decoder.sample_count == 6
        assert decoder.mid_bit_change

    def test_boundary_before_window(self):
        decoder = self.locked_decoder()
        self.push(decoder, self.LOW, 13)

        decoder.push_sample(self.HIGH)

        assert decoder.last_anomaly == Anomaly.ILLEGAL_TRANSITION

    def test_boundary_at_window_start(self):
        decoder = self.locked_decoder()
        self.push(decoder, self.LOW, 14)

        assert decoder.push_sample(self.HIGH) is False
        assert decoder.sample_count == 0

    def test_overdue_after_window_end(self):
        decoder = self.locked_decoder()
        self.push(decoder, self.LOW, 25)

        decoder.push_sample(self.LOW)

        assert decoder.last_anomaly == Anomaly.OVERDUE

    def test_same_windows_for_next_bit(self):
        """Test the bit after a decoded one uses identical window edges."""
        decoder = self.locked_decoder()
        self.push(decoder, self.LOW, 21)
        assert decoder.push_sample(self.HIGH) is False

        self.push(decoder, self.HIGH, 4)
        decoder.push_sample(self.LOW)

        assert decoder.last_anomaly == Anomaly.ILLEGAL_TRANSITION


class TestBitDecoder:
    """Test bit decoding from synthetic audio."""

    def test_initial_state(self):
        decoder = BitDecoder(44100)

        assert not decoder.in_sync
        assert decoder.push_sample(0) is None
        assert decoder.level is None

    @pytest.mark.parametrize("sample_rate,fps", [(44100, 25), (48000, 30), (48000, 24), (44100, 30)])
    def test_decodes_bit_sequence(self, sample_rate, fps):
        """Test decoded bits are a contiguous run of the transmitted bits."""
        rng = np.random.default_rng(sample_rate + fps)
        # Leading zeros give the zero detector a full bit to lock on
        transmitted = [0] * 40 + [int(b) for b in rng.integers(0, 2, size=400)]
        samples = encode_biphase(transmitted, sample_rate, fps)

        decoder = BitDecoder(sample_rate)
        bits = decode_bits(decoder, samples)

        assert decoder.in_sync
        assert len(bits) > 400
        assert is_subsequence(bits, transmitted)

    def test_polarity_independent(self):
        transmitted = [0] * 40 + [1, 0, 1, 1, 0, 0, 1] * 30
        samples = encode_biphase(transmitted, 44100, 25, amplitude=-12000)

        bits = decode_bits(BitDecoder(44100), samples)

        assert len(bits) > 150
        assert is_subsequence(bits, transmitted)

    def test_lock_waits_for_calibration(self):
        """Test no bits are produced before a full calibration window."""
        samples = encode_biphase([0] * 40, 44100, 25)
        decoder = BitDecoder(44100)

        for sample in samples[:HISTORY_SIZE - 1]:
            decoder.push_sample(sample)

        assert not decoder.sample_bounds.valid
        assert not decoder.in_sync

    def test_glitch_drops_sync(self):
        """Test a change too early in a bit cell is an illegal transition."""
        transmitted = [0] * 60
        samples = encode_biphase(transmitted, 44100, 25)
        samples_per_bit = 44100 / 2000
        start = int(round(40 * samples_per_bit))
        samples[start + 3:start + 6] = -samples[start + 3:start + 6]

        decoder = BitDecoder(44100)
        anomalies = []
        for sample in samples[:start + 4]:
            decoder.push_sample(sample)
            if decoder.last_anomaly is not None:
                anomalies.append(decoder.last_anomaly)

        assert anomalies == [Anomaly.ILLEGAL_TRANSITION]
        assert not decoder.in_sync
        assert not decoder.sample_bounds.valid

    def test_glitch_recovery(self):
        """Test bits resume after a glitch."""
        transmitted = [0] * 40 + [1, 1, 0, 1, 0, 0] * 60
        samples = encode_biphase(transmitted, 44100, 25)
        samples_per_bit = 44100 / 2000
        start = int(round(100 * samples_per_bit))
        samples[start + 3:start + 6] = -samples[start + 3:start + 6]

        decoder = BitDecoder(44100)
        after = []
        for i, sample in enumerate(samples):
            bit = decoder.push_sample(sample)
            if bit is not None and i > start + 3:
                after.append(int(bit))

        assert decoder.in_sync
        assert len(after) > 100
        assert is_subsequence(after, transmitted)

    def test_overdue_drops_sync(self):
        """Test a missing boundary transition drops sync."""
        signal = encode_biphase([0] * 40, 44100, 25)
        # Hold the level of the last bit
        samples = np.concatenate([signal, np.full(60, signal[-1], dtype=np.int16)])

        decoder = BitDecoder(44100)
        anomalies = []
        for sample in samples:
            decoder.push_sample(sample)
            if decoder.last_anomaly is not None:
                anomalies.append(decoder.last_anomaly)

        assert anomalies == [Anomaly.OVERDUE]

    def test_invalidate(self):
        samples = encode_biphase([0] * 40, 44100, 25)
        decoder = BitDecoder(44100)
        for sample in samples:
            decoder.push_sample(sample)
        assert decoder.in_sync

        decoder.invalidate()

        assert not decoder.in_sync
        assert decoder.sample_count == 0
        assert not decoder.mid_bit_change
        assert not decoder.sample_bounds.valid

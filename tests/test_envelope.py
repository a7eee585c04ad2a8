"""
Unit tests for downsampling and amplitude envelope extraction.
"""

import numpy as np
import pytest

from tempokey.analyze.envelope import amplitude_envelope, downsample_factor


class TestDownsampleFactor:
    """Test block size selection."""

    def test_standard_rates(self):
        """44.1 kHz and 48 kHz both land on a factor of 10 for a 4410 Hz target."""
        assert downsample_factor(44100, 4410) == 10
        assert downsample_factor(48000, 4410) == 10
        assert downsample_factor(96000, 4410) == 21

    def test_factor_clamped_to_one(self):
        """Source rates below the target never produce a zero factor."""
        assert downsample_factor(4000, 4410) == 1
        assert downsample_factor(8000, 8000) == 1

    def test_invalid_target_rate(self):
        """A non-positive target rate falls back to no downsampling."""
        assert downsample_factor(44100, 0) == 1


class TestAmplitudeEnvelope:
    """Test block-mean absolute envelope."""

    @pytest.mark.parametrize(
        "n_samples, sample_rate, target_rate",
        [(44100, 44100, 4410), (44105, 44100, 4410), (1000, 48000, 4410), (999, 8000, 4410), (7, 22050, 4410)],
    )
    def test_length_is_floor_of_blocks(self, n_samples, sample_rate, target_rate):
        """Envelope length equals floor(N / factor)."""
        factor = downsample_factor(sample_rate, target_rate)
        samples = np.random.default_rng(0).uniform(-1, 1, n_samples).astype(np.float32)
        envelope = amplitude_envelope(samples, factor)
        assert len(envelope) == n_samples // factor

    def test_block_mean_of_absolute_values(self):
        """Each point is the mean |sample| of its block; the partial tail is dropped."""
        samples = np.array([1.0, -1.0, 0.5, -0.5, 0.2, 0.2, 0.9], dtype=np.float32)
        envelope = amplitude_envelope(samples, 2)
        assert envelope == pytest.approx([1.0, 0.5, 0.2], abs=1e-6)

    def test_envelope_non_negative(self):
        """Envelope values are never negative."""
        samples = np.random.default_rng(1).uniform(-1, 1, 10000)
        assert np.all(amplitude_envelope(samples, 10) >= 0)

    def test_shorter_than_one_block(self):
        """Input shorter than a block yields an empty envelope."""
        assert len(amplitude_envelope(np.ones(5), 10)) == 0
        assert len(amplitude_envelope(np.zeros(0), 10)) == 0

"""
Unit tests for the Waveform container.
"""

import numpy as np
import pytest

from tempokey.errors import AnalysisFailure, MissingInputFailure
from tempokey.waveform import Waveform


class TestWaveform:
    """Test validation and immutability."""

    def test_from_list(self):
        waveform = Waveform.from_samples([0.0, 0.5, -0.5], 44100)
        assert waveform.samples.dtype == np.float32
        assert len(waveform) == 3
        assert waveform.sample_rate == 44100

    def test_buffer_read_only(self):
        """The worker owns an immutable buffer."""
        waveform = Waveform.from_samples(np.zeros(10), 8000)
        with pytest.raises(ValueError):
            waveform.samples[0] = 1.0

    def test_caller_buffer_not_aliased(self):
        """Later writes to the caller's array do not reach the waveform."""
        source = np.zeros(10, dtype=np.float32)
        waveform = Waveform.from_samples(source, 8000)
        source[0] = 1.0
        assert waveform.samples[0] == 0.0

    def test_duration(self):
        waveform = Waveform.from_samples(np.zeros(22050), 44100)
        assert waveform.duration_seconds == pytest.approx(0.5)

    def test_unvalidated_zero_rate_repr(self):
        """Direct construction skips validation but repr and duration stay safe."""
        waveform = Waveform(samples=np.zeros(10, dtype=np.float32), sample_rate=0)
        assert waveform.duration_seconds == 0.0
        assert "sample_rate=0" in repr(waveform)

    def test_empty_allowed(self):
        assert len(Waveform.from_samples([], 44100)) == 0

    def test_missing_samples(self):
        with pytest.raises(MissingInputFailure):
            Waveform.from_samples(None, 44100)

    @pytest.mark.parametrize("sample_rate", [0, -44100, None])
    def test_invalid_sample_rate(self, sample_rate):
        with pytest.raises(MissingInputFailure):
            Waveform.from_samples(np.zeros(10), sample_rate)

    def test_multichannel_rejected(self):
        with pytest.raises(AnalysisFailure):
            Waveform.from_samples(np.zeros((2, 100)), 44100)

    def test_non_finite_rejected(self):
        with pytest.raises(AnalysisFailure):
            Waveform.from_samples([0.0, float("nan")], 44100)

    def test_non_numeric_rejected(self):
        with pytest.raises(AnalysisFailure):
            Waveform.from_samples(["a", "b"], 44100)

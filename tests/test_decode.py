"""
Tests for the aubio decoder adapter, with aubio replaced by a fake source.
"""

import sys
from types import SimpleNamespace
from unittest.mock import patch

import numpy as np
import pytest

from tempokey.decode import load_waveform
from tempokey.errors import DecodeFailure


def fake_aubio(total_samples, fail_on_open=False):
    """aubio stand-in whose source yields `total_samples` of a ramp."""

    class FakeSource:
        def __init__(self, path, samplerate=0, hop_size=512):
            if fail_on_open:
                raise RuntimeError("failed opening file")
            self.samplerate = samplerate or 44100
            self.hop_size = hop_size
            self.position = 0
            self.closed = False

        def __call__(self):
            num_read = min(self.hop_size, total_samples - self.position)
            block = np.zeros(self.hop_size, dtype=np.float32)
            block[:num_read] = np.arange(self.position, self.position + num_read) / total_samples
            self.position += num_read
            return block, num_read

        def close(self):
            self.closed = True

    return SimpleNamespace(source=FakeSource)


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "track.wav"
    path.write_bytes(b"RIFF0000WAVE")
    return path


class TestLoadWaveform:
    """Test streaming and error mapping."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(DecodeFailure, match="not found"):
            load_waveform(tmp_path / "missing.wav")

    def test_partial_last_hop(self, audio_file):
        with patch.dict(sys.modules, {"aubio": fake_aubio(10000)}):
            waveform = load_waveform(audio_file, hop_size=4096)

        assert len(waveform) == 10000
        assert waveform.sample_rate == 44100
        assert waveform.samples[-1] == pytest.approx(9999 / 10000)

    def test_exact_multiple_of_hop(self, audio_file):
        with patch.dict(sys.modules, {"aubio": fake_aubio(8192)}):
            waveform = load_waveform(audio_file, hop_size=4096)
        assert len(waveform) == 8192

    def test_resample_rate_reported(self, audio_file):
        with patch.dict(sys.modules, {"aubio": fake_aubio(1000)}):
            waveform = load_waveform(audio_file, sample_rate=22050)
        assert waveform.sample_rate == 22050

    def test_empty_file(self, audio_file):
        with patch.dict(sys.modules, {"aubio": fake_aubio(0)}):
            waveform = load_waveform(audio_file)
        assert len(waveform) == 0

    def test_open_failure(self, audio_file):
        with patch.dict(sys.modules, {"aubio": fake_aubio(0, fail_on_open=True)}):
            with pytest.raises(DecodeFailure, match="Could not open"):
                load_waveform(audio_file)

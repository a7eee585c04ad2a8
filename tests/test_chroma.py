"""
Unit tests for pitch-class folding and chroma aggregation.
"""

import numpy as np
import pytest

from tempokey.analyze.chroma import (
    accumulate_chroma,
    bin_pitch_classes,
    chroma_vector,
    frequency_to_pitch_class,
)

# Equal-tempered note frequencies (A4 = 440 Hz). Kept at or above A4 so that
# at 4096-point resolution every bin within one bin of the tone stays in its
# pitch class.
NOTE_FREQUENCIES = {
    "A4": (440.00, 9),
    "B4": (493.88, 11),
    "C5": (523.25, 0),
    "C#5": (554.37, 1),
    "D5": (587.33, 2),
    "E5": (659.26, 4),
    "F5": (698.46, 5),
    "G5": (783.99, 7),
    "A#5": (932.33, 10),
}


class TestFrequencyToPitchClass:
    """Test semitone rounding."""

    @pytest.mark.parametrize("name", sorted(NOTE_FREQUENCIES))
    def test_note_frequencies(self, name):
        frequency, pitch_class = NOTE_FREQUENCIES[name]
        assert frequency_to_pitch_class(frequency) == pitch_class

    def test_octave_independent(self):
        """Octaves of A all map to pitch class 9."""
        for frequency in (55.0, 110.0, 220.0, 440.0, 880.0, 1760.0):
            assert frequency_to_pitch_class(frequency) == 9

    def test_rounds_to_nearest_semitone(self):
        """A frequency a quarter-tone below A rounds up to A."""
        assert frequency_to_pitch_class(440.0 * 2 ** (-0.4 / 12)) == 9
        assert frequency_to_pitch_class(440.0 * 2 ** (-0.6 / 12)) == 8


class TestBinPitchClasses:
    """Test bin selection for the musical band."""

    def test_band_limits(self):
        """Only bins inside [60, 2000] Hz are retained, never DC."""
        bins, pitch_classes = bin_pitch_classes(44100, 4096)
        freqs = bins * 44100 / 4096
        assert bins.min() >= 1
        assert freqs.min() >= 60.0
        assert freqs.max() <= 2000.0
        assert len(bins) == len(pitch_classes)
        assert set(pitch_classes.tolist()) <= set(range(12))

    def test_custom_band(self):
        bins, _ = bin_pitch_classes(8000, 1024, min_freq=100.0, max_freq=200.0)
        freqs = bins * 8000 / 1024
        assert freqs.min() >= 100.0 and freqs.max() <= 200.0


class TestAccumulateChroma:
    """Test the running sum over frames."""

    def test_running_sum_across_batches(self):
        """Chroma is additive over frames and batches, without normalization."""
        spectra = np.ones((3, 2048))
        single = accumulate_chroma([spectra[:1]], 44100, 4096)
        total = accumulate_chroma([spectra[:2], spectra[2:]], 44100, 4096)
        assert np.allclose(total, 3 * single)

    def test_single_frame_accepted(self):
        chroma = accumulate_chroma([np.ones(2048)], 44100, 4096)
        assert chroma.shape == (12,)
        assert chroma.sum() > 0


class TestChromaVector:
    """Test chroma of synthetic tones."""

    def test_a440_short_buffer(self, sine_wave):
        """44.1 kHz, 4096-sample 440 Hz sine: dominant pitch class is A."""
        chroma = chroma_vector(sine_wave(440.0, 4096), 44100)
        assert int(np.argmax(chroma)) == 9

    @pytest.mark.parametrize("name", sorted(NOTE_FREQUENCIES))
    @pytest.mark.parametrize("sample_rate", [22050, 44100, 48000])
    def test_pure_sine_dominant_pitch_class(self, sine_wave, name, sample_rate):
        """A pure sine's strongest chroma bin is its nearest semitone."""
        frequency, pitch_class = NOTE_FREQUENCIES[name]
        chroma = chroma_vector(sine_wave(frequency, sample_rate, sample_rate), sample_rate)
        assert int(np.argmax(chroma)) == pitch_class

    def test_silence_has_no_energy(self):
        chroma = chroma_vector(np.zeros(44100, dtype=np.float32), 44100)
        assert not np.any(chroma)

    def test_config_fft_size(self, sine_wave):
        """fft_size from config is honoured."""
        chroma = chroma_vector(sine_wave(440.0, 44100), 44100, {"fft_size": 8192})
        assert int(np.argmax(chroma)) == 9

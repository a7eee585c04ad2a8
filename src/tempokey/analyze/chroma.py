"""
Chroma aggregation: fold spectral bins into 12 pitch-class energies.
"""

import logging
import math
from typing import Iterable, Optional

import numpy as np

from tempokey.analyze.spectrum import (
    DEFAULT_FFT_SIZE,
    DEFAULT_MAX_DURATION_SECONDS,
    bin_frequencies,
    iter_magnitude_spectra,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_FREQUENCY = 60.0
DEFAULT_MAX_FREQUENCY = 2000.0
A4_FREQUENCY = 440.0
A4_MIDI = 69


def frequency_to_pitch_class(freq: float) -> int:
    """Pitch class (0 = C) of the semitone nearest freq."""
    semitone = 12 * math.log2(freq / A4_FREQUENCY) + A4_MIDI
    return int(math.floor(semitone + 0.5)) % 12


def bin_pitch_classes(
    sample_rate: int,
    fft_size: int,
    min_freq: float = DEFAULT_MIN_FREQUENCY,
    max_freq: float = DEFAULT_MAX_FREQUENCY,
):
    """
    Bins retained for chroma and their pitch classes.

    Bin 0 (DC) is never retained.

    Returns:
        (bin_indices, pitch_classes) integer arrays of equal length
    """
    freqs = bin_frequencies(sample_rate, fft_size)
    bins = np.arange(1, fft_size // 2)
    in_band = (freqs[bins] >= min_freq) & (freqs[bins] <= max_freq)
    bins = bins[in_band]

    semitones = 12 * np.log2(freqs[bins] / A4_FREQUENCY) + A4_MIDI
    pitch_classes = np.floor(semitones + 0.5).astype(np.int64) % 12
    return bins, pitch_classes


def accumulate_chroma(
    spectra: Iterable[np.ndarray],
    sample_rate: int,
    fft_size: int,
    min_freq: float = DEFAULT_MIN_FREQUENCY,
    max_freq: float = DEFAULT_MAX_FREQUENCY,
) -> np.ndarray:
    """
    Running sum of in-band bin magnitudes per pitch class.

    Args:
        spectra: Magnitude arrays of shape (frames, fft_size // 2), or a single frame
        sample_rate: Sample rate (Hz)
        fft_size: FFT size the spectra were computed with
        min_freq: Lowest retained bin frequency (Hz)
        max_freq: Highest retained bin frequency (Hz)

    Returns:
        Unnormalized 12-element chroma vector
    """
    bins, pitch_classes = bin_pitch_classes(sample_rate, fft_size, min_freq, max_freq)
    chroma = np.zeros(12, dtype=np.float64)

    for batch in spectra:
        batch = np.atleast_2d(batch)
        band_energy = batch[:, bins].sum(axis=0)
        np.add.at(chroma, pitch_classes, band_energy)

    return chroma


def chroma_vector(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[dict] = None,
) -> np.ndarray:
    """
    Chroma vector of the analyzed prefix of a waveform.

    Args:
        samples: Mono samples
        sample_rate: Sample rate (Hz)
        config: [key] config section

    Returns:
        12-element chroma vector (index 0 = C)
    """
    config = config or {}
    fft_size = config.get("fft_size", DEFAULT_FFT_SIZE)

    spectra = iter_magnitude_spectra(
        samples,
        sample_rate,
        fft_size=fft_size,
        max_duration=config.get("max_duration_seconds", DEFAULT_MAX_DURATION_SECONDS),
    )
    chroma = accumulate_chroma(
        spectra,
        sample_rate,
        fft_size,
        min_freq=config.get("min_frequency", DEFAULT_MIN_FREQUENCY),
        max_freq=config.get("max_frequency", DEFAULT_MAX_FREQUENCY),
    )
    logger.debug(f"Chroma: {np.round(chroma, 2).tolist()}")
    return chroma

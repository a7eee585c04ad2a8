"""
Spectral analysis: Hann-windowed frames and a radix-2 Cooley-Tukey FFT.

The FFT is the iterative in-place form: a bit-reversal permutation followed
by log2(N) butterfly stages. Twiddle factors for each stage come from the
trigonometric recurrence w[j+1] = w[j] * exp(-i*pi/half) rather than one
sin/cos evaluation per factor. Stages are vectorized over blocks and over a
stack of frames, so a whole batch of frames is transformed at once.

Only a bounded prefix of the waveform is analyzed (first 30 s by default).
"""

import logging
from typing import Iterator

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_FFT_SIZE = 4096
DEFAULT_MAX_DURATION_SECONDS = 30.0
# Frames transformed per FFT call; bounds peak memory for long prefixes
FRAME_BATCH_SIZE = 64


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def hann_window(size: int) -> np.ndarray:
    """Symmetric Hann window: 0.5 * (1 - cos(2*pi*i / (size - 1)))."""
    if size == 1:
        return np.ones(1)
    i = np.arange(size)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / (size - 1)))


def bit_reverse_indices(size: int) -> np.ndarray:
    """Permutation mapping each index to its bit-reversed counterpart (log2(size) bits)."""
    bits = size.bit_length() - 1
    indices = np.arange(size)
    reversed_indices = np.zeros(size, dtype=np.int64)
    for _ in range(bits):
        reversed_indices = (reversed_indices << 1) | (indices & 1)
        indices = indices >> 1
    return reversed_indices


def _stage_twiddles(half: int) -> np.ndarray:
    """Twiddles exp(-i*pi*j/half), j < half, by repeated multiplication."""
    twiddles = np.empty(half, dtype=np.complex128)
    twiddles[0] = 1.0
    if half > 1:
        step = np.exp(-1j * np.pi / half)
        twiddles[1:] = np.cumprod(np.full(half - 1, step))
    return twiddles


def fft(frames: np.ndarray) -> np.ndarray:
    """
    Radix-2 decimation-in-time FFT over the last axis.

    Args:
        frames: Real or complex array, shape (..., N) with N a power of two

    Returns:
        Complex spectrum with the same shape

    Raises:
        ValueError: If N is not a power of two
    """
    data = np.asarray(frames)
    n = data.shape[-1]
    if not is_power_of_two(n):
        raise ValueError(f"FFT size must be a power of two, got {n}")

    # Fancy indexing copies, so the butterflies below work in place on x
    x = data[..., bit_reverse_indices(n)].astype(np.complex128)
    lead_shape = x.shape[:-1]

    half = 1
    while half < n:
        span = half * 2
        blocks = x.reshape(lead_shape + (n // span, span))
        top = blocks[..., :half].copy()
        bottom = blocks[..., half:] * _stage_twiddles(half)
        blocks[..., :half] = top + bottom
        blocks[..., half:] = top - bottom
        half = span

    return x


def frame_count(n_samples: int, fft_size: int, hop: int) -> int:
    """Number of frames frame_signal() produces for n_samples."""
    if n_samples <= 0:
        return 0
    if n_samples < fft_size:
        return 1
    return 1 + (n_samples - fft_size) // hop


def frame_signal(samples: np.ndarray, fft_size: int, hop: int, start: int = 0, count: int = -1) -> np.ndarray:
    """
    Slice samples into overlapping frames of fft_size.

    A signal shorter than one frame yields a single zero-padded frame.

    Args:
        samples: 1-D samples
        fft_size: Frame length
        hop: Distance between frame starts
        start: Index of the first frame to return
        count: Number of frames to return (-1 = all remaining)

    Returns:
        Array of shape (frames, fft_size)
    """
    total = frame_count(len(samples), fft_size, hop)
    if count < 0:
        count = total - start
    count = max(0, min(count, total - start))
    if count == 0:
        return np.zeros((0, fft_size))

    if len(samples) < fft_size:
        frames = np.zeros((1, fft_size))
        frames[0, : len(samples)] = samples
        return frames

    offsets = (start + np.arange(count)) * hop
    return np.asarray(samples, dtype=np.float64)[offsets[:, None] + np.arange(fft_size)]


def bin_frequencies(sample_rate: int, fft_size: int) -> np.ndarray:
    """Centre frequency (Hz) of each of the first fft_size // 2 bins."""
    return np.arange(fft_size // 2) * sample_rate / fft_size


def iter_magnitude_spectra(
    samples: np.ndarray,
    sample_rate: int,
    fft_size: int = DEFAULT_FFT_SIZE,
    max_duration: float = DEFAULT_MAX_DURATION_SECONDS,
    batch_size: int = FRAME_BATCH_SIZE,
) -> Iterator[np.ndarray]:
    """
    Yield magnitude spectra of the analyzed prefix, batch by batch.

    Frames use a 50% hop and a Hann window. Only the first half of each
    spectrum is kept (the input is real, so the rest mirrors it).

    Args:
        samples: Mono samples
        sample_rate: Sample rate (Hz)
        fft_size: Frame size, power of two
        max_duration: Seconds of audio analyzed from the start
        batch_size: Frames per FFT call

    Yields:
        Arrays of shape (frames_in_batch, fft_size // 2)
    """
    analyze_length = min(len(samples), int(sample_rate * max_duration))
    segment = samples[:analyze_length]
    hop = fft_size // 2
    window = hann_window(fft_size)

    total = frame_count(len(segment), fft_size, hop)
    logger.debug(f"Spectral analysis: {analyze_length} samples, {total} frames of {fft_size}")

    for start in range(0, total, batch_size):
        frames = frame_signal(segment, fft_size, hop, start=start, count=batch_size)
        spectrum = fft(frames * window)
        yield np.abs(spectrum[:, : fft_size // 2])


def magnitude_spectra(
    samples: np.ndarray,
    sample_rate: int,
    fft_size: int = DEFAULT_FFT_SIZE,
    max_duration: float = DEFAULT_MAX_DURATION_SECONDS,
) -> np.ndarray:
    """All magnitude spectra of the analyzed prefix, shape (frames, fft_size // 2)."""
    batches = list(iter_magnitude_spectra(samples, sample_rate, fft_size, max_duration))
    if not batches:
        return np.zeros((0, fft_size // 2))
    return np.concatenate(batches, axis=0)

"""
BPM Detection using envelope peak intervals.

Algorithm:
1. Downsample to ~4.4 kHz amplitude envelope
2. Threshold at the 85th percentile, keep strict local maxima above it
3. Histogram peak-to-peak intervals, quantized to a fixed tolerance
4. Modal interval -> seconds per beat -> BPM
5. Fold BPM into the canonical band by doubling or halving

All constants are tunable through the [tempo] config section.
"""

import logging
import math
from collections import Counter
from typing import Optional, Tuple

import numpy as np

from tempokey.analyze.envelope import amplitude_envelope, downsample_factor

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SAMPLE_RATE = 4410
DEFAULT_THRESHOLD_PERCENTILE = 0.85
# Quantization step for intervals, in envelope frames
DEFAULT_INTERVAL_TOLERANCE = 5
DEFAULT_BPM_RANGE = (70, 180)
DEFAULT_BPM = 120


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentile_threshold(envelope: np.ndarray, percentile: float = DEFAULT_THRESHOLD_PERCENTILE) -> float:
    """
    Value at the given fraction of the sorted envelope.

    A full sort is fine here: this runs once per file, off the caller's path.
    """
    if len(envelope) == 0:
        return 0.0
    ordered = np.sort(envelope)
    index = min(int(math.floor(len(ordered) * percentile)), len(ordered) - 1)
    return float(ordered[index])


def pick_peaks(envelope: np.ndarray, threshold: float) -> np.ndarray:
    """
    Indices of strict local maxima above threshold.

    The first and last envelope points are never peaks.
    """
    if len(envelope) < 3:
        return np.zeros(0, dtype=np.int64)

    center = envelope[1:-1]
    is_peak = (
        (center > threshold)
        & (center > envelope[:-2])
        & (center > envelope[2:])
    )
    return np.flatnonzero(is_peak) + 1


def interval_histogram(peaks: np.ndarray, tolerance: int = DEFAULT_INTERVAL_TOLERANCE) -> Counter:
    """
    Count consecutive peak intervals, each rounded to the nearest multiple of tolerance.

    Args:
        peaks: Sorted envelope indices
        tolerance: Bucket width in envelope frames

    Returns:
        Counter mapping quantized interval -> occurrences (in first-seen order)
    """
    histogram: Counter = Counter()
    tolerance = max(1, int(tolerance))
    for interval in np.diff(peaks):
        bucket = _round_half_up(interval / tolerance) * tolerance
        histogram[bucket] += 1
    return histogram


def dominant_interval(histogram: Counter) -> int:
    """Modal bucket; on equal counts the first-seen bucket wins. 0 if empty."""
    max_count = 0
    dominant = 0
    for interval, count in histogram.items():
        if count > max_count:
            max_count = count
            dominant = interval
    return dominant


def normalize_bpm(bpm: float, bpm_range: Tuple[float, float] = DEFAULT_BPM_RANGE) -> int:
    """
    Normalize BPM to the canonical band by halving or doubling.

    Peak intervals often lock onto half or double the perceived tempo
    (every other beat, or off-beats), so the estimate is folded by octaves.

    Args:
        bpm: Raw BPM value (> 0)
        bpm_range: Canonical band (min, max)

    Returns:
        Rounded BPM within the band
    """
    min_bpm, max_bpm = bpm_range

    # Keep doubling if too slow
    while bpm < min_bpm and bpm > 0:
        bpm *= 2

    # Keep halving if too fast
    while bpm > max_bpm:
        bpm /= 2

    return _round_half_up(bpm)


def estimate_bpm(
    envelope: np.ndarray,
    factor: int,
    sample_rate: int,
    config: Optional[dict] = None,
) -> int:
    """
    Estimate tempo from an amplitude envelope.

    Args:
        envelope: Output of amplitude_envelope()
        factor: Downsample factor the envelope was built with
        sample_rate: Original sample rate (Hz)
        config: [tempo] config section (defaults used for missing keys)

    Returns:
        BPM within bpm_range, or default_bpm when no beat period is found
    """
    config = config or {}
    percentile = config.get("threshold_percentile", DEFAULT_THRESHOLD_PERCENTILE)
    tolerance = config.get("interval_tolerance", DEFAULT_INTERVAL_TOLERANCE)
    bpm_range = tuple(config.get("bpm_range", DEFAULT_BPM_RANGE))
    default_bpm = config.get("default_bpm", DEFAULT_BPM)

    threshold = percentile_threshold(envelope, percentile)
    peaks = pick_peaks(envelope, threshold)
    logger.debug(f"Envelope: {len(envelope)} frames, threshold {threshold:.5f}, {len(peaks)} peaks")

    if len(peaks) < 2:
        logger.debug(f"Fewer than two peaks, using default {default_bpm} BPM")
        return default_bpm

    histogram = interval_histogram(peaks, tolerance)
    interval = dominant_interval(histogram)
    if interval <= 0 or factor <= 0 or sample_rate <= 0:
        logger.debug(f"No usable beat period (interval={interval}), using default {default_bpm} BPM")
        return default_bpm

    seconds_per_beat = (interval * factor) / sample_rate
    raw_bpm = _round_half_up(60.0 / seconds_per_beat)
    if raw_bpm <= 0:
        return default_bpm

    bpm = normalize_bpm(raw_bpm, bpm_range)
    logger.debug(
        f"Dominant interval {interval} frames ({histogram[interval]} hits), "
        f"raw {raw_bpm} BPM -> {bpm} BPM"
    )
    return bpm


def detect_bpm(samples: np.ndarray, sample_rate: int, config: Optional[dict] = None) -> int:
    """
    Detect BPM from a mono waveform.

    Args:
        samples: Mono samples in [-1, 1]
        sample_rate: Sample rate (Hz)
        config: [tempo] config section

    Returns:
        BPM (int) inside the configured band
    """
    config = config or {}
    target_rate = config.get("target_sample_rate", DEFAULT_TARGET_SAMPLE_RATE)

    factor = downsample_factor(sample_rate, target_rate)
    envelope = amplitude_envelope(samples, factor)
    logger.debug(f"Downsample factor {factor} ({sample_rate} Hz -> ~{sample_rate / factor:.0f} Hz)")

    return estimate_bpm(envelope, factor, sample_rate, config)

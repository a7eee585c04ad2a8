"""
Downsampling and amplitude envelope extraction for tempo analysis.

The envelope is the mean absolute amplitude over consecutive blocks of
`factor` samples. A trailing partial block is dropped.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def downsample_factor(sample_rate: int, target_rate: int) -> int:
    """Block size that brings sample_rate down to roughly target_rate (>= 1)."""
    if target_rate <= 0:
        return 1
    return max(1, int(sample_rate // target_rate))


def amplitude_envelope(samples: np.ndarray, factor: int) -> np.ndarray:
    """
    Compute the block-mean absolute amplitude of a waveform.

    Args:
        samples: 1-D sample buffer
        factor: Block size in samples (clamped to >= 1)

    Returns:
        Float64 envelope of length floor(len(samples) / factor)
    """
    factor = max(1, int(factor))
    n_blocks = len(samples) // factor
    if n_blocks == 0:
        return np.zeros(0, dtype=np.float64)

    blocks = np.abs(np.asarray(samples[: n_blocks * factor], dtype=np.float64))
    return blocks.reshape(n_blocks, factor).mean(axis=1)

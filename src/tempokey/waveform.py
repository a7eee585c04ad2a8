"""
Waveform container handed from the decoder to the analysis worker.

A Waveform is immutable: its sample buffer is flagged read-only so that the
worker owns it exclusively for the duration of one analysis.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from tempokey.errors import AnalysisFailure, MissingInputFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Waveform:
    """Single-channel float32 samples in [-1, 1] plus sample rate (Hz)."""

    samples: np.ndarray
    sample_rate: int

    @classmethod
    def from_samples(
        cls,
        samples: Optional[Union[np.ndarray, Sequence[float]]],
        sample_rate: Optional[int],
    ) -> "Waveform":
        """
        Validate raw input and build a read-only Waveform.

        Args:
            samples: Mono sample buffer (any float sequence)
            sample_rate: Sample rate in Hz

        Returns:
            Waveform with a read-only float32 buffer

        Raises:
            MissingInputFailure: If samples are absent or sample_rate <= 0
            AnalysisFailure: If the buffer is not 1-D or holds NaN/inf
        """
        if samples is None:
            raise MissingInputFailure("Missing audio data")
        if not sample_rate or sample_rate <= 0:
            raise MissingInputFailure(f"Invalid sample rate: {sample_rate!r}")

        try:
            buffer = np.array(samples, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise AnalysisFailure(f"Malformed sample buffer: {e}")

        if buffer.ndim != 1:
            raise AnalysisFailure(
                f"Expected a single-channel buffer, got shape {buffer.shape}"
            )
        if not np.all(np.isfinite(buffer)):
            raise AnalysisFailure("Sample buffer contains NaN or infinite values")

        buffer.setflags(write=False)
        return cls(samples=buffer, sample_rate=int(sample_rate))

    @property
    def duration_seconds(self) -> float:
        if not self.sample_rate or self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return len(self.samples)

    def __repr__(self) -> str:
        return (
            f"Waveform(samples={len(self.samples)}, sample_rate={self.sample_rate}, "
            f"duration={self.duration_seconds:.1f}s)"
        )

"""
In-process analysis pipeline: tempo stage, then key stage.

This is what the worker process runs. It is also usable directly for
synchronous callers that do not need a separate process.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from tempokey.analyze.bpm import detect_bpm
from tempokey.analyze.key import detect_key
from tempokey.config import Config
from tempokey.errors import AnalysisFailure, TempoKeyError
from tempokey.waveform import Waveform

logger = logging.getLogger(__name__)

# Progress milestones (percent); values reported for one analysis never decrease
PROGRESS_DECODE_START = 0
PROGRESS_DECODE_DONE = 10
PROGRESS_TEMPO_DONE = 50
PROGRESS_KEY_DONE = 90
PROGRESS_COMPLETE = 100

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True)
class AnalysisResult:
    """Final tempo/key record. key and camelot are empty when not detected."""

    bpm: int
    key: str = ""
    camelot: str = ""

    @property
    def key_detected(self) -> bool:
        return bool(self.key)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(bpm=int(data["bpm"]), key=data.get("key", ""), camelot=data.get("camelot", ""))


def _settings(config: Optional[Any]) -> Dict[str, Any]:
    if config is None:
        return Config.default().data
    if isinstance(config, Config):
        return config.data
    return config


def run_pipeline(
    waveform: Waveform,
    config: Optional[Any] = None,
    report: Optional[ProgressCallback] = None,
) -> AnalysisResult:
    """
    Run the tempo and key stages on a waveform.

    Args:
        waveform: Validated mono waveform
        config: Config instance or its plain dict data (defaults if None)
        report: Called with (percent, stage) after each stage

    Returns:
        AnalysisResult

    Raises:
        AnalysisFailure: If any stage faults; no partial result is returned
    """
    settings = _settings(config)
    report = report or (lambda value, stage: None)

    try:
        bpm = detect_bpm(waveform.samples, waveform.sample_rate, settings.get("tempo"))
        report(PROGRESS_TEMPO_DONE, "tempo")

        key = detect_key(waveform.samples, waveform.sample_rate, settings.get("key"))
        report(PROGRESS_KEY_DONE, "key")
    except TempoKeyError:
        raise
    except (ValueError, TypeError, ArithmeticError, MemoryError) as e:
        raise AnalysisFailure(f"Analysis failed: {type(e).__name__}: {e}") from e

    if key is None:
        logger.info(f"{bpm} BPM, key not detected")
        return AnalysisResult(bpm=bpm)

    logger.info(f"{bpm} BPM, Key: {key.label} ({key.camelot})")
    return AnalysisResult(bpm=bpm, key=key.label, camelot=key.camelot)


def analyze_samples(samples, sample_rate: int, config: Optional[Any] = None) -> AnalysisResult:
    """Validate raw samples and analyze them in the calling thread."""
    waveform = Waveform.from_samples(samples, sample_rate)
    return run_pipeline(waveform, config)

"""
Async orchestration of one analysis: decode, worker, progress, cancellation.

The only suspension points are the decode step and the wait for the
worker's terminal message. Progress callbacks run on the event loop thread
and always before the awaiting coroutine resumes with the result.

Cancelling the awaiting task terminates the worker; no partial result is
ever returned.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from tempokey.config import Config
from tempokey.decode import load_waveform
from tempokey.errors import AnalysisFailure, DecodeFailure, MissingInputFailure, TempoKeyError
from tempokey.pipeline import (
    PROGRESS_DECODE_DONE,
    PROGRESS_DECODE_START,
    AnalysisResult,
    ProgressCallback,
)
from tempokey.waveform import Waveform
from tempokey.worker import AnalysisWorker

logger = logging.getLogger(__name__)

Decoder = Callable[[Union[str, Path]], Waveform]


async def analyze_waveform(
    waveform: Waveform,
    config: Optional[Config] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> AnalysisResult:
    """
    Analyze a decoded waveform in a dedicated worker process.

    The waveform is owned by the worker once this is called; callers must
    not rely on it until the coroutine finishes.

    Args:
        waveform: Mono waveform
        config: Config (defaults if None)
        on_progress: Called with (percent, stage) on the event loop thread

    Returns:
        AnalysisResult

    Raises:
        MissingInputFailure: If no waveform was given
        AnalysisFailure: Forwarded from the worker
        asyncio.CancelledError: If the task was cancelled (worker is terminated)
    """
    if not isinstance(waveform, Waveform):
        raise MissingInputFailure(f"Expected a Waveform, got {type(waveform).__name__}")
    # Instances built without from_samples() are rejected here, before any process exists
    waveform = Waveform.from_samples(waveform.samples, waveform.sample_rate)

    loop = asyncio.get_running_loop()

    def forward(value: int, stage: str) -> None:
        if on_progress is not None:
            loop.call_soon_threadsafe(on_progress, value, stage)

    worker = AnalysisWorker(config)
    try:
        worker.start(waveform)
        del waveform
        return await asyncio.to_thread(worker.wait, forward)
    except asyncio.CancelledError:
        logger.info("Analysis cancelled, terminating worker")
        # Joining the process blocks, so keep it off the event loop
        await asyncio.shield(asyncio.to_thread(worker.terminate))
        raise
    except Exception:
        await asyncio.shield(asyncio.to_thread(worker.terminate))
        raise


async def analyze_file(
    audio_path: Union[str, Path],
    config: Optional[Config] = None,
    on_progress: Optional[ProgressCallback] = None,
    decoder: Decoder = load_waveform,
) -> AnalysisResult:
    """
    Decode and analyze one audio file.

    Args:
        audio_path: Path to audio file
        config: Config (defaults if None)
        on_progress: Called with (percent, stage); values never decrease
        decoder: Callable turning a path into a Waveform

    Returns:
        AnalysisResult

    Raises:
        DecodeFailure: If the file cannot be decoded
        AnalysisFailure: If the analysis faults
    """
    report = on_progress or (lambda value, stage: None)

    report(PROGRESS_DECODE_START, "decode")
    try:
        waveform = await asyncio.to_thread(decoder, audio_path)
    except TempoKeyError:
        raise
    except Exception as e:
        raise DecodeFailure(f"Could not decode {audio_path}: {e}") from e
    report(PROGRESS_DECODE_DONE, "decode")

    return await analyze_waveform(waveform, config, on_progress)


async def analyze_files(
    audio_paths: Sequence[Union[str, Path]],
    config: Optional[Config] = None,
    on_progress: Optional[Callable[[str, int, str], None]] = None,
    decoder: Decoder = load_waveform,
) -> List[Union[AnalysisResult, TempoKeyError]]:
    """
    Analyze several files concurrently, one worker per file.

    At most worker.max_concurrent analyses run at once. Failures are returned
    in place of results so one bad file does not abort the batch.

    Args:
        audio_paths: Files to analyze
        config: Config (defaults if None)
        on_progress: Called with (path, percent, stage)
        decoder: Callable turning a path into a Waveform

    Returns:
        One AnalysisResult or TempoKeyError per path, in input order
    """
    config = config or Config.default()
    semaphore = asyncio.Semaphore(config.get("worker", "max_concurrent", 1))

    async def run_one(path):
        def report(value: int, stage: str) -> None:
            if on_progress is not None:
                on_progress(str(path), value, stage)

        async with semaphore:
            try:
                return await analyze_file(path, config, report, decoder)
            except TempoKeyError as e:
                logger.warning(f"Analysis failed for {Path(path).name}: {e}")
                return e
            except Exception as e:
                logger.error(f"Unexpected error analyzing {Path(path).name}: {e}", exc_info=True)
                return AnalysisFailure(f"{type(e).__name__}: {e}")

    return await asyncio.gather(*(run_one(path) for path in audio_paths))

"""
Analysis worker: runs the pipeline in a separate process.

One worker instance runs exactly one analysis. Communication is one-way
message passing over a pipe:

    ("progress", percent, stage)   zero or more times, non-decreasing
    ("result", {bpm, key, camelot}) or ("error", kind, message)   exactly once, last

The waveform buffer is handed to the child process when the worker starts;
the caller gives up its reference at that point.
"""

import logging
import multiprocessing
from typing import Any, Callable, Optional

from tempokey.config import Config
from tempokey.errors import AnalysisFailure, TempoKeyError, error_from_kind
from tempokey.pipeline import (
    PROGRESS_COMPLETE,
    AnalysisResult,
    ProgressCallback,
    run_pipeline,
)
from tempokey.waveform import Waveform

logger = logging.getLogger(__name__)

# Seconds to wait for a finished or terminated process to exit
JOIN_TIMEOUT = 5.0


def _worker_main(conn, samples, sample_rate: int, settings: dict) -> None:
    """Child process entrypoint. Always sends exactly one terminal message."""

    def report(value: int, stage: str) -> None:
        conn.send(("progress", value, stage))

    try:
        waveform = Waveform.from_samples(samples, sample_rate)
        result = run_pipeline(waveform, settings, report)
        report(PROGRESS_COMPLETE, "complete")
        conn.send(("result", result.to_dict()))
    except TempoKeyError as e:
        conn.send(("error", type(e).__name__, str(e)))
    except Exception as e:
        # Process boundary: anything else still becomes a terminal message
        conn.send(("error", AnalysisFailure.__name__, f"{type(e).__name__}: {e}"))
    finally:
        conn.close()


class AnalysisWorker:
    """Owns one worker process and the receiving end of its pipe."""

    def __init__(self, config: Optional[Config] = None, start_method: Optional[str] = None):
        config = config or Config.default()
        self.settings = config.data
        method = start_method or config.get("worker", "start_method") or None
        self._context = multiprocessing.get_context(method)
        self._process = None
        self._conn = None
        self._waiting = False

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def start(self, waveform: Waveform) -> None:
        """
        Spawn the worker process and hand it the waveform.

        Raises:
            RuntimeError: If this worker has already been started
        """
        if self._process is not None:
            raise RuntimeError("AnalysisWorker runs exactly one analysis; create a new instance")

        receiver, sender = self._context.Pipe(duplex=False)
        self._conn = receiver
        self._process = self._context.Process(
            target=_worker_main,
            args=(sender, waveform.samples, waveform.sample_rate, self.settings),
            name="tempokey-worker",
            daemon=True,
        )
        try:
            self._process.start()
        finally:
            # Only the child keeps the sending end, so a dead child means EOF here
            sender.close()
        logger.debug(f"Worker pid={self._process.pid} started for {waveform!r}")

    def wait(self, on_progress: Optional[ProgressCallback] = None) -> AnalysisResult:
        """
        Block until the terminal message arrives.

        Args:
            on_progress: Called with (percent, stage) for each progress message

        Returns:
            AnalysisResult from the worker

        Raises:
            DecodeFailure, AnalysisFailure, MissingInputFailure: Forwarded worker error
            AnalysisFailure: If the worker exits without a terminal message
        """
        conn = self._conn
        if conn is None:
            raise RuntimeError("AnalysisWorker.wait() called before start()")

        self._waiting = True
        last_progress = 0
        try:
            while True:
                try:
                    message = conn.recv()
                except (EOFError, OSError):
                    raise AnalysisFailure("Analysis worker exited without a result")

                kind = message[0]
                if kind == "progress":
                    _, value, stage = message
                    last_progress = max(last_progress, value)
                    if on_progress is not None:
                        on_progress(last_progress, stage)
                elif kind == "result":
                    return AnalysisResult.from_dict(message[1])
                elif kind == "error":
                    _, error_kind, error_message = message
                    raise error_from_kind(error_kind, error_message)
                else:
                    raise AnalysisFailure(f"Unknown worker message: {kind!r}")
        finally:
            self._waiting = False
            self.close()

    def terminate(self) -> None:
        """Kill the worker process. Safe to call more than once."""
        if self._process is not None and self._process.is_alive():
            logger.debug(f"Terminating worker pid={self._process.pid}")
            self._process.terminate()
            self._process.join(JOIN_TIMEOUT)
        # A thread blocked in wait() sees EOF and closes the pipe itself
        if not self._waiting:
            self.close()

    def close(self) -> None:
        # terminate() and a waiting thread may both get here
        conn, self._conn = self._conn, None
        if self._process is not None and self._process.pid is not None:
            self._process.join(JOIN_TIMEOUT)
        if conn is not None:
            conn.close()

    def __enter__(self) -> "AnalysisWorker":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.terminate()

    def __repr__(self) -> str:
        pid = self._process.pid if self._process is not None else None
        return f"AnalysisWorker(pid={pid}, alive={self.is_alive})"


def analyze_in_worker(
    waveform: Waveform,
    config: Optional[Config] = None,
    on_progress: Optional[Callable[[int, str], None]] = None,
) -> AnalysisResult:
    """Run one analysis in a fresh worker process and block for the result."""
    with AnalysisWorker(config) as worker:
        worker.start(waveform)
        return worker.wait(on_progress)

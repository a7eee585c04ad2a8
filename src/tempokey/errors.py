"""
Error kinds raised by the analysis engine.

All failures are terminal for the call that raised them; nothing is retried.
Callers are expected to degrade gracefully and report tempo/key as
"not detected" instead of failing the surrounding batch.
"""


class TempoKeyError(Exception):
    """Base class for analysis errors."""
    pass


class DecodeFailure(TempoKeyError):
    """Raised when audio input is malformed or in an unsupported format."""
    pass


class AnalysisFailure(TempoKeyError):
    """Raised when the DSP pipeline faults (e.g. malformed buffer)."""
    pass


class MissingInputFailure(TempoKeyError):
    """Raised when samples are absent or the sample rate is invalid."""
    pass


ERROR_KINDS = {
    cls.__name__: cls
    for cls in (DecodeFailure, AnalysisFailure, MissingInputFailure)
}


def error_from_kind(kind: str, message: str) -> TempoKeyError:
    """Rebuild an error from the (kind, message) pair sent by a worker."""
    return ERROR_KINDS.get(kind, AnalysisFailure)(message)

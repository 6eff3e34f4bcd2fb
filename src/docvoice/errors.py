"""Error types for the docvoice speech engine.

Every failure inside the engine maps to one of the kinds in
``FailureKind``. Only exhaustion of the fallback ladder is surfaced to
callers, and then only as an error message, never as a raised exception.
"""

from enum import Enum


class FailureKind(Enum):
    """How a failure is resolved by the speech engine."""

    RECOVERABLE_DEGRADE = "recoverable_degrade"
    TERMINAL_FOR_REQUEST = "terminal_for_request"
    INPUT_REJECTED = "input_rejected"
    FATAL = "fatal"


class DocvoiceError(Exception):
    """Base exception for docvoice errors."""

    kind: FailureKind = FailureKind.RECOVERABLE_DEGRADE


class SynthesisError(DocvoiceError):
    """Raised when waveform rendering fails irrecoverably."""

    pass


class EncodingError(DocvoiceError):
    """Raised when samples cannot be packed into a WAV container."""

    pass


class PlaybackError(DocvoiceError):
    """Raised when the audio device cannot start playback."""

    pass


class CacheError(DocvoiceError):
    """Raised by the audio cache for storage failures."""

    pass


class NativeSpeechError(DocvoiceError):
    """Raised when the platform speech engine cannot speak."""

    kind = FailureKind.TERMINAL_FOR_REQUEST


class ConfigError(DocvoiceError):
    """Raised for invalid configuration files or values."""

    kind = FailureKind.FATAL


def classify_failure(error: BaseException) -> FailureKind:
    """Map an exception to the failure kind used for logging and recovery.

    Args:
        error: The exception caught at an engine boundary.

    Returns:
        The FailureKind for the error. Unknown exceptions are treated as
        recoverable so the fallback ladder gets a chance to run.
    """
    if isinstance(error, DocvoiceError):
        return error.kind
    return FailureKind.RECOVERABLE_DEGRADE


__all__ = [
    "CacheError",
    "ConfigError",
    "DocvoiceError",
    "EncodingError",
    "FailureKind",
    "NativeSpeechError",
    "PlaybackError",
    "SynthesisError",
    "classify_failure",
]

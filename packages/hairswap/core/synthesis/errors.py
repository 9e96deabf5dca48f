"""Exception taxonomy for the synthesis pipeline.

Every error carries a ``retryable`` flag read by the retry combinator:
fatal-per-attempt failures are retryable, input and exhaustion errors are not.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

from hairswap.core.synthesis.models import Rating


class SynthesisError(Exception):
    """Base exception for all synthesis failures.

    Attributes:
        message: Human-readable error description
        retryable: Whether a fresh pipeline attempt may succeed
    """

    retryable: ClassVar[bool] = True

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(SynthesisError):
    """Malformed or missing input, rejected before any remote call."""

    retryable = False


class ImageGenerationError(SynthesisError):
    """A single image-model call failed."""


class PreprocessingError(SynthesisError):
    """Hair removal or reference relighting failed."""


class UpstreamGenerationError(SynthesisError):
    """Every fan-out candidate failed.

    Attributes:
        failures: Per-candidate failure reasons in ordinal order
    """

    def __init__(self, message: str, failures: Sequence[str] = ()) -> None:
        self.failures = list(failures)
        super().__init__(message)


class JudgeError(SynthesisError):
    """Judge call failed or returned an invalid verdict."""


class QualityRejected(SynthesisError):
    """Similarity check rated the chosen candidate as low."""

    def __init__(self, message: str, similarity: Rating = Rating.LOW) -> None:
        self.similarity = similarity
        super().__init__(message)


class TransitionError(SynthesisError):
    """Transition rendering failed. Recovered locally by the orchestrator.

    Attributes:
        returncode: ffmpeg exit code, if the process ran
        stderr: Diagnostic text captured from ffmpeg
    """

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class RetryExhausted(SynthesisError):
    """All attempts failed; wraps the last fatal error.

    Attributes:
        attempts: Number of attempts made
        last_error: Error raised by the final attempt
    """

    retryable = False

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Synthesis failed after {attempts} attempt(s): {last_error}")

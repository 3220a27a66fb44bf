"""
Exception hierarchy for ChunkScribe.

Provider adapters raise ProviderError subclasses; the dispatcher turns them
into per-chunk failures. Only pipeline-level errors reach the caller.
"""

from typing import Optional, TYPE_CHECKING

from .types import ErrorKind

if TYPE_CHECKING:
    from .types import TranscriptReport


class ChunkScribeError(Exception):
    """Base exception for the package."""
    pass


class ConfigError(ChunkScribeError):
    """Unknown provider, missing credential or malformed provider setting."""
    pass


class ProviderError(ChunkScribeError):
    """A single transcription request failed."""

    kind: ErrorKind = ErrorKind.UNEXPECTED_RESPONSE

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class AuthError(ProviderError):
    """Credential rejected. Retrying other chunks will not help."""
    kind = ErrorKind.AUTH


class RateLimitedError(ProviderError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, provider: str = "", retry_after: Optional[float] = None):
        super().__init__(message, provider)
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError):
    kind = ErrorKind.TIMEOUT


class TransportError(ProviderError):
    kind = ErrorKind.TRANSPORT


class UnexpectedResponseError(ProviderError):
    """Malformed or unexpected provider payload."""
    kind = ErrorKind.UNEXPECTED_RESPONSE


class EmptyInputError(ChunkScribeError):
    """The audio buffer has zero duration."""
    pass


class TranscriptionCancelled(ChunkScribeError):
    """The caller aborted the transcription; partial results were discarded."""
    pass


class TranscriptionFailed(ChunkScribeError):
    """Every chunk failed. Carries the report for display."""

    def __init__(self, report: "TranscriptReport"):
        super().__init__(report.summary())
        self.report = report

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.report.error_kind

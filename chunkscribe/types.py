"""
Shared type definitions for ChunkScribe.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Iterator, Union


# Contract constants (changing these changes user-visible behavior)
SIZE_THRESHOLD = 20 * 1024 * 1024   # bytes; above this, chunking activates
CHUNK_DURATION = 300.0              # seconds; nominal chunk length
OVERLAP = 2.0                       # seconds of audio shared by adjacent chunks
MAX_PARALLEL = 3                    # concurrent provider calls
PER_CALL_TIMEOUT = 300.0            # seconds per chunk call
MERGE_WINDOW = 15                   # max words searched for overlap dedup
MIN_CHUNK = 5.0                     # shorter tails are folded into the previous chunk


@dataclass(frozen=True)
class AudioBuffer:
    """Encoded mono audio handed over by the capture/encoding layer."""
    data: bytes
    duration: float                 # seconds
    sample_rate: Optional[int] = None
    mime_type: str = "audio/wav"
    filename: str = "audio.wav"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ChunkSpec:
    """One planned window of the source recording."""
    index: int
    start: float
    end: float
    overlap: float                  # seconds shared with the previous chunk
    data: bytes = field(repr=False, default=b"")

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class ChunkPlan:
    """Ordered chunk specs for one recording."""
    chunks: List[ChunkSpec] = field(default_factory=list)
    chunk_duration: float = CHUNK_DURATION
    overlap: float = 0.0

    # Container of every chunk's bytes
    mime_type: str = "audio/wav"
    filename: str = "audio.wav"

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[ChunkSpec]:
        return iter(self.chunks)

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    @property
    def is_chunked(self) -> bool:
        return len(self.chunks) > 1


@dataclass(frozen=True)
class ChunkJob:
    """A chunk bound to a language hint and provider, consumed by one dispatch task."""
    spec: ChunkSpec
    language: Optional[str]
    provider: str

    @property
    def index(self) -> int:
        return self.spec.index


class ErrorKind(str, Enum):
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    UNEXPECTED_RESPONSE = "unexpected_response"


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str = ""


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class ChunkResult:
    """Outcome of transcribing a single chunk. Written once by the task owning the chunk."""
    index: int
    outcome: Outcome
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)

    @property
    def text(self) -> Optional[str]:
        return self.outcome.text if isinstance(self.outcome, Success) else None

    @property
    def failure(self) -> Optional[Failure]:
        return self.outcome if isinstance(self.outcome, Failure) else None


class ReportStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"


@dataclass(frozen=True)
class TranscriptReport:
    """
    Final result of one transcription call.

    `text` is present iff at least one chunk succeeded.
    """
    status: ReportStatus
    results: List[ChunkResult] = field(default_factory=list)
    text: Optional[str] = None

    @property
    def failures(self) -> Dict[int, Failure]:
        return {r.index: r.failure for r in self.results if not r.ok}

    @property
    def failed_indices(self) -> List[int]:
        return [r.index for r in self.results if not r.ok]

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        """Representative error: the first failure in chunk order."""
        for r in self.results:
            if not r.ok:
                return r.failure.kind
        return None

    def summary(self) -> str:
        """Human-readable description of missing portions, empty when complete."""
        if self.status == ReportStatus.COMPLETE:
            return ""

        total = len(self.results)
        failed = self.failed_indices
        if self.status == ReportStatus.TOTAL_FAILURE:
            head = f"Transcription failed: all {total} chunk(s) failed ({self.error_kind.value})"
        else:
            head = f"Partial transcript: {len(failed)} of {total} chunk(s) missing"

        lines = [head]
        for index, failure in self.failures.items():
            detail = f": {failure.message}" if failure.message else ""
            lines.append(f"  chunk {index}: {failure.kind.value}{detail}")
        return "\n".join(lines)


@dataclass(frozen=True)
class PipelineSettings:
    """
    Immutable snapshot of configuration for one transcription call.
    Ensures config changes mid-call don't cause inconsistency.
    """
    provider: str
    api_key: str = ""
    language: Optional[str] = None          # ISO-639-1 hint, None = auto-detect

    # Dispatch
    max_parallel: int = MAX_PARALLEL
    per_call_timeout: float = PER_CALL_TIMEOUT

    # Chunking
    size_threshold: int = SIZE_THRESHOLD
    chunk_duration: float = CHUNK_DURATION
    overlap: float = OVERLAP
    min_chunk: float = MIN_CHUNK
    merge_window: int = MERGE_WINDOW

    # Provider overrides
    model: str = ""                         # empty = provider default
    remote_whisper_url: str = ""

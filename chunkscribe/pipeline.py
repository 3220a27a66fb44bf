"""
Transcription pipeline: plan -> dispatch -> aggregate.

A Pipeline call owns everything it creates (plan, jobs, results, report);
nothing is shared between calls except the provider's pooled HTTP client.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Optional, Union, TYPE_CHECKING
from uuid import uuid4

from .aggregate import aggregate
from .chunking import ChunkPlanner
from .dispatch import dispatch, ProgressCallback
from .errors import EmptyInputError, TranscriptionCancelled, TranscriptionFailed
from .providers import Provider, create_provider
from .types import AudioBuffer, PipelineSettings, ReportStatus, TranscriptReport
from . import metrics as m

if TYPE_CHECKING:
    from .metrics import MetricsWriter


class CancelToken:
    """
    Cancellation token that can be triggered from any thread.

    The pipeline binds it to an asyncio.Event on its own loop; cancel()
    sets that event thread-safely, so a UI thread or signal handler can abort
    a running transcription.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self) -> asyncio.Event:
        """Create the event on the running loop. Must be called from a coroutine."""
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
            return self._event

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._event.set)


CancelArg = Union[asyncio.Event, CancelToken, None]


@dataclass
class Pipeline:
    """
    Runs one recording through the chunked transcription pipeline.

    Usage:
        pipeline = Pipeline(provider, config.snapshot())
        report = await pipeline.run(buffer)
    """
    provider: Provider
    settings: PipelineSettings
    metrics: Optional["MetricsWriter"] = None

    def planner(self) -> ChunkPlanner:
        return ChunkPlanner(
            size_threshold=self.settings.size_threshold,
            chunk_duration=self.settings.chunk_duration,
            overlap=self.settings.overlap,
            min_chunk=self.settings.min_chunk,
        )

    async def run(
        self,
        buffer: AudioBuffer,
        language: Optional[str] = None,
        cancel: CancelArg = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptReport:
        """
        Transcribe a buffer.

        Args:
            buffer: Encoded mono recording
            language: ISO-639-1 hint, defaults to settings.language
            cancel: asyncio.Event or CancelToken that aborts the call
            on_progress: Called with (completed, total) chunks

        Returns:
            TranscriptReport with status COMPLETE or PARTIAL_FAILURE

        Raises:
            EmptyInputError: Zero-duration buffer (no provider is called)
            TranscriptionFailed: Every chunk failed
            TranscriptionCancelled: The cancel token was triggered
        """
        if buffer.duration <= 0 or not buffer.data:
            raise EmptyInputError("Audio buffer is empty")

        session_id = str(uuid4())
        start = time.time()
        language = language or self.settings.language
        cancel_event = cancel.bind() if isinstance(cancel, CancelToken) else cancel

        # Decode and re-encode are CPU-bound; run them in a worker thread
        plan = await asyncio.to_thread(self.planner().plan, buffer)
        if cancel_event is not None and cancel_event.is_set():
            raise TranscriptionCancelled("Cancelled while planning")
        if plan.is_empty:
            raise EmptyInputError("Audio buffer is empty")

        print(
            f"[Pipeline] {buffer.duration:.1f}s audio ({buffer.size / 1024 / 1024:.1f} MB) "
            f"-> {len(plan)} chunk(s) via {self.provider.name}"
        )
        if self.metrics:
            m.log_session_start(
                self.metrics, session_id, self.provider.name,
                buffer.duration, buffer.size, len(plan), language,
            )

        results = await dispatch(
            plan,
            self.provider,
            max_parallel=self.settings.max_parallel,
            per_call_timeout=self.settings.per_call_timeout,
            language=language,
            cancel_event=cancel_event,
            on_progress=on_progress,
            metrics=self.metrics,
            session_id=session_id,
        )

        report = aggregate(results, overlap_seconds=plan.overlap, merge_window=self.settings.merge_window)

        elapsed_ms = (time.time() - start) * 1000
        print(f"[Pipeline] {report.status.value} in {elapsed_ms/1000:.2f}s")
        if self.metrics:
            m.log_session_complete(self.metrics, session_id, report, elapsed_ms)

        if report.status == ReportStatus.TOTAL_FAILURE:
            raise TranscriptionFailed(report)
        return report

    def run_sync(
        self,
        buffer: AudioBuffer,
        language: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptReport:
        """Blocking wrapper for thread-based hosts. Must not be called from a running loop."""
        return asyncio.run(self.run(buffer, language=language, cancel=cancel, on_progress=on_progress))


async def transcribe(
    buffer: AudioBuffer,
    settings: PipelineSettings,
    cancel: CancelArg = None,
    on_progress: Optional[ProgressCallback] = None,
    metrics: Optional["MetricsWriter"] = None,
) -> TranscriptReport:
    """
    Build the configured provider, run the pipeline once, close the provider.

    Raises:
        ConfigError: Unknown provider or missing credential
        plus everything Pipeline.run raises
    """
    provider = create_provider(settings)
    try:
        pipeline = Pipeline(provider=provider, settings=settings, metrics=metrics)
        return await pipeline.run(buffer, cancel=cancel, on_progress=on_progress)
    finally:
        await provider.shutdown()


def transcribe_sync(
    buffer: AudioBuffer,
    settings: PipelineSettings,
    cancel: Optional[CancelToken] = None,
    on_progress: Optional[ProgressCallback] = None,
    metrics: Optional["MetricsWriter"] = None,
) -> TranscriptReport:
    """Blocking version of transcribe()."""
    return asyncio.run(transcribe(buffer, settings, cancel=cancel, on_progress=on_progress, metrics=metrics))

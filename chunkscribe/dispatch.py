"""
Bounded-concurrency chunk dispatch.

One asyncio task per chunk; a semaphore caps how many provider calls are in
flight. Every result is tagged with its chunk index, and the returned list is
in index order no matter which call finished first.
"""

import asyncio
import os
import time
from typing import Callable, List, Optional, TYPE_CHECKING

from .debug import debug
from .errors import ProviderError, TranscriptionCancelled
from .providers import Provider
from .types import (
    ChunkJob, ChunkPlan, ChunkResult, ErrorKind, Failure, Success,
    MAX_PARALLEL, PER_CALL_TIMEOUT,
)
from . import metrics as m

if TYPE_CHECKING:
    from .metrics import MetricsWriter


ProgressCallback = Callable[[int, int], None]  # (completed, total)


def _chunk_filename(plan: ChunkPlan, index: int) -> str:
    if not plan.is_chunked:
        return plan.filename
    ext = os.path.splitext(plan.filename)[1] or ".wav"
    return f"audio_chunk_{index}{ext}"


async def _transcribe_job(
    job: ChunkJob,
    provider: Provider,
    timeout: float,
    filename: str,
    mime_type: str,
) -> ChunkResult:
    """Run one provider call against the timeout clock. Never raises ProviderError."""
    start = time.time()
    try:
        text = await asyncio.wait_for(
            provider.transcribe(
                job.spec.data,
                language=job.language,
                timeout=timeout,
                filename=filename,
                mime_type=mime_type,
            ),
            timeout=timeout,
        )
        outcome = Success(text)
    except (asyncio.TimeoutError, TimeoutError):
        outcome = Failure(ErrorKind.TIMEOUT, f"No response within {timeout:g}s")
    except ProviderError as e:
        outcome = Failure(e.kind, e.message)
    except Exception as e:
        outcome = Failure(ErrorKind.UNEXPECTED_RESPONSE, f"{type(e).__name__}: {e}")

    latency_ms = int((time.time() - start) * 1000)
    return ChunkResult(index=job.index, outcome=outcome, latency_ms=latency_ms)


def _print_result(result: ChunkResult, provider: str) -> None:
    if result.ok:
        text = result.text
        preview = text[:50] + "..." if len(text) > 50 else text
        print(f"[Chunk {result.index}] {provider}: {result.latency_ms/1000:.2f}s -> \"{preview}\"")
    else:
        failure = result.failure
        print(f"[Chunk {result.index}] {provider}: {failure.kind.value} ({failure.message})")


async def _cancel_all(tasks: List["asyncio.Future"]) -> None:
    """Cancel unfinished tasks and wait for them to release their slots."""
    pending = [t for t in tasks if not t.done()]
    for t in pending:
        t.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def dispatch(
    plan: ChunkPlan,
    provider: Provider,
    max_parallel: int = MAX_PARALLEL,
    per_call_timeout: float = PER_CALL_TIMEOUT,
    language: Optional[str] = None,
    cancel_event: Optional[asyncio.Event] = None,
    on_progress: Optional[ProgressCallback] = None,
    metrics: Optional["MetricsWriter"] = None,
    session_id: str = "",
) -> List[ChunkResult]:
    """
    Transcribe every chunk of a plan with at most `max_parallel` calls in flight.

    Args:
        plan: Chunks to transcribe
        provider: Adapter shared by all chunk calls
        max_parallel: Hard cap on concurrent provider calls
        per_call_timeout: Seconds before a call is cancelled and reported as TIMEOUT
        language: ISO-639-1 hint for every chunk
        cancel_event: Caller-owned token; setting it aborts the whole dispatch
        on_progress: Called with (completed, total) after each chunk finishes
        metrics: Optional metrics writer
        session_id: Id attached to metrics events

    Returns:
        One ChunkResult per chunk, ordered by chunk index

    Raises:
        TranscriptionCancelled: cancel_event was set; partial results are discarded
        asyncio.CancelledError: The awaiting task was cancelled
    """
    if max_parallel < 1:
        raise ValueError("max_parallel must be at least 1")
    if cancel_event is not None and cancel_event.is_set():
        raise TranscriptionCancelled("Cancelled before dispatch")
    if plan.is_empty:
        return []

    jobs = [ChunkJob(spec=spec, language=language, provider=provider.name) for spec in plan]
    total = len(jobs)
    semaphore = asyncio.Semaphore(max_parallel)
    auth_failed = asyncio.Event()
    completed = 0

    async def run(job: ChunkJob) -> ChunkResult:
        nonlocal completed
        async with semaphore:
            if auth_failed.is_set():
                # Credentials won't get better for later chunks
                result = ChunkResult(
                    index=job.index,
                    outcome=Failure(ErrorKind.AUTH, "Not attempted: authentication failed on another chunk"),
                )
            else:
                debug(f"Dispatch: chunk {job.index} started ({len(job.spec.data)} bytes)")
                if metrics:
                    m.log_chunk_dispatched(metrics, session_id, job.index, job.provider, len(job.spec.data))
                result = await _transcribe_job(
                    job,
                    provider,
                    per_call_timeout,
                    _chunk_filename(plan, job.index),
                    plan.mime_type,
                )
                if result.failure and result.failure.kind == ErrorKind.AUTH:
                    auth_failed.set()

        _print_result(result, job.provider)
        if metrics:
            m.log_chunk_result(metrics, session_id, result, job.provider)

        completed += 1
        if on_progress:
            on_progress(completed, total)
        return result

    tasks = [asyncio.ensure_future(run(job)) for job in jobs]
    all_done = asyncio.gather(*tasks, return_exceptions=True)
    waiters = {all_done}
    cancel_wait = None
    if cancel_event is not None:
        cancel_wait = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_wait)

    try:
        done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        if all_done not in done:
            print(f"[Dispatch] Cancelled with {total - completed} of {total} chunk(s) unfinished")
            raise TranscriptionCancelled(f"Cancelled after {completed} of {total} chunks")
        results = all_done.result()
    finally:
        if cancel_wait is not None:
            cancel_wait.cancel()
        await _cancel_all(tasks)
        if not all_done.done():
            all_done.cancel()

    for result in results:
        if isinstance(result, BaseException):
            raise result
    return sorted(results, key=lambda r: r.index)

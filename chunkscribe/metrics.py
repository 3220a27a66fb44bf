"""
Thread-safe metrics logging with batched writes.

Usage:
    metrics = MetricsWriter(config.metrics_file)
    log_chunk_result(metrics, session_id, result, provider="groq")
"""

import json
import time
import threading
from queue import Queue, Empty
from pathlib import Path
from typing import Any, Optional

from .types import ChunkResult, TranscriptReport


class MetricsWriter:
    """
    Appends one JSON object per event to a .jsonl file.
    A background thread drains the queue, so log() never blocks the event loop.
    """

    def __init__(self, metrics_file: Path):
        self.metrics_file = Path(metrics_file)
        self._queue: Queue[dict] = Queue()
        self._shutdown = threading.Event()
        self._writer_thread = threading.Thread(target=self._writer_loop, daemon=True)
        self._writer_thread.start()

    def log(self, event: str, **kwargs: Any) -> None:
        """
        Queue a metric for writing. Non-blocking.

        Args:
            event: Event name (e.g., "chunk_dispatched", "chunk_result")
            **kwargs: Additional fields to log
        """
        self._queue.put({"ts": time.time(), "event": event, **kwargs})

    def _writer_loop(self) -> None:
        while not self._shutdown.is_set():
            try:
                entries = [self._queue.get(timeout=0.5)]
            except Empty:
                continue

            while True:
                try:
                    entries.append(self._queue.get_nowait())
                except Empty:
                    break

            self._write_entries(entries)

    def _write_entries(self, entries: list[dict]) -> None:
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.metrics_file, "a") as f:
                for entry in entries:
                    f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            print(f"[Metrics] Failed to write {self.metrics_file}: {e}")

    def flush(self) -> None:
        """Write anything still queued."""
        entries = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except Empty:
                break
        if entries:
            self._write_entries(entries)

    def shutdown(self) -> None:
        """Stop the writer thread and flush."""
        self._shutdown.set()
        self._writer_thread.join(timeout=2.0)
        self.flush()


# Typed helpers for consistent event logging

def log_session_start(
    metrics: MetricsWriter,
    session_id: str,
    provider: str,
    duration_s: float,
    size_bytes: int,
    chunks: int,
    language: Optional[str],
) -> None:
    metrics.log(
        "session_start",
        session_id=session_id,
        provider=provider,
        duration_s=duration_s,
        size_bytes=size_bytes,
        chunks=chunks,
        language=language,
    )


def log_chunk_dispatched(metrics: MetricsWriter, session_id: str, index: int, provider: str, size_bytes: int) -> None:
    metrics.log(
        "chunk_dispatched",
        session_id=session_id,
        chunk=index,
        provider=provider,
        size_bytes=size_bytes,
    )


def log_chunk_result(metrics: MetricsWriter, session_id: str, result: ChunkResult, provider: str) -> None:
    failure = result.failure
    metrics.log(
        "chunk_result",
        session_id=session_id,
        chunk=result.index,
        provider=provider,
        ok=result.ok,
        latency_ms=result.latency_ms,
        error_kind=failure.kind.value if failure else None,
        text=result.text[:200] if result.text else None,  # Truncate for metrics
    )


def log_session_complete(
    metrics: MetricsWriter,
    session_id: str,
    report: TranscriptReport,
    total_duration_ms: float,
) -> None:
    metrics.log(
        "session_complete",
        session_id=session_id,
        status=report.status.value,
        chunks=len(report.results),
        failed=report.failed_indices,
        total_duration_ms=total_duration_ms,
        final_text=(report.text or "")[:500],
    )

"""
ChunkScribe - Voice-to-text for recordings of any length.

This package provides:
- Chunk planning with overlapping windows for long or large recordings
- Pluggable cloud and self-hosted transcription providers
- Bounded-concurrency dispatch with per-call timeouts and cancellation
- Overlap-aware merging of chunk transcripts
- Partial-failure reporting

Main entry point: python -m chunkscribe
"""

__version__ = "1.0.0"

from .types import AudioBuffer, PipelineSettings, ReportStatus, TranscriptReport
from .pipeline import CancelToken, Pipeline, transcribe, transcribe_sync

__all__ = [
    "AudioBuffer",
    "CancelToken",
    "Pipeline",
    "PipelineSettings",
    "ReportStatus",
    "TranscriptReport",
    "transcribe",
    "transcribe_sync",
]

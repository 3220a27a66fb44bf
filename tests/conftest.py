"""
Shared fixtures: an instrumented in-memory provider and plan builders.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from chunkscribe.providers import Provider
from chunkscribe.types import ChunkPlan, ChunkSpec


class FakeProvider(Provider):
    """
    Provider whose behavior is scripted per chunk index.

    Chunk bytes carry the index (see make_plan), so the provider knows which
    chunk it is serving. Tracks how many calls are in flight at once.
    """

    name = "fake"

    def __init__(
        self,
        texts: Optional[Dict[int, str]] = None,
        delays: Optional[Dict[int, float]] = None,
        errors: Optional[Dict[int, Exception]] = None,
        default_delay: float = 0.0,
    ):
        self.texts = texts or {}
        self.delays = delays or {}
        self.errors = errors or {}
        self.default_delay = default_delay

        self.in_flight = 0
        self.max_in_flight = 0
        self.started: List[int] = []
        self.finished: List[int] = []
        self.cancelled: List[int] = []
        self.languages: List[Optional[str]] = []
        self.filenames: List[str] = []

    async def transcribe(self, audio, language=None, timeout=300.0, filename="audio.wav", mime_type="audio/wav"):
        index = int(audio.decode())
        self.started.append(index)
        self.languages.append(language)
        self.filenames.append(filename)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(index, self.default_delay))
            if index in self.errors:
                raise self.errors[index]
            self.finished.append(index)
            return self.texts.get(index, f"chunk {index}")
        except asyncio.CancelledError:
            self.cancelled.append(index)
            raise
        finally:
            self.in_flight -= 1


def make_plan(count: int, overlap: float = 2.0) -> ChunkPlan:
    """Plan of `count` 10-second chunks whose bytes are their index."""
    chunks = [
        ChunkSpec(
            index=i,
            start=i * 8.0,
            end=i * 8.0 + 10.0,
            overlap=0.0 if i == 0 else overlap,
            data=str(i).encode(),
        )
        for i in range(count)
    ]
    return ChunkPlan(chunks=chunks, chunk_duration=10.0, overlap=overlap if count > 1 else 0.0)


@pytest.fixture(autouse=True)
def quiet_debug():
    """Tests start with debug output off regardless of the environment."""
    from chunkscribe.debug import set_debug

    set_debug(False)
    yield
    set_debug(False)

"""
Tests for bounded-concurrency dispatch.

The FakeProvider from conftest counts concurrent calls and records which
chunks started, finished or were cancelled.
"""

import asyncio
import time

import pytest

from chunkscribe.errors import (
    AuthError, RateLimitedError, TransportError, TranscriptionCancelled,
)
from chunkscribe.types import ErrorKind
from conftest import FakeProvider, make_plan


class TestConcurrencyCap:

    def test_seven_chunks_never_exceed_three_in_flight(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(default_delay=0.02)
        results = asyncio.run(dispatch(make_plan(7), provider, max_parallel=3))

        assert provider.max_in_flight == 3
        assert provider.in_flight == 0
        assert [r.index for r in results] == list(range(7))
        assert all(r.ok for r in results)

    def test_cap_of_one_runs_sequentially(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(default_delay=0.01)
        asyncio.run(dispatch(make_plan(4), provider, max_parallel=1))

        assert provider.max_in_flight == 1
        assert provider.started == [0, 1, 2, 3]

    def test_invalid_cap_rejected(self):
        from chunkscribe.dispatch import dispatch

        with pytest.raises(ValueError):
            asyncio.run(dispatch(make_plan(2), FakeProvider(), max_parallel=0))


class TestOrdering:

    def test_results_ordered_by_index_not_completion(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(delays={0: 0.15, 1: 0.1, 2: 0.05, 3: 0.0})
        results = asyncio.run(dispatch(make_plan(4), provider, max_parallel=4))

        assert provider.finished == [3, 2, 1, 0]
        assert [r.index for r in results] == [0, 1, 2, 3]
        assert [r.text for r in results] == ["chunk 0", "chunk 1", "chunk 2", "chunk 3"]

    def test_empty_plan(self):
        from chunkscribe.dispatch import dispatch
        from chunkscribe.types import ChunkPlan

        provider = FakeProvider()
        assert asyncio.run(dispatch(ChunkPlan(), provider)) == []
        assert provider.started == []


class TestFailures:

    def test_timeout_does_not_block_siblings(self):
        """A hung chunk times out while the others complete normally."""
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(delays={1: 10.0})
        start = time.time()
        results = asyncio.run(dispatch(make_plan(3), provider, per_call_timeout=0.2))
        elapsed = time.time() - start

        assert elapsed < 2.0
        assert results[0].ok and results[2].ok
        assert results[1].failure.kind == ErrorKind.TIMEOUT
        assert provider.cancelled == [1]

    def test_provider_errors_stay_local(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(errors={
            1: TransportError("connection reset", provider="fake"),
            2: RateLimitedError("slow down", provider="fake", retry_after=3),
        })
        results = asyncio.run(dispatch(make_plan(4), provider))

        assert sorted(provider.started) == [0, 1, 2, 3]
        assert [r.ok for r in results] == [True, False, False, True]
        assert results[1].failure.kind == ErrorKind.TRANSPORT
        assert results[1].failure.message == "connection reset"
        assert results[2].failure.kind == ErrorKind.RATE_LIMITED

    def test_unexpected_exception_becomes_failure(self):
        """An adapter bug fails its own chunk instead of the whole dispatch."""
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(errors={0: ValueError("bad payload")})
        results = asyncio.run(dispatch(make_plan(2), provider))

        assert results[0].failure.kind == ErrorKind.UNEXPECTED_RESPONSE
        assert "ValueError" in results[0].failure.message
        assert results[1].ok

    def test_builtin_timeout_error_is_a_timeout(self):
        """A socket-level TimeoutError from the adapter counts as a timeout, not a bug."""
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(errors={0: TimeoutError("socket read")})
        results = asyncio.run(dispatch(make_plan(2), provider, per_call_timeout=5.0))

        assert results[0].failure.kind == ErrorKind.TIMEOUT
        assert "5s" in results[0].failure.message
        assert results[1].ok


class TestAuthFastFail:

    def test_queued_chunks_not_started_after_auth_error(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(errors={0: AuthError("Invalid API key", provider="fake")})
        results = asyncio.run(dispatch(make_plan(5), provider, max_parallel=1))

        assert provider.started == [0]
        assert all(r.failure.kind == ErrorKind.AUTH for r in results)
        assert results[0].failure.message == "Invalid API key"
        assert all("Not attempted" in r.failure.message for r in results[1:])

    def test_in_flight_chunks_allowed_to_finish(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(
            delays={0: 0.01, 1: 0.1},
            errors={0: AuthError("Invalid API key")},
        )
        results = asyncio.run(dispatch(make_plan(5), provider, max_parallel=2))

        assert sorted(provider.started) == [0, 1]
        assert provider.cancelled == []
        assert results[1].ok
        assert [r.failure.kind for r in results[2:]] == [ErrorKind.AUTH] * 3


class TestCancellation:

    def test_cancel_event_stops_in_flight_and_queued(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(default_delay=5.0)

        async def scenario():
            event = asyncio.Event()
            task = asyncio.ensure_future(dispatch(make_plan(6), provider, max_parallel=3, cancel_event=event))
            await asyncio.sleep(0.05)
            event.set()
            start = time.time()
            with pytest.raises(TranscriptionCancelled):
                await task
            return time.time() - start

        elapsed = asyncio.run(scenario())

        assert elapsed < 1.0
        assert sorted(provider.started) == [0, 1, 2]
        assert sorted(provider.cancelled) == [0, 1, 2]
        assert provider.finished == []
        assert provider.in_flight == 0

    def test_cancelling_the_awaiting_task(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider(default_delay=5.0)

        async def scenario():
            task = asyncio.ensure_future(dispatch(make_plan(4), provider, max_parallel=2))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert sorted(provider.cancelled) == [0, 1]
        assert provider.in_flight == 0
        assert 2 not in provider.started

    def test_already_cancelled_event(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider()

        async def scenario():
            event = asyncio.Event()
            event.set()
            await dispatch(make_plan(3), provider, cancel_event=event)

        with pytest.raises(TranscriptionCancelled):
            asyncio.run(scenario())
        assert provider.started == []


class TestJobParameters:

    def test_language_and_chunk_filenames(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider()
        asyncio.run(dispatch(make_plan(2), provider, language="de", max_parallel=1))

        assert provider.languages == ["de", "de"]
        assert provider.filenames == ["audio_chunk_0.wav", "audio_chunk_1.wav"]

    def test_single_chunk_keeps_plan_filename(self):
        from chunkscribe.dispatch import dispatch

        provider = FakeProvider()
        asyncio.run(dispatch(make_plan(1), provider))

        assert provider.filenames == ["audio.wav"]

    def test_progress_reported_per_chunk(self):
        from chunkscribe.dispatch import dispatch

        calls = []
        provider = FakeProvider(errors={1: TransportError("down")})
        asyncio.run(dispatch(make_plan(3), provider, max_parallel=1, on_progress=lambda c, t: calls.append((c, t))))

        assert calls == [(1, 3), (2, 3), (3, 3)]

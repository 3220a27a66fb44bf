"""
Chunk planning for recordings too large or too long for one request.

Windows overlap by a couple of seconds so no word is cut exactly at a
boundary; the merger removes the duplicated words afterwards.
"""

import math
from typing import List, Tuple

from . import audio
from .debug import debug
from .types import (
    AudioBuffer, ChunkPlan, ChunkSpec,
    SIZE_THRESHOLD, CHUNK_DURATION, OVERLAP, MIN_CHUNK,
)


Window = Tuple[float, float]  # (start, end) in seconds


class ChunkPlanner:
    """
    Decides whether to split a buffer and computes chunk boundaries.

    Usage:
        planner = ChunkPlanner()
        plan = planner.plan(buffer)
    """

    def __init__(
        self,
        size_threshold: int = SIZE_THRESHOLD,
        chunk_duration: float = CHUNK_DURATION,
        overlap: float = OVERLAP,
        min_chunk: float = MIN_CHUNK,
    ):
        if chunk_duration <= overlap:
            raise ValueError("chunk_duration must be longer than overlap")
        self.size_threshold = size_threshold
        self.chunk_duration = chunk_duration
        self.overlap = overlap
        self.min_chunk = min_chunk

    def needs_split(self, duration: float, size: int) -> bool:
        return size > self.size_threshold or duration > self.chunk_duration

    def target_duration(self, duration: float, size: int) -> float:
        """
        Window length for a split buffer.

        Normally CHUNK_DURATION; shortened when the buffer's byte rate would
        make a full window exceed the size threshold.
        """
        target = self.chunk_duration
        if duration > 0 and size > self.size_threshold:
            bytes_per_second = size / duration
            fits = math.floor(self.size_threshold / bytes_per_second)
            target = min(target, max(float(fits), 2 * self.overlap + self.min_chunk))
        return target

    def compute_windows(self, duration: float, size: int) -> List[Window]:
        """
        Compute (start, end) pairs for a buffer of the given duration and size.

        Window i starts at i * (target - overlap). A tail adding less than
        `min_chunk` seconds of new audio is folded into the previous window.
        """
        if duration <= 0:
            return []

        if not self.needs_split(duration, size):
            return [(0.0, duration)]

        target = self.target_duration(duration, size)
        step = target - self.overlap

        windows: List[Window] = []
        i = 0
        while True:
            start = i * step
            end = min(start + target, duration)
            windows.append((start, end))
            if end >= duration:
                break
            i += 1

        if len(windows) > 1:
            prev_start, prev_end = windows[-2]
            if duration - prev_end < self.min_chunk:
                windows.pop()
                windows[-1] = (prev_start, duration)

        if size > self.size_threshold:
            longest = max(end - start for start, end in windows)
            estimate = int(longest * size / duration)
            if estimate > self.size_threshold:
                debug(
                    f"Planner: longest chunk ({longest:.1f}s, ~{estimate} bytes) "
                    f"is still above the {self.size_threshold} byte threshold"
                )

        return windows

    def plan(self, buffer: AudioBuffer) -> ChunkPlan:
        """
        Build the chunk plan for a buffer.

        Returns:
            Empty plan for zero-duration input, a single whole-buffer chunk
            when no split is needed, otherwise overlapping re-encoded windows.
        """
        windows = self.compute_windows(buffer.duration, buffer.size)

        if not windows:
            return ChunkPlan(chunks=[], chunk_duration=self.chunk_duration, overlap=0.0,
                             mime_type=buffer.mime_type, filename=buffer.filename)

        if len(windows) == 1:
            start, end = windows[0]
            chunk = ChunkSpec(index=0, start=start, end=end, overlap=0.0, data=buffer.data)
            return ChunkPlan(chunks=[chunk], chunk_duration=self.chunk_duration, overlap=0.0,
                             mime_type=buffer.mime_type, filename=buffer.filename)

        decoded = audio.decode(buffer)
        if decoded is None:
            debug(f"Planner: {buffer.mime_type} not decodable, slicing by bytes")

        chunks = []
        for index, (start, end) in enumerate(windows):
            if decoded is None:
                data = audio.slice_bytes(buffer, start, end)
            else:
                data = audio.slice_audio(buffer, start, end, decoded=decoded)
            chunks.append(ChunkSpec(
                index=index,
                start=start,
                end=end,
                overlap=0.0 if index == 0 else self.overlap,
                data=data,
            ))

        debug(
            f"Planner: {buffer.duration:.1f}s / {buffer.size} bytes -> "
            f"{len(chunks)} chunks of {self.target_duration(buffer.duration, buffer.size):.0f}s"
        )
        return ChunkPlan(chunks=chunks, chunk_duration=self.chunk_duration, overlap=self.overlap,
                         mime_type=buffer.mime_type, filename=buffer.filename)


def plan(buffer: AudioBuffer) -> ChunkPlan:
    """Plan with the default contract constants."""
    return ChunkPlanner().plan(buffer)

"""
Result aggregation: per-chunk outcomes -> one TranscriptReport.
"""

from typing import Iterable, List

from .merge import merge_transcripts
from .types import (
    ChunkResult, ReportStatus, TranscriptReport,
    OVERLAP, MERGE_WINDOW,
)


def _successful_runs(results: List[ChunkResult]) -> List[List[str]]:
    """
    Group successful texts into runs of consecutive chunk indices.

    A failed chunk breaks the run, so overlap dedup never spans a gap.
    """
    runs: List[List[str]] = []
    last_index = None
    for r in results:
        if not r.ok:
            continue
        if last_index is None or r.index != last_index + 1:
            runs.append([])
        runs[-1].append(r.text)
        last_index = r.index
    return runs


def aggregate(
    chunk_results: Iterable[ChunkResult],
    overlap_seconds: float = OVERLAP,
    merge_window: int = MERGE_WINDOW,
) -> TranscriptReport:
    """
    Decide overall status and build the merged transcript.

    Pure function over completed results; arrival order does not matter.
    """
    results = sorted(chunk_results, key=lambda r: r.index)
    succeeded = sum(1 for r in results if r.ok)

    if not results or succeeded == len(results):
        status = ReportStatus.COMPLETE
    elif succeeded == 0:
        return TranscriptReport(status=ReportStatus.TOTAL_FAILURE, results=results, text=None)
    else:
        status = ReportStatus.PARTIAL_FAILURE

    pieces = [
        merge_transcripts(run, overlap_seconds=overlap_seconds, window=merge_window)
        for run in _successful_runs(results)
    ]
    text = " ".join(p for p in pieces if p)

    return TranscriptReport(status=status, results=results, text=text)

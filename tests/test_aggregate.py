"""
Tests for result aggregation into a TranscriptReport.
"""

from chunkscribe.types import ChunkResult, ErrorKind, Failure, ReportStatus, Success


def ok(index, text):
    return ChunkResult(index=index, outcome=Success(text))


def fail(index, kind=ErrorKind.TRANSPORT, message="connection reset"):
    return ChunkResult(index=index, outcome=Failure(kind, message))


class TestStatus:

    def test_all_succeeded_is_complete(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([ok(0, "the quick brown fox"), ok(1, "brown fox jumps over")])

        assert report.status == ReportStatus.COMPLETE
        assert report.text == "the quick brown fox jumps over"
        assert report.failed_indices == []
        assert report.error_kind is None
        assert report.summary() == ""

    def test_partial_failure_keeps_successful_text(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([
            ok(0, "first part"),
            fail(1, ErrorKind.TIMEOUT, "No response within 300s"),
            ok(2, "third part"),
        ])

        assert report.status == ReportStatus.PARTIAL_FAILURE
        assert report.text == "first part third part"
        assert report.failed_indices == [1]
        assert report.failures[1].kind == ErrorKind.TIMEOUT

    def test_total_failure_has_no_text(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([fail(0, ErrorKind.AUTH, "Invalid key"), fail(1, ErrorKind.TIMEOUT)])

        assert report.status == ReportStatus.TOTAL_FAILURE
        assert report.text is None
        assert report.failed_indices == [0, 1]
        assert report.error_kind == ErrorKind.AUTH

    def test_single_chunk_failure_is_total(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([fail(0)])

        assert report.status == ReportStatus.TOTAL_FAILURE

    def test_empty_results_complete_and_empty(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([])

        assert report.status == ReportStatus.COMPLETE
        assert report.text == ""


class TestMergeAcrossResults:

    def test_arrival_order_ignored(self):
        """Results are merged in chunk index order."""
        from chunkscribe.aggregate import aggregate

        report = aggregate([ok(2, "six seven"), ok(0, "one two three"), ok(1, "three four five six")])

        assert report.text == "one two three four five six seven"
        assert [r.index for r in report.results] == [0, 1, 2]

    def test_no_dedup_across_failed_chunk(self):
        """Chunks 0 and 2 are not adjacent in time, so shared words stay."""
        from chunkscribe.aggregate import aggregate

        report = aggregate([ok(0, "we said yes"), fail(1), ok(2, "yes we did")])

        assert report.text == "we said yes yes we did"

    def test_error_kind_is_first_failure_by_index(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([
            fail(2, ErrorKind.RATE_LIMITED),
            ok(0, "hello"),
            fail(1, ErrorKind.TRANSPORT),
        ])

        assert report.error_kind == ErrorKind.TRANSPORT


class TestSummary:

    def test_partial_summary_lists_missing_chunks(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([ok(0, "a"), fail(1, ErrorKind.TIMEOUT, "No response within 300s"), ok(2, "b")])

        assert report.summary() == (
            "Partial transcript: 1 of 3 chunk(s) missing\n"
            "  chunk 1: timeout: No response within 300s"
        )

    def test_total_summary_names_representative_kind(self):
        from chunkscribe.aggregate import aggregate

        report = aggregate([fail(0, ErrorKind.AUTH, ""), fail(1, ErrorKind.AUTH, "Not attempted")])

        lines = report.summary().splitlines()
        assert lines[0] == "Transcription failed: all 2 chunk(s) failed (auth)"
        assert lines[1] == "  chunk 0: auth"
        assert lines[2] == "  chunk 1: auth: Not attempted"

"""
Main entry point for ChunkScribe.

Run with: python -m chunkscribe recording.wav [--provider groq] [--language en]
"""

import argparse
import signal
import sys
from typing import List, Optional

from .audio import load_audio_file
from .config import Config
from .debug import set_debug
from .errors import (
    ChunkScribeError, ConfigError, EmptyInputError,
    TranscriptionCancelled, TranscriptionFailed,
)
from .metrics import MetricsWriter
from .pipeline import CancelToken, transcribe_sync
from .providers import PROVIDERS
from .types import ReportStatus
from .validate import validate_key


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunkscribe",
        description="Transcribe a voice recording, splitting long clips into parallel chunks.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("audio", nargs="?", help="Path to the audio file to transcribe.")
    parser.add_argument("-p", "--provider", default=None, choices=sorted(PROVIDERS),
                        help="Transcription provider (default from settings).")
    parser.add_argument("-l", "--language", default=None,
                        help="ISO-639-1 language hint, e.g. 'en'.")
    parser.add_argument("--max-parallel", type=int, default=None,
                        help="Concurrent provider calls.")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Per-chunk timeout in seconds.")
    parser.add_argument("--debug", action="store_true", help="Print per-chunk detail.")
    parser.add_argument("--check-key", action="store_true",
                        help="Validate the selected provider's credential and exit.")
    return parser


def _print_progress(completed: int, total: int) -> None:
    if total > 1:
        print(f"[Progress] {completed}/{total} chunks", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config.load()
    if args.provider:
        config.provider = args.provider
    if args.language:
        config.language = args.language
    if args.max_parallel is not None:
        config.max_parallel = args.max_parallel
    if args.timeout is not None:
        config.per_call_timeout = args.timeout
    if args.debug:
        config.debug_mode = True
        set_debug(True)

    try:
        settings = config.snapshot()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    if args.check_key:
        credential = settings.remote_whisper_url or settings.api_key
        result = validate_key(settings.provider, credential)
        if result.valid:
            print(f"{settings.provider}: OK ({result.latency_ms}ms)")
            return EXIT_OK
        print(f"{settings.provider}: {result.error}", file=sys.stderr)
        return EXIT_FAILED

    if not args.audio:
        parser.error("the audio file is required unless --check-key is given")

    try:
        buffer = load_audio_file(args.audio)
    except (OSError, RuntimeError) as e:
        print(f"Error: cannot read {args.audio}: {e}", file=sys.stderr)
        return EXIT_FAILED

    metrics = MetricsWriter(config.metrics_file) if config.metrics_enabled else None

    token = CancelToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())

    try:
        report = transcribe_sync(
            buffer, settings, cancel=token, on_progress=_print_progress, metrics=metrics,
        )
    except EmptyInputError:
        print("Error: recording is empty", file=sys.stderr)
        return EXIT_FAILED
    except TranscriptionCancelled:
        print("Cancelled", file=sys.stderr)
        return EXIT_CANCELLED
    except TranscriptionFailed as e:
        print(e.report.summary(), file=sys.stderr)
        return EXIT_FAILED
    except ChunkScribeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        if metrics:
            metrics.shutdown()

    print(report.text)
    if report.status == ReportStatus.PARTIAL_FAILURE:
        print(report.summary(), file=sys.stderr)
        return EXIT_PARTIAL
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

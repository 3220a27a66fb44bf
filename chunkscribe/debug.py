"""
Debug output toggle.

Per-chunk detail is only printed when debug mode is on (config `debug_mode`
or the CLI `--debug` flag).
"""

import threading

_debug = threading.Event()


def set_debug(enabled: bool) -> None:
    if enabled:
        _debug.set()
    else:
        _debug.clear()


def is_debug() -> bool:
    return _debug.is_set()


def debug(message: str) -> None:
    """Print a [DEBUG] line if debug mode is enabled."""
    if _debug.is_set():
        print(f"[DEBUG] {message}")

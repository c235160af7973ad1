"""
Time utilities for timestamps and performance measurement.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone


def now() -> float:
    """Get current timestamp in seconds (float)."""
    return time.time()

def utc_iso(ts: float | None = None) -> str:
    """ISO 8601 UTC timestamp with millisecond precision and a trailing Z."""
    if ts is None:
        ts = now()
    stamp = datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")

def today_stamp() -> str:
    """Current local date as YYYY-MM-DD (used for daily log files)."""
    return time.strftime("%Y-%m-%d", time.localtime(now()))

@contextmanager
def timer(label: str, logger: logging.Logger) -> Iterator[None]:
    """
    Log how long the wrapped block took, at debug level.

    Usage:
        with timer("shell get", logger):
            port.get(path)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.debug("%s took %.3fs", label, time.perf_counter() - start)

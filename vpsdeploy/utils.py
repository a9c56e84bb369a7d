"""
Utilities

Formatting and timing helpers shared by commands and services.
"""

import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional


def format_duration(seconds: float) -> str:
    """
    Format a duration for display.

    Args:
        seconds: Elapsed time in seconds

    Returns:
        e.g. "500ms", "30.0s", "1m 30s", "1h 1m"
    """
    millis = int(round(seconds * 1000))
    if millis < 1000:
        return f"{millis}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    whole = int(seconds)
    if whole < 3600:
        return f"{whole // 60}m {whole % 60}s"
    return f"{whole // 3600}h {(whole % 3600) // 60}m"


def format_size(size: int) -> str:
    """Format a byte count as B/KB/MB/GB with one decimal."""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit_index = 0
    while value >= 1024.0 and unit_index < len(units) - 1:
        value /= 1024.0
        unit_index += 1
    return f"{value:.1f} {units[unit_index]}"


class Stopwatch:
    """Elapsed-time holder filled in by :func:`measure`."""

    def __init__(self):
        self.start = time.monotonic()
        self.elapsed: Optional[float] = None

    def __str__(self) -> str:
        return format_duration(self.elapsed if self.elapsed is not None else time.monotonic() - self.start)


@contextmanager
def measure() -> Iterator[Stopwatch]:
    """Time the enclosed block; ``elapsed`` is set even if it raises."""
    watch = Stopwatch()
    try:
        yield watch
    finally:
        watch.elapsed = time.monotonic() - watch.start


def tail_lines(text: str, limit: int) -> List[str]:
    """Non-empty lines of *text*, keeping only the last *limit*."""
    lines = [line for line in text.splitlines() if line.strip()]
    return lines[-limit:] if limit > 0 else lines


def find_first_existing(start: Path, names) -> Optional[Path]:
    """Return the first existing config file among *names* in *start*."""
    for name in names:
        candidate = start / name
        if candidate.is_file():
            return candidate
    return None

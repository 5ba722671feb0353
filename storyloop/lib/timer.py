"""Elapsed-time tracking for a single orchestrator session."""

import time


def format_duration(ms: float) -> str:
    """Format milliseconds as a short human-readable duration.

    Examples: "45s", "2m 34s", "1h 2m"
    """
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        remaining_minutes = minutes % 60
        return f"{hours}h {remaining_minutes}m" if remaining_minutes else f"{hours}h"

    if minutes > 0:
        remaining_seconds = seconds % 60
        return f"{minutes}m {remaining_seconds}s" if remaining_seconds else f"{minutes}m"

    return f"{seconds}s"


class SessionTimer:
    """Wall-clock timer started when the session begins."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._start = clock()

    def elapsed_ms(self) -> float:
        return (self._clock() - self._start) * 1000

    def format(self) -> str:
        return format_duration(self.elapsed_ms())

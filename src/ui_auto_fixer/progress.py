"""
Progress Reporter

Monotonic, saturating percentage tracker. The sink receives the increment
since the last report and a message carrying the current percentage.
"""

from typing import Callable, Optional

ProgressSink = Callable[[float, str], None]


def _discard(increment: float, message: str) -> None:
    pass


class ProgressReporter:
    """Reports bounded (0-100), never-decreasing progress to a sink."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self.sink = sink or _discard
        self.percent = 0.0

    def report(self, target_percent: float, message: str) -> float:
        """
        Move progress towards ``target_percent``.

        Targets below the current value (or repeats of it) are reported with
        a zero increment; targets are clamped to 0..100.

        Returns:
            The current percentage after the report
        """
        bounded = min(100.0, max(0.0, float(target_percent)))
        increment = 0.0
        if bounded > self.percent:
            increment = bounded - self.percent
            self.percent = bounded
        self.sink(increment, f"{message} ({self.percent:.0f}%)")
        return self.percent

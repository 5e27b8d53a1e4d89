"""
Progress reporting for upload runs.

The engine only knows the ProgressSink interface; presentation layers
implement it. Every tracked operation ends with exactly one event with
done=True, even when the operation fails.
"""

import time
from typing import Protocol

from .models import ProgressEvent


class ProgressSink(Protocol):
    """Receives progress events."""

    def emit(self, event: ProgressEvent) -> None:
        ...


class NullProgressSink:
    """Discards all events."""

    def emit(self, event: ProgressEvent) -> None:
        pass


class ProgressTracker:
    """
    Tracks one operation and reports it to a sink.

    Use as a context manager; the terminal event is emitted on exit whether
    the block finished normally or raised.
    """

    def __init__(self, sink: ProgressSink, activity: str, total: int):
        self._sink = sink
        self.activity = activity
        self.total = total
        self.completed = 0
        self._started = time.monotonic()
        self._finished = False

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def advance(self, activity: str, count: int = 1) -> None:
        """Count finished items and emit an intermediate event."""
        self.completed += count
        self.report(activity)

    def report(self, activity: str) -> None:
        """Emit an intermediate event without counting an item."""
        self._sink.emit(
            ProgressEvent(
                activity=activity,
                total=self.total,
                completed=self.completed,
                elapsed=self.elapsed,
            )
        )

    def finish(self) -> None:
        """Emit the terminal event; later calls do nothing."""
        if self._finished:
            return
        self._finished = True
        self._sink.emit(
            ProgressEvent(
                activity=self.activity,
                total=self.total,
                completed=self.completed,
                elapsed=self.elapsed,
                done=True,
            )
        )

    def __enter__(self) -> "ProgressTracker":
        self._started = time.monotonic()
        return self

    def __exit__(self, *exc_info) -> None:
        self.finish()

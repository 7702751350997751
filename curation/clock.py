"""
Clock abstraction.

The coordinator never reads wall-clock time directly; it asks an injected
clock for the prevailing timestamp (integer seconds).
"""

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of the current timestamp in seconds."""

    @abstractmethod
    def now(self) -> int:
        ...


class SystemClock(Clock):
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())

    def __repr__(self) -> str:
        return "<SystemClock>"


class ManualClock(Clock):
    """Settable / advanceable clock for deterministic time travel."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock cannot start before 0")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int):
        if timestamp < 0:
            raise ValueError("Timestamp cannot be negative")
        self._now = timestamp

    def advance(self, seconds: int):
        if seconds < 0:
            raise ValueError("Clock can only move forward")
        self._now += seconds

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"

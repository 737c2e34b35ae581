"""
Clocks for the lifecycle engine.

The engine never calls datetime.now() directly; it asks a Clock so tests
can pin or advance time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional


class Clock(ABC):
    """Source of the current wall-clock time."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Clock backed by the local system time."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """Clock that returns a pinned instant until moved explicitly."""

    def __init__(self, instant: Optional[datetime] = None) -> None:
        self._instant = instant or datetime.now()

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, delta: timedelta) -> datetime:
        self._instant = self._instant + delta
        return self._instant

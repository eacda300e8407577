"""
Time Sources

Time-dependent code receives a TimeSource instead of calling time.time()
directly. Three implementations:

1. SystemTimeSource  - real wall-clock time (the engine's reference)
2. ManualTimeSource  - explicitly stepped time for tests and replays
3. VirtualTimeSource - virtual time delivered by a VirtualTimeEngine

All sources report epoch milliseconds as floats.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone, tzinfo
from typing import Optional
import time
from threading import Lock


class TimeSource(ABC):
    """Abstract provider of the current time."""

    @abstractmethod
    def now_ms(self) -> float:
        """Current time in epoch milliseconds"""
        pass

    def now(self) -> float:
        """Current time in epoch seconds (drop-in for time.time())"""
        return self.now_ms() / 1000.0

    def now_datetime(self, tz: Optional[tzinfo] = None) -> datetime:
        """Current time as an aware datetime (UTC unless tz is given)"""
        return datetime.fromtimestamp(self.now(), tz=tz or timezone.utc)


class SystemTimeSource(TimeSource):
    """Real wall-clock time."""

    def now_ms(self) -> float:
        return time.time() * 1000.0


class ManualTimeSource(TimeSource):
    """
    Time that only moves when told to.

    Used by tests to simulate real time elapsing between engine calls.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now_ms = float(start_ms)
        self._lock = Lock()

    def now_ms(self) -> float:
        with self._lock:
            return self._now_ms

    def advance(self, delta_ms: float) -> float:
        """Move time forward (or backward, if negative) by delta_ms"""
        with self._lock:
            self._now_ms += delta_ms
            return self._now_ms

    def set(self, now_ms: float) -> None:
        """Jump to an absolute time"""
        with self._lock:
            self._now_ms = float(now_ms)


class VirtualTimeSource(TimeSource):
    """
    Virtual time from an engine.

    Hand this to consumers that should follow the virtual clock; they stay
    unaware of offsets and speed.
    """

    def __init__(self, engine):
        """
        Args:
            engine: VirtualTimeEngine (anything with a now() returning ms)
        """
        self.engine = engine

    def now_ms(self) -> float:
        return self.engine.now()

"""
Virtual Time Engine

Maps a continuously advancing real-time reference onto a controllable
virtual timeline:

    virtual = base_virtual_ms + (real - base_real_ms) * speed

Every calibration (construction, set_time, set_speed, reset) fixes a new
(base_real_ms, base_virtual_ms, speed) triple. Between calibrations the
mapping is a fixed affine function, so virtual time never jumps except
when set_time asks it to.

Concurrency:
    The triple is an immutable ClockState swapped atomically under a lock.
    Readers grab one reference and compute from it, so they never pair a
    new speed with an old base. Mutations publish the new state before
    persisting it.

Invalid calibration input never raises; the call is a no-op that returns
False and logs a warning.
"""

from datetime import date, datetime, time as dt_time, timezone, tzinfo
from typing import Any, Optional
import logging
import numbers
import threading

from ..interfaces.clock_state import ClockState, Calibration, is_valid_epoch_ms, is_valid_speed
from ..storage.state_store import StateStore
from .time_source import SystemTimeSource, TimeSource

logger = logging.getLogger(__name__)


def to_epoch_ms(target: Any) -> Optional[float]:
    """
    Convert a time target to epoch milliseconds.

    Accepts epoch milliseconds (int/float), datetime (naive values are local
    time), date (local midnight), ISO-8601 strings (a trailing 'Z' means
    UTC) and numeric strings (epoch milliseconds).

    Returns:
        Epoch milliseconds within the datetime range, or None if the target
        cannot be parsed or falls outside that range
    """
    if isinstance(target, bool):
        return None

    try:
        if isinstance(target, numbers.Real):
            value = float(target)
        elif isinstance(target, datetime):
            value = target.timestamp() * 1000.0
        elif isinstance(target, date):
            value = datetime.combine(target, dt_time()).timestamp() * 1000.0
        elif isinstance(target, str):
            value = _parse_time_string(target)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None

    if value is None or not is_valid_epoch_ms(value):
        return None
    return value


def _parse_time_string(text: str) -> Optional[float]:
    text = text.strip()
    if not text:
        return None

    try:
        return float(text)
    except ValueError:
        pass

    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text).timestamp() * 1000.0


class VirtualTimeEngine:
    """
    Controllable clock.

    Usage:
        engine = VirtualTimeEngine(store=StateStore(FileStorage(path)))
        engine.set_time('2030-01-01T09:00:00Z')
        engine.set_speed(60)        # one virtual minute per real second
        engine.now()                # virtual epoch milliseconds
    """

    def __init__(
        self,
        store: Optional[StateStore] = None,
        time_source: Optional[TimeSource] = None
    ):
        """
        Initialize the engine.

        Restores the persisted calibration when the store holds a valid one,
        otherwise starts with virtual time equal to real time at speed 1.

        Args:
            store: Persistence for the calibration (None = in-memory only)
            time_source: Real-time reference (default: system wall clock)
        """
        self.store = store
        self.time_source = time_source or SystemTimeSource()
        self._lock = threading.Lock()

        saved = store.load() if store is not None else None
        if saved is not None:
            self._state = saved
            logger.info(
                f"Restored calibration: base_virtual={saved.base_virtual_ms:.0f}ms, "
                f"speed={saved.speed:g}x"
            )
        else:
            self._state = ClockState.fresh(self.real_now_ms())
            logger.info("Starting with virtual time = real time, speed 1x")

    @property
    def state(self) -> ClockState:
        """Current calibration triple."""
        return self._state

    @property
    def speed(self) -> float:
        return self._state.speed

    def real_now_ms(self) -> float:
        return self.time_source.now_ms()

    def now(self) -> float:
        """Current virtual time in epoch milliseconds."""
        state = self._state
        return state.virtual_at(self.real_now_ms())

    virtual_now_ms = now

    def now_datetime(self, tz: Optional[tzinfo] = None) -> datetime:
        """Current virtual time as an aware datetime (UTC unless tz is given)."""
        return datetime.fromtimestamp(self.now() / 1000.0, tz=tz or timezone.utc)

    def get_calibration(self) -> Calibration:
        """Snapshot of virtual time and speed for display or debugging."""
        state = self._state
        real_now = self.real_now_ms()
        virtual_now = state.virtual_at(real_now)
        return Calibration(
            virtual_ms=virtual_now,
            speed=state.speed,
            offset_ms=virtual_now - real_now
        )

    def set_time(self, target: Any) -> bool:
        """
        Jump virtual time to target; it keeps flowing at the current speed.

        Args:
            target: Epoch ms, datetime, date or time string

        Returns:
            True if applied, False if target could not be parsed
        """
        target_ms = to_epoch_ms(target)
        if target_ms is None:
            logger.warning(f"Ignoring unparseable time target: {target!r}")
            return False

        with self._lock:
            self._commit(ClockState(
                base_real_ms=self.real_now_ms(),
                base_virtual_ms=target_ms,
                speed=self._state.speed
            ))

        logger.info(f"Virtual time set to {target_ms:.0f}ms")
        return True

    def set_speed(self, value: Any) -> bool:
        """
        Change the rate of virtual time without moving it.

        The current virtual time is captured under the old speed and becomes
        the new base, so only the future flow changes.

        Returns:
            True if applied, False if value is not a finite number > 0
        """
        try:
            speed = float(value)
        except (TypeError, ValueError, OverflowError):
            speed = None

        if isinstance(value, bool) or not is_valid_speed(speed):
            logger.warning(f"Ignoring invalid speed: {value!r}")
            return False

        with self._lock:
            real_now = self.real_now_ms()
            virtual_now = self._state.virtual_at(real_now)
            self._commit(ClockState(
                base_real_ms=real_now,
                base_virtual_ms=virtual_now,
                speed=speed
            ))

        logger.info(f"Speed set to {speed:g}x")
        return True

    def reset(self) -> bool:
        """Return to real time at speed 1, discarding offset and speed."""
        with self._lock:
            self._commit(ClockState.fresh(self.real_now_ms()))

        logger.info("Virtual clock reset to real time")
        return True

    def _commit(self, state: ClockState) -> None:
        """Publish a new calibration, then persist it. Caller holds the lock."""
        self._state = state
        if self.store is not None:
            self.store.save(state)

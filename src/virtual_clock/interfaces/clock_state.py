"""
Clock State Data Models

These dataclasses define the contract between the virtual clock engine and
its persistence layer. ClockState is serialized to JSON and written under a
single storage key so a restarted process resumes the same virtual timeline.

Record layout:
    {"baseRealMs": <float>, "baseVirtualMs": <float>, "speed": <float > 0>}
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import json
import math
import numbers


# Representable by datetime in any timezone: 0001-01-02 .. 9999-12-30 UTC
MIN_EPOCH_MS = -62135510400000.0
MAX_EPOCH_MS = 253402128000000.0


def is_real_number(value: Any) -> bool:
    """True for int/float-like values, excluding bool."""
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def is_valid_speed(value: Any) -> bool:
    """A speed must be a finite real number strictly greater than zero."""
    return is_real_number(value) and math.isfinite(value) and value > 0


def is_valid_epoch_ms(value: Any) -> bool:
    """A timestamp must be a real number a datetime can represent."""
    return is_real_number(value) and MIN_EPOCH_MS <= value <= MAX_EPOCH_MS


@dataclass(frozen=True)
class ClockState:
    """
    Calibration triple defining the affine map from real to virtual time.

    Between calibrations:
        virtual = base_virtual_ms + (real - base_real_ms) * speed

    Instances are immutable; the engine replaces the whole triple on every
    calibration so readers never see a half-updated state.
    """
    base_real_ms: float       # Real time of the last calibration
    base_virtual_ms: float    # Virtual time in effect at that instant
    speed: float = 1.0        # Virtual ms per real ms

    @classmethod
    def fresh(cls, real_now_ms: float) -> "ClockState":
        """Default calibration: virtual time equals real time, speed 1."""
        return cls(base_real_ms=real_now_ms, base_virtual_ms=real_now_ms, speed=1.0)

    def virtual_at(self, real_ms: float) -> float:
        """Virtual time corresponding to the given real instant."""
        return self.base_virtual_ms + (real_ms - self.base_real_ms) * self.speed

    def to_dict(self) -> dict:
        return {
            "baseRealMs": self.base_real_ms,
            "baseVirtualMs": self.base_virtual_ms,
            "speed": self.speed,
        }

    def to_json(self) -> str:
        """Serialize for the storage backend."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ClockState"]:
        """
        Build a ClockState from a decoded record.

        Returns:
            ClockState, or None if any field is missing or invalid
        """
        if not isinstance(data, dict):
            return None

        base_real = data.get("baseRealMs")
        base_virtual = data.get("baseVirtualMs")
        speed = data.get("speed")

        for value in (base_real, base_virtual):
            if not is_valid_epoch_ms(value):
                return None
        if not is_valid_speed(speed):
            return None

        return cls(
            base_real_ms=float(base_real),
            base_virtual_ms=float(base_virtual),
            speed=float(speed),
        )

    @classmethod
    def from_json(cls, json_str: str) -> Optional["ClockState"]:
        """
        Deserialize from JSON.

        Raises:
            ValueError: if json_str is not valid JSON
        """
        return cls.from_dict(json.loads(json_str))


@dataclass(frozen=True)
class Calibration:
    """Read-only snapshot of the clock for display and debugging."""
    virtual_ms: float
    speed: float
    offset_ms: float = 0.0    # Virtual minus real at the snapshot instant

    def to_dict(self) -> Dict[str, float]:
        return {
            "virtual_ms": self.virtual_ms,
            "speed": self.speed,
            "offset_ms": self.offset_ms,
        }

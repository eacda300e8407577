"""
Display formatting for virtual clock readouts.

Produces the labels shown by the clock panel and status bar:
    "14:05:09"                 clock
    "2030-01-01  Tuesday"      date
    "14:05"                    status bar
    "1.5x"                     speed
"""

from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Optional
import math

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

# Bounds of the panel's speed input
MIN_SPEED_INPUT = 0.1
MAX_SPEED_INPUT = 5.0


def _to_datetime(ms: float, tz: Optional[tzinfo] = None) -> datetime:
    # tz=None gives local time, as the panel shows
    return datetime.fromtimestamp(ms / 1000.0, tz=tz)


def format_clock(ms: float, tz: Optional[tzinfo] = None) -> str:
    return _to_datetime(ms, tz).strftime('%H:%M:%S')


def format_date(ms: float, tz: Optional[tzinfo] = None) -> str:
    d = _to_datetime(ms, tz)
    return f"{d:%Y-%m-%d}  {WEEKDAYS[d.weekday()]}"


def format_status_bar(ms: float, tz: Optional[tzinfo] = None) -> str:
    return _to_datetime(ms, tz).strftime('%H:%M')


def format_speed(speed: float) -> str:
    """One decimal place, trailing '.0' dropped: 1 -> '1x', 2.5 -> '2.5x'."""
    text = f"{speed:.1f}"
    if text.endswith('.0'):
        text = text[:-2]
    return f"{text}x"


def status_snapshot(engine, tz: Optional[tzinfo] = None) -> Dict[str, Any]:
    """
    Calibration plus display labels, as served by /status and the CLI.

    Args:
        engine: VirtualTimeEngine to read
        tz: Display timezone (None = local)
    """
    cal = engine.get_calibration()
    return {
        'virtual_ms': cal.virtual_ms,
        'speed': cal.speed,
        'offset_ms': cal.offset_ms,
        'iso': datetime.fromtimestamp(cal.virtual_ms / 1000.0, tz=timezone.utc).isoformat(),
        'clock': format_clock(cal.virtual_ms, tz),
        'date': format_date(cal.virtual_ms, tz),
        'speed_label': format_speed(cal.speed),
    }


def clamp_speed_input(value) -> float:
    """
    Normalize a user-entered speed.

    Non-numeric, non-finite or non-positive input falls back to 1, then
    the result is clamped to [MIN_SPEED_INPUT, MAX_SPEED_INPUT].
    """
    try:
        v = float(value)
    except (TypeError, ValueError):
        v = 1.0

    if not math.isfinite(v) or v <= 0:
        v = 1.0
    return min(MAX_SPEED_INPUT, max(MIN_SPEED_INPUT, v))

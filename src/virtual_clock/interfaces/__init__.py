"""Data contracts shared by the engine and the storage layer."""

from .clock_state import ClockState, Calibration, is_valid_speed

__all__ = ['ClockState', 'Calibration', 'is_valid_speed']

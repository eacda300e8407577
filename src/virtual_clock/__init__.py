"""
virtual-clock: Controllable process clock

This package provides a "virtual clock": a time value that flows
independently of the wall clock, with an adjustable offset and speed,
and that survives process restarts.

Architecture:
    TimeSource (real) → VirtualTimeEngine → VirtualTimeSource (consumers)
                               │
                               ▼
                     StateStore → StorageBackend (JSON file / memory)

Time-dependent code should receive a TimeSource rather than call
time.time(), so the same code runs against real or virtual time.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .interfaces.clock_state import ClockState, Calibration
from .engine.virtual_time_engine import VirtualTimeEngine
from .engine.time_source import (
    TimeSource,
    SystemTimeSource,
    ManualTimeSource,
    VirtualTimeSource,
)
from .storage.backends import StorageBackend, FileStorage, MemoryStorage
from .storage.state_store import StateStore

__all__ = [
    "ClockState",
    "Calibration",
    "VirtualTimeEngine",
    "TimeSource",
    "SystemTimeSource",
    "ManualTimeSource",
    "VirtualTimeSource",
    "StorageBackend",
    "FileStorage",
    "MemoryStorage",
    "StateStore",
    "__version__",
]

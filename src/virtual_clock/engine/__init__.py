"""Core clock engine - virtual time mapping and time sources.

Contains:
- VirtualTimeEngine: calibrated real-to-virtual time mapping
- TimeSource implementations for injecting time into consumers
"""

from .virtual_time_engine import VirtualTimeEngine, to_epoch_ms
from .time_source import TimeSource, SystemTimeSource, ManualTimeSource, VirtualTimeSource

__all__ = [
    'VirtualTimeEngine', 'to_epoch_ms',
    'TimeSource', 'SystemTimeSource', 'ManualTimeSource', 'VirtualTimeSource',
]

"""
Pytest configuration and fixtures for virtual-clock tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


@pytest.fixture
def real_start_ms():
    """Real-time instant the manual source starts at (2024-01-01T00:00:00Z)."""
    return 1_704_067_200_000.0


@pytest.fixture
def time_source(real_start_ms):
    """Manually stepped real-time reference."""
    from virtual_clock.engine.time_source import ManualTimeSource
    return ManualTimeSource(real_start_ms)


@pytest.fixture
def storage():
    """Empty in-memory key-value storage."""
    from virtual_clock.storage.backends import MemoryStorage
    return MemoryStorage()


@pytest.fixture
def store(storage):
    """State store over in-memory storage."""
    from virtual_clock.storage.state_store import StateStore
    return StateStore(storage)


@pytest.fixture
def engine(store, time_source):
    """Engine with default state, persisted to memory, on manual time."""
    from virtual_clock.engine.virtual_time_engine import VirtualTimeEngine
    return VirtualTimeEngine(store=store, time_source=time_source)

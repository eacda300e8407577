"""
Clock State Store

Loads and saves the calibration triple against a StorageBackend.
Persistence is best-effort: nothing here ever raises to the caller, so a
broken or full disk can never stop the clock from delivering time.
"""

import json
import logging
from typing import Optional

from ..interfaces.clock_state import ClockState
from .backends import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_KEY = 'virtual-clock-state-v1'


class StateStore:
    """
    Persists a ClockState under a single well-known key.

    An absent, unreadable or invalid record is reported as "no snapshot"
    so the engine falls back to defaults.
    """

    def __init__(self, backend: StorageBackend, key: str = DEFAULT_KEY):
        """
        Initialize the store.

        Args:
            backend: Key-value storage to read and write
            key: Storage key holding the serialized state
        """
        self.backend = backend
        self.key = key

    def load(self) -> Optional[ClockState]:
        """
        Read the persisted snapshot.

        Returns:
            ClockState, or None if absent, unreadable or invalid
        """
        try:
            raw = self.backend.get_item(self.key)
        except Exception as e:
            logger.warning(f"Failed to read clock state: {e}")
            return None

        if not raw:
            logger.debug(f"No persisted clock state under {self.key!r}")
            return None

        try:
            state = ClockState.from_json(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Corrupt clock state under {self.key!r}: {e}")
            return None

        if state is None:
            logger.warning(f"Invalid clock state under {self.key!r}, ignoring")
        return state

    def save(self, state: ClockState) -> bool:
        """
        Write the snapshot.

        Returns:
            True if successful, False on error
        """
        try:
            self.backend.set_item(self.key, state.to_json())
            return True
        except Exception as e:
            logger.error(f"Failed to save clock state: {e}")
            return False

    def clear(self) -> bool:
        """Remove the persisted snapshot."""
        try:
            self.backend.remove_item(self.key)
            logger.info(f"Cleared clock state {self.key!r}")
            return True
        except Exception as e:
            logger.warning(f"Failed to clear clock state: {e}")
            return False

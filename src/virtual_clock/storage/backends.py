"""
Key-Value Storage Backends

Durable string key-value stores used to persist the clock calibration.
Backends raise on I/O failure; StateStore is responsible for isolating
those failures from the engine.

The file backend keeps every key in one JSON object and updates it
atomically (write to temp, rename) to prevent partial reads.
A file that no longer parses is replaced by the next write.

Usage:
    storage = FileStorage('~/.local/state/virtual-clock/state.json')
    storage.set_item('virtual-clock-state-v1', payload)
    payload = storage.get_item('virtual-clock-state-v1')
"""

from abc import ABC, abstractmethod
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract string key-value store."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete key if present."""


class MemoryStorage(StorageBackend):
    """Process-local storage. Nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class FileStorage(StorageBackend):
    """
    JSON-file storage.

    The file holds a single JSON object mapping keys to string values.
    A missing file reads as empty. Writes are atomic (temp file + rename).
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize file storage.

        Args:
            path: Location of the JSON file (``~`` is expanded)
        """
        self.path = Path(path).expanduser()
        self.write_count = 0
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        with open(self.path, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _read_for_update(self) -> Optional[Dict[str, str]]:
        """
        Read the current items before a write.

        Returns:
            Items, or None if the file is corrupt and should be overwritten
        """
        try:
            return self._read_all()
        except ValueError as e:
            logger.warning(f"Discarding unreadable storage file {self.path}: {e}")
            return None

    def _write_all(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Temp file must live in the same directory for an atomic rename
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f'.{self.path.name}.',
            suffix='.tmp'
        )

        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(items, f, indent=2)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        self.write_count += 1
        logger.debug(f"Storage write #{self.write_count}: {self.path}")

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Value for {key!r} is not a string")
        return value

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read_for_update() or {}
            items[key] = value
            self._write_all(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read_for_update()
            if items is None:
                self._write_all({})
            elif key in items:
                del items[key]
                self._write_all(items)

"""Persistence - storage backends and the clock state store."""

from .backends import StorageBackend, MemoryStorage, FileStorage
from .state_store import StateStore, DEFAULT_KEY

__all__ = ['StorageBackend', 'MemoryStorage', 'FileStorage', 'StateStore', 'DEFAULT_KEY']

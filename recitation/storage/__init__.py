"""Key/value persistence for scheduler state."""

from recitation.storage.base import PersistenceStore
from recitation.storage.kv import KeyValueStore

__all__ = [
    "KeyValueStore",
    "PersistenceStore",
]

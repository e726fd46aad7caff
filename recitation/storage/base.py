"""PersistenceStore protocol — the key/value contract the scheduler persists through."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class PersistenceStore(Protocol):
    """Async string key/value storage.

    Implementations raise PersistenceReadError / PersistenceWriteError when the
    backing medium fails.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove *key*. Returns True if a value was removed."""
        ...

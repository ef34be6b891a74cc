"""Key-value storage protocol."""

from __future__ import annotations

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """Durable string storage addressed by fixed keys.

    Implementations raise ``StorageError`` when the underlying medium fails.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value under ``key``."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; absent keys are ignored."""
        ...

"""Persistence backend protocol: the key/value contract every backend implements."""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable


@runtime_checkable
class IPersistenceBackend(Protocol):
    """Protocol for string key/value backends (memory, file, ...)."""

    def save(self, key: str, data: str) -> None:
        """Save serialized data under the given key."""
        ...

    def save_many(self, items: Mapping[str, str]) -> None:
        """Save several keys as one unit; no key is written if validation fails."""
        ...

    def load(self, key: str) -> str:
        """Load serialized data by key. Raises KeyError if not found."""
        ...

    def exists(self, key: str) -> bool:
        """Check if a key exists in the store."""
        ...

    def delete(self, key: str) -> None:
        """Delete data by key (no-op if not found)."""
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        """List all keys matching the optional prefix."""
        ...

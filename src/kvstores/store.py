"""
The key-value store contract shared by every backend.

Architecture:
    ::

        KVStore (Protocol)
        ├── MemoryStore   process-local, values kept as-is
        └── RedisStore    Redis single node or cluster, hashes and sets

        Scalars:  get(key) → value | None     set(key, value)
        Maps:     get_map(key) → dict | None  set_map(key, values)
        Lists:    get_slice(key) → list | None
                  set_slice(key, values)      append_slice(key, *values)
        Keys:     exists(key) → bool          delete(key)
        Store:    flush()                     close()

Every write uses the expiration fixed when the store was built. Absent keys
read as ``None``; they never raise.

Value fidelity differs per backend. ``MemoryStore`` returns exactly what was
written. ``RedisStore`` returns map values as text and lists as unordered,
deduplicated members::

    store.set_map("user:1", {"age": 42, "admin": True})
    store.get_map("user:1")
    # MemoryStore → {"age": 42, "admin": True}
    # RedisStore  → {"age": "42", "admin": "true"}
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KVStore(Protocol):
    """Uniform key-value store.

    Implementations:
        - :class:`kvstores.memory.MemoryStore`
        - :class:`kvstores.redis.RedisStore`
    """

    def get(self, key: str) -> Any | None:
        """Return the scalar stored at *key*, or ``None`` if absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a scalar at *key* with the store's expiration."""
        ...

    def get_map(self, key: str) -> dict[str, Any] | None:
        """Return the map stored at *key*, or ``None`` if absent or empty."""
        ...

    def set_map(self, key: str, values: dict[str, Any]) -> None:
        """Store a map at *key*, replacing any previous value."""
        ...

    def get_slice(self, key: str) -> list[Any] | None:
        """Return the list stored at *key*, or ``None`` if absent or empty."""
        ...

    def set_slice(self, key: str, values: list[Any]) -> None:
        """Store a list at *key*."""
        ...

    def append_slice(self, key: str, *values: Any) -> None:
        """Add *values* to the list at *key*."""
        ...

    def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and unexpired."""
        ...

    def delete(self, key: str) -> None:
        """Remove *key*. No-op if it does not exist."""
        ...

    def flush(self) -> None:
        """Remove every key in the store's cache or database."""
        ...

    def close(self) -> None:
        """Release backend resources. The store is unusable afterwards."""
        ...


class StoreMixin:
    """Context-manager support for stores (``with store: ...`` closes it)."""

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.close()  # type: ignore[attr-defined]


__all__ = ["KVStore", "StoreMixin"]

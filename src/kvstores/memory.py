"""
Process-local implementation of :class:`~kvstores.store.KVStore`.

Values are kept in an :class:`~kvstores.expiring.ExpiringCache` exactly as
written, so maps and lists come back with their original element types and
order. Typed getters check the stored shape::

    store = new_memory_store(expiration=300)
    store.set("hits", 10)
    store.get_map("hits")   # raises ValueTypeMismatch

``append_slice`` reads, extends and replaces the list without holding a lock
across the three steps. Two concurrent appenders on the same key may both
read the same list, and the later replace wins.
"""

from __future__ import annotations

from typing import Any

from kvstores.errors import KeyNotFoundError, ValueTypeMismatch
from kvstores.expiring import Duration, ExpiringCache
from kvstores.logging import get_logger
from kvstores.store import StoreMixin

logger = get_logger(__name__)

_MISSING = object()


class MemoryStore(StoreMixin):
    """In-memory key-value store."""

    def __init__(self, cache: ExpiringCache, expiration: Duration = None):
        self._cache = cache
        self.expiration = expiration

    def _typed(self, key: str, expected: type) -> Any:
        value = self._cache.get(key, _MISSING)
        if value is _MISSING:
            return None
        if not isinstance(value, expected):
            raise ValueTypeMismatch(key, expected, value)
        return value

    def get(self, key: str) -> Any | None:
        return self._cache.get(key)

    def set(self, key: str, value: Any) -> None:
        self._cache.set(key, value, self.expiration)

    def get_map(self, key: str) -> dict[str, Any] | None:
        return self._typed(key, dict)

    def set_map(self, key: str, values: dict[str, Any]) -> None:
        self._cache.set(key, values, self.expiration)

    def get_slice(self, key: str) -> list[Any] | None:
        return self._typed(key, list)

    def set_slice(self, key: str, values: list[Any]) -> None:
        self._cache.set(key, values, self.expiration)

    def append_slice(self, key: str, *values: Any) -> None:
        """Append *values* to the list at *key*.

        Raises:
            KeyNotFoundError: If *key* is not present when the new list is
                written back (never set, or expired/evicted since the read).
        """
        items = list(self.get_slice(key) or [])
        items.extend(values)

        try:
            self._cache.replace(key, items, self.expiration)
        except KeyNotFoundError as e:
            e.with_context(store="memory", operation="append_slice")
            raise

    def exists(self, key: str) -> bool:
        return key in self._cache

    def delete(self, key: str) -> None:
        self._cache.delete(key)

    def flush(self) -> None:
        self._cache.flush()
        logger.info("store_flushed", store="memory")

    def close(self) -> None:
        self._cache.stop_janitor()
        logger.debug("store_closed", store="memory")


def new_memory_store(
    expiration: Duration = None,
    cleanup_interval: Duration = None,
    *,
    max_size: int | None = None,
) -> MemoryStore:
    """Build an in-memory store.

    Args:
        expiration: TTL for every write (seconds or timedelta, ``None`` → never).
        cleanup_interval: Janitor sweep period (``None`` → lazy expiry only).
        max_size: Entry cap with LRU eviction (``None`` → unbounded).
    """
    cache = ExpiringCache(expiration, cleanup_interval, max_size=max_size)
    return MemoryStore(cache, expiration)


__all__ = ["MemoryStore", "new_memory_store"]

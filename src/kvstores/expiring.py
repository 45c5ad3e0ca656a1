"""
In-process map with per-entry expiration.

``ExpiringCache`` is the engine behind :class:`kvstores.memory.MemoryStore`.
Values are stored as-is (no serialization). Expired entries are invisible to
readers immediately and are physically removed either lazily on access or by
a janitor thread that runs every ``cleanup_interval``.

Examples:
    >>> cache = ExpiringCache(default_expiration=60)
    >>> cache.set("session:abc", {"user_id": 42})
    >>> cache.get("session:abc")
    {'user_id': 42}
    >>> cache.replace("missing", 1)
    Traceback (most recent call last):
    ...
    kvstores.errors.KeyNotFoundError: key 'missing' not found

Expiration values accept seconds or :class:`~datetime.timedelta`. ``None``,
zero and negative durations mean "never expire". Passing nothing uses the
cache default.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from datetime import timedelta
from typing import Any

from kvstores.errors import KeyExistsError, KeyNotFoundError
from kvstores.logging import get_logger

logger = get_logger(__name__)

Duration = float | int | timedelta | None

# Marker for "use the cache default" in set/add/replace
DEFAULT_EXPIRATION: Any = object()

_MISSING = object()


def to_seconds(duration: Duration) -> float | None:
    """Normalise a duration to positive seconds, or ``None`` for no expiry."""
    if duration is None:
        return None
    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    else:
        seconds = float(duration)
    return seconds if seconds > 0 else None


class ExpiringCache:
    """Thread-safe expiring map.

    Attributes:
        default_expiration: TTL in seconds applied when a write passes none.
        cleanup_interval: Seconds between janitor sweeps (``None`` → lazy only).
        max_size: Maximum number of entries before LRU eviction (``None`` → unbounded).
    """

    def __init__(
        self,
        default_expiration: Duration = None,
        cleanup_interval: Duration = None,
        *,
        max_size: int | None = None,
    ):
        self._items: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._lock = threading.RLock()
        self.default_expiration = to_seconds(default_expiration)
        self.cleanup_interval = to_seconds(cleanup_interval)
        self.max_size = max_size

        self._stop = threading.Event()
        self._janitor: threading.Thread | None = None
        if self.cleanup_interval is not None:
            self._janitor = threading.Thread(
                target=self._run_janitor,
                name="kvstores-janitor",
                daemon=True,
            )
            self._janitor.start()

    # ── Internals (caller holds the lock) ───────────────────────────────

    def _expires_at(self, expiration: Any) -> float | None:
        if expiration is DEFAULT_EXPIRATION:
            ttl = self.default_expiration
        else:
            ttl = to_seconds(expiration)
        return (time.monotonic() + ttl) if ttl else None

    def _lookup(self, key: str) -> Any:
        entry = self._items.get(key)
        if entry is None:
            return _MISSING

        value, expires_at = entry
        if expires_at is not None and time.monotonic() > expires_at:
            del self._items[key]
            return _MISSING

        self._items.move_to_end(key)
        return value

    def _store(self, key: str, value: Any, expiration: Any) -> None:
        if key in self._items:
            self._items.move_to_end(key)
        elif self.max_size is not None and len(self._items) >= self.max_size:
            evicted, _ = self._items.popitem(last=False)
            logger.debug("cache_evicted", key=evicted)
        self._items[key] = (value, self._expires_at(expiration))

    # ── Public API ──────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value at *key*, or *default*."""
        with self._lock:
            value = self._lookup(key)
        return default if value is _MISSING else value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return self._lookup(key) is not _MISSING

    def set(self, key: str, value: Any, expiration: Any = DEFAULT_EXPIRATION) -> None:
        """Store *value* at *key*, replacing any existing entry."""
        with self._lock:
            self._store(key, value, expiration)

    def add(self, key: str, value: Any, expiration: Any = DEFAULT_EXPIRATION) -> None:
        """Store *value* only if *key* is absent.

        Raises:
            KeyExistsError: If a live entry already exists at *key*.
        """
        with self._lock:
            if self._lookup(key) is not _MISSING:
                raise KeyExistsError(f"key {key!r} already exists").with_context(
                    key=key, operation="add"
                )
            self._store(key, value, expiration)

    def replace(self, key: str, value: Any, expiration: Any = DEFAULT_EXPIRATION) -> None:
        """Store *value* only if *key* is present.

        Raises:
            KeyNotFoundError: If there is no live entry at *key*.
        """
        with self._lock:
            if self._lookup(key) is _MISSING:
                raise KeyNotFoundError(f"key {key!r} not found").with_context(
                    key=key, operation="replace"
                )
            self._store(key, value, expiration)

    def delete(self, key: str) -> None:
        """Remove *key*. No-op if absent."""
        with self._lock:
            self._items.pop(key, None)

    def delete_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now = time.monotonic()
        with self._lock:
            expired = [
                key
                for key, (_, expires_at) in self._items.items()
                if expires_at is not None and now > expires_at
            ]
            for key in expired:
                del self._items[key]
        return len(expired)

    def flush(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._items.clear()

    def item_count(self) -> int:
        """Number of stored entries, including expired ones not yet swept."""
        with self._lock:
            return len(self._items)

    # ── Janitor ─────────────────────────────────────────────────────────

    def _run_janitor(self) -> None:
        while not self._stop.wait(self.cleanup_interval):
            dropped = self.delete_expired()
            if dropped:
                logger.debug("cache_swept", expired=dropped)

    def stop_janitor(self) -> None:
        """Stop the background sweep thread, if running."""
        self._stop.set()
        if self._janitor is not None and self._janitor is not threading.current_thread():
            self._janitor.join(timeout=1.0)
        self._janitor = None


__all__ = ["DEFAULT_EXPIRATION", "ExpiringCache", "to_seconds"]

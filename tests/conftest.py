"""
Shared pytest fixtures for kvstores tests.

This module provides:
- ``FakeRedisClient``: an in-memory stand-in for the ``RedisClient`` adapter
  with Redis type semantics (strings, hashes, sets) and failure injection
- Store fixtures for both backends
- Settings/logging isolation
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog
from redis.exceptions import DataError, RedisError, ResponseError

# Ensure kvstores package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kvstores.config import clear_settings_cache
from kvstores.memory import MemoryStore, new_memory_store
from kvstores.redis import RedisStore


WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


class FakeRedisClient:
    """Single-process Redis double with ``decode_responses=True`` behaviour."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False
        self.fail_sadd_after: int | None = None
        self._sadd_calls = 0

    @staticmethod
    def _encode(value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (str, bytes, int, float)):
            raise DataError(f"Invalid input of type: '{type(value).__name__}'")
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def _typed(self, name: str, kind: type) -> Any:
        value = self.data.get(name)
        if value is not None and not isinstance(value, kind):
            raise ResponseError(WRONGTYPE)
        return value

    def ping(self, **kwargs: Any) -> bool:
        return True

    def exists(self, *names: str) -> int:
        return sum(1 for n in names if n in self.data)

    def delete(self, *names: str) -> int:
        removed = 0
        for n in names:
            if self.data.pop(n, None) is not None:
                removed += 1
            self.ttls.pop(n, None)
        return removed

    def flushdb(self, *args: Any, **kwargs: Any) -> bool:
        self.data.clear()
        self.ttls.clear()
        return True

    def close(self) -> None:
        self.closed = True

    def execute_command(self, *args: Any, **options: Any) -> Any:
        command, *rest = args
        if command.upper() == "GET":
            return self.get(rest[0])
        raise ResponseError(f"unknown command '{command}'")

    def get(self, name: str) -> str | None:
        return self._typed(name, str)

    def set(self, name: str, value: Any, *args: Any, px: int | None = None, **kwargs: Any) -> bool:
        self.data[name] = self._encode(value)
        if px is not None:
            self.ttls[name] = px
        else:
            self.ttls.pop(name, None)
        return True

    def hgetall(self, name: str) -> dict[str, str]:
        return dict(self._typed(name, dict) or {})

    def hset(self, name: str, *args: Any, mapping: dict[str, Any] | None = None, **kwargs: Any) -> int:
        if not mapping:
            raise DataError("'hset' with no key value pairs")
        current = self._typed(name, dict)
        if current is None:
            current = self.data[name] = {}
        added = len(set(mapping) - set(current))
        current.update({k: self._encode(v) for k, v in mapping.items()})
        return added

    def smembers(self, name: str) -> set[str]:
        return set(self._typed(name, set) or set())

    def sadd(self, name: str, *values: Any) -> int:
        self._sadd_calls += 1
        if self.fail_sadd_after is not None and self._sadd_calls > self.fail_sadd_after:
            raise RedisError("connection reset by peer")
        current = self._typed(name, set)
        if current is None:
            current = self.data[name] = set()
        before = len(current)
        current.update(self._encode(v) for v in values)
        return len(current) - before

    def pexpire(self, name: str, time: Any, *args: Any, **kwargs: Any) -> bool:
        if name not in self.data:
            return False
        self.ttls[name] = int(time)
        return True


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Clear cached settings before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any configure_logging() a test performed."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Store fixtures
# =============================================================================


@pytest.fixture
def fake_client() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def redis_store(fake_client: FakeRedisClient) -> RedisStore:
    return RedisStore(fake_client, expiration=600)


@pytest.fixture
def memory_store() -> Generator[MemoryStore, None, None]:
    store = new_memory_store(expiration=600)
    yield store
    store.close()


@pytest.fixture(params=["memory", "redis"])
def store(request: pytest.FixtureRequest) -> Any:
    """Every backend, for properties that hold across the contract."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("redis_store")

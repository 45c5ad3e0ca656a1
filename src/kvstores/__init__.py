"""kvstores -- one key-value store API over in-memory and Redis backends.

Calling code depends on :class:`KVStore` only; the backend is chosen when the
store is built::

    from kvstores import new_memory_store, new_redis_client_store, RedisClientOptions

    store = new_memory_store(expiration=300, cleanup_interval=60)
    store = new_redis_client_store(RedisClientOptions(addr="localhost:6379"), expiration=300)

    store.set_map("user:1", {"name": "ada"})
    store.append_slice("tags", "python", "redis")

Architecture::

    store.py        KVStore protocol (the contract)
    memory.py       MemoryStore over ExpiringCache (expiring.py)
    redis.py        RedisStore over the RedisClient adapter, constructors
    errors.py       KVStoreError hierarchy, ValueTypeMismatch
    logging.py      structlog configuration
    config/         KVStoreSettings + create_store()
    cli/            ``kvstores`` command line
"""

from kvstores.errors import (
    ConfigError,
    KeyExistsError,
    KeyNotFoundError,
    KVStoreError,
    StoreConnectionError,
    ValueTypeMismatch,
)
from kvstores.expiring import ExpiringCache
from kvstores.memory import MemoryStore, new_memory_store
from kvstores.redis import (
    RedisClient,
    RedisClientOptions,
    RedisClusterOptions,
    RedisStore,
    new_redis_client_store,
    new_redis_cluster_store,
)
from kvstores.store import KVStore

__version__ = "0.1.0"

__all__ = [
    "KVStore",
    "MemoryStore",
    "RedisStore",
    "RedisClient",
    "RedisClientOptions",
    "RedisClusterOptions",
    "ExpiringCache",
    "new_memory_store",
    "new_redis_client_store",
    "new_redis_cluster_store",
    "KVStoreError",
    "StoreConnectionError",
    "KeyNotFoundError",
    "KeyExistsError",
    "ConfigError",
    "ValueTypeMismatch",
]

"""
Build a store from :class:`~kvstores.config.settings.KVStoreSettings`.

Tags:
    kvstores, configuration, factory-pattern
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kvstores.errors import ConfigError
from kvstores.memory import new_memory_store
from kvstores.redis import new_redis_client_store, new_redis_cluster_store

from .settings import StoreBackend

if TYPE_CHECKING:
    from kvstores.store import KVStore

    from .settings import KVStoreSettings


def create_store(settings: KVStoreSettings) -> KVStore:
    """Create the store selected by *settings.backend*.

    Raises:
        StoreConnectionError: If a Redis backend does not answer ``PING``.
        ConfigError: If the backend is unknown or its options are unusable.
    """
    expiration = settings.expiration_seconds or None

    match settings.backend:
        case StoreBackend.MEMORY:
            return new_memory_store(
                expiration,
                settings.cleanup_interval_seconds or None,
                max_size=settings.memory_max_size,
            )
        case StoreBackend.REDIS:
            return new_redis_client_store(settings.redis_client_options(), expiration)
        case StoreBackend.REDIS_CLUSTER:
            return new_redis_cluster_store(settings.redis_cluster_options(), expiration)

    raise ConfigError(f"unknown store backend {settings.backend!r}")

"""Settings and store factory.

Quick start::

    from kvstores.config import create_store, get_settings

    with create_store(get_settings()) as store:
        store.set("greeting", "hello")

Architecture::

    settings.py       KVStoreSettings (Pydantic) + get_settings() cache
    factory.py        create_store(settings)
"""

from .factory import create_store
from .settings import (
    KVStoreSettings,
    StoreBackend,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "KVStoreSettings",
    "StoreBackend",
    "get_settings",
    "clear_settings_cache",
    "create_store",
]

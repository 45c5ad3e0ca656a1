"""
Centralized settings for kvstores.

All fields can be set via ``KVSTORES_*`` environment variables (e.g.
``KVSTORES_BACKEND=redis``, ``KVSTORES_REDIS_ADDR=cache:6379``) or a ``.env``
file in the working directory.

Tags:
    kvstores, configuration, settings, pydantic
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kvstores.redis import RedisClientOptions, RedisClusterOptions


class StoreBackend(str, Enum):
    """Supported store backends."""

    MEMORY = "memory"
    REDIS = "redis"
    REDIS_CLUSTER = "redis_cluster"


class KVStoreSettings(BaseSettings):
    """kvstores configuration.

    Durations are in seconds. ``0`` disables expiration / the janitor / the
    corresponding client timeout.
    """

    model_config = SettingsConfigDict(
        env_prefix="KVSTORES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── Store ────────────────────────────────────────────────────
    backend: StoreBackend = Field(default=StoreBackend.MEMORY)
    expiration_seconds: float = Field(default=0, ge=0)

    # ── Memory ───────────────────────────────────────────────────
    cleanup_interval_seconds: float = Field(default=60, ge=0)
    memory_max_size: int | None = Field(default=None, gt=0)

    # ── Redis (single node) ──────────────────────────────────────
    redis_network: str = Field(default="tcp", pattern="^(tcp|unix)$")
    redis_addr: str = Field(default="localhost:6379")
    redis_password: str | None = Field(default=None)
    redis_db: int = Field(default=0, ge=0)
    redis_max_retries: int = Field(default=0, ge=0)
    redis_read_only: bool = Field(default=False)

    # ── Redis (shared client tuning) ─────────────────────────────
    redis_dial_timeout: float = Field(default=5, ge=0)
    redis_read_timeout: float = Field(default=3, ge=0)
    redis_write_timeout: float = Field(default=3, ge=0)
    redis_pool_size: int = Field(default=10, ge=0)
    redis_pool_timeout: float = Field(default=0, ge=0)
    redis_idle_timeout: float = Field(default=0, ge=0)
    redis_idle_check_frequency: float = Field(default=0, ge=0)

    # ── Redis (cluster) ──────────────────────────────────────────
    cluster_addrs: list[str] = Field(default_factory=list)
    cluster_max_redirects: int = Field(default=0, ge=0)
    cluster_route_by_latency: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", pattern="^(json|console)$")

    @model_validator(mode="after")
    def _check_cluster_addrs(self) -> KVStoreSettings:
        if self.backend == StoreBackend.REDIS_CLUSTER and not self.cluster_addrs:
            raise ValueError("backend=redis_cluster requires cluster_addrs")
        return self

    # ── Derived ──────────────────────────────────────────────────

    def redis_client_options(self) -> RedisClientOptions:
        return RedisClientOptions(
            network=self.redis_network,
            addr=self.redis_addr,
            password=self.redis_password,
            db=self.redis_db,
            max_retries=self.redis_max_retries,
            dial_timeout=self.redis_dial_timeout,
            read_timeout=self.redis_read_timeout,
            write_timeout=self.redis_write_timeout,
            pool_size=self.redis_pool_size,
            pool_timeout=self.redis_pool_timeout or None,
            idle_timeout=self.redis_idle_timeout,
            idle_check_frequency=self.redis_idle_check_frequency,
            read_only=self.redis_read_only,
        )

    def redis_cluster_options(self) -> RedisClusterOptions:
        return RedisClusterOptions(
            addrs=list(self.cluster_addrs),
            max_redirects=self.cluster_max_redirects,
            read_only=self.redis_read_only,
            route_by_latency=self.cluster_route_by_latency,
            password=self.redis_password,
            dial_timeout=self.redis_dial_timeout,
            read_timeout=self.redis_read_timeout,
            write_timeout=self.redis_write_timeout,
            pool_size=self.redis_pool_size,
            pool_timeout=self.redis_pool_timeout or None,
            idle_timeout=self.redis_idle_timeout,
            idle_check_frequency=self.redis_idle_check_frequency,
        )


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, KVStoreSettings] = {}


def get_settings(*, env_file: str | None = None, _force_reload: bool = False) -> KVStoreSettings:
    """Load, validate, and cache a :class:`KVStoreSettings` instance.

    Parameters
    ----------
    env_file:
        Explicit env file instead of ``.env``.
    _force_reload:
        Bypass cache and reload.
    """
    cache_key = env_file or ""
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file:
        settings = KVStoreSettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = KVStoreSettings()

    _settings_cache[cache_key] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()

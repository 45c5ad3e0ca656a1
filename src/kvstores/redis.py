"""
Redis implementation of :class:`~kvstores.store.KVStore`.

Compound values map onto Redis collections rather than serialized blobs:

    ::

        uniform value        Redis type     commands
        ─────────────        ──────────     ────────
        scalar               string         GET / SET PX (value as text)
        dict[str, Any]       hash           HGETALL / DEL + HSET + PEXPIRE
        list[Any]            set            SMEMBERS / SADD + PEXPIRE

Consequences callers must accept:

    - Scalars, map values and list members are coerced to text on write
      (``True`` → ``"true"``, ``None`` → ``""``) and read back as ``str``.
    - Lists lose order and duplicates. ``append_slice`` is plain ``SADD``,
      so re-adding a member is a no-op.
    - ``set_slice`` and ``append_slice`` add members one command at a time.
      The first failure propagates and earlier members stay written.

The store talks to Redis through :class:`RedisClient`, the narrow slice of the
``redis`` client API it needs. ``redis.Redis`` and
``redis.cluster.RedisCluster`` both satisfy it, and tests substitute a fake.
Clients must be created with ``decode_responses=True``.

Examples:
    >>> store = new_redis_client_store(
    ...     RedisClientOptions(addr="localhost:6379", db=2),
    ...     expiration=timedelta(minutes=10),
    ... )
    >>> store.set_map("user:1", {"name": "ada", "age": 36})
    >>> store.get_map("user:1")
    {'name': 'ada', 'age': '36'}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import redis
from redis.backoff import ExponentialBackoff, NoBackoff
from redis.cluster import ClusterNode, RedisCluster
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisClusterException, RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry
from redis.utils import str_if_bytes

from kvstores.errors import ConfigError, StoreConnectionError
from kvstores.expiring import Duration, to_seconds
from kvstores.logging import get_logger, store_context
from kvstores.store import StoreMixin

logger = get_logger(__name__)

DEFAULT_PORT = 6379


# ------------------------------------------------------------------ #
# Client adapter
# ------------------------------------------------------------------ #


@runtime_checkable
class RedisClient(Protocol):
    """The Redis commands :class:`RedisStore` relies on."""

    def ping(self, **kwargs: Any) -> Any: ...

    def exists(self, *names: str) -> int: ...

    def delete(self, *names: str) -> int: ...

    def flushdb(self, *args: Any, **kwargs: Any) -> Any: ...

    def close(self) -> None: ...

    def execute_command(self, *args: Any, **options: Any) -> Any: ...

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: Any, *args: Any, **kwargs: Any) -> Any: ...

    def hgetall(self, name: str) -> dict[str, str]: ...

    def hset(self, name: str, *args: Any, **kwargs: Any) -> int: ...

    def smembers(self, name: str) -> set[str]: ...

    def sadd(self, name: str, *values: Any) -> int: ...

    def pexpire(self, name: str, time: Any, *args: Any, **kwargs: Any) -> Any: ...


@dataclass
class RedisClientOptions:
    """Single-node connection options.

    Durations are seconds or :class:`~datetime.timedelta`; ``None`` keeps the
    client default.

    Attributes:
        network: ``"tcp"`` (``addr`` is ``host:port``) or ``"unix"`` (``addr``
            is a socket path).
        addr: Server address.
        dialer: Connection class used to open sockets, overriding the one
            implied by ``network``.
        password: AUTH password.
        db: Database index.
        max_retries: Retries on connection/timeout errors (0 → none).
        dial_timeout: Socket connect timeout.
        read_timeout: Socket read timeout.
        write_timeout: Socket write timeout. redis-py has a single socket
            timeout, so the larger of read and write is used.
        pool_size: Maximum pooled connections (0 → client default).
        pool_timeout: Seconds to wait for a free connection. When set, a
            blocking pool is used.
        idle_timeout: Idle period after which a connection is health-checked
            before reuse.
        idle_check_frequency: Health-check interval; overrides ``idle_timeout``.
        read_only: Open the connection in READONLY mode (cluster replicas).
    """

    network: str = "tcp"
    addr: str = f"localhost:{DEFAULT_PORT}"
    dialer: type[redis.Connection] | None = None
    password: str | None = None
    db: int = 0
    max_retries: int = 0
    dial_timeout: Duration = None
    read_timeout: Duration = None
    write_timeout: Duration = None
    pool_size: int = 0
    pool_timeout: Duration = None
    idle_timeout: Duration = None
    idle_check_frequency: Duration = None
    read_only: bool = False


@dataclass
class RedisClusterOptions:
    """Cluster connection options.

    Attributes:
        addrs: Seed nodes as ``host:port`` strings.
        max_redirects: Attempts on MOVED/ASK/connection errors (0 → client default).
        read_only: Allow reads from replica nodes.
        route_by_latency: Spread reads across replicas. redis-py has no
            latency routing, so this also enables replica reads.
        password: AUTH password.
        dial_timeout, read_timeout, write_timeout: As for
            :class:`RedisClientOptions`.
        pool_size: Maximum connections per node (0 → client default).
        pool_timeout: Unused by the cluster client; kept for parity.
        idle_timeout, idle_check_frequency: As for :class:`RedisClientOptions`.
    """

    addrs: list[str] = field(default_factory=list)
    max_redirects: int = 0
    read_only: bool = False
    route_by_latency: bool = False
    password: str | None = None
    dial_timeout: Duration = None
    read_timeout: Duration = None
    write_timeout: Duration = None
    pool_size: int = 0
    pool_timeout: Duration = None
    idle_timeout: Duration = None
    idle_check_frequency: Duration = None


def parse_addr(addr: str) -> tuple[str, int]:
    """Split ``host:port`` (port optional, IPv6 in brackets)."""
    if not addr:
        raise ConfigError("empty redis address")

    host, sep, port = addr.rpartition(":")
    if not sep or "]" in port:
        return addr.strip("[]"), DEFAULT_PORT
    try:
        return host.strip("[]") or "localhost", int(port)
    except ValueError as e:
        raise ConfigError(f"invalid redis address {addr!r}", cause=e).with_context(addr=addr)


def _socket_kwargs(options: RedisClientOptions | RedisClusterOptions) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"password": options.password, "decode_responses": True}

    if (connect := to_seconds(options.dial_timeout)) is not None:
        kwargs["socket_connect_timeout"] = connect

    io_timeouts = [t for t in (to_seconds(options.read_timeout), to_seconds(options.write_timeout)) if t]
    if io_timeouts:
        kwargs["socket_timeout"] = max(io_timeouts)

    health = to_seconds(options.idle_check_frequency) or to_seconds(options.idle_timeout)
    if health is not None:
        kwargs["health_check_interval"] = health

    return kwargs


def _readonly_on_connect(connection: redis.Connection) -> None:
    """Handshake, then switch the connection to READONLY."""
    connection.on_connect()
    connection.send_command("READONLY")
    if str_if_bytes(connection.read_response()) != "OK":
        raise RedisConnectionError("READONLY command failed")


def build_client_kwargs(options: RedisClientOptions) -> dict[str, Any]:
    """Translate :class:`RedisClientOptions` into connection-pool keyword arguments."""
    kwargs = _socket_kwargs(options)
    kwargs["db"] = options.db

    if options.network == "unix":
        kwargs["connection_class"] = redis.UnixDomainSocketConnection
        kwargs["path"] = options.addr
    elif options.network == "tcp":
        kwargs["host"], kwargs["port"] = parse_addr(options.addr)
    else:
        raise ConfigError(f"unsupported network {options.network!r}").with_context(addr=options.addr)

    if options.dialer is not None:
        kwargs["connection_class"] = options.dialer

    if options.read_only:
        kwargs["redis_connect_func"] = _readonly_on_connect

    if options.max_retries > 0:
        kwargs["retry"] = Retry(ExponentialBackoff(), options.max_retries)
        kwargs["retry_on_error"] = [RedisConnectionError, RedisTimeoutError]
    else:
        kwargs["retry"] = Retry(NoBackoff(), 0)

    if options.pool_size > 0:
        kwargs["max_connections"] = options.pool_size

    if (pool_timeout := to_seconds(options.pool_timeout)) is not None:
        kwargs["timeout"] = pool_timeout

    return kwargs


def build_cluster_kwargs(options: RedisClusterOptions) -> dict[str, Any]:
    """Translate :class:`RedisClusterOptions` into ``RedisCluster`` keyword arguments."""
    if not options.addrs:
        raise ConfigError("redis cluster needs at least one address")

    kwargs = _socket_kwargs(options)
    kwargs["startup_nodes"] = [ClusterNode(*parse_addr(addr)) for addr in options.addrs]
    kwargs["read_from_replicas"] = options.read_only or options.route_by_latency

    if options.max_redirects > 0:
        kwargs["cluster_error_retry_attempts"] = options.max_redirects
    if options.pool_size > 0:
        kwargs["max_connections"] = options.pool_size

    return kwargs


# ------------------------------------------------------------------ #
# Store
# ------------------------------------------------------------------ #


def to_text(value: Any) -> str:
    """Coerce a scalar to the text Redis will store."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


class RedisStore(StoreMixin):
    """Key-value store over a :class:`RedisClient`.

    Attributes:
        client: The owned Redis client.
        expiration: TTL applied to every write (``None`` → never expire).
    """

    def __init__(self, client: RedisClient, expiration: Duration = None):
        self.client = client
        self.expiration = expiration

    @property
    def _ttl_ms(self) -> int | None:
        seconds = to_seconds(self.expiration)
        if not seconds:
            return None
        # PX 0 is rejected and PEXPIRE 0 deletes the key
        return max(1, round(seconds * 1000))

    def _apply_expiration(self, key: str) -> None:
        if (ttl := self._ttl_ms) is not None:
            self.client.pexpire(key, ttl)

    def get(self, key: str) -> Any | None:
        return self.client.execute_command("GET", key)

    def set(self, key: str, value: Any) -> None:
        self.client.set(key, to_text(value), px=self._ttl_ms)

    def get_map(self, key: str) -> dict[str, Any] | None:
        values = self.client.hgetall(key)
        if not values:
            return None
        return dict(values)

    def set_map(self, key: str, values: dict[str, Any]) -> None:
        """Replace the hash at *key* with *values*.

        ``DEL``, ``HSET`` and ``PEXPIRE`` are separate commands, not a
        transaction. If ``HSET`` fails the previous map is already gone; if
        ``PEXPIRE`` fails the new map is left without an expiration.
        """
        with store_context(store="redis", key=key, operation="set_map"):
            self.client.delete(key)
            if not values:
                return

            try:
                self.client.hset(key, mapping={k: to_text(v) for k, v in values.items()})
                self._apply_expiration(key)
            except RedisError as e:
                logger.warning("map_write_failed", fields=len(values), error=str(e))
                raise

    def get_slice(self, key: str) -> list[Any] | None:
        members = self.client.smembers(key)
        if not members:
            return None
        return list(members)

    def set_slice(self, key: str, values: list[Any]) -> None:
        with store_context(store="redis", key=key, operation="set_slice"):
            self._add_members(key, values)

    def _add_members(self, key: str, values: list[Any] | tuple[Any, ...]) -> None:
        written = 0
        for value in values:
            if value is None:
                continue
            try:
                self.client.sadd(key, to_text(value))
            except RedisError as e:
                logger.warning("slice_partially_written", written=written, error=str(e))
                raise
            written += 1

        if written:
            self._apply_expiration(key)

    def append_slice(self, key: str, *values: Any) -> None:
        with store_context(store="redis", key=key, operation="append_slice"):
            self._add_members(key, values)

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def flush(self) -> None:
        self.client.flushdb()
        logger.info("store_flushed", store="redis")

    def close(self) -> None:
        self.client.close()
        logger.debug("store_closed", store="redis")


def _connect(client: RedisClient, expiration: Duration, store: str, addr: str) -> RedisStore:
    try:
        client.ping()
    except RedisError as e:
        client.close()
        logger.warning("store_connect_failed", store=store, addr=addr, error=str(e))
        raise StoreConnectionError(f"cannot reach {store} at {addr}", cause=e).with_context(
            store=store, addr=addr
        ) from e

    logger.info("store_connected", store=store, addr=addr)
    return RedisStore(client, expiration)


def new_redis_client_store(options: RedisClientOptions, expiration: Duration = None) -> RedisStore:
    """Connect to a single Redis node and return a ready store.

    Raises:
        ConfigError: If the options cannot be translated.
        StoreConnectionError: If the server does not answer ``PING``.
    """
    kwargs = build_client_kwargs(options)
    pool_cls = redis.BlockingConnectionPool if "timeout" in kwargs else redis.ConnectionPool
    client = redis.Redis(connection_pool=pool_cls(**kwargs))
    return _connect(client, expiration, "redis", options.addr)


def new_redis_cluster_store(options: RedisClusterOptions, expiration: Duration = None) -> RedisStore:
    """Connect to a Redis cluster and return a ready store.

    Raises:
        ConfigError: If the options cannot be translated.
        StoreConnectionError: If no seed node answers.
    """
    kwargs = build_cluster_kwargs(options)
    addrs = ",".join(options.addrs)
    try:
        client = RedisCluster(**kwargs)
    except (RedisClusterException, RedisError) as e:
        logger.warning("store_connect_failed", store="redis_cluster", addr=addrs, error=str(e))
        raise StoreConnectionError(f"cannot reach redis_cluster at {addrs}", cause=e).with_context(
            store="redis_cluster", addr=addrs
        ) from e
    return _connect(client, expiration, "redis_cluster", addrs)


__all__ = [
    "RedisClient",
    "RedisClientOptions",
    "RedisClusterOptions",
    "RedisStore",
    "build_client_kwargs",
    "build_cluster_kwargs",
    "new_redis_client_store",
    "new_redis_cluster_store",
    "parse_addr",
    "to_text",
]

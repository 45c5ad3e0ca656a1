"""Tests for Redis option translation and store construction."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisClusterException
from redis.retry import Retry

from kvstores.errors import ConfigError, ErrorCategory, StoreConnectionError
from kvstores.redis import (
    RedisClientOptions,
    RedisClusterOptions,
    RedisStore,
    _readonly_on_connect,
    build_client_kwargs,
    build_cluster_kwargs,
    new_redis_client_store,
    new_redis_cluster_store,
    parse_addr,
)


class TestParseAddr:
    @pytest.mark.parametrize(
        "addr, expected",
        [
            ("localhost:6379", ("localhost", 6379)),
            ("cache.internal:7000", ("cache.internal", 7000)),
            ("redis", ("redis", 6379)),
            ("[::1]:6380", ("::1", 6380)),
            ("[::1]", ("::1", 6379)),
            (":6379", ("localhost", 6379)),
        ],
    )
    def test_valid(self, addr, expected):
        assert parse_addr(addr) == expected

    def test_invalid_port(self):
        with pytest.raises(ConfigError) as exc_info:
            parse_addr("localhost:abc")
        assert exc_info.value.context.addr == "localhost:abc"

    def test_empty(self):
        with pytest.raises(ConfigError):
            parse_addr("")


class TestClientKwargs:
    def test_defaults(self):
        kwargs = build_client_kwargs(RedisClientOptions())
        assert isinstance(kwargs.pop("retry"), Retry)
        assert kwargs == {
            "password": None,
            "decode_responses": True,
            "db": 0,
            "host": "localhost",
            "port": 6379,
        }

    def test_timeouts_and_pool(self):
        kwargs = build_client_kwargs(
            RedisClientOptions(
                addr="cache:6380",
                password="s3cret",
                db=3,
                dial_timeout=timedelta(seconds=2),
                read_timeout=1,
                write_timeout=4,
                pool_size=20,
                pool_timeout=0.5,
                idle_timeout=300,
            )
        )
        assert kwargs["host"] == "cache"
        assert kwargs["port"] == 6380
        assert kwargs["password"] == "s3cret"
        assert kwargs["db"] == 3
        assert kwargs["socket_connect_timeout"] == 2.0
        assert kwargs["socket_timeout"] == 4.0
        assert kwargs["max_connections"] == 20
        assert kwargs["timeout"] == 0.5
        assert kwargs["health_check_interval"] == 300.0

    def test_idle_check_frequency_wins(self):
        kwargs = build_client_kwargs(RedisClientOptions(idle_timeout=300, idle_check_frequency=30))
        assert kwargs["health_check_interval"] == 30.0

    def test_unix_socket(self):
        kwargs = build_client_kwargs(RedisClientOptions(network="unix", addr="/tmp/redis.sock"))
        assert kwargs["connection_class"] is redis.UnixDomainSocketConnection
        assert kwargs["path"] == "/tmp/redis.sock"
        assert "host" not in kwargs

    def test_dialer_overrides_connection_class(self):
        class TracingConnection(redis.Connection):
            pass

        kwargs = build_client_kwargs(RedisClientOptions(dialer=TracingConnection))
        assert kwargs["connection_class"] is TracingConnection

    def test_max_retries(self):
        kwargs = build_client_kwargs(RedisClientOptions(max_retries=3))
        assert isinstance(kwargs["retry"], Retry)
        assert RedisConnectionError in kwargs["retry_on_error"]

    def test_read_only_installs_connect_hook(self):
        kwargs = build_client_kwargs(RedisClientOptions(read_only=True))
        assert kwargs["redis_connect_func"] is _readonly_on_connect

    def test_unsupported_network(self):
        with pytest.raises(ConfigError):
            build_client_kwargs(RedisClientOptions(network="udp"))


class TestReadonlyHook:
    def test_ok(self):
        conn = MagicMock()
        conn.read_response.return_value = b"OK"
        _readonly_on_connect(conn)
        conn.on_connect.assert_called_once()
        conn.send_command.assert_called_once_with("READONLY")

    def test_rejected(self):
        conn = MagicMock()
        conn.read_response.return_value = "ERR"
        with pytest.raises(RedisConnectionError):
            _readonly_on_connect(conn)


class TestClusterKwargs:
    def test_nodes_and_replicas(self):
        kwargs = build_cluster_kwargs(
            RedisClusterOptions(
                addrs=["n1:7000", "n2:7001"],
                max_redirects=8,
                route_by_latency=True,
                pool_size=5,
            )
        )
        nodes = kwargs["startup_nodes"]
        assert [(n.host, n.port) for n in nodes] == [("n1", 7000), ("n2", 7001)]
        assert kwargs["read_from_replicas"] is True
        assert kwargs["cluster_error_retry_attempts"] == 8
        assert kwargs["max_connections"] == 5
        assert kwargs["decode_responses"] is True

    def test_defaults_leave_client_defaults(self):
        kwargs = build_cluster_kwargs(RedisClusterOptions(addrs=["n1:7000"]))
        assert kwargs["read_from_replicas"] is False
        assert "cluster_error_retry_attempts" not in kwargs
        assert "max_connections" not in kwargs

    def test_no_addrs(self):
        with pytest.raises(ConfigError):
            build_cluster_kwargs(RedisClusterOptions())


class TestNewRedisClientStore:
    def test_ping_ok(self):
        client = MagicMock()
        with patch("kvstores.redis.redis.Redis", return_value=client) as mock_redis:
            store = new_redis_client_store(RedisClientOptions(addr="cache:6379"), expiration=60)

        assert isinstance(store, RedisStore)
        assert store.client is client
        assert store.expiration == 60
        client.ping.assert_called_once()
        pool = mock_redis.call_args.kwargs["connection_pool"]
        assert isinstance(pool, redis.ConnectionPool)
        assert pool.connection_kwargs["host"] == "cache"

    def test_pool_timeout_uses_blocking_pool(self):
        client = MagicMock()
        with patch("kvstores.redis.redis.Redis", return_value=client) as mock_redis:
            new_redis_client_store(RedisClientOptions(pool_timeout=2))

        pool = mock_redis.call_args.kwargs["connection_pool"]
        assert isinstance(pool, redis.BlockingConnectionPool)

    def test_ping_failure(self):
        client = MagicMock()
        client.ping.side_effect = RedisConnectionError("refused")
        with patch("kvstores.redis.redis.Redis", return_value=client):
            with pytest.raises(StoreConnectionError) as exc_info:
                new_redis_client_store(RedisClientOptions(addr="cache:6379"))

        err = exc_info.value
        assert err.category == ErrorCategory.NETWORK
        assert err.retryable is True
        assert err.context.addr == "cache:6379"
        assert isinstance(err.__cause__, RedisConnectionError)
        client.close.assert_called_once()

    def test_unreachable_endpoint(self):
        options = RedisClientOptions(addr="127.0.0.1:1", dial_timeout=0.5, read_timeout=0.5)
        with pytest.raises(StoreConnectionError):
            new_redis_client_store(options)


class TestNewRedisClusterStore:
    def test_ping_ok(self):
        client = MagicMock()
        with patch("kvstores.redis.RedisCluster", return_value=client) as mock_cluster:
            store = new_redis_cluster_store(RedisClusterOptions(addrs=["n1:7000"]), expiration=30)

        assert store.client is client
        client.ping.assert_called_once()
        assert mock_cluster.call_args.kwargs["startup_nodes"][0].host == "n1"

    def test_init_failure(self):
        with patch("kvstores.redis.RedisCluster", side_effect=RedisClusterException("no nodes")):
            with pytest.raises(StoreConnectionError) as exc_info:
                new_redis_cluster_store(RedisClusterOptions(addrs=["n1:7000", "n2:7000"]))

        assert exc_info.value.context.store == "redis_cluster"
        assert exc_info.value.context.addr == "n1:7000,n2:7000"

    def test_ping_failure(self):
        client = MagicMock()
        client.ping.side_effect = RedisConnectionError("down")
        with patch("kvstores.redis.RedisCluster", return_value=client):
            with pytest.raises(StoreConnectionError):
                new_redis_cluster_store(RedisClusterOptions(addrs=["n1:7000"]))
        client.close.assert_called_once()

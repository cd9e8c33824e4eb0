"""Tests for ``cachext.backends.redis.RedisBackend``: Redis-backed engine.

Requires ``redis`` package. Tests are skipped if not installed; the server
itself is replaced by a ``MagicMock`` client.
"""

from __future__ import annotations

import math
from unittest.mock import MagicMock, call

import pytest

redis = pytest.importorskip("redis")

from cachext.backends.redis import RedisBackend  # noqa: E402
from cachext.context import OperationContext  # noqa: E402
from cachext.errors import (  # noqa: E402
    BackendError,
    BackendStateError,
    BackendUnavailableError,
    CacheValueError,
    InvalidConfigError,
    OperationCancelled,
)


@pytest.fixture
def client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(redis, "from_url", MagicMock(return_value=client))
    return client


@pytest.fixture
def backend(client):
    backend = RedisBackend()
    backend.init({"key_prefix": "app:"})
    yield backend
    backend.close()


class TestRedisBackendInit:
    def test_init_default(self, client):
        backend = RedisBackend()
        backend.init({})
        redis.from_url.assert_called_once_with(
            "redis://localhost:6379/0",
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
            decode_responses=False,
        )

    def test_init_custom(self, client):
        backend = RedisBackend()
        backend.init({"url": "redis://cache:6380/1", "socket_timeout": 0.5})
        redis.from_url.assert_called_once_with(
            "redis://cache:6380/1",
            socket_timeout=0.5,
            socket_connect_timeout=0.5,
            decode_responses=False,
        )

    @pytest.mark.parametrize(
        "options,key",
        [
            ({"url": ""}, "url"),
            ({"url": 42}, "url"),
            ({"key_prefix": 1}, "key_prefix"),
            ({"socket_timeout": 0}, "socket_timeout"),
            ({"socket_timeout": "fast"}, "socket_timeout"),
            ({"batch_size": 0}, "batch_size"),
            ({"batch_size": 2.5}, "batch_size"),
        ],
    )
    def test_invalid_options(self, client, options, key):
        with pytest.raises(InvalidConfigError) as exc_info:
            RedisBackend().init(options)
        assert exc_info.value.key == key

    def test_malformed_url(self, monkeypatch):
        monkeypatch.setattr(
            redis, "from_url", MagicMock(side_effect=ValueError("Redis URL must specify a scheme"))
        )
        with pytest.raises(InvalidConfigError, match="Malformed redis url"):
            RedisBackend().init({"url": "localhost:6379"})

    def test_double_init(self, backend):
        with pytest.raises(BackendStateError):
            backend.init({})

    def test_use_before_init(self):
        with pytest.raises(BackendStateError, match="before init"):
            RedisBackend().get("k")


class TestRedisBackendOperations:
    def test_get_existing_key(self, backend, client):
        client.get.return_value = b"value"
        assert backend.get("k") == b"value"
        client.get.assert_called_once_with("app:k")

    def test_get_missing_key(self, backend, client):
        client.get.return_value = None
        assert backend.get("missing") is None

    def test_set_with_ttl(self, backend, client):
        backend.set("k", b"v", ttl=1.5)
        client.set.assert_called_once_with("app:k", b"v", px=1500)

    def test_set_tiny_ttl_rounds_up(self, backend, client):
        backend.set("k", b"v", ttl=0.0001)
        client.set.assert_called_once_with("app:k", b"v", px=1)

    @pytest.mark.parametrize("ttl", [0, -3])
    def test_set_non_positive_ttl_deletes(self, backend, client, ttl):
        backend.set("k", b"v", ttl=ttl)
        client.set.assert_not_called()
        client.delete.assert_called_once_with("app:k")

    def test_set_rejects_non_bytes(self, backend, client):
        with pytest.raises(CacheValueError):
            backend.set("k", "text", ttl=1)
        client.set.assert_not_called()

    @pytest.mark.parametrize("ttl", [math.inf, math.nan])
    def test_non_finite_ttl_rejected(self, backend, client, ttl):
        with pytest.raises(ValueError, match="finite"):
            backend.set("k", b"v", ttl=ttl)
        with pytest.raises(ValueError):
            backend.expire("k", ttl)
        client.set.assert_not_called()
        client.pexpire.assert_not_called()

    def test_get_many(self, backend, client):
        client.mget.return_value = [b"1", None]
        assert backend.get_many(["a", "b"]) == [b"1", None]
        client.mget.assert_called_once_with(["app:a", "app:b"])

    def test_get_many_empty(self, backend, client):
        assert backend.get_many([]) == []
        client.mget.assert_not_called()

    def test_get_many_chunks(self, client):
        backend = RedisBackend()
        backend.init({"batch_size": 2})
        client.mget.side_effect = [[b"1", b"2"], [None]]
        assert backend.get_many(["a", "b", "c"]) == [b"1", b"2", None]
        assert client.mget.call_args_list == [call(["a", "b"]), call(["c"])]

    def test_set_many_pipelines(self, backend, client):
        pipe = client.pipeline.return_value
        backend.set_many({"a": b"1", "b": b"2"}, ttl=2)
        client.pipeline.assert_called_once_with(transaction=False)
        assert pipe.set.call_args_list == [
            call("app:a", b"1", px=2000),
            call("app:b", b"2", px=2000),
        ]
        pipe.execute.assert_called_once()

    def test_set_many_zero_ttl_deletes(self, backend, client):
        pipe = client.pipeline.return_value
        backend.set_many({"a": b"1"}, ttl=0)
        pipe.delete.assert_called_once_with("app:a")
        pipe.set.assert_not_called()

    def test_delete(self, backend, client):
        client.delete.return_value = 1
        assert backend.delete("k") is True
        client.delete.return_value = 0
        assert backend.delete("k") is False

    def test_delete_many(self, backend, client):
        client.delete.return_value = 1
        assert backend.delete_many(["a", "b"]) is True
        client.delete.assert_called_once_with("app:a", "app:b")

    def test_delete_many_none_existed(self, backend, client):
        client.delete.return_value = 0
        assert backend.delete_many(["a"]) is False

    def test_delete_many_empty(self, backend, client):
        assert backend.delete_many([]) is False
        client.delete.assert_not_called()

    def test_expire(self, backend, client):
        client.pexpire.return_value = True
        assert backend.expire("k", 3) is True
        client.pexpire.assert_called_once_with("app:k", 3000)

    def test_expire_absent(self, backend, client):
        client.pexpire.return_value = False
        assert backend.expire("k", 3) is False

    @pytest.mark.parametrize(
        "pttl,expected",
        [(2500, 2.5), (-2, 0.0), (-1, math.inf)],
    )
    def test_ttl(self, backend, client, pttl, expected):
        client.pttl.return_value = pttl
        assert backend.ttl("k") == expected

    def test_exists(self, backend, client):
        client.exists.return_value = 1
        assert backend.exists("k") is True
        client.exists.return_value = 0
        assert backend.exists("k") is False

    def test_check_health(self, backend, client):
        backend.check_health()
        client.ping.assert_called_once()

    def test_close(self, backend, client):
        backend.close()
        client.close.assert_called_once()
        with pytest.raises(BackendStateError, match="closed"):
            backend.get("k")
        backend.close()
        client.close.assert_called_once()


class TestRedisBackendErrors:
    def test_connection_error_is_unavailable(self, backend, client):
        client.get.side_effect = redis.exceptions.ConnectionError("refused")
        with pytest.raises(BackendUnavailableError) as exc_info:
            backend.get("k")
        err = exc_info.value
        assert err.retryable is True
        assert isinstance(err.cause, redis.exceptions.ConnectionError)
        assert err.context == {"backend": "redis", "operation": "get"}

    def test_timeout_is_unavailable(self, backend, client):
        client.mget.side_effect = redis.exceptions.TimeoutError("slow")
        with pytest.raises(BackendUnavailableError):
            backend.get_many(["a"])

    def test_other_redis_error(self, backend, client):
        client.set.side_effect = redis.exceptions.ResponseError("WRONGTYPE")
        with pytest.raises(BackendError) as exc_info:
            backend.set("k", b"v", ttl=1)
        assert not isinstance(exc_info.value, BackendUnavailableError)
        assert exc_info.value.retryable is False

    def test_health_failure(self, backend, client):
        client.ping.side_effect = redis.exceptions.ConnectionError("down")
        with pytest.raises(BackendUnavailableError, match="health check failed"):
            backend.check_health()


class TestRedisBackendCancellation:
    def test_cancelled_context_skips_round_trip(self, backend, client):
        ctx = OperationContext.background()
        ctx.cancel()
        with pytest.raises(OperationCancelled):
            backend.get("k", ctx=ctx)
        client.get.assert_not_called()

    def test_cancelled_between_chunks(self, client):
        backend = RedisBackend()
        backend.init({"batch_size": 1})
        ctx = OperationContext.background()

        def mget(keys):
            ctx.cancel()
            return [b"x"]

        client.mget.side_effect = mget
        with pytest.raises(OperationCancelled):
            backend.get_many(["a", "b", "c"], ctx=ctx)
        assert client.mget.call_count == 1

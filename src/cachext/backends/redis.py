"""
Redis-backed cache backend.

Registered as ``"redis"``.  Requires the ``redis`` package
(``pip install cachext[redis]``); the module itself imports without it so the
name is always registered, and :meth:`RedisBackend.init` reports a missing
client library.

Mapping onto Redis:
    ::

        get / get_many     GET / MGET (chunked by batch_size)
        set / set_many     SET PX / pipelined SET PX
        delete(_many)      DEL
        expire             PEXPIRE
        ttl                PTTL   (-2 → 0.0, -1 → inf)
        exists             EXISTS
        check_health       PING

    A zero or negative TTL on ``set`` deletes the key, matching the
    "already expired" behaviour of the in-memory engine.

Cancellation:
    The caller's context is checked before every round-trip and between
    batch chunks.  A single round-trip is bounded by ``socket_timeout``.

Errors:
    Connection and timeout failures raise ``BackendUnavailableError``
    (retryable); any other client error raises ``BackendError``.  Both chain
    the original exception.

Options:
    url: Connection URL (default ``redis://localhost:6379/0``)
    key_prefix: Prepended to every key (default ``""``)
    socket_timeout: Seconds per round-trip (default 5.0)
    batch_size: Keys per MGET/DEL/pipeline chunk (default 500)

Tags:
    cache, redis, distributed, cachext

Doc-Types:
    - API Reference
    - Infrastructure Guide
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, TypeVar

from cachext.backend import TTL, BytesLike, CacheBackend, ensure_bytes, ttl_seconds
from cachext.context import OperationContext, check_context
from cachext.errors import (
    BackendError,
    BackendStateError,
    BackendUnavailableError,
    InvalidConfigError,
)
from cachext.logging import get_logger
from cachext.registry import register_backend

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_URL = "redis://localhost:6379/0"
DEFAULT_SOCKET_TIMEOUT = 5.0
DEFAULT_BATCH_SIZE = 500


def _millis(seconds: float) -> int:
    """Milliseconds for PX/PEXPIRE; positive TTLs never round down to zero."""
    if seconds <= 0:
        return 0
    return max(1, int(seconds * 1000))


def _chunks(items: list[T], size: int) -> Iterator[list[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _positive_number(options: Mapping[str, Any], key: str, default: float) -> float:
    raw = options.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw <= 0:
        raise InvalidConfigError(key, raw, f"{key} must be a positive number, got {raw!r}")
    return float(raw)


@register_backend("redis")
class RedisBackend(CacheBackend):
    """Networked cache backend over a Redis server.

    Example:
        backend = RedisBackend()
        backend.init({"url": "redis://cache:6379/2", "key_prefix": "orders:"})
        backend.set("order:17", b"...", ttl=600)
    """

    name = "redis"

    def __init__(self) -> None:
        self._client: Any = None
        self._redis: Any = None
        self._prefix = ""
        self._batch_size = DEFAULT_BATCH_SIZE
        self._closed = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def init(self, config: Mapping[str, Any] | None = None) -> None:
        if self._client is not None or self._closed:
            raise BackendStateError("redis backend is already initialized")

        options = dict(config or {})
        url = options.get("url", DEFAULT_URL)
        if not isinstance(url, str) or not url:
            raise InvalidConfigError("url", url)

        prefix = options.get("key_prefix", "")
        if not isinstance(prefix, str):
            raise InvalidConfigError("key_prefix", prefix)

        socket_timeout = _positive_number(options, "socket_timeout", DEFAULT_SOCKET_TIMEOUT)
        batch_size = options.get("batch_size", DEFAULT_BATCH_SIZE)
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
            raise InvalidConfigError("batch_size", batch_size)

        try:
            import redis
        except ImportError as exc:
            msg = (
                "Redis backend requires 'redis' package. "
                "Install with: pip install cachext[redis]"
            )
            raise ImportError(msg) from exc

        try:
            client = redis.from_url(
                url,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                decode_responses=False,
            )
        except ValueError as exc:
            raise InvalidConfigError("url", url, f"Malformed redis url {url!r}: {exc}") from exc

        self._redis = redis
        self._client = client
        self._prefix = prefix
        self._batch_size = batch_size

        logger.info(
            "backend_initialized",
            backend=self.name,
            key_prefix=prefix,
            socket_timeout=socket_timeout,
        )

    def check_health(self, *, ctx: OperationContext | None = None) -> None:
        check_context(ctx, "check_health")
        client = self._require_client("check_health")
        try:
            client.ping()
        except self._redis.exceptions.RedisError as exc:
            raise BackendUnavailableError(
                f"redis health check failed: {exc}", cause=exc
            ).with_context(backend=self.name) from exc

    def close(self) -> None:
        if self._closed:
            return
        client, self._client = self._client, None
        self._closed = True
        if client is not None:
            client.close()
        logger.info("backend_closed", backend=self.name)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require_client(self, operation: str) -> Any:
        if self._closed:
            raise BackendStateError(f"redis backend is closed (during {operation})")
        if self._client is None:
            raise BackendStateError(f"redis backend used before init (during {operation})")
        return self._client

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _call(
        self,
        operation: str,
        ctx: OperationContext | None,
        fn: Callable[[Any], T],
    ) -> T:
        """Run one round-trip, translating client errors."""
        check_context(ctx, operation)
        client = self._require_client(operation)
        exceptions = self._redis.exceptions
        try:
            return fn(client)
        except (exceptions.ConnectionError, exceptions.TimeoutError) as exc:
            raise BackendUnavailableError(
                f"redis {operation} failed: {exc}", cause=exc
            ).with_context(backend=self.name, operation=operation) from exc
        except exceptions.RedisError as exc:
            raise BackendError(
                f"redis {operation} failed: {exc}", cause=exc
            ).with_context(backend=self.name, operation=operation) from exc

    # ------------------------------------------------------------------ #
    # Data operations
    # ------------------------------------------------------------------ #

    def get(self, key: str, *, ctx: OperationContext | None = None) -> bytes | None:
        return self._call("get", ctx, lambda c: c.get(self._key(key)))

    def set(
        self, key: str, value: BytesLike, ttl: TTL, *, ctx: OperationContext | None = None
    ) -> None:
        data = ensure_bytes(key, value)
        millis = _millis(ttl_seconds(ttl))
        if millis == 0:
            self._call("set", ctx, lambda c: c.delete(self._key(key)))
            return
        self._call("set", ctx, lambda c: c.set(self._key(key), data, px=millis))

    def get_many(
        self, keys: Iterable[str], *, ctx: OperationContext | None = None
    ) -> list[bytes | None]:
        results: list[bytes | None] = []
        for chunk in _chunks(list(keys), self._batch_size):
            full_keys = [self._key(k) for k in chunk]
            results.extend(self._call("get_many", ctx, lambda c: c.mget(full_keys)))
        return results

    def set_many(
        self,
        key_values: Mapping[str, BytesLike],
        ttl: TTL,
        *,
        ctx: OperationContext | None = None,
    ) -> None:
        millis = _millis(ttl_seconds(ttl))
        for chunk in _chunks(list(key_values.items()), self._batch_size):
            pairs = [(self._key(k), ensure_bytes(k, v)) for k, v in chunk]

            def write(client: Any) -> list[Any]:
                pipe = client.pipeline(transaction=False)
                for full_key, data in pairs:
                    if millis == 0:
                        pipe.delete(full_key)
                    else:
                        pipe.set(full_key, data, px=millis)
                return pipe.execute()

            self._call("set_many", ctx, write)

    def delete(self, key: str, *, ctx: OperationContext | None = None) -> bool:
        return self._call("delete", ctx, lambda c: c.delete(self._key(key))) > 0

    def delete_many(self, keys: Iterable[str], *, ctx: OperationContext | None = None) -> bool:
        deleted = 0
        for chunk in _chunks(list(keys), self._batch_size):
            full_keys = [self._key(k) for k in chunk]
            deleted += self._call("delete_many", ctx, lambda c: c.delete(*full_keys))
        return deleted > 0

    def expire(self, key: str, ttl: TTL, *, ctx: OperationContext | None = None) -> bool:
        millis = _millis(ttl_seconds(ttl))
        return bool(self._call("expire", ctx, lambda c: c.pexpire(self._key(key), millis)))

    def ttl(self, key: str, *, ctx: OperationContext | None = None) -> float:
        remaining = self._call("ttl", ctx, lambda c: c.pttl(self._key(key)))
        if remaining == -1:
            # Key was written without an expiry (outside this backend).
            return math.inf
        if remaining < 0:
            return 0.0
        return remaining / 1000.0

    def exists(self, key: str, *, ctx: OperationContext | None = None) -> bool:
        return self._call("exists", ctx, lambda c: c.exists(self._key(key))) > 0

    def __repr__(self) -> str:
        return f"RedisBackend(prefix={self._prefix!r}, closed={self._closed})"


__all__ = ["RedisBackend"]

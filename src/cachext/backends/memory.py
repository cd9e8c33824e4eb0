"""
In-memory cache backend with lazy TTL expiry.

The reference engine: a process-local ``dict`` from key to
:class:`CacheEntry`, guarded by a single lock.  Registered as ``"memory"``.

Manifesto:
    - **Zero config:** ``init({})`` is all it needs
    - **Lazy expiry:** deadlines are checked when a key is touched, and an
      expired entry is removed as part of answering the call
    - **Thread-safe:** every read/modify/write, lazy purge included, runs
      under the table lock

Lazy expiry:
    ::

        get("k")  ──► entry = table["k"]
                      now >= entry.expires_at ?
                        yes → del table["k"]; return None
                        no  → return entry.value

    Without a sweeper, an expired entry that nobody reads again stays in
    memory until its key is touched or deleted.  Enable the opt-in
    :class:`~cachext.sweeper.ExpirySweeper` with ``{"sweep_interval": 30}``
    to reap such entries periodically.

Edge cases:
    - ``set`` with a zero or negative TTL stores an already-expired entry:
      the next read reports the key absent (and removes it).
    - ``delete`` of an expired entry removes it but returns ``False``.
    - Deadlines use the monotonic clock, so wall-clock adjustments do not
      shorten or extend TTLs.

Options:
    sweep_interval: Seconds between background sweeps (default: disabled)

Tags:
    cache, in-memory, ttl, lazy-expiry, cachext

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from cachext.backend import TTL, BytesLike, CacheBackend, ensure_bytes, ttl_seconds
from cachext.context import OperationContext, check_context
from cachext.errors import BackendStateError, BackendUnavailableError, InvalidConfigError
from cachext.logging import get_logger
from cachext.registry import register_backend
from cachext.sweeper import ExpirySweeper

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored value and its absolute deadline on the backend clock."""

    value: bytes
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def _parse_sweep_interval(raw: Any) -> float | None:
    if raw is None:
        return None
    try:
        seconds = ttl_seconds(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigError("sweep_interval", raw) from exc
    if seconds < 0:
        raise InvalidConfigError(
            "sweep_interval", raw, "sweep_interval must be zero (disabled) or positive"
        )
    return seconds or None


@register_backend("memory")
class MemoryBackend(CacheBackend):
    """Process-local cache backend.

    Attributes:
        name: Registry name (``"memory"``)

    Example:
        backend = MemoryBackend()
        backend.init({})
        backend.set("session:abc", b'{"user_id": 42}', ttl=3600)
        backend.get("session:abc")
    """

    name = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Args:
            clock: Monotonic seconds source used for deadlines (injectable for tests)
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] | None = None
        self._closed = False
        self._sweeper: ExpirySweeper | None = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def init(self, config: Mapping[str, Any] | None = None) -> None:
        options = dict(config or {})
        sweep_interval = _parse_sweep_interval(options.get("sweep_interval"))

        # close() must observe any sweeper started here.
        with self._lock:
            if self._closed:
                raise BackendStateError("memory backend is closed and cannot be re-initialized")
            if self._entries is not None:
                raise BackendStateError("memory backend is already initialized")
            self._entries = {}
            if sweep_interval is not None:
                self._sweeper = ExpirySweeper(
                    self.purge_expired,
                    sweep_interval,
                    name=f"cachext-memory-sweeper-{id(self):x}",
                )
                self._sweeper.start()

        logger.info("backend_initialized", backend=self.name, sweep_interval=sweep_interval)

    def check_health(self, *, ctx: OperationContext | None = None) -> None:
        check_context(ctx, "check_health")
        with self._lock:
            if self._closed:
                raise BackendUnavailableError("memory backend is closed")
            if self._entries is None:
                raise BackendUnavailableError("memory backend is not initialized")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._entries = None
            sweeper, self._sweeper = self._sweeper, None

        # stop() joins the thread, which may be blocked on the lock.
        if sweeper is not None:
            sweeper.stop()

        logger.info("backend_closed", backend=self.name)

    @property
    def sweeper(self) -> ExpirySweeper | None:
        return self._sweeper

    # ------------------------------------------------------------------ #
    # Internals (call with self._lock held)
    # ------------------------------------------------------------------ #

    def _table(self, operation: str) -> dict[str, CacheEntry]:
        if self._closed:
            raise BackendStateError(f"memory backend is closed (during {operation})")
        if self._entries is None:
            raise BackendStateError(f"memory backend used before init (during {operation})")
        return self._entries

    @staticmethod
    def _live(table: dict[str, CacheEntry], key: str, now: float) -> CacheEntry | None:
        entry = table.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del table[key]
            return None
        return entry

    def _get_one(self, key: str, operation: str) -> bytes | None:
        with self._lock:
            entry = self._live(self._table(operation), key, self._clock())
            return entry.value if entry is not None else None

    def _set_one(self, key: str, value: bytes, seconds: float, operation: str) -> None:
        with self._lock:
            table = self._table(operation)
            table[key] = CacheEntry(value=value, expires_at=self._clock() + seconds)

    def _delete_one(self, key: str, operation: str) -> bool:
        with self._lock:
            entry = self._table(operation).pop(key, None)
            return entry is not None and not entry.is_expired(self._clock())

    # ------------------------------------------------------------------ #
    # Data operations
    # ------------------------------------------------------------------ #

    def get(self, key: str, *, ctx: OperationContext | None = None) -> bytes | None:
        check_context(ctx, "get")
        return self._get_one(key, "get")

    def set(
        self, key: str, value: BytesLike, ttl: TTL, *, ctx: OperationContext | None = None
    ) -> None:
        check_context(ctx, "set")
        self._set_one(key, ensure_bytes(key, value), ttl_seconds(ttl), "set")

    def get_many(
        self, keys: Iterable[str], *, ctx: OperationContext | None = None
    ) -> list[bytes | None]:
        results: list[bytes | None] = []
        for key in keys:
            check_context(ctx, "get_many")
            results.append(self._get_one(key, "get_many"))
        return results

    def set_many(
        self,
        key_values: Mapping[str, BytesLike],
        ttl: TTL,
        *,
        ctx: OperationContext | None = None,
    ) -> None:
        seconds = ttl_seconds(ttl)
        for key, value in key_values.items():
            check_context(ctx, "set_many")
            self._set_one(key, ensure_bytes(key, value), seconds, "set_many")

    def delete(self, key: str, *, ctx: OperationContext | None = None) -> bool:
        check_context(ctx, "delete")
        return self._delete_one(key, "delete")

    def delete_many(self, keys: Iterable[str], *, ctx: OperationContext | None = None) -> bool:
        deleted = False
        for key in keys:
            check_context(ctx, "delete_many")
            if self._delete_one(key, "delete_many"):
                deleted = True
        return deleted

    def expire(self, key: str, ttl: TTL, *, ctx: OperationContext | None = None) -> bool:
        check_context(ctx, "expire")
        seconds = ttl_seconds(ttl)
        with self._lock:
            table = self._table("expire")
            now = self._clock()
            entry = self._live(table, key, now)
            if entry is None:
                return False
            table[key] = replace(entry, expires_at=now + seconds)
            return True

    def ttl(self, key: str, *, ctx: OperationContext | None = None) -> float:
        check_context(ctx, "ttl")
        with self._lock:
            now = self._clock()
            entry = self._live(self._table("ttl"), key, now)
            if entry is None:
                return 0.0
            return entry.expires_at - now

    def exists(self, key: str, *, ctx: OperationContext | None = None) -> bool:
        check_context(ctx, "exists")
        with self._lock:
            return self._live(self._table("exists"), key, self._clock()) is not None

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    def purge_expired(self) -> int:
        """Physically remove every expired entry; returns how many were removed."""
        with self._lock:
            table = self._table("purge_expired")
            now = self._clock()
            expired = [key for key, entry in table.items() if entry.is_expired(now)]
            for key in expired:
                del table[key]
            return len(expired)

    def __repr__(self) -> str:
        if self._closed:
            state = "closed"
        elif self._entries is None:
            state = "uninitialized"
        else:
            state = "ready"
        return f"MemoryBackend(state={state})"


__all__ = ["CacheEntry", "MemoryBackend"]

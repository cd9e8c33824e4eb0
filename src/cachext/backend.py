"""Cache backend contract.

Manifesto:
    Calling code should never depend on a specific storage engine.  The
    abstract base class defines the lifecycle and data operations every
    engine (in-memory, Redis, ...) must provide, so an engine can be picked
    by name from configuration at startup.

Architecture:
    ::

        CacheBackend (ABC)
        ├── MemoryBackend : "memory", process-local table, lazy TTL expiry
        └── RedisBackend  : "redis", networked, server-side TTL

        Lifecycle: init(config) → data operations → close()
        Data:      get / set / get_many / set_many / delete / delete_many
                   expire / ttl / exists

Semantics shared by all engines:
    - A missing or expired key is *absent*, not an error: ``get`` → ``None``,
      ``exists``/``delete``/``expire`` → ``False``, ``ttl`` → ``0.0``.
    - TTLs are relative to the time of the call (``float`` seconds or
      ``timedelta``).  A zero or negative TTL on ``set`` stores an entry that is
      already expired.
    - ``get_many`` returns one slot per input key, in input order.
    - ``set_many`` is not atomic across keys: it may apply a prefix of the
      mapping and then raise.
    - Every operation accepts ``ctx=`` (:class:`~cachext.context.OperationContext`)
      and raises :class:`~cachext.errors.OperationCancelled` if it was cancelled
      or its deadline passed.

Tags:
    cachext, cache, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

from cachext.context import OperationContext
from cachext.errors import CacheValueError

TTL = float | timedelta
"""TTL argument type: seconds as a number, or a ``timedelta``."""

BytesLike = bytes | bytearray | memoryview


def ttl_seconds(ttl: TTL) -> float:
    """Normalize a TTL argument to float seconds.

    Raises:
        TypeError: ``ttl`` is neither a number nor a ``timedelta``
        ValueError: ``ttl`` is NaN or infinite
    """
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        raise TypeError(f"TTL must be a number of seconds or a timedelta, got {type(ttl).__name__}")
    seconds = float(ttl)
    if not math.isfinite(seconds):
        raise ValueError(f"TTL must be a finite number of seconds, got {seconds!r}")
    return seconds


def ensure_bytes(key: str, value: Any) -> bytes:
    """Return ``value`` as immutable bytes, rejecting non byte sequences."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise CacheValueError(
        f"Cache values must be bytes, got {type(value).__name__}",
        context={"key": key},
    )


class CacheBackend(ABC):
    """
    Abstract base class for cache storage engines.

    Subclasses are constructed without arguments by a registry factory and
    configured afterwards through :meth:`init`.
    """

    name: str = "abstract"

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @abstractmethod
    def init(self, config: Mapping[str, Any] | None = None) -> None:
        """One-time setup from engine-specific options.

        Raises:
            ConfigError: If the options are invalid for this engine
            BackendStateError: If the backend was already initialized
        """

    @abstractmethod
    def check_health(self, *, ctx: OperationContext | None = None) -> None:
        """Non-mutating liveness probe.

        Raises:
            BackendUnavailableError: If the backend cannot currently serve requests
        """

    @abstractmethod
    def close(self) -> None:
        """Release engine resources. Closing twice is a no-op."""

    # ------------------------------------------------------------------ #
    # Data operations
    # ------------------------------------------------------------------ #

    @abstractmethod
    def get(self, key: str, *, ctx: OperationContext | None = None) -> bytes | None:
        """Value for ``key``, or ``None`` if missing or expired."""

    @abstractmethod
    def set(
        self, key: str, value: BytesLike, ttl: TTL, *, ctx: OperationContext | None = None
    ) -> None:
        """Insert or overwrite ``key`` expiring ``ttl`` from now."""

    @abstractmethod
    def get_many(
        self, keys: Iterable[str], *, ctx: OperationContext | None = None
    ) -> list[bytes | None]:
        """Values for ``keys`` in input order, ``None`` where absent."""

    @abstractmethod
    def set_many(
        self,
        key_values: Mapping[str, BytesLike],
        ttl: TTL,
        *,
        ctx: OperationContext | None = None,
    ) -> None:
        """Store every pair with the same TTL. Not atomic across keys."""

    @abstractmethod
    def delete(self, key: str, *, ctx: OperationContext | None = None) -> bool:
        """Remove ``key``; True only if a live entry was present."""

    @abstractmethod
    def delete_many(self, keys: Iterable[str], *, ctx: OperationContext | None = None) -> bool:
        """Remove ``keys``; True if at least one live entry was deleted."""

    @abstractmethod
    def expire(self, key: str, ttl: TTL, *, ctx: OperationContext | None = None) -> bool:
        """Reset a live entry's deadline to now + ``ttl``; False if absent."""

    @abstractmethod
    def ttl(self, key: str, *, ctx: OperationContext | None = None) -> float:
        """Remaining seconds before ``key`` expires; 0.0 if absent."""

    @abstractmethod
    def exists(self, key: str, *, ctx: OperationContext | None = None) -> bool:
        """True iff a live entry is stored under ``key``."""

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> CacheBackend:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = [
    "TTL",
    "BytesLike",
    "CacheBackend",
    "ensure_bytes",
    "ttl_seconds",
]

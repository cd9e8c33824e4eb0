"""Backend registry: name → factory lookup.

Manifesto:
    Which engine to use is a runtime configuration choice; how to use an
    engine is the :class:`~cachext.backend.CacheBackend` contract.  The
    registry decouples the two: engines register a factory under a stable
    name when their module loads, and setup code builds the configured one.

ARCHITECTURE
────────────
::

    BackendRegistry
      ├── .register(name, factory)  ─ store factory, duplicate → error
      ├── .get(name)                ─ factory, unknown → error
      ├── .create(name)             ─ fresh uninitialized backend
      ├── .names()                  ─ sorted registered names
      └── .has(name)                ─ existence check

    Module-level API (process-wide default registry):
      register_backend(name, factory)  / @register_backend(name)
      get_backend(name)
      get_default_registry()

BEST PRACTICES
──────────────
- Built-in engines self-register in the default registry on import.
- Composition roots and tests may build an isolated ``BackendRegistry`` and
  pass it explicitly (``create_backend(..., registry=...)``).
- Duplicate names are always rejected, even for the same factory: a second
  registration means an engine was linked twice.

Tags:
    cachext, registry, factory, plugin-registration

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TypeVar

from cachext.backend import CacheBackend
from cachext.errors import BackendAlreadyRegisteredError, BackendNotFoundError
from cachext.logging import get_logger

logger = get_logger(__name__)

BackendFactory = Callable[[], CacheBackend]
F = TypeVar("F", bound=BackendFactory)


class BackendRegistry:
    """Thread-safe mapping of backend name to factory.

    Example:
        >>> registry = BackendRegistry()
        >>> registry.register("memory", MemoryBackend)
        >>> backend = registry.create("memory")
        >>> backend.init({})
    """

    def __init__(self) -> None:
        self._factories: dict[str, BackendFactory] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: BackendFactory) -> None:
        """Register a backend factory.

        Args:
            name: Stable engine name referenced by configuration
            factory: Zero-argument callable returning a fresh backend

        Raises:
            BackendAlreadyRegisteredError: If ``name`` is taken
            TypeError: If ``factory`` is not callable
        """
        if not callable(factory):
            raise TypeError(f"Backend factory for {name!r} must be callable")

        with self._lock:
            if name in self._factories:
                raise BackendAlreadyRegisteredError(name)
            self._factories[name] = factory

        logger.debug(
            "backend_registered",
            name=name,
            factory=getattr(factory, "__qualname__", repr(factory)),
        )

    def get(self, name: str) -> BackendFactory:
        """Get the factory registered under ``name``.

        Raises:
            BackendNotFoundError: If nothing is registered under ``name``
        """
        with self._lock:
            factory = self._factories.get(name)
            if factory is None:
                raise BackendNotFoundError(name, list(self._factories))
            return factory

    def create(self, name: str) -> CacheBackend:
        """Build a fresh, uninitialized backend by name."""
        return self.get(name)()

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._factories

    def names(self) -> list[str]:
        """List registered backend names."""
        with self._lock:
            return sorted(self._factories)


# === GLOBAL DEFAULT REGISTRY ===

_default_registry = BackendRegistry()


def get_default_registry() -> BackendRegistry:
    """The process-wide registry built-in engines register into."""
    return _default_registry


def register_backend(
    name: str,
    factory: BackendFactory | None = None,
    *,
    registry: BackendRegistry | None = None,
):
    """Register a backend factory, directly or as a class decorator.

    Example:
        >>> @register_backend("memory")
        ... class MemoryBackend(CacheBackend):
        ...     ...

        >>> register_backend("custom", lambda: CustomBackend(pool=shared_pool))
    """
    target = registry or get_default_registry()

    if factory is not None:
        target.register(name, factory)
        return factory

    def decorator(cls: F) -> F:
        target.register(name, cls)
        return cls

    return decorator


def get_backend(name: str, *, registry: BackendRegistry | None = None) -> BackendFactory:
    """Look up a backend factory by name (default registry unless given)."""
    return (registry or get_default_registry()).get(name)


__all__ = [
    "BackendFactory",
    "BackendRegistry",
    "get_backend",
    "get_default_registry",
    "register_backend",
]

"""
Composition-root helpers that turn configuration into a ready backend.

Features:
    - ``create_backend()``: registry lookup + ``init`` in one call
    - ``create_backend_from_settings()``: same, driven by :class:`CacheSettings`
    - ``bootstrap()``: configure logging from settings, then build the backend

Tags:
    cachext, configuration, factory-pattern, composition-root

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Importing the package registers the built-in engines.
import cachext.backends  # noqa: F401
from cachext.backend import CacheBackend
from cachext.errors import MissingConfigError
from cachext.logging import configure_logging, get_logger
from cachext.registry import BackendRegistry, get_default_registry
from cachext.settings import CacheSettings

logger = get_logger(__name__)


def create_backend(
    name: str,
    config: Mapping[str, Any] | None = None,
    *,
    registry: BackendRegistry | None = None,
) -> CacheBackend:
    """Build the backend registered under ``name`` and initialize it.

    Raises:
        MissingConfigError: If ``name`` is empty
        BackendNotFoundError: If ``name`` is not registered
        ConfigError: If ``config`` is invalid for the engine
    """
    if not name:
        raise MissingConfigError("backend")

    backend = (registry or get_default_registry()).create(name)
    backend.init(config or {})
    logger.debug("backend_created", backend=name)
    return backend


def create_backend_from_settings(
    settings: CacheSettings | None = None,
    *,
    registry: BackendRegistry | None = None,
) -> CacheBackend:
    """Create the backend named by *settings.backend* with *settings.options*."""
    settings = settings or CacheSettings()
    return create_backend(settings.backend, settings.options, registry=registry)


def bootstrap(
    settings: CacheSettings | None = None,
    *,
    registry: BackendRegistry | None = None,
    service: str = "cachext",
) -> CacheBackend:
    """Configure logging from settings and return an initialized backend.

    Example:
        cache = bootstrap(service="orders-api")
        ...
        cache.close()
    """
    settings = settings or CacheSettings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=service,
    )
    return create_backend_from_settings(settings, registry=registry)


__all__ = [
    "bootstrap",
    "create_backend",
    "create_backend_from_settings",
]

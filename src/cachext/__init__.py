"""
cachext - Pluggable key-value cache backends.

A uniform :class:`CacheBackend` contract, a name → factory registry, and a
reference in-memory engine with per-key TTL and lazy expiry.

Example:
    >>> from cachext import create_backend
    >>> cache = create_backend("memory")
    >>> cache.set("a", b"1", ttl=0.1)
    >>> cache.get("a")
    b'1'
"""

__version__ = "0.1.0"

from cachext.backend import CacheBackend
from cachext.backends import CacheEntry, MemoryBackend, RedisBackend
from cachext.context import OperationContext
from cachext.errors import (
    BackendAlreadyRegisteredError,
    BackendError,
    BackendNotFoundError,
    BackendStateError,
    BackendUnavailableError,
    CacheError,
    CacheValueError,
    ConfigError,
    DeadlineExceeded,
    InvalidConfigError,
    MissingConfigError,
    OperationCancelled,
    RegistryError,
)
from cachext.factory import bootstrap, create_backend, create_backend_from_settings
from cachext.registry import (
    BackendRegistry,
    get_backend,
    get_default_registry,
    register_backend,
)
from cachext.settings import CacheSettings

__all__ = [
    "__version__",
    # contract
    "CacheBackend",
    "CacheEntry",
    "MemoryBackend",
    "RedisBackend",
    "OperationContext",
    # registry
    "BackendRegistry",
    "get_backend",
    "get_default_registry",
    "register_backend",
    # setup
    "CacheSettings",
    "bootstrap",
    "create_backend",
    "create_backend_from_settings",
    # errors
    "CacheError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "RegistryError",
    "BackendAlreadyRegisteredError",
    "BackendNotFoundError",
    "BackendError",
    "BackendUnavailableError",
    "BackendStateError",
    "CacheValueError",
    "OperationCancelled",
    "DeadlineExceeded",
]

"""
Structured error types for cachext.

Every failure raised by a backend, the registry, or the configuration layer is
a :class:`CacheError` subclass carrying a category, a retry flag, free-form
context metadata, and an optional chained cause.

Manifesto:
    - **Absent is not an error:** a missing or expired key is a successful,
      empty result (``None`` / ``False`` / ``0.0``) and never raises
    - **Explicit retry semantics:** each error type knows if it is retryable
    - **Error chaining:** client exceptions are preserved as ``cause``

Architecture:
    ::

        CacheError
        ├── ConfigError            (CONFIG)
        │   ├── MissingConfigError
        │   └── InvalidConfigError
        ├── RegistryError          (REGISTRY)
        │   ├── BackendAlreadyRegisteredError
        │   └── BackendNotFoundError
        ├── BackendError           (BACKEND)
        │   ├── BackendUnavailableError  (retryable)
        │   └── BackendStateError
        ├── CacheValueError        (VALIDATION)
        └── OperationCancelled     (CANCELLED)
            └── DeadlineExceeded

Examples:
    >>> err = BackendUnavailableError("redis unreachable")
    >>> err.retryable
    True
    >>> err.with_context(backend="redis").to_dict()["context"]
    {'backend': 'redis'}

Tags:
    error-handling, exception-hierarchy, cachext

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Missing or invalid engine options
    REGISTRY = "REGISTRY"         # Duplicate or unknown backend names
    BACKEND = "BACKEND"           # Connectivity, protocol, lifecycle misuse
    VALIDATION = "VALIDATION"     # Bad values handed to an operation
    CANCELLED = "CANCELLED"       # Caller cancelled or deadline passed
    INTERNAL = "INTERNAL"


class CacheError(Exception):
    """
    Base exception for all cachext errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers can
    override either per instance.

    Attributes:
        message: Human-readable description
        category: ErrorCategory used for routing and alerting
        retryable: Whether repeating the same call may succeed
        context: Extra metadata (backend name, key, option, ...)
        cause: Underlying exception, also set as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise BackendError("MGET failed").with_context(backend="redis", keys=3)
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CacheError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# REGISTRY ERRORS
# =============================================================================


class RegistryError(CacheError):
    """Backend registration or lookup error."""

    default_category = ErrorCategory.REGISTRY
    default_retryable = False


class BackendAlreadyRegisteredError(RegistryError):
    """A backend is already registered under this name."""

    def __init__(self, name: str):
        self.backend_name = name
        super().__init__(f"Cache backend already registered: {name}")


class BackendNotFoundError(RegistryError):
    """No backend is registered under this name."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.backend_name = name
        self.available = sorted(available or [])
        listing = ", ".join(self.available) or "none"
        super().__init__(f"Cache backend not found: {name}. Available: {listing}")


# =============================================================================
# BACKEND ERRORS
# =============================================================================


class BackendError(CacheError):
    """Operational failure reported by a storage engine."""

    default_category = ErrorCategory.BACKEND
    default_retryable = False


class BackendUnavailableError(BackendError):
    """The engine cannot currently serve requests (connection refused, timeout)."""

    default_retryable = True


class BackendStateError(BackendError):
    """Backend used outside its lifecycle (before ``init``, after ``close``)."""


# =============================================================================
# VALIDATION / CANCELLATION
# =============================================================================


class CacheValueError(CacheError):
    """Value handed to ``set``/``set_many`` is not a byte sequence."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class OperationCancelled(CacheError):
    """The caller's operation context was cancelled."""

    default_category = ErrorCategory.CANCELLED
    default_retryable = False

    def __init__(self, operation: str = "operation", message: str | None = None):
        self.operation = operation
        super().__init__(message or f"Operation '{operation}' was cancelled")


class DeadlineExceeded(OperationCancelled):
    """The caller's deadline passed before the operation could run."""

    def __init__(self, operation: str = "operation", timeout: float | None = None):
        self.timeout = timeout
        msg = f"Operation '{operation}' exceeded its deadline"
        if timeout is not None:
            msg += f" ({timeout}s)"
        super().__init__(operation, msg)


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, CacheError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
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
    "is_retryable",
]

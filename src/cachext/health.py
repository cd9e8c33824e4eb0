"""Health probe helper for services exposing a cache dependency.

Wraps :meth:`CacheBackend.check_health` into the ``CheckResult`` envelope a
health endpoint can serialize directly.

Quick start::

    from cachext.health import probe_backend

    result = probe_backend(cache, "cache")
    if result.status != "healthy":
        ...
"""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, Field

from cachext.backend import CacheBackend
from cachext.context import OperationContext
from cachext.errors import CacheError
from cachext.logging import get_logger

logger = get_logger(__name__)


class CheckResult(BaseModel):
    """Result of a single backend health check."""

    name: str
    status: Literal["healthy", "unhealthy"]
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


def probe_backend(
    backend: CacheBackend,
    name: str = "cache",
    *,
    timeout_s: float | None = None,
) -> CheckResult:
    """Run ``check_health`` and report the outcome instead of raising.

    Only cachext errors are converted into an unhealthy result; anything else
    is a bug and propagates.
    """
    ctx = OperationContext.with_timeout(timeout_s) if timeout_s is not None else None
    details: dict[str, Any] = {"backend": backend.name}

    start = time.perf_counter()
    try:
        backend.check_health(ctx=ctx)
    except CacheError as exc:
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.warning("backend_unhealthy", check=name, **exc.to_dict())
        return CheckResult(
            name=name,
            status="unhealthy",
            latency_ms=latency_ms,
            error=exc.message,
            details={**details, "retryable": exc.retryable},
        )

    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    return CheckResult(name=name, status="healthy", latency_ms=latency_ms, details=details)


__all__ = ["CheckResult", "probe_backend"]

"""Environment-driven settings for cachext.

Selects the backend by registry name and carries its engine options, plus
the logging knobs applied at startup.

Examples:
    >>> import os
    >>> os.environ["CACHEXT_BACKEND"] = "redis"
    >>> os.environ["CACHEXT_OPTIONS"] = '{"url": "redis://cache:6379/1"}'
    >>> CacheSettings().backend
    'redis'

Tags:
    settings, configuration, pydantic, environment, cachext

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Cache configuration resolved from ``CACHEXT_*`` variables and ``.env``.

    Fields
    ──────
    backend     : Registry name of the engine (``memory``, ``redis``, ...)
    options     : Engine options handed to ``init`` (JSON in the environment)
    log_level   : Structlog log level
    log_format  : ``json`` for aggregation, ``console`` for development
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHEXT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: str = Field(default="memory", min_length=1)
    options: dict[str, Any] = Field(default_factory=dict)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


__all__ = ["CacheSettings"]

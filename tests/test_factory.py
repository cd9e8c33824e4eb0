"""Tests for ``cachext.factory``: registry-driven construction and the end-to-end flow."""

from __future__ import annotations

import time

import pytest

from cachext import create_backend, create_backend_from_settings
from cachext.backends.memory import MemoryBackend
from cachext.errors import BackendNotFoundError, InvalidConfigError, MissingConfigError
from cachext.factory import bootstrap
from cachext.registry import BackendRegistry, get_backend
from cachext.settings import CacheSettings


class TestCreateBackend:
    def test_memory_from_default_registry(self):
        backend = create_backend("memory")
        try:
            assert isinstance(backend, MemoryBackend)
            backend.check_health()
        finally:
            backend.close()

    def test_each_call_builds_independent_instance(self):
        first = create_backend("memory")
        second = create_backend("memory")
        try:
            first.set("k", b"1", ttl=60)
            assert second.get("k") is None
        finally:
            first.close()
            second.close()

    def test_isolated_registry(self, registry):
        with pytest.raises(BackendNotFoundError):
            create_backend("memory", registry=registry)

        registry.register("memory", MemoryBackend)
        backend = create_backend("memory", registry=registry)
        backend.close()

    def test_unknown_backend(self):
        with pytest.raises(BackendNotFoundError, match="memcached"):
            create_backend("memcached")

    def test_empty_name(self):
        with pytest.raises(MissingConfigError):
            create_backend("")

    def test_config_errors_surface(self):
        with pytest.raises(InvalidConfigError):
            create_backend("memory", {"sweep_interval": -5})

    def test_options_are_passed_to_init(self):
        backend = create_backend("memory", {"sweep_interval": 60})
        try:
            assert backend.sweeper is not None
            assert backend.sweeper.interval_seconds == 60
        finally:
            backend.close()


class TestFromSettings:
    def test_uses_settings_backend_and_options(self):
        settings = CacheSettings(backend="memory", options={"sweep_interval": 30})
        backend = create_backend_from_settings(settings)
        try:
            assert isinstance(backend, MemoryBackend)
            assert backend.sweeper.interval_seconds == 30
        finally:
            backend.close()

    def test_reads_environment(self, env_file_dir, monkeypatch):
        monkeypatch.setenv("CACHEXT_BACKEND", "memory")
        backend = create_backend_from_settings()
        assert isinstance(backend, MemoryBackend)
        backend.close()

    def test_unknown_backend_in_settings(self):
        with pytest.raises(BackendNotFoundError):
            create_backend_from_settings(CacheSettings(backend="nope"))

    def test_bootstrap_configures_logging(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "cachext.factory.configure_logging", lambda **kwargs: calls.append(kwargs)
        )
        settings = CacheSettings(log_level="debug", log_format="console")
        backend = bootstrap(settings, service="orders-api")
        backend.close()
        assert calls == [{"level": "DEBUG", "json_format": False, "service": "orders-api"}]


@pytest.mark.slow
class TestEndToEnd:
    def test_register_build_init_set_get_expire(self):
        registry = BackendRegistry()
        registry.register("memory", get_backend("memory"))

        factory = registry.get("memory")
        backend = factory()
        backend.init({})
        try:
            backend.set("a", b"1", ttl=0.1)
            assert backend.get("a") == b"1"
            time.sleep(0.15)
            assert backend.get("a") is None
            assert backend.exists("a") is False
            assert backend.ttl("a") == 0.0
        finally:
            backend.close()

    def test_expire_extends_on_real_clock(self):
        backend = create_backend("memory")
        try:
            backend.set("k", b"v", ttl=0.05)
            assert backend.expire("k", 1.0)
            assert backend.ttl("k") == pytest.approx(1.0, abs=0.05)
            time.sleep(0.1)
            assert backend.get("k") == b"v"
        finally:
            backend.close()

"""
Shared pytest fixtures for cachext tests.

This module provides:
- A controllable fake clock for deterministic TTL tests
- Isolated backend registries (the process-wide one is never mutated)
- An initialized in-memory backend wired to the fake clock
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from cachext.backends.memory import MemoryBackend
from cachext.registry import BackendRegistry


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "slow"}):
            item.add_marker(pytest.mark.unit)


class FakeClock:
    """Monotonic-style clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> BackendRegistry:
    """Fresh registry with nothing registered."""
    return BackendRegistry()


@pytest.fixture
def memory(clock: FakeClock) -> Generator[MemoryBackend, None, None]:
    """Initialized in-memory backend driven by the fake clock."""
    backend = MemoryBackend(clock=clock)
    backend.init({})
    yield backend
    backend.close()


@pytest.fixture
def env_file_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory so a developer's .env never leaks into settings tests."""
    monkeypatch.chdir(tmp_path)
    return tmp_path

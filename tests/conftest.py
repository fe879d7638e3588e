"""Shared fixtures for the briefsync test-suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_TESTS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _TESTS_DIR.parent
for _path in (_REPO_ROOT, _TESTS_DIR):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from briefsync.config import AppConfig, SchedulerConfig, StoreConfig  # noqa: E402
from briefsync.runtime import BriefRuntime, build_runtime  # noqa: E402
from briefsync.store import CacheStore, InMemoryKeyValueStore  # noqa: E402

from fakes import FIXED_NOW_MS, FIXED_TODAY, FakeJobHost, StubFetchClient  # noqa: E402


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        store=StoreConfig(backend="memory"),
        scheduler=SchedulerConfig(enabled=True, timezone="UTC"),
    )


@pytest.fixture()
def backend() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore("vcbrief.bg")


@pytest.fixture()
def cache_store(backend: InMemoryKeyValueStore) -> CacheStore:
    return CacheStore(backend, clock=lambda: FIXED_NOW_MS)


@pytest.fixture()
def fake_host() -> FakeJobHost:
    return FakeJobHost()


@pytest.fixture()
def stub_client() -> StubFetchClient:
    return StubFetchClient()


@pytest.fixture()
def runtime(
    app_config: AppConfig,
    backend: InMemoryKeyValueStore,
    fake_host: FakeJobHost,
    stub_client: StubFetchClient,
) -> BriefRuntime:
    """Fully wired runtime on the fake host, a fixed clock and a fixed date."""
    built = build_runtime(
        app_config,
        backend=backend,
        client=stub_client,  # type: ignore[arg-type]
        host=fake_host,
        log_dir=None,
    )
    built.store._clock = lambda: FIXED_NOW_MS
    built.job._today = lambda: FIXED_TODAY
    return built

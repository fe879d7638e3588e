from __future__ import annotations

import pytest

from briefsync.store import BriefSettings, CachedBrief, CacheStore, InMemoryKeyValueStore, normalize_api_base
from fakes import FIXED_NOW_MS


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://x.example/", "https://x.example"),
        ("  https://x.example///  ", "https://x.example"),
        ("https://x.example/base", "https://x.example/base"),
        ("   ", ""),
        ("/", ""),
        (None, ""),
        (123, ""),
    ],
)
def test_normalize_api_base(raw: object, expected: str) -> None:
    assert normalize_api_base(raw) == expected


def test_settings_from_input() -> None:
    assert BriefSettings.from_input(" https://x.example/ ", None) == BriefSettings("https://x.example", True)
    assert BriefSettings.from_input("https://x.example", False).runnable is False
    assert BriefSettings.from_input("", True).runnable is False
    assert BriefSettings.from_input("https://x.example", True).runnable is True
    assert BriefSettings.from_input("https://x.example", 0).enabled is True
    assert BriefSettings.from_input("https://x.example", "false").enabled is True


def test_defaults_when_store_is_empty(cache_store: CacheStore) -> None:
    assert cache_store.load_settings() == BriefSettings(api_base="", enabled=True)
    assert cache_store.load_cache() == CachedBrief()
    assert cache_store.load_cache().to_payload() == {"json": "", "cachedAtMs": 0, "lastError": ""}


def test_save_and_load_settings(cache_store: CacheStore) -> None:
    cache_store.save_settings(BriefSettings(api_base="https://x.example", enabled=False))

    assert cache_store.load_settings() == BriefSettings(api_base="https://x.example", enabled=False)


def test_record_success_writes_body_timestamp_and_clears_error(cache_store: CacheStore) -> None:
    cache_store.record_failure("http_503")

    cached = cache_store.record_success('{"items": []}')

    assert cached == CachedBrief(raw_body='{"items": []}', fetched_at_ms=FIXED_NOW_MS, last_error="")
    assert cache_store.load_cache() == cached


def test_record_failure_keeps_previous_body(cache_store: CacheStore) -> None:
    cache_store.record_success("B1")

    cache_store.record_failure("http_404")

    assert cache_store.load_cache().to_payload() == {
        "json": "B1",
        "cachedAtMs": FIXED_NOW_MS,
        "lastError": "http_404",
    }


def test_success_commits_fields_in_one_write() -> None:
    backend = InMemoryKeyValueStore()
    writes: list[dict[str, object]] = []
    original = backend.put_all

    def _spy(values):  # type: ignore[no-untyped-def]
        writes.append(dict(values))
        original(values)

    backend.put_all = _spy  # type: ignore[method-assign]
    store = CacheStore(backend, clock=lambda: 42)

    store.record_success("body")

    assert writes == [{"cachedJson": "body", "cachedAtMs": 42, "lastError": ""}]

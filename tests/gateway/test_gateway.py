from __future__ import annotations

from unittest.mock import patch

import pytest

from briefsync.fetch import FetchHttpError, FetchSuccess
from briefsync.refresh import RefreshOutcome
from briefsync.runtime import BriefRuntime
from briefsync.store import BriefSettings
from fakes import FIXED_NOW_MS, FIXED_TODAY, FakeJobHost, StubFetchClient

PERIODIC = "vcbrief.brief_refresh"
ONCE = "vcbrief.brief_refresh.once"


def test_get_cache_defaults(runtime: BriefRuntime) -> None:
    assert runtime.gateway.get_cache() == {"json": "", "cachedAtMs": 0, "lastError": ""}


def test_configure_then_first_refresh(
    runtime: BriefRuntime, fake_host: FakeJobHost, stub_client: StubFetchClient
) -> None:
    assert runtime.gateway.configure("https://x.example/", True) == {"ok": True}

    assert runtime.gateway.current_settings() == BriefSettings(api_base="https://x.example", enabled=True)
    assert sorted(fake_host.registered) == [PERIODIC, ONCE]

    stub_client.queue(FetchSuccess(body="B1"))
    fake_host.fire(ONCE)

    assert stub_client.calls == [("https://x.example", FIXED_TODAY)]
    assert runtime.gateway.get_cache() == {"json": "B1", "cachedAtMs": FIXED_NOW_MS, "lastError": ""}


def test_server_failure_keeps_last_good_body(
    runtime: BriefRuntime, fake_host: FakeJobHost, stub_client: StubFetchClient
) -> None:
    runtime.gateway.configure("https://x.example", True)
    stub_client.queue(FetchSuccess(body="B1"), FetchHttpError(503))
    fake_host.fire(ONCE)

    result = fake_host.fire(PERIODIC)

    assert result.outcome is RefreshOutcome.FAILED_TRANSIENT
    assert runtime.gateway.get_cache() == {"json": "B1", "cachedAtMs": FIXED_NOW_MS, "lastError": "http_503"}


def test_disable_cancels_jobs_and_keeps_cache(
    runtime: BriefRuntime, fake_host: FakeJobHost, stub_client: StubFetchClient
) -> None:
    runtime.gateway.configure("https://x.example", True)
    stub_client.queue(FetchSuccess(body="B1"))
    fake_host.fire(ONCE)

    assert runtime.gateway.configure("https://x.example", False) == {"ok": True}

    assert fake_host.registered == {}
    assert runtime.gateway.get_cache()["json"] == "B1"
    assert runtime.gateway.current_settings().enabled is False


def test_reconfigure_supersedes_pending_run(
    runtime: BriefRuntime, fake_host: FakeJobHost, stub_client: StubFetchClient
) -> None:
    runtime.gateway.configure("https://a.example", True)
    in_flight = fake_host.take(ONCE)
    runtime.gateway.configure("https://b.example", True)
    stub_client.queue(FetchSuccess(body="from-a"), FetchSuccess(body="from-b"))

    assert in_flight().outcome is RefreshOutcome.SUPERSEDED
    fake_host.fire(ONCE)

    assert [call[0] for call in stub_client.calls] == ["https://b.example"]
    assert runtime.gateway.get_cache()["json"] == "from-b"


def test_reconfigure_during_fetch_discards_result(
    runtime: BriefRuntime, fake_host: FakeJobHost, stub_client: StubFetchClient
) -> None:
    runtime.gateway.configure("https://a.example", True)
    stub_client.queue(FetchSuccess(body="from-a"))
    stub_client.while_fetching(lambda: runtime.gateway.configure("https://b.example", True))

    result = fake_host.fire(ONCE)

    assert result.outcome is RefreshOutcome.SUPERSEDED
    assert stub_client.calls == [("https://a.example", FIXED_TODAY)]
    assert runtime.gateway.get_cache() == {"json": "", "cachedAtMs": 0, "lastError": ""}
    assert runtime.gateway.current_settings().api_base == "https://b.example"


@pytest.mark.parametrize("enabled", [0, 1, "", "false", None, [], {"on": False}])
def test_configure_treats_non_boolean_enabled_as_true(
    runtime: BriefRuntime, fake_host: FakeJobHost, enabled: object
) -> None:
    runtime.gateway.configure("https://x.example", enabled)

    assert runtime.gateway.current_settings().enabled is True
    assert PERIODIC in fake_host.registered


@pytest.mark.parametrize(
    ("api_base", "expected"),
    [("  https://x.example//  ", "https://x.example"), ("   ", ""), (123, ""), (None, "")],
)
def test_configure_normalizes_api_base(runtime: BriefRuntime, api_base: object, expected: str) -> None:
    runtime.gateway.configure(api_base, True)

    assert runtime.gateway.current_settings().api_base == expected


def test_empty_api_base_is_persisted_and_cancels(runtime: BriefRuntime, fake_host: FakeJobHost) -> None:
    runtime.gateway.configure("https://x.example", True)

    assert runtime.gateway.configure("", True) == {"ok": True}

    assert runtime.gateway.current_settings() == BriefSettings(api_base="", enabled=True)
    assert fake_host.registered == {}


def test_configure_without_arguments(runtime: BriefRuntime, fake_host: FakeJobHost) -> None:
    runtime.gateway.configure("https://x.example", False)

    assert runtime.gateway.configure() == {"ok": True}

    assert runtime.gateway.current_settings() == BriefSettings(api_base="", enabled=True)
    assert fake_host.registered == {}


def test_scheduling_failure_is_swallowed(runtime: BriefRuntime) -> None:
    with patch.object(runtime.scheduler, "reconcile", side_effect=RuntimeError("host unavailable")):
        assert runtime.gateway.configure("https://x.example", True) == {"ok": True}

    assert runtime.gateway.current_settings().api_base == "https://x.example"


def test_refresh_now(runtime: BriefRuntime, fake_host: FakeJobHost) -> None:
    assert runtime.gateway.refresh_now() is False

    runtime.gateway.configure("https://x.example", True)
    fake_host.fire(ONCE)

    assert runtime.gateway.refresh_now() is True
    assert ONCE in fake_host.registered


def test_refresh_now_swallows_scheduling_failure(runtime: BriefRuntime) -> None:
    runtime.gateway.configure("https://x.example", True)

    with patch.object(runtime.scheduler, "trigger_now", side_effect=RuntimeError("host unavailable")):
        assert runtime.gateway.refresh_now() is False


def test_restore_reregisters_from_store(runtime: BriefRuntime, fake_host: FakeJobHost) -> None:
    runtime.store.save_settings(BriefSettings(api_base="https://x.example", enabled=True))

    settings = runtime.gateway.restore()

    assert settings.runnable
    assert sorted(fake_host.registered) == [PERIODIC, ONCE]

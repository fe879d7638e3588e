from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from briefsync.config import AppConfig, SchedulerConfig, StoreConfig, WebAuthConfig, WebUIConfig
from briefsync.fetch import FetchSuccess
from briefsync.runtime import BriefRuntime
from briefsync.web import create_app
from fakes import FakeJobHost, StubFetchClient


@pytest.fixture()
def client(runtime: BriefRuntime) -> TestClient:
    app = create_app(runtime.gateway, runtime.scheduler, runtime.config)
    return TestClient(app)


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_configure_and_read_cache(
    client: TestClient, runtime: BriefRuntime, fake_host: FakeJobHost, stub_client: StubFetchClient
) -> None:
    response = client.post("/configure", json={"apiBase": "https://x.example/", "enabled": True})
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert runtime.gateway.current_settings().api_base == "https://x.example"

    stub_client.queue(FetchSuccess(body='{"items": []}'))
    fake_host.fire("vcbrief.brief_refresh.once")

    response = client.get("/cache")
    assert response.status_code == 200
    assert response.json()["json"] == '{"items": []}'
    assert response.json()["lastError"] == ""


def test_configure_with_empty_body_uses_defaults(client: TestClient, runtime: BriefRuntime) -> None:
    response = client.post("/configure", json={})

    assert response.json() == {"ok": True}
    assert runtime.gateway.current_settings().api_base == ""
    assert runtime.gateway.current_settings().enabled is True


def test_configure_accepts_unusable_api_base(client: TestClient, runtime: BriefRuntime) -> None:
    response = client.post("/configure", json={"apiBase": 123})

    assert response.status_code == 200
    assert runtime.gateway.current_settings().api_base == ""


@pytest.mark.parametrize("enabled", [0, "", "false", None])
def test_configure_non_boolean_enabled_keeps_refresh_on(
    client: TestClient, runtime: BriefRuntime, enabled: object
) -> None:
    response = client.post("/configure", json={"apiBase": "https://x.example", "enabled": enabled})

    assert response.status_code == 200
    assert runtime.gateway.current_settings().enabled is True


def test_configure_false_disables_refresh(client: TestClient, runtime: BriefRuntime) -> None:
    client.post("/configure", json={"apiBase": "https://x.example", "enabled": False})

    assert runtime.gateway.current_settings().enabled is False


def test_list_jobs(client: TestClient) -> None:
    assert client.get("/jobs").json() == []

    client.post("/configure", json={"apiBase": "https://x.example"})

    jobs = client.get("/jobs").json()
    assert {job["id"] for job in jobs} == {"vcbrief.brief_refresh", "vcbrief.brief_refresh.once"}
    assert all("next_run_time" in job for job in jobs)


def test_refresh_endpoint(client: TestClient, fake_host: FakeJobHost) -> None:
    response = client.post("/refresh")
    assert response.status_code == 409
    assert response.json()["detail"] == "Background refresh is not configured."

    client.post("/configure", json={"apiBase": "https://x.example"})
    fake_host.fire("vcbrief.brief_refresh.once")

    response = client.post("/refresh")
    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "message": "Job 'vcbrief.brief_refresh.once' has been scheduled to run.",
    }


def test_metrics_endpoint(client: TestClient, fake_host: FakeJobHost) -> None:
    client.post("/configure", json={"apiBase": "https://x.example"})
    fake_host.fire("vcbrief.brief_refresh")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'refresh_job_runs_total{job_id="vcbrief.brief_refresh"} 1' in response.text


def test_auth_required(runtime: BriefRuntime, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BRIEFSYNC_TEST_TOKEN", "s3cret")
    config = AppConfig(
        store=StoreConfig(backend="memory"),
        scheduler=SchedulerConfig(timezone="UTC"),
        web=WebUIConfig(auth=WebAuthConfig(enabled=True, token="env:BRIEFSYNC_TEST_TOKEN")),
    )
    client = TestClient(create_app(runtime.gateway, runtime.scheduler, config))

    assert client.get("/health").status_code == 200
    assert client.get("/cache").status_code == 401
    assert client.get("/cache", headers={"X-Brief-Token": "wrong"}).status_code == 401
    assert client.get("/cache", headers={"X-Brief-Token": "s3cret"}).status_code == 200

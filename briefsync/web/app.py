"""FastAPI application factory and routing definitions."""

from __future__ import annotations

import secrets
from typing import Any, Callable

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.responses import PlainTextResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from briefsync.config.app import AppConfig
from briefsync.config.web import WebAuthConfig
from briefsync.gateway import BriefGateway
from briefsync.scheduler.service import SchedulerService


class ConfigureRequest(BaseModel):
    """Body of ``POST /configure``; unusable values are normalized, not rejected."""

    model_config = ConfigDict(populate_by_name=True)

    api_base: Any = Field("", alias="apiBase")
    enabled: Any = True


def create_app(
    gateway: BriefGateway,
    scheduler_service: SchedulerService,
    config: AppConfig | None = None,
) -> FastAPI:
    """Creates the HTTP bridge exposing ``configure`` and ``getCache``."""
    web_config = config.web if config and config.web else None
    auth_config = web_config.auth if web_config and web_config.auth else None
    auth_dependency = _build_auth_dependency(auth_config)

    app = FastAPI(
        title=web_config.title if web_config else "Brief Background Refresh",
        description="Configure the background brief refresh and read its cache.",
        version="0.1.0",
    )

    @app.get("/health", summary="Health Check", tags=["Monitoring"])
    async def health_check() -> dict[str, str]:
        """Check if the API is running."""
        return {"status": "ok"}

    @app.post("/configure", summary="Configure Background Refresh", tags=["Brief"])
    def configure(body: ConfigureRequest, _: None = Depends(auth_dependency)) -> dict[str, bool]:
        logger.info("Configure request received (enabled={})", body.enabled)
        return gateway.configure(body.api_base, body.enabled)

    @app.get("/cache", summary="Read Cached Brief", tags=["Brief"])
    def get_cache(_: None = Depends(auth_dependency)) -> dict[str, Any]:
        """Return the last fetched brief; never performs a network call."""
        return gateway.get_cache()

    @app.post("/refresh", summary="Refresh Now", tags=["Brief"])
    def refresh_now(_: None = Depends(auth_dependency)) -> dict[str, str]:
        if not gateway.refresh_now():
            raise HTTPException(status_code=409, detail="Background refresh is not configured.")
        return {"status": "success", "message": f"Job '{scheduler_service.once_name}' has been scheduled to run."}

    @app.get("/jobs", summary="List Scheduled Jobs", tags=["Scheduler"])
    async def list_jobs(_: None = Depends(auth_dependency)) -> list[dict[str, Any]]:
        """Returns the registered periodic and one-shot refresh jobs."""
        return scheduler_service.list_jobs()

    @app.get("/metrics", response_class=PlainTextResponse, tags=["Monitoring"])
    async def metrics(_: None = Depends(auth_dependency)) -> PlainTextResponse:
        return PlainTextResponse(scheduler_service.export_metrics())

    return app


def _build_auth_dependency(auth_config: WebAuthConfig | None) -> Callable[..., Any]:
    """Return a dependency that validates the configured auth token."""

    if not auth_config or not auth_config.enabled:
        async def _no_auth() -> None:  # pragma: no cover - trivial branch
            return None

        return _no_auth

    expected_token = auth_config.resolved_token()
    header_alias = auth_config.header_name

    async def _verify_token(
        provided_token: str | None = Header(default=None, alias=header_alias),
    ) -> None:
        if provided_token is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing authentication token.",
            )

        if not secrets.compare_digest(provided_token, expected_token):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token.",
            )

    return _verify_token

"""HTTP API configuration models."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from briefsync.config.base import BaseConfig
from briefsync.config.utils import resolve_env_reference


class WebAuthConfig(BaseConfig):
    """Settings for protecting the HTTP API."""

    enabled: bool = Field(
        False, description="Whether header token authentication is enforced.",
    )
    header_name: str = Field(
        "X-Brief-Token",
        description="Header to read the authentication token from.",
        min_length=1,
    )
    token: str | None = Field(
        default=None,
        description="Shared secret token (or 'env:VAR_NAME') required when enabled.",
        min_length=1,
    )

    @field_validator("token")
    @classmethod
    def _strip_token(cls, token: str | None) -> str | None:
        if token is None:
            return None
        stripped = token.strip()
        return stripped if stripped else None

    @model_validator(mode="after")
    def _ensure_token_when_enabled(self) -> "WebAuthConfig":
        if self.enabled and not self.token:
            msg = "Authentication token must be provided when web auth is enabled."
            raise ValueError(msg)
        return self

    def resolved_token(self) -> str:
        """Return the token with ``env:`` references expanded."""
        return resolve_env_reference(self.token) or ""


class WebUIConfig(BaseConfig):
    """Top-level settings for the FastAPI bridge."""

    enabled: bool = Field(True, description="Whether to expose the HTTP API.")
    title: str = Field(
        "Brief Background Refresh",
        description="Title reported in the OpenAPI schema.",
        min_length=1,
    )
    auth: WebAuthConfig | None = Field(
        default=None,
        description="Authentication settings for the API.",
    )


__all__ = ["WebAuthConfig", "WebUIConfig"]

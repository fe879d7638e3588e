"""Configuration models for the brief fetch client."""

from __future__ import annotations

from pydantic import Field

from .base import BaseConfig


class FetchConfig(BaseConfig):
    """Request shape and timeouts for the daily brief endpoint."""

    endpoint_path: str = Field("/api/brief", description="Path appended to the configured API base")

    # Fixed query parameters
    mode: str = Field("execution", description="Value of the 'mode' query parameter")
    level: str = Field("3_5", description="Value of the 'level' query parameter")
    item_count: int = Field(100, description="Value of the 'itemCount' query parameter", ge=1)

    # Timeouts
    connect_timeout: float = Field(10.0, description="Connect timeout (seconds)", gt=0)
    read_timeout: float = Field(15.0, description="Read timeout (seconds)", gt=0)

    user_agent: str = Field("briefsync/0.1", description="User-Agent header sent with each request")


__all__ = ["FetchConfig"]

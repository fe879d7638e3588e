"""Application-level configuration models."""

from __future__ import annotations

from pydantic import Field

from briefsync.config.base import BaseConfig
from briefsync.config.fetch import FetchConfig
from briefsync.config.scheduler import SchedulerConfig
from briefsync.config.store import StoreConfig
from briefsync.config.web import WebUIConfig


class AppConfig(BaseConfig):
    """Top-level runtime configuration for the refresh service."""

    logging_level: str = Field("INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")

    store: StoreConfig = Field(default_factory=StoreConfig, description="Cache store configuration")
    fetch: FetchConfig = Field(default_factory=FetchConfig, description="Brief endpoint request settings")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig, description="Scheduler configuration")
    web: WebUIConfig | None = Field(None, description="HTTP API settings")


__all__ = ["AppConfig"]

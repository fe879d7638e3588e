"""Configuration namespace for briefsync."""

from __future__ import annotations

from .app import AppConfig
from .base import BaseConfig, load_config
from .fetch import FetchConfig
from .scheduler import SchedulerConfig
from .store import StoreConfig
from .utils import resolve_env_reference
from .web import WebAuthConfig, WebUIConfig

__all__ = [
    "BaseConfig",
    "AppConfig",
    "load_config",
    "FetchConfig",
    "SchedulerConfig",
    "StoreConfig",
    "WebAuthConfig",
    "WebUIConfig",
    "resolve_env_reference",
]

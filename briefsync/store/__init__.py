"""Durable storage for settings and the cached brief."""

from .backends import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
    StoreError,
    create_store,
)
from .cache import CacheStore
from .models import BriefSettings, CachedBrief, normalize_api_base

__all__ = [
    "CacheStore",
    "BriefSettings",
    "CachedBrief",
    "normalize_api_base",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "StoreError",
    "create_store",
]

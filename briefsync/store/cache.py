"""Typed access to the persisted configuration and cached brief."""

from __future__ import annotations

import time
from typing import Callable

from loguru import logger

from .backends import KeyValueStore
from .models import BriefSettings, CachedBrief

KEY_API_BASE = "apiBase"
KEY_ENABLED = "enabled"
KEY_CACHED_JSON = "cachedJson"
KEY_CACHED_AT_MS = "cachedAtMs"
KEY_LAST_ERROR = "lastError"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class CacheStore:
    """Reads and writes the two field groups: settings and cached result.

    Each group is written with a single ``put_all`` so readers never observe a
    body from one fetch paired with the timestamp of another.
    """

    def __init__(self, backend: KeyValueStore, *, clock: Callable[[], int] = _now_ms) -> None:
        self.backend = backend
        self._clock = clock

    # Settings ----------------------------------------------------------
    def load_settings(self) -> BriefSettings:
        values = self.backend.get_many({KEY_API_BASE: "", KEY_ENABLED: True})
        return BriefSettings.from_input(values[KEY_API_BASE], values[KEY_ENABLED])

    def save_settings(self, settings: BriefSettings) -> None:
        self.backend.put_all({KEY_API_BASE: settings.api_base, KEY_ENABLED: settings.enabled})
        logger.debug("Persisted settings: api_base={!r}, enabled={}", settings.api_base, settings.enabled)

    # Cached result -----------------------------------------------------
    def load_cache(self) -> CachedBrief:
        values = self.backend.get_many({KEY_CACHED_JSON: "", KEY_CACHED_AT_MS: 0, KEY_LAST_ERROR: ""})
        return CachedBrief(
            raw_body=values[KEY_CACHED_JSON] or "",
            fetched_at_ms=int(values[KEY_CACHED_AT_MS] or 0),
            last_error=values[KEY_LAST_ERROR] or "",
        )

    def record_success(self, body: str) -> CachedBrief:
        fetched_at_ms = self._clock()
        self.backend.put_all(
            {
                KEY_CACHED_JSON: body,
                KEY_CACHED_AT_MS: fetched_at_ms,
                KEY_LAST_ERROR: "",
            }
        )
        return CachedBrief(raw_body=body, fetched_at_ms=fetched_at_ms, last_error="")

    def record_failure(self, error: str) -> None:
        # Body and timestamp stay as they are.
        self.backend.put_all({KEY_LAST_ERROR: error})


__all__ = [
    "CacheStore",
    "KEY_API_BASE",
    "KEY_ENABLED",
    "KEY_CACHED_JSON",
    "KEY_CACHED_AT_MS",
    "KEY_LAST_ERROR",
]

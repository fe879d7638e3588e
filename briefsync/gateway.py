"""Foreground entrypoints: configure the background refresh and read its cache."""

from __future__ import annotations

from threading import Lock
from typing import Any

from loguru import logger

from briefsync.scheduler import SchedulerService
from briefsync.store import BriefSettings, CacheStore


class BriefGateway:
    """Persists settings, reconciles the scheduler and serves cache reads.

    Neither :meth:`configure` nor :meth:`get_cache` raises for scheduling or
    network problems; those surface later through ``lastError``.
    """

    def __init__(self, store: CacheStore, scheduler: SchedulerService) -> None:
        self.store = store
        self.scheduler = scheduler
        self._lock = Lock()

    def configure(self, api_base: Any = "", enabled: Any = True) -> dict[str, bool]:
        settings = BriefSettings.from_input(api_base, enabled)
        with self._lock:
            self.store.save_settings(settings)
            self._reconcile(settings)
        return {"ok": True}

    def get_cache(self) -> dict[str, Any]:
        return self.store.load_cache().to_payload()

    def current_settings(self) -> BriefSettings:
        return self.store.load_settings()

    def restore(self) -> BriefSettings:
        """Re-register jobs from the persisted settings (process start)."""
        with self._lock:
            settings = self.store.load_settings()
            logger.info("Restoring background refresh: enabled={}, api_base={!r}", settings.enabled, settings.api_base)
            self._reconcile(settings)
        return settings

    def refresh_now(self) -> bool:
        """Request an immediate one-shot refresh; ``False`` when refresh is inactive."""
        with self._lock:
            if not self.store.load_settings().runnable:
                return False
            try:
                return self.scheduler.trigger_now()
            except Exception:
                logger.exception("Failed to enqueue one-shot refresh")
                return False

    def _reconcile(self, settings: BriefSettings) -> None:
        try:
            self.scheduler.reconcile(settings)
        except Exception:
            logger.exception("Failed to reconcile refresh jobs; settings were saved")


__all__ = ["BriefGateway"]

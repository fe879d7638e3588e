"""Wiring of store, fetch client, refresh job, scheduler and gateway."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from briefsync.config import AppConfig
from briefsync.fetch import BriefFetchClient
from briefsync.gateway import BriefGateway
from briefsync.refresh import RefreshJob, today_in
from briefsync.scheduler import JobHost, SchedulerService
from briefsync.store import CacheStore, KeyValueStore, create_store


@dataclass(slots=True)
class BriefRuntime:
    """Everything a host process needs to run the background refresh."""

    config: AppConfig
    backend: KeyValueStore
    store: CacheStore
    client: BriefFetchClient
    job: RefreshJob
    scheduler: SchedulerService
    gateway: BriefGateway

    def close(self) -> None:
        self.scheduler.shutdown()
        self.client.close()
        self.backend.close()


def build_runtime(
    config: AppConfig,
    *,
    base_path: Path | None = None,
    backend: KeyValueStore | None = None,
    client: BriefFetchClient | None = None,
    host: JobHost | None = None,
    dry_run: bool = False,
    log_dir: Path | None = Path("logs"),
) -> BriefRuntime:
    backend = backend or create_store(config.store, base_path=base_path)
    store = CacheStore(backend)
    client = client or BriefFetchClient(config.fetch)
    job = RefreshJob(store, client, today=today_in(config.scheduler.timezone))
    scheduler = SchedulerService(config, job, host=host, dry_run=dry_run, log_dir=log_dir)
    gateway = BriefGateway(store, scheduler)
    logger.debug("Runtime assembled (store={}, dry_run={})", type(backend).__name__, dry_run)
    return BriefRuntime(
        config=config,
        backend=backend,
        store=store,
        client=client,
        job=job,
        scheduler=scheduler,
        gateway=gateway,
    )


__all__ = ["BriefRuntime", "build_runtime"]

"""Job hosting abstraction and its APScheduler implementation."""

from __future__ import annotations

import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from briefsync.config.scheduler import SchedulerConfig


@dataclass(frozen=True, slots=True)
class JobConstraints:
    """Execution preconditions enforced by the host before a job is invoked."""

    requires_network: bool = False


@dataclass(frozen=True, slots=True)
class JobHandle:
    """Serialisable view of a registered job."""

    name: str
    interval: timedelta | None
    constraints: JobConstraints
    next_run_time: datetime | None = None

    @property
    def periodic(self) -> bool:
        return self.interval is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.name,
            "periodic": self.periodic,
            "interval_seconds": self.interval.total_seconds() if self.interval else None,
            "requires_network": self.constraints.requires_network,
            "next_run_time": self.next_run_time.isoformat() if self.next_run_time else None,
        }


class JobHost(ABC):
    """Timer/wake facility that runs jobs under unique names."""

    @abstractmethod
    def schedule_unique(
        self,
        name: str,
        func: Callable[[], object],
        *,
        interval: timedelta | None = None,
        constraints: JobConstraints = JobConstraints(),
    ) -> JobHandle:
        """Register ``func`` under ``name``, replacing any job already using that name.

        With ``interval`` the job recurs; without it the job runs once, as soon
        as its constraints allow.
        """

    @abstractmethod
    def cancel(self, name: str) -> bool:
        """Remove the job registered under ``name``; return whether one existed."""

    @abstractmethod
    def get(self, name: str) -> JobHandle | None:
        """Return the handle of the job registered under ``name``."""

    @abstractmethod
    def jobs(self) -> list[JobHandle]:
        """Return all registered jobs."""

    def start(self) -> None:
        """Begin dispatching jobs."""

    def shutdown(self) -> None:
        """Stop dispatching jobs."""


def tcp_probe(host: str, port: int, timeout: float) -> Callable[[], bool]:
    """Build a connectivity check that opens (and closes) a TCP connection."""

    def _probe() -> bool:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError as exc:
            logger.debug("Network probe to {}:{} failed: {}", host, port, exc)
            return False

    return _probe


class APSchedulerJobHost(JobHost):
    """Runs jobs on an APScheduler ``BackgroundScheduler`` thread pool."""

    def __init__(
        self,
        scheduler: BackgroundScheduler,
        *,
        network_probe: Callable[[], bool] | None = None,
        constraint_retry: timedelta = timedelta(seconds=60),
    ) -> None:
        self.scheduler = scheduler
        self._network_probe = network_probe or (lambda: True)
        self._constraint_retry = constraint_retry
        self._specs: dict[str, tuple[timedelta | None, JobConstraints]] = {}

    @classmethod
    def from_config(cls, config: SchedulerConfig) -> "APSchedulerJobHost":
        probe = None
        if config.require_network:
            probe = tcp_probe(
                config.network_probe_host,
                config.network_probe_port,
                config.network_probe_timeout,
            )
        return cls(
            BackgroundScheduler(timezone=config.timezone),
            network_probe=probe,
            constraint_retry=timedelta(seconds=config.constraint_retry_seconds),
        )

    def schedule_unique(
        self,
        name: str,
        func: Callable[[], object],
        *,
        interval: timedelta | None = None,
        constraints: JobConstraints = JobConstraints(),
    ) -> JobHandle:
        runner = self._constrained(name, func, constraints, periodic=interval is not None)
        existing = self.scheduler.get_job(name)

        if interval is not None and existing is not None and self._specs.get(name) == (interval, constraints):
            # Same cadence: swap the callable but keep the current schedule.
            self.scheduler.modify_job(name, func=runner)
            logger.debug("Updated periodic job '{}' in place", name)
        else:
            if existing is not None:
                self._remove(name)
            if interval is not None:
                trigger = IntervalTrigger(seconds=interval.total_seconds(), timezone=self.scheduler.timezone)
                self.scheduler.add_job(
                    runner,
                    trigger,
                    id=name,
                    name=name,
                    replace_existing=True,
                    coalesce=True,
                    max_instances=1,
                )
            else:
                self._add_once(name, runner, datetime.now(self.scheduler.timezone))
            logger.debug("Registered job '{}' (interval={})", name, interval)

        self._specs[name] = (interval, constraints)
        if self.scheduler.running:
            self.scheduler.wakeup()
        handle = self.get(name)
        assert handle is not None
        return handle

    def cancel(self, name: str) -> bool:
        self._specs.pop(name, None)
        removed = self._remove(name)
        if removed:
            logger.info("Cancelled job '{}'", name)
        return removed

    def get(self, name: str) -> JobHandle | None:
        job = self.scheduler.get_job(name)
        if job is None:
            return None
        interval, constraints = self._specs.get(name, (None, JobConstraints()))
        return JobHandle(
            name=name,
            interval=interval,
            constraints=constraints,
            next_run_time=self._job_next_run(job),
        )

    def jobs(self) -> list[JobHandle]:
        handles = [self.get(job.id) for job in self.scheduler.get_jobs()]
        return [handle for handle in handles if handle is not None]

    def start(self) -> None:
        if self.scheduler.running:
            logger.info("Job host is already running.")
            return
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown()

    # ------------------------------------------------------------------
    def _add_once(self, name: str, runner: Callable[[], object], run_date: datetime) -> None:
        # A superseded run may still be draining on a worker thread; it cannot
        # commit, so the replacement must not be blocked by it.
        self.scheduler.add_job(
            runner,
            DateTrigger(run_date=run_date),
            id=name,
            name=name,
            replace_existing=True,
            max_instances=2,
            misfire_grace_time=None,
        )

    def _constrained(
        self,
        name: str,
        func: Callable[[], object],
        constraints: JobConstraints,
        *,
        periodic: bool,
    ) -> Callable[[], object]:
        def _runner() -> object:
            if constraints.requires_network and not self._network_probe():
                if periodic:
                    logger.info("Network unavailable; skipping this run of '{}'", name)
                    return None
                if name not in self._specs or self.scheduler.get_job(name) is not None:
                    # Cancelled or replaced meanwhile.
                    return None
                retry_at = datetime.now(self.scheduler.timezone) + self._constraint_retry
                logger.info("Network unavailable; deferring '{}' until {}", name, retry_at.isoformat())
                self._add_once(name, _runner, retry_at)
                return None
            return func()

        return _runner

    def _remove(self, name: str) -> bool:
        try:
            self.scheduler.remove_job(name)
        except JobLookupError:
            return False
        return True

    @staticmethod
    def _job_next_run(job: Any) -> datetime | None:
        try:
            return job.next_run_time
        except AttributeError:
            return None


__all__ = [
    "JobHost",
    "JobHandle",
    "JobConstraints",
    "APSchedulerJobHost",
    "tcp_probe",
]

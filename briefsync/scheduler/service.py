from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock, RLock
from time import perf_counter
from typing import Any, Callable
from uuid import uuid4

from loguru import logger

from briefsync.config import AppConfig
from briefsync.refresh import JobSignal, RefreshJob, RefreshOutcome, RefreshResult
from briefsync.store import BriefSettings

from .host import APSchedulerJobHost, JobConstraints, JobHost

ONCE_SUFFIX = ".once"


@dataclass(slots=True)
class JobMetrics:
    """Holds execution statistics for a refresh job identity."""

    job_id: str
    total_runs: int = 0
    succeeded_count: int = 0
    skipped_count: int = 0
    transient_failure_count: int = 0
    permanent_failure_count: int = 0
    superseded_count: int = 0
    error_count: int = 0
    dry_run_count: int = 0
    last_status: str | None = None
    last_error: str | None = None
    last_start_time: datetime | None = None
    last_end_time: datetime | None = None
    last_duration_seconds: float | None = None
    next_run_time: datetime | None = None


_OUTCOME_COUNTERS = {
    RefreshOutcome.SUCCEEDED: "succeeded_count",
    RefreshOutcome.SKIPPED: "skipped_count",
    RefreshOutcome.FAILED_TRANSIENT: "transient_failure_count",
    RefreshOutcome.FAILED_PERMANENT: "permanent_failure_count",
    RefreshOutcome.SUPERSEDED: "superseded_count",
}


class SchedulerMetricsRegistry:
    """Thread-safe metrics collector for refresh jobs."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._metrics: dict[str, JobMetrics] = {}

    def ensure_job(self, job_id: str) -> JobMetrics:
        with self._lock:
            metrics = self._metrics.get(job_id)
            if metrics is None:
                metrics = JobMetrics(job_id=job_id)
                self._metrics[job_id] = metrics
            return metrics

    def record_start(self, job_id: str, start_time: datetime) -> None:
        self.ensure_job(job_id)
        with self._lock:
            metrics = self._metrics[job_id]
            metrics.last_start_time = start_time
            metrics.last_status = "running"

    def record_result(
        self,
        job_id: str,
        result: RefreshResult,
        start_time: datetime,
        end_time: datetime,
        duration_seconds: float,
    ) -> None:
        self.ensure_job(job_id)
        with self._lock:
            metrics = self._metrics[job_id]
            metrics.total_runs += 1
            counter = _OUTCOME_COUNTERS[result.outcome]
            setattr(metrics, counter, getattr(metrics, counter) + 1)
            metrics.last_status = result.outcome.value
            metrics.last_error = None if result.outcome is RefreshOutcome.SUCCEEDED else (result.detail or None)
            metrics.last_start_time = start_time
            metrics.last_end_time = end_time
            metrics.last_duration_seconds = duration_seconds

    def record_error(
        self,
        job_id: str,
        start_time: datetime,
        end_time: datetime,
        duration_seconds: float,
        error: str,
    ) -> None:
        self.ensure_job(job_id)
        with self._lock:
            metrics = self._metrics[job_id]
            metrics.total_runs += 1
            metrics.error_count += 1
            metrics.last_status = "error"
            metrics.last_error = error
            metrics.last_start_time = start_time
            metrics.last_end_time = end_time
            metrics.last_duration_seconds = duration_seconds

    def record_dry_run(self, job_id: str, timestamp: datetime) -> None:
        self.ensure_job(job_id)
        with self._lock:
            metrics = self._metrics[job_id]
            metrics.total_runs += 1
            metrics.dry_run_count += 1
            metrics.last_status = "dry_run"
            metrics.last_start_time = timestamp
            metrics.last_end_time = timestamp
            metrics.last_duration_seconds = 0.0

    def set_next_run(self, job_id: str, next_run: datetime | None) -> None:
        self.ensure_job(job_id)
        with self._lock:
            self._metrics[job_id].next_run_time = next_run

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {job_id: asdict(metrics) for job_id, metrics in self._metrics.items()}

    def export_prometheus(self) -> str:
        with self._lock:
            metrics_values = [JobMetrics(**asdict(metrics)) for metrics in self._metrics.values()]

        lines: list[str] = []
        lines.append("# HELP refresh_job_runs_total Total number of refresh job executions.")
        lines.append("# TYPE refresh_job_runs_total counter")
        for metrics in metrics_values:
            lines.append(f'refresh_job_runs_total{{job_id="{metrics.job_id}"}} {metrics.total_runs}')

        lines.append("# HELP refresh_job_outcomes_total Refresh job executions by outcome.")
        lines.append("# TYPE refresh_job_outcomes_total counter")
        for metrics in metrics_values:
            for outcome, counter in _OUTCOME_COUNTERS.items():
                labels = f'job_id="{metrics.job_id}",outcome="{outcome.value}"'
                lines.append(f"refresh_job_outcomes_total{{{labels}}} {getattr(metrics, counter)}")

        lines.append("# HELP refresh_job_errors_total Refresh job executions that raised an exception.")
        lines.append("# TYPE refresh_job_errors_total counter")
        for metrics in metrics_values:
            lines.append(f'refresh_job_errors_total{{job_id="{metrics.job_id}"}} {metrics.error_count}')

        lines.append("# HELP refresh_job_dry_run_total Number of dry-run refresh job simulations.")
        lines.append("# TYPE refresh_job_dry_run_total counter")
        for metrics in metrics_values:
            lines.append(f'refresh_job_dry_run_total{{job_id="{metrics.job_id}"}} {metrics.dry_run_count}')

        lines.append("# HELP refresh_job_last_duration_seconds Duration of the last job execution in seconds.")
        lines.append("# TYPE refresh_job_last_duration_seconds gauge")
        for metrics in metrics_values:
            if metrics.last_duration_seconds is None:
                continue
            lines.append(
                f'refresh_job_last_duration_seconds{{job_id="{metrics.job_id}"}} {metrics.last_duration_seconds}'
            )

        lines.append("# HELP refresh_job_last_end_timestamp_seconds End timestamp of the last job execution (epoch seconds).")
        lines.append("# TYPE refresh_job_last_end_timestamp_seconds gauge")
        for metrics in metrics_values:
            if metrics.last_end_time is None:
                continue
            lines.append(
                f'refresh_job_last_end_timestamp_seconds{{job_id="{metrics.job_id}"}} {metrics.last_end_time.timestamp()}'
            )

        return "\n".join(lines) + "\n"


class _GenerationToken:
    """Ties a run to the scheduling generation it was submitted under."""

    def __init__(self, service: "SchedulerService", generation: int) -> None:
        self._service = service
        self._generation = generation

    def is_current(self) -> bool:
        return self._service.is_current(self._generation)

    def commit(self, action: Callable[[], object]) -> bool:
        return self._service.commit_if_current(self._generation, action)


class SchedulerService:
    """Keeps the periodic and one-shot refresh jobs in line with the settings."""

    def __init__(
        self,
        config: AppConfig,
        job: RefreshJob,
        *,
        host: JobHost | None = None,
        dry_run: bool = False,
        log_dir: Path | None = Path("logs"),
    ):
        self.config = config
        self.job = job
        self.dry_run = dry_run
        self.host = host or APSchedulerJobHost.from_config(config.scheduler)
        self.metrics = SchedulerMetricsRegistry()
        self._lock = RLock()
        self._generation = 0
        self._file_sink_id: int | None = None
        if log_dir is not None:
            self._setup_logging_sink(log_dir)

    @property
    def periodic_name(self) -> str:
        return self.config.scheduler.job_name

    @property
    def once_name(self) -> str:
        return f"{self.config.scheduler.job_name}{ONCE_SUFFIX}"

    @property
    def constraints(self) -> JobConstraints:
        return JobConstraints(requires_network=self.config.scheduler.require_network)

    def _setup_logging_sink(self, log_dir: Path) -> None:
        """Ensure scheduler logs are persisted to a rotating file sink."""

        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            sink_path = log_dir / "scheduler.log"
            self._file_sink_id = logger.add(
                sink_path,
                rotation="5 MB",
                retention=5,
                enqueue=True,
                serialize=True,
                level="INFO",
            )
        except Exception as exc:  # pragma: no cover - filesystem issues are environment-specific
            logger.warning("Failed to initialise scheduler file log sink: {}", exc)
            self._file_sink_id = None

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def commit_if_current(self, generation: int, action: Callable[[], object]) -> bool:
        """Run ``action`` only if ``generation`` has not been superseded meanwhile."""
        with self._lock:
            if generation != self._generation:
                return False
            action()
            return True

    def reconcile(self, settings: BriefSettings) -> None:
        """Bring registered jobs in line with ``settings``.

        Every call starts a new generation, so runs submitted earlier can no
        longer commit their results.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation

            if not self.config.scheduler.enabled:
                logger.warning("Scheduler is disabled in the configuration. No jobs will be scheduled.")
                self._cancel_all()
                return
            if not settings.runnable:
                logger.info(
                    "Background refresh inactive (enabled={}, api_base={!r}); cancelling jobs",
                    settings.enabled,
                    settings.api_base,
                )
                self._cancel_all()
                return

            logger.info("Registering job '{}' every {} minutes", self.periodic_name, self.config.scheduler.interval_minutes)
            self._register_periodic(generation)
            self._enqueue_once(generation)

        if self.dry_run:
            logger.info("[Dry Run] Jobs have been validated and registered. Scheduler will not be started.")
            for job in self.host.jobs():
                logger.info("[Dry Run] Job '{}' (periodic={})", job.name, job.periodic)
                self.metrics.record_dry_run(job.name, datetime.now(timezone.utc))

    def trigger_now(self) -> bool:
        """Enqueue an immediate one-shot run that replaces any pending or running one.

        Starts a new generation so an older one-shot still fetching cannot
        commit after its replacement; the periodic runner is carried over to
        the new generation with its schedule unchanged.
        """
        with self._lock:
            if self.host.get(self.periodic_name) is None:
                return False
            self._generation += 1
            generation = self._generation
            logger.info("Manually triggering job '{}'", self.once_name)
            self._register_periodic(generation)
            self._enqueue_once(generation)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._cancel_all()

    def start(self) -> None:
        """Starts the job host if not in dry run mode."""
        if self.dry_run:
            logger.info("[Dry Run] Scheduler start is skipped.")
            return
        logger.info("Starting scheduler...")
        self.host.start()

    def list_jobs(self) -> list[dict[str, Any]]:
        """Return current scheduled jobs in serialisable form."""
        return [handle.to_dict() for handle in self.host.jobs()]

    def get_metrics_snapshot(self) -> dict[str, dict[str, Any]]:
        """Return a serialisable snapshot of the current metrics."""

        return self.metrics.snapshot()

    def export_metrics(self) -> str:
        """Return Prometheus-formatted metrics."""

        return self.metrics.export_prometheus()

    def shutdown(self) -> None:
        """Shuts down the scheduler gracefully."""
        logger.info("Shutting down scheduler...")
        self.host.shutdown()
        logger.info("Scheduler has been shut down.")

        if self._file_sink_id is not None:
            logger.remove(self._file_sink_id)
            self._file_sink_id = None

    # ------------------------------------------------------------------
    def _register_periodic(self, generation: int) -> None:
        handle = self.host.schedule_unique(
            self.periodic_name,
            self._build_job_runner(self.periodic_name, generation),
            interval=timedelta(minutes=self.config.scheduler.interval_minutes),
            constraints=self.constraints,
        )
        self.metrics.ensure_job(self.periodic_name)
        self.metrics.set_next_run(self.periodic_name, handle.next_run_time)

    def _enqueue_once(self, generation: int) -> None:
        self.host.schedule_unique(
            self.once_name,
            self._build_job_runner(self.once_name, generation),
            constraints=self.constraints,
        )
        self.metrics.ensure_job(self.once_name)

    def _cancel_all(self) -> None:
        for name in (self.periodic_name, self.once_name):
            self.host.cancel(name)
            self.metrics.set_next_run(name, None)

    def _build_job_runner(self, job_id: str, generation: int) -> Callable[[], RefreshResult | None]:
        def _runner() -> RefreshResult | None:
            return self._execute_job(job_id, generation)

        return _runner

    def _execute_job(self, job_id: str, generation: int) -> RefreshResult | None:
        run_id = uuid4().hex
        bound_logger = logger.bind(job_id=job_id, run_id=run_id, generation=generation)
        start_time = datetime.now(timezone.utc)
        self.metrics.record_start(job_id, start_time)

        bound_logger.info("Job execution started", dry_run=self.dry_run)

        if self.dry_run:
            bound_logger.info("Dry-run mode active; skipping execution")
            self.metrics.record_dry_run(job_id, start_time)
            return None

        timer_start = perf_counter()
        try:
            result = self.job.run(_GenerationToken(self, generation))
        except Exception as exc:
            duration = perf_counter() - timer_start
            error_message = str(exc)
            self.metrics.record_error(job_id, start_time, datetime.now(timezone.utc), duration, error_message)
            bound_logger.error("Job execution failed", duration_seconds=duration, error=error_message)
            raise

        duration = perf_counter() - timer_start
        self.metrics.record_result(job_id, result, start_time, datetime.now(timezone.utc), duration)
        handle = self.host.get(job_id)
        self.metrics.set_next_run(job_id, handle.next_run_time if handle else None)
        bound_logger.info(
            "Job execution finished",
            status=result.outcome.value,
            signal=result.signal.value,
            duration_seconds=duration,
        )
        if result.signal is JobSignal.RETRY:
            bound_logger.info("Transient failure; the next periodic run retries the fetch")
        return result

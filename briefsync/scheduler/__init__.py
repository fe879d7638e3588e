"""Scheduling of the background refresh jobs."""

from .host import APSchedulerJobHost, JobConstraints, JobHandle, JobHost, tcp_probe
from .service import ONCE_SUFFIX, JobMetrics, SchedulerMetricsRegistry, SchedulerService

__all__ = [
    "SchedulerService",
    "SchedulerMetricsRegistry",
    "JobMetrics",
    "ONCE_SUFFIX",
    "JobHost",
    "JobHandle",
    "JobConstraints",
    "APSchedulerJobHost",
    "tcp_probe",
]

"""Brief refresh job."""

from .job import (
    JobSignal,
    RefreshJob,
    RefreshOutcome,
    RefreshResult,
    RunToken,
    classify_status,
    today_in,
)

__all__ = [
    "RefreshJob",
    "RefreshOutcome",
    "RefreshResult",
    "JobSignal",
    "RunToken",
    "classify_status",
    "today_in",
]

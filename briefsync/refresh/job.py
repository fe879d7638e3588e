"""A single brief refresh run: validate settings, fetch once, commit, classify."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Protocol
from zoneinfo import ZoneInfo

from loguru import logger

from briefsync.fetch import BriefFetchClient, FetchHttpError, FetchSuccess
from briefsync.store import CacheStore


class RefreshOutcome(str, Enum):
    """Terminal state of a refresh run."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED_TRANSIENT = "failed_transient"
    FAILED_PERMANENT = "failed_permanent"
    SUPERSEDED = "superseded"


class JobSignal(str, Enum):
    """What the job host is told after a run."""

    SUCCESS = "success"
    RETRY = "retry"


@dataclass(frozen=True, slots=True)
class RefreshResult:
    outcome: RefreshOutcome
    detail: str = ""
    status_code: int | None = None

    @property
    def signal(self) -> JobSignal:
        if self.outcome is RefreshOutcome.FAILED_TRANSIENT:
            return JobSignal.RETRY
        return JobSignal.SUCCESS


class RunToken(Protocol):
    """Lets the scheduler veto a run that has been superseded or cancelled."""

    def is_current(self) -> bool:
        ...

    def commit(self, action: Callable[[], object]) -> bool:
        """Run ``action`` atomically with the currency check; return ``False`` if stale."""
        ...


class _UnguardedToken:
    def is_current(self) -> bool:
        return True

    def commit(self, action: Callable[[], object]) -> bool:
        action()
        return True


def today_in(timezone: str) -> Callable[[], date]:
    """Return a callable producing the current date in ``timezone``."""
    tz = ZoneInfo(timezone)
    return lambda: datetime.now(tz).date()


def classify_status(status_code: int) -> RefreshOutcome:
    """Map an HTTP status code to the outcome it produces."""
    if 200 <= status_code <= 299:
        return RefreshOutcome.SUCCEEDED
    if 500 <= status_code <= 599:
        return RefreshOutcome.FAILED_TRANSIENT
    return RefreshOutcome.FAILED_PERMANENT


class RefreshJob:
    """Performs one refresh attempt against the configured endpoint."""

    def __init__(
        self,
        store: CacheStore,
        client: BriefFetchClient,
        *,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self._today = today or date.today

    def run(self, token: RunToken | None = None) -> RefreshResult:
        token = token or _UnguardedToken()

        settings = self.store.load_settings()
        if not settings.enabled:
            logger.info("Refresh skipped: background refresh is disabled")
            return RefreshResult(RefreshOutcome.SKIPPED, detail="disabled")
        if not settings.api_base:
            logger.info("Refresh skipped: no API base configured")
            return RefreshResult(RefreshOutcome.SKIPPED, detail="no_api_base")

        if not token.is_current():
            logger.info("Refresh superseded before fetching; nothing to do")
            return RefreshResult(RefreshOutcome.SUPERSEDED)

        fetched = self.client.fetch(settings.api_base, self._today())

        if isinstance(fetched, FetchSuccess):
            body = fetched.body
            result = RefreshResult(RefreshOutcome.SUCCEEDED, status_code=fetched.status_code)
            committed = token.commit(lambda: self.store.record_success(body))
        elif isinstance(fetched, FetchHttpError):
            error = f"http_{fetched.status_code}"
            result = RefreshResult(
                classify_status(fetched.status_code),
                detail=error,
                status_code=fetched.status_code,
            )
            committed = token.commit(lambda: self.store.record_failure(error))
        else:
            error = fetched.description
            result = RefreshResult(RefreshOutcome.FAILED_TRANSIENT, detail=error)
            committed = token.commit(lambda: self.store.record_failure(error))

        if not committed:
            logger.info("Discarding {} result from superseded refresh run", result.outcome.value)
            return RefreshResult(RefreshOutcome.SUPERSEDED, detail=result.outcome.value)

        logger.info("Refresh finished: outcome={} detail={!r}", result.outcome.value, result.detail)
        return result


__all__ = [
    "RefreshJob",
    "RefreshOutcome",
    "RefreshResult",
    "JobSignal",
    "RunToken",
    "classify_status",
    "today_in",
]

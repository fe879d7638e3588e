"""HTTP client for the daily brief endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Union

import requests
from loguru import logger

from briefsync.config.fetch import FetchConfig


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    """2xx response whose body was read completely."""

    body: str
    status_code: int = 200


@dataclass(frozen=True, slots=True)
class FetchHttpError:
    """Response with a status code outside the 2xx range."""

    status_code: int

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code <= 599


@dataclass(frozen=True, slots=True)
class FetchTransportError:
    """The request never produced a usable response (timeout, DNS, reset, ...)."""

    cause: Exception

    @property
    def description(self) -> str:
        message = str(self.cause)
        return message if message else type(self.cause).__name__


FetchResult = Union[FetchSuccess, FetchHttpError, FetchTransportError]


class BriefFetchClient:
    """Issues a single bounded-timeout GET for the brief of a given day."""

    def __init__(self, config: FetchConfig | None = None, session: requests.Session | None = None):
        self.config = config or FetchConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

    def build_request(self, api_base: str, day: date) -> tuple[str, dict[str, str]]:
        """Return the endpoint URL and query parameters for ``day``."""
        url = f"{api_base}{self.config.endpoint_path}"
        params = {
            "date": day.isoformat(),
            "mode": self.config.mode,
            "level": self.config.level,
            "itemCount": str(self.config.item_count),
        }
        return url, params

    def fetch(self, api_base: str, day: date) -> FetchResult:
        """Fetch the brief; never raises for network or HTTP failures."""
        url, params = self.build_request(api_base, day)
        timeout = (self.config.connect_timeout, self.config.read_timeout)
        logger.debug("GET {} params={}", url, params)

        try:
            with self.session.get(url, params=params, timeout=timeout, stream=True) as response:
                status = response.status_code
                if not 200 <= status <= 299:
                    logger.warning("Brief request returned HTTP {}", status)
                    return FetchHttpError(status_code=status)
                body = response.content.decode("utf-8", errors="replace")
        except requests.RequestException as exc:
            logger.warning("Brief request failed: {}", exc)
            return FetchTransportError(cause=exc)

        logger.info("Fetched brief for {} ({} bytes)", params["date"], len(body))
        return FetchSuccess(body=body, status_code=status)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "BriefFetchClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = [
    "BriefFetchClient",
    "FetchResult",
    "FetchSuccess",
    "FetchHttpError",
    "FetchTransportError",
]

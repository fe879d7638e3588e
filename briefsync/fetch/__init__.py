"""Brief fetching utilities."""

from .client import (
    BriefFetchClient,
    FetchHttpError,
    FetchResult,
    FetchSuccess,
    FetchTransportError,
)

__all__ = [
    "BriefFetchClient",
    "FetchResult",
    "FetchSuccess",
    "FetchHttpError",
    "FetchTransportError",
]

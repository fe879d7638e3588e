"""Records persisted in the cache store."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_TRAILING_SLASHES = re.compile(r"/+$")


def normalize_api_base(value: Any) -> str:
    """Trim whitespace and trailing slashes; anything that is not a string becomes ``""``."""

    if not isinstance(value, str):
        return ""
    return _TRAILING_SLASHES.sub("", value.strip())


@dataclass(frozen=True, slots=True)
class BriefSettings:
    """Foreground-controlled refresh configuration."""

    api_base: str = ""
    enabled: bool = True

    @classmethod
    def from_input(cls, api_base: Any = "", enabled: Any = True) -> "BriefSettings":
        """Build settings from raw input; anything but a real boolean counts as enabled."""
        return cls(
            api_base=normalize_api_base(api_base),
            enabled=enabled if isinstance(enabled, bool) else True,
        )

    @property
    def runnable(self) -> bool:
        """Whether a refresh job is allowed to run under this configuration."""
        return self.enabled and bool(self.api_base)


@dataclass(frozen=True, slots=True)
class CachedBrief:
    """Last known good brief document plus the outcome of the latest attempt."""

    raw_body: str = ""
    fetched_at_ms: int = 0
    last_error: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "json": self.raw_body,
            "cachedAtMs": self.fetched_at_ms,
            "lastError": self.last_error,
        }


__all__ = ["BriefSettings", "CachedBrief", "normalize_api_base"]

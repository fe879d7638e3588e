"""Cache store configuration models."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator

from briefsync.config.base import BaseConfig


class StoreConfig(BaseConfig):
    """Where configuration and the last fetched brief are persisted."""

    backend: Literal["sqlite", "memory"] = Field(
        "sqlite",
        description="Storage backend; 'memory' keeps nothing across restarts",
    )
    path: Path | None = Field(
        Path("./data/briefsync.sqlite3"),
        description="SQLite database file used by the 'sqlite' backend",
    )
    namespace: str = Field(
        "vcbrief.bg",
        description="Store identity all keys are namespaced under",
        min_length=1,
    )

    @model_validator(mode="after")
    def _validate_backend(self) -> "StoreConfig":
        if self.backend == "sqlite" and self.path is None:
            raise ValueError("SQLite store requires 'path'.")
        return self


__all__ = ["StoreConfig"]

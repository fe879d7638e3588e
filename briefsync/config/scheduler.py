"""Scheduler configuration models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from briefsync.config.base import BaseConfig


class SchedulerConfig(BaseConfig):
    """Settings for the background refresh scheduler."""

    enabled: bool = Field(True, description="Whether the scheduler is active")
    timezone: str = Field("UTC", description="Timezone used by the scheduler and for the brief date")
    job_name: str = Field(
        "vcbrief.brief_refresh",
        description="Unique name of the periodic refresh job; the one-shot job uses '<name>.once'",
        min_length=1,
    )
    interval_minutes: int = Field(
        30,
        ge=1,
        description="Periodic refresh interval in minutes",
        validation_alias=AliasChoices("interval_minutes", "interval"),
    )

    # Network constraint
    require_network: bool = Field(True, description="Only run refresh jobs when the network is reachable")
    network_probe_host: str = Field("1.1.1.1", description="Host used for the connectivity probe")
    network_probe_port: int = Field(53, ge=1, le=65535, description="TCP port used for the connectivity probe")
    network_probe_timeout: float = Field(3.0, gt=0, description="Connectivity probe timeout (seconds)")
    constraint_retry_seconds: int = Field(
        60,
        ge=1,
        description="Delay before a one-shot job blocked by the network constraint is retried",
    )


__all__ = ["SchedulerConfig"]

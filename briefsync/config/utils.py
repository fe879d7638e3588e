"""Helper utilities for configuration handling."""

from __future__ import annotations

import os

ENV_PREFIX = "env:"


class MissingEnvironmentError(EnvironmentError):
    """Raised when an ``env:`` reference points at an unset variable."""


def is_env_reference(value: str | None) -> bool:
    return bool(value) and value.startswith(ENV_PREFIX)  # type: ignore[union-attr]


def resolve_env_reference(value: str | None, *, required: bool = True) -> str | None:
    """Expand ``"env:VAR_NAME"`` to the value of ``VAR_NAME``.

    Plain strings and ``None`` pass through unchanged. A missing or empty
    variable raises :class:`MissingEnvironmentError` when ``required`` is set,
    otherwise ``None`` is returned.
    """

    if value is None or not is_env_reference(value):
        return value

    var_name = value[len(ENV_PREFIX):]
    resolved = os.getenv(var_name)
    if resolved:
        return resolved
    if required:
        raise MissingEnvironmentError(f"Environment variable '{var_name}' is not set or empty")
    return None


__all__ = ["ENV_PREFIX", "MissingEnvironmentError", "is_env_reference", "resolve_env_reference"]

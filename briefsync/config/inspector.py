"""Validate configuration files and describe the available fields."""

from __future__ import annotations

from pathlib import Path
from types import UnionType
from typing import Any, Iterator, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError
from pydantic.fields import FieldInfo

from .app import AppConfig
from .base import load_config


class ConfigInspectionError(RuntimeError):
    """Raised when configuration inspection fails unexpectedly."""


# Exception type -> (error type, exit code); checked in order.
_FAILURES: tuple[tuple[type[Exception], str, int], ...] = (
    (FileNotFoundError, "missing_file", 2),
    (ValidationError, "validation_error", 3),
    (PermissionError, "permission_error", 2),
    (ValueError, "invalid_format", 1),
)


def check_config(path: Path, *, config_cls: type[AppConfig] = AppConfig) -> tuple[dict[str, Any], int, AppConfig | None]:
    """Validate the configuration file and collect warnings.

    Returns ``(result_dict, exit_code, config_or_None)``; ``exit_code`` is 0
    when the file loaded cleanly.
    """

    try:
        config = load_config(config_cls, path)
    except Exception as exc:
        for exc_type, error_type, exit_code in _FAILURES:
            if isinstance(exc, exc_type):
                return _error_result(path, error_type, exc), exit_code, None
        raise ConfigInspectionError("Unexpected configuration inspection error") from exc

    return {"status": "ok", "config_path": str(path), "warnings": _collect_warnings(config)}, 0, config


def explain_config(*, config_cls: type[BaseModel] = AppConfig) -> list[dict[str, Any]]:
    """Flatten the configuration schema into one entry per field."""

    return list(_walk_fields(config_cls, prefix=""))


def _error_result(path: Path, error_type: str, exc: Exception) -> dict[str, Any]:
    error: dict[str, Any] = {"type": error_type, "message": str(exc)}
    if isinstance(exc, ValidationError):
        error["message"] = "Configuration validation failed"
        error["details"] = [
            {
                "loc": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
    return {"status": "error", "config_path": str(path), "error": error}


def _collect_warnings(config: AppConfig) -> list[str]:
    warnings: list[str] = []

    if not config.scheduler.enabled:
        warnings.append("Scheduler is disabled; the brief will only refresh via 'briefsync refresh'")
    if config.store.backend == "memory":
        warnings.append("Memory store selected; settings and cached brief are lost on restart")
    if config.fetch.read_timeout < config.fetch.connect_timeout:
        warnings.append("'fetch.read_timeout' is shorter than 'fetch.connect_timeout'")
    if not config.scheduler.require_network:
        warnings.append("Network constraint disabled; refresh jobs run even when offline")

    return warnings


def _walk_fields(model_cls: type[BaseModel], *, prefix: str) -> Iterator[dict[str, Any]]:
    for field_name, field in model_cls.model_fields.items():
        name = f"{prefix}{field_name}"
        yield {
            "name": name,
            "type": _describe_type(field.annotation),
            "required": field.is_required(),
            "default": _describe_default(field),
            "description": field.description or "",
        }
        for nested in _nested_models(field.annotation):
            yield from _walk_fields(nested, prefix=f"{name}.")


def _nested_models(annotation: Any) -> list[type[BaseModel]]:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return [annotation]
    if get_origin(annotation) in {Union, UnionType}:
        return [arg for arg in get_args(annotation) if isinstance(arg, type) and issubclass(arg, BaseModel)]
    return []


def _describe_type(annotation: Any) -> str:
    origin = get_origin(annotation)
    if origin is None:
        return annotation.__name__ if isinstance(annotation, type) else repr(annotation).replace("typing.", "")

    args = get_args(annotation)
    if origin in {Union, UnionType}:
        non_none = [arg for arg in args if arg is not type(None)]  # noqa: E721
        if len(non_none) == 1:
            return f"Optional[{_describe_type(non_none[0])}]"
        return " | ".join(_describe_type(arg) for arg in args)

    origin_name = getattr(origin, "__name__", repr(origin).replace("typing.", ""))
    return f"{origin_name}[{', '.join(_describe_type(arg) for arg in args)}]"


def _describe_default(field: FieldInfo) -> Any:
    if field.is_required():
        return None
    value = field.default_factory() if field.default_factory is not None else field.default  # type: ignore[call-arg]
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


__all__ = ["check_config", "explain_config", "ConfigInspectionError"]

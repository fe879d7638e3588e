"""Command line interface for the brief background refresh."""

from __future__ import annotations

import json
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import typer
import uvicorn
from loguru import logger

from .config import AppConfig, load_config
from .config.inspector import check_config, explain_config
from .refresh import JobSignal
from .runtime import BriefRuntime, build_runtime
from .web import create_app


@dataclass(slots=True)
class CLIState:
    """Holds shared state between Typer commands."""

    config_path: Path
    _config: AppConfig | None = None

    def ensure_config(self) -> AppConfig:
        if self._config is None:
            if not self.config_path.exists() and self.config_path == _default_config_path():
                logger.warning("Default configuration {} not found; using built-in defaults", self.config_path)
                self._config = AppConfig()
            else:
                logger.info("Loading configuration from {}", self.config_path)
                self._config = load_config(AppConfig, self.config_path)
        return self._config

    @property
    def base_path(self) -> Path:
        return self.config_path.parent

    def build_runtime(self, *, dry_run: bool = False, persist_logs: bool = False) -> BriefRuntime:
        return build_runtime(
            self.ensure_config(),
            base_path=self.base_path,
            dry_run=dry_run,
            log_dir=self.base_path / "logs" if persist_logs else None,
        )


app = typer.Typer(help="Background refresh of the daily brief")
config_app = typer.Typer(help="Validate and document configuration files")
app.add_typer(config_app, name="config")


def _default_config_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    return (repo_root / "config" / "example.toml").resolve()


def _normalize_format(value: str) -> str:
    return value.lower()


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover - defensive guard
        raise RuntimeError("CLI context is not initialised")
    return state


def _exit(code: int) -> None:
    raise typer.Exit(code)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(
        _default_config_path(),
        help="Path to the TOML configuration file",
    ),
) -> None:
    """Initialise CLI state."""

    ctx.obj = CLIState(config_path=config.resolve())

    if ctx.invoked_subcommand is None:
        logger.warning("No command provided. Try 'status' or 'serve --dry-run'.")
        _exit(0)


@app.command(help="Persist background refresh settings")
def configure(
    ctx: typer.Context,
    api_base: str = typer.Option("", "--api-base", help="Base URL of the brief API (empty disables refresh)"),
    enabled: bool = typer.Option(True, "--enabled/--disabled", help="Whether background refresh is on"),
) -> None:
    state = _get_state(ctx)
    runtime = state.build_runtime()
    try:
        result = runtime.gateway.configure(api_base, enabled)
        settings = runtime.gateway.current_settings()
    finally:
        runtime.close()

    logger.info("Settings saved: api_base={!r}, enabled={}", settings.api_base, settings.enabled)
    logger.info("A running 'briefsync serve' applies them on restart or via POST /configure.")
    _print_json(result)


@app.command(help="Print the cached brief and its status")
def cache(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    runtime = state.build_runtime()
    try:
        payload = runtime.gateway.get_cache()
    finally:
        runtime.close()
    _print_json(payload)


@app.command(help="Run one refresh attempt now, in the foreground")
def refresh(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    runtime = state.build_runtime()
    try:
        result = runtime.job.run()
    finally:
        runtime.close()

    _print_json(
        {
            "outcome": result.outcome.value,
            "signal": result.signal.value,
            "detail": result.detail,
            "status_code": result.status_code,
        }
    )
    if result.signal is JobSignal.RETRY:
        _exit(1)


@app.command(help="Show configuration, settings and cache status")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    runtime = state.build_runtime(dry_run=True)
    try:
        settings = runtime.gateway.current_settings()
        cached = runtime.store.load_cache()
    finally:
        runtime.close()
    _report_system_status(config, settings=settings, cached=cached)


@app.command(help="Run the scheduler and API server")
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Host to bind the API server to"),
    port: int = typer.Option(8000, help="Port to bind the API server to"),
    dry_run: bool = typer.Option(
        False,
        help="Set up the scheduler and report status without running the server",
    ),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()

    if not dry_run:
        logger.remove()
        logger.add(sys.stderr, level=config.logging_level)

    runtime = state.build_runtime(dry_run=dry_run, persist_logs=True)
    logger.info("Setting up scheduled jobs...")
    runtime.gateway.restore()

    if dry_run:
        logger.info("[Dry Run] Server will not be started.")
        runtime.close()
        return

    if config.web is not None and not config.web.enabled:
        logger.info("HTTP API disabled; running the scheduler only (Ctrl+C to stop)")
        runtime.scheduler.start()
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            pass
        finally:
            runtime.close()
        return

    app_instance = create_app(runtime.gateway, runtime.scheduler, config)

    @app_instance.on_event("startup")
    async def startup_event() -> None:
        logger.info("Application startup...")
        runtime.scheduler.start()

    @app_instance.on_event("shutdown")
    async def shutdown_event() -> None:
        logger.info("Application shutdown...")
        runtime.close()

    uvicorn.run(app_instance, host=host, port=port)


@config_app.command(help="Validate the configuration file")
def check(
    ctx: typer.Context,
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for validation results",
        callback=_normalize_format,
    ),
) -> None:
    state = _get_state(ctx)
    result, exit_code, _ = check_config(state.config_path)

    if format == "json":
        _print_json(result)
        _exit(exit_code)

    if result["status"] == "ok":
        logger.info("Configuration OK: {}", result["config_path"])
        for warning in result["warnings"]:
            logger.warning(warning)
    else:
        error: dict[str, Any] = result["error"]
        logger.error(
            "Configuration error ({}) for {}: {}",
            error["type"],
            result["config_path"],
            error["message"],
        )
        for detail in error.get("details", []):
            location = detail["loc"] or "<root>"
            logger.error("  - {}: {} ({})", location, detail["message"], detail["type"])

    _exit(exit_code)


@config_app.command(help="Describe available configuration fields")
def explain(
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for configuration schema",
        callback=_normalize_format,
    ),
) -> None:
    fields = explain_config()

    if format == "json":
        _print_json({"fields": fields})
        return

    logger.info("Configuration schema ({} fields):", len(fields))
    for field in fields:
        default_value = field["default"]
        if isinstance(default_value, (dict, list)):
            default_repr = json.dumps(default_value, ensure_ascii=False, default=str)
        else:
            default_repr = str(default_value)
        logger.info(
            "  - {name}: type={type}, required={required}, default={default}, description={description}",
            name=field["name"],
            type=field["type"],
            required="yes" if field["required"] else "no",
            default=default_repr,
            description=field["description"] or "(no description)",
        )


def _format_epoch_ms(value: int) -> str:
    if not value:
        return "never"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()


def _report_system_status(config: AppConfig, *, settings: Any, cached: Any) -> None:
    """Print configuration, persisted settings and cache status."""
    logger.info("=== General Configuration ===")
    logger.info("Logging level: {}", config.logging_level)
    logger.info("Store: {} (namespace={})", config.store.backend, config.store.namespace)
    if config.store.backend == "sqlite":
        logger.info("Store path: {}", config.store.path)

    logger.info("\n=== Scheduler Configuration ===")
    sched = config.scheduler
    logger.info("Enabled: {}", sched.enabled)
    logger.info("Timezone: {}", sched.timezone)
    logger.info("Periodic job: {} every {} minutes", sched.job_name, sched.interval_minutes)
    logger.info("Requires network: {}", sched.require_network)

    logger.info("\n=== Fetch Configuration ===")
    fetch = config.fetch
    logger.info("Endpoint path: {}", fetch.endpoint_path)
    logger.info("Query: mode={}, level={}, itemCount={}", fetch.mode, fetch.level, fetch.item_count)
    logger.info("Timeouts: connect={}s, read={}s", fetch.connect_timeout, fetch.read_timeout)

    logger.info("\n=== Background Refresh Settings ===")
    logger.info("API base: {}", settings.api_base or "(not set)")
    logger.info("Enabled: {}", settings.enabled)
    logger.info("Active: {}", settings.runnable)

    logger.info("\n=== Cached Brief ===")
    logger.info("Cached at: {}", _format_epoch_ms(cached.fetched_at_ms))
    logger.info("Body size: {} chars", len(cached.raw_body))
    logger.info("Last error: {}", cached.last_error or "(none)")


def main(argv: list[str] | None = None) -> int:
    """Entry point compatible with setuptools console scripts."""

    try:
        result = app(args=argv, standalone_mode=False)
    except typer.Exit as exc:  # pragma: no cover - Typer translates exit codes
        return exc.exit_code
    if isinstance(result, int):
        return result
    return 0

if __name__ == "__main__":
    raise SystemExit(main())

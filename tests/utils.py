"""Shared helpers for CLI tests."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path

from loguru import logger


@contextmanager
def logger_to_stderr(level: str = "INFO"):
    """Temporarily route Loguru output to stderr for assertion."""

    handler_id = logger.add(sys.stderr, level=level)
    try:
        yield
    finally:
        logger.remove(handler_id)


def write_config(base_dir: Path, *, scheduler_enabled: bool = True, extra: str = "") -> Path:
    """Write a minimal TOML config that stores everything under ``base_dir``."""

    config_file = base_dir / "config.toml"
    config_file.write_text(
        f"""
logging_level = "INFO"

[store]
backend = "sqlite"
path = "data/store.sqlite3"

[scheduler]
enabled = {str(scheduler_enabled).lower()}
timezone = "UTC"
require_network = false
{extra}
""",
        encoding="utf-8",
    )
    return config_file

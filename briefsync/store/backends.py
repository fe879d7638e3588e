"""Durable key-value backends for the cache store."""

from __future__ import annotations

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

from loguru import logger

from briefsync.config.store import StoreConfig

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (namespace, key)
);
"""


class StoreError(RuntimeError):
    """Raised when the underlying storage engine fails."""


class KeyValueStore(ABC):
    """Abstract namespaced key-value store with atomic multi-key commits."""

    namespace: str

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""

    @abstractmethod
    def get_many(self, defaults: Mapping[str, Any]) -> dict[str, Any]:
        """Read every key in ``defaults`` as one consistent snapshot."""

    @abstractmethod
    def put_all(self, values: Mapping[str, Any]) -> None:
        """Write all ``values`` at once; readers see either none or all of them."""

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, namespace: str = "default") -> None:
        self.namespace = namespace
        self._lock = threading.Lock()
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def get_many(self, defaults: Mapping[str, Any]) -> dict[str, Any]:
        with self._lock:
            return {key: self._data.get(key, default) for key, default in defaults.items()}

    def put_all(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            self._data.update(values)


class SqliteKeyValueStore(KeyValueStore):
    """Store backed by a single SQLite table; values are JSON encoded."""

    def __init__(self, db_path: Path, namespace: str = "default") -> None:
        self.db_path = Path(db_path)
        self.namespace = namespace
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA synchronous = NORMAL")
        self._conn.execute("PRAGMA busy_timeout = 5000")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        logger.debug("Opened SQLite store {} (namespace={})", self.db_path, namespace)

    def get(self, key: str, default: Any = None) -> Any:
        return self.get_many({key: default})[key]

    def get_many(self, defaults: Mapping[str, Any]) -> dict[str, Any]:
        keys = list(defaults)
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        sql = f"SELECT key, value FROM kv WHERE namespace = ? AND key IN ({placeholders})"
        try:
            with self._lock:
                rows = self._conn.execute(sql, (self.namespace, *keys)).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read from {self.db_path}: {exc}") from exc

        try:
            stored = {key: json.loads(value) for key, value in rows}
        except json.JSONDecodeError as exc:
            raise StoreError(f"Corrupt value in {self.db_path}: {exc}") from exc
        return {key: stored.get(key, default) for key, default in defaults.items()}

    def put_all(self, values: Mapping[str, Any]) -> None:
        if not values:
            return
        rows = [(self.namespace, key, json.dumps(value)) for key, value in values.items()]
        try:
            with self._lock, self._conn:
                self._conn.executemany(
                    "INSERT INTO kv (namespace, key, value) VALUES (?, ?, ?) "
                    "ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value",
                    rows,
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to write to {self.db_path}: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def create_store(config: StoreConfig, *, base_path: Path | None = None) -> KeyValueStore:
    """Instantiate the configured backend."""

    if config.backend == "memory":
        return InMemoryKeyValueStore(config.namespace)

    path = config.path
    if path is None:  # Defensive, should already be validated
        raise ValueError("SQLite store requires a path.")
    if base_path is not None and not path.is_absolute():
        path = (base_path / path).resolve()
    return SqliteKeyValueStore(path, namespace=config.namespace)


__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
    "StoreError",
    "create_store",
]

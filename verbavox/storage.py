"""Per-device fallback persistence for attempt history."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .models import ANONYMOUS_USER, AttemptResult

DEFAULT_NAMESPACE = "englishbyear"
USER_HISTORY_CAP = 50
GLOBAL_HISTORY_CAP = 200


class StorageError(RuntimeError):
    """Raised when something goes wrong while accessing the storage."""


class KeyValueStore(Protocol):
    """String key/value storage addressed by plain keys."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or ``None`` when the key is absent."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class SQLiteKeyValueStore:
    """Key/value pairs kept in a single SQLite table."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._ensure_initialised()

    def _ensure_initialised(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS entries (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                    """
                )
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open fallback store at {self.db_path}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute("SELECT value FROM entries WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO entries(key, value) VALUES(?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc


class FallbackStore:
    """Newest-first attempt lists kept in a :class:`KeyValueStore`.

    Every attempt lands in two lists: one for its user and one shared by all
    users. Each list is capped and the oldest entries fall off the end.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        namespace: str = DEFAULT_NAMESPACE,
        user_cap: int = USER_HISTORY_CAP,
        global_cap: int = GLOBAL_HISTORY_CAP,
    ) -> None:
        self.kv = kv
        self.namespace = namespace
        self.user_cap = user_cap
        self.global_cap = global_cap

    @property
    def global_key(self) -> str:
        return f"{self.namespace}_results"

    def user_key(self, user_id: Optional[str]) -> str:
        return f"{self.namespace}_results_{user_id or ANONYMOUS_USER}"

    def append(self, result: AttemptResult) -> None:
        """Prepend ``result`` to its user list and the shared list.

        Both lists are written or neither is: if the second write fails the
        first is put back as it was before raising :class:`StorageError`.
        """

        record = result.to_mapping()
        user_key = self.user_key(result.user_id)
        previous_global = self.kv.get(self.global_key)
        global_rows = [record] + self._read(self.global_key)
        user_rows = [record] + self._read(user_key)

        self._write(self.global_key, global_rows[: self.global_cap])
        try:
            self._write(user_key, user_rows[: self.user_cap])
        except StorageError:
            if previous_global is None:
                previous_global = "[]"
            try:
                self.kv.set(self.global_key, previous_global)
            except Exception:
                logging.exception("Could not restore %s after a failed write", self.global_key)
            raise

    def list_results(self, user_id: Optional[str] = None) -> List[AttemptResult]:
        key = self.user_key(user_id) if user_id else self.global_key
        results = []
        for row in self._read(key):
            try:
                results.append(AttemptResult.from_mapping(row))
            except (TypeError, ValueError) as exc:
                logging.warning("Skipping malformed entry in %s: %s", key, exc)
        return results

    def _read(self, key: str) -> List[dict]:
        raw = self.kv.get(key)
        if not raw:
            return []
        try:
            rows = json.loads(raw)
        except json.JSONDecodeError as exc:
            logging.warning("Discarding unreadable fallback list %s: %s", key, exc)
            return []
        if not isinstance(rows, list):
            logging.warning("Discarding fallback list %s: expected a list", key)
            return []
        return [row for row in rows if isinstance(row, dict)]

    def _write(self, key: str, rows: List[dict]) -> None:
        try:
            self.kv.set(key, json.dumps(rows))
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc

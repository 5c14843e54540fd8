"""
SQLite database adapter built on the stdlib ``sqlite3`` module.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from ..dialects import SQLiteDialect
from ..utils import get_logger
from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterExecutionError,
    ConnectionConfig,
    DatabaseAdapter,
    IntegrityError,
)


@dataclass(slots=True)
class SQLiteConnectionState:
    connection: sqlite3.Connection
    path: str


class SQLiteAdapter(DatabaseAdapter):
    """
    Adapter wrapping ``sqlite3``.

    The connection runs in driver-level autocommit mode; transactions are
    opened explicitly through :meth:`begin`.
    """

    def __init__(self) -> None:
        self.dialect = SQLiteDialect()
        self._state: SQLiteConnectionState | None = None
        self.logger = get_logger("adapters.sqlite")

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        path = self._normalize_path(config.url)
        timeout = config.timeout if config.timeout is not None else 5.0
        try:
            connection = sqlite3.connect(
                path,
                isolation_level=None,
                timeout=timeout,
                check_same_thread=False,
            )
        except sqlite3.Error as exc:
            raise AdapterConnectionError(f"Could not open {config.redacted_dsn()}: {exc}") from exc
        connection.row_factory = sqlite3.Row
        for pragma in self.dialect.connection_pragmas:
            connection.execute(pragma)
        self._state = SQLiteConnectionState(connection, path)
        self.logger.debug("Opened SQLite database at %s", path)
        return connection

    def close(self) -> None:
        if self._state:
            self._state.connection.close()
            self.logger.debug("Closed SQLite database at %s", self._state.path)
            self._state = None

    @property
    def connected(self) -> bool:
        return self._state is not None

    def _ensure_connection(self) -> sqlite3.Connection:
        if not self._state:
            raise AdapterConnectionError("SQLiteAdapter is not connected.")
        return self._state.connection

    # ------------------------------------------------------------------ #
    # Execution helpers
    # ------------------------------------------------------------------ #
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        connection = self._ensure_connection()
        try:
            return connection.execute(sql, tuple(params or ()))
        except sqlite3.IntegrityError as exc:
            raise IntegrityError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise AdapterExecutionError(f"{exc} (SQL: {sql})") from exc

    def executemany(
        self, sql: str, seq_of_params: Sequence[Sequence[Any]] | Iterable[Sequence[Any]]
    ) -> sqlite3.Cursor:
        connection = self._ensure_connection()
        try:
            return connection.executemany(sql, seq_of_params)
        except sqlite3.IntegrityError as exc:
            raise IntegrityError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise AdapterExecutionError(f"{exc} (SQL: {sql})") from exc

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #
    def begin(self, mode: str | None = None) -> None:
        self.execute(self.dialect.begin_statement(mode))

    def commit(self) -> None:
        self.execute("COMMIT")

    def rollback(self) -> None:
        self.execute("ROLLBACK")

    @property
    def in_transaction(self) -> bool:
        return self._ensure_connection().in_transaction

    # ------------------------------------------------------------------ #
    def last_insert_id(self, cursor: sqlite3.Cursor) -> Any:
        return cursor.lastrowid

    @staticmethod
    def _normalize_path(url: str) -> str:
        if url in {"sqlite:///:memory:", "sqlite://", ":memory:"}:
            return ":memory:"
        prefix = "sqlite:///"
        if url.startswith(prefix):
            return url[len(prefix):].split("?", 1)[0]
        if "://" in url:
            raise AdapterConfigurationError(f"Unsupported database URL '{url}'")
        return url

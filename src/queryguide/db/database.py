"""
Database handle: one connection plus its transaction state and query log.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator, Iterable, List, Optional

from ..adapters.base import ConnectionConfig, DatabaseAdapter
from ..adapters.sqlite import SQLiteAdapter
from ..config import Settings
from ..utils import CapturedQuery, QueryLog, get_logger, time_call
from .transaction import TransactionManager

if TYPE_CHECKING:
    from ..core.model import Model


class Database:
    """
    Executes statements for models and querysets.

    Every statement passes through :meth:`execute`, which times it, logs
    it and records it in :attr:`query_log`.
    """

    def __init__(
        self,
        config: ConnectionConfig | str | None = None,
        *,
        adapter: Optional[DatabaseAdapter] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        if config is None:
            config = self.settings.database_url
        if isinstance(config, str):
            config = ConnectionConfig.from_dsn(config)
        self.config = config
        self.adapter = adapter or SQLiteAdapter()
        self.dialect = self.adapter.dialect
        self.logger = get_logger("db.database")
        self.query_log = QueryLog(
            get_logger("db.querylog"),
            n_plus_one_threshold=self.settings.n_plus_one_threshold,
        )
        self.transactions = TransactionManager(self.adapter, mode=config.isolation_level)
        self.adapter.connect(config)
        self.logger.info("Connected to %s", config.descriptive_label())

    def __repr__(self) -> str:
        return f"<Database {self.config.redacted_dsn()}>"

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.adapter.close()

    # ------------------------------------------------------------------ #
    def execute(self, sql: str, params: Iterable[Any] | None = None) -> Any:
        param_list = list(params or [])
        with time_call(
            "database.execute",
            self.logger,
            sql=sql,
            params=param_list,
            threshold_ms=self.settings.slow_query_ms,
        ) as timer:
            cursor = self.adapter.execute(sql, param_list)
        self.query_log.record(sql, param_list, timer.elapsed_ms)
        return cursor

    @contextmanager
    def atomic(self) -> Generator["Database", None, None]:
        """
        Run the block in a transaction (a savepoint when nested). Errors
        roll the block back and propagate.
        """
        with self.transactions.atomic():
            yield self

    @contextmanager
    def capture_queries(self) -> Generator[List[CapturedQuery], None, None]:
        with self.query_log.capture() as captured:
            yield captured

    # ------------------------------------------------------------------ #
    # Schema
    # ------------------------------------------------------------------ #
    def create_tables(self, *models: type["Model"]) -> None:
        from ..schema import SchemaBuilder

        builder = SchemaBuilder(self.dialect)
        with self.atomic():
            for model in models:
                self.execute(builder.create_table_sql(model))
                for statement in builder.create_index_sql(model):
                    self.execute(statement)
        self.logger.info("Created tables for %s", ", ".join(m.__name__ for m in models))

    def drop_tables(self, *models: type["Model"]) -> None:
        from ..schema import SchemaBuilder

        builder = SchemaBuilder(self.dialect)
        with self.atomic():
            for model in reversed(models):
                self.execute(builder.drop_table_sql(model))

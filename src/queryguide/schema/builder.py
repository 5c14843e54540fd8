"""
Schema builder converting model metadata into DDL statements.
"""

from __future__ import annotations

from enum import Enum
from typing import List

from ..core.fields import AutoField, Field
from ..core.model import Index, Model
from ..core.relations import ForeignKey
from ..dialects import SQLiteDialect
from ..utils import get_logger


class SchemaBuilder:
    """
    Produces SQLite DDL for model tables and their indexes.
    """

    def __init__(self, dialect: SQLiteDialect) -> None:
        self.dialect = dialect
        self.logger = get_logger("schema.builder")

    def create_table_sql(self, model: type[Model]) -> str:
        columns_sql = self._render_columns(model)
        table_name = self.dialect.format_table(model._meta.table_name)
        column_list = ", ".join(columns_sql)
        return f"CREATE TABLE IF NOT EXISTS {table_name} ({column_list})"

    def create_index_sql(self, model: type[Model]) -> List[str]:
        """
        One statement per indexed field plus one per ``Meta.indexes`` entry.
        Unique fields are skipped since SQLite indexes them already.
        """
        statements: List[str] = []
        for field in model._meta.get_fields():
            if field.index and not field.unique and not field.primary_key:
                statements.append(self._index_statement(model, Index(fields=[field.require_name()])))
        for index in model._meta.indexes:
            statements.append(self._index_statement(model, index))
        return statements

    def drop_table_sql(self, model: type[Model]) -> str:
        table_name = self.dialect.format_table(model._meta.table_name)
        self.logger.warning(
            "DROP TABLE generated for %s; all rows in it will be lost.",
            table_name,
        )
        return f"DROP TABLE IF EXISTS {table_name}"

    def _index_statement(self, model: type[Model], index: Index) -> str:
        table = model._meta.table_name
        columns: List[str] = []
        names: List[str] = []
        for entry in index.fields:
            descending = entry.startswith("-")
            field = model._meta.get_field(entry.lstrip("-"))
            column = field.column_name()
            names.append(column)
            rendered = self.dialect.quote_identifier(column)
            columns.append(f"{rendered} DESC" if descending else rendered)
        index_name = index.name or f"{table}_{'_'.join(names)}_idx"
        return (
            f"CREATE INDEX IF NOT EXISTS {self.dialect.quote_identifier(index_name)} "
            f"ON {self.dialect.format_table(table)} ({', '.join(columns)})"
        )

    def _render_columns(self, model: type[Model]) -> List[str]:
        pieces: List[str] = []
        for field in model._meta.get_fields():
            column_type = field.db_type
            if not column_type:
                raise ValueError(f"Field '{field.name}' missing db_type for schema generation.")
            column_def = self.dialect.render_column_definition(
                field.column_name(),
                column_type,
                nullable=field.nullable if not field.primary_key else False,
            )
            extras: List[str] = []
            if field.primary_key:
                extras.append("PRIMARY KEY")
                if isinstance(field, AutoField):
                    extras.append("AUTOINCREMENT")
            if field.unique and not field.primary_key:
                extras.append("UNIQUE")
            default_sql = self._default_clause(field)
            if default_sql:
                extras.append(default_sql)
            if isinstance(field, ForeignKey):
                remote = field.require_remote_model()
                target = self.dialect.quote_identifier(field.target_field.column_name())
                extras.append(f"REFERENCES {self.dialect.format_table(remote._meta.table_name)} ({target})")

            if extras:
                column_def = f"{column_def} {' '.join(extras)}"
            pieces.append(column_def)
        return pieces

    def _default_clause(self, field: Field) -> str | None:
        if field.default is None or callable(field.default):
            return None
        value = field.default
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, bool):
            return f"DEFAULT {1 if value else 0}"
        if isinstance(value, str):
            escaped = value.replace("'", "''")
            return f"DEFAULT '{escaped}'"
        return f"DEFAULT {value}"

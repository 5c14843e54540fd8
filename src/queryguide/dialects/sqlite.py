"""
SQLite dialect: identifier quoting, placeholders and clause rendering.
"""

from __future__ import annotations

from typing import Final


class SQLiteDialect:
    """
    SQLite dialect using the qmark param style.
    """

    name: Final[str] = "sqlite"
    param_style: Final[str] = "qmark"
    # Applied to every new connection.
    connection_pragmas: Final[tuple[str, ...]] = (
        "PRAGMA foreign_keys = ON",
        "PRAGMA case_sensitive_like = ON",
    )
    transaction_modes: Final[tuple[str, ...]] = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")

    def quote_identifier(self, identifier: str) -> str:
        escaped = identifier.replace('"', '""')
        return f'"{escaped}"'

    def format_table(self, table_name: str) -> str:
        return self.quote_identifier(table_name)

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        parts: list[str] = []
        if limit is not None:
            parts.append(f"LIMIT {limit}")
        if offset:
            if limit is None:
                parts.append("LIMIT -1")
            parts.append(f"OFFSET {offset}")
        return " ".join(parts)

    def parameter_placeholder(self) -> str:
        return "?"

    def begin_statement(self, mode: str | None = None) -> str:
        if mode is None:
            return "BEGIN"
        normalized = mode.upper()
        if normalized not in self.transaction_modes:
            raise ValueError(f"Unknown SQLite transaction mode '{mode}'")
        return f"BEGIN {normalized}"

    def render_column_definition(self, column: str, column_type: str, *, nullable: bool) -> str:
        null_clause = "" if nullable else " NOT NULL"
        return f"{self.quote_identifier(column)} {column_type}{null_clause}"

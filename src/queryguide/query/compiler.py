"""
SQL compilation: turns QuerySet state into parameterised SQLite statements.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from ..dialects import SQLiteDialect
from ..exceptions import FieldError
from .expressions import Q
from .lookups import LOOKUPS, TRANSFORMS, build_lookup

if TYPE_CHECKING:
    from ..core.fields import Field
    from ..core.model import Model
    from ..core.relations import ForeignKey


@dataclass
class Join:
    alias: str
    table: str
    parent_alias: str
    fk_column: str
    remote_column: str
    outer: bool

    def as_sql(self, dialect: SQLiteDialect) -> str:
        kind = "LEFT OUTER JOIN" if self.outer else "INNER JOIN"
        table = dialect.quote_identifier(self.table)
        target = table if self.alias == self.table else f"{table} {dialect.quote_identifier(self.alias)}"
        left = f"{dialect.quote_identifier(self.parent_alias)}.{dialect.quote_identifier(self.fk_column)}"
        right = f"{dialect.quote_identifier(self.alias)}.{dialect.quote_identifier(self.remote_column)}"
        return f"{kind} {target} ON ({left} = {right})"


@dataclass(frozen=True)
class CompiledQuery:
    """
    A compiled statement. ``str()`` inlines the parameters for display;
    execution always uses ``sql`` with ``params``.
    """

    sql: str
    params: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return interpolate(self.sql, self.params)


@dataclass
class SQLCompiler:
    """
    Compile QuerySet state into SQL statements and parameters.

    One compiler instance builds one statement: join aliases are allocated
    as lookups and ordering terms are resolved.
    """

    model: type["Model"]
    where: Optional[Q] = None
    ordering: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    select_related: Tuple[str, ...] = ()
    dialect: SQLiteDialect = field(default_factory=SQLiteDialect)
    joins: Dict[Tuple[str, str], Join] = field(default_factory=dict, init=False)

    @property
    def base_alias(self) -> str:
        return self.model._meta.table_name

    # Statements --------------------------------------------------------
    def compile_select(self) -> CompiledQuery:
        columns = self._base_columns()
        related_columns = self._select_related_columns()
        where_sql, params = self._compile_where()
        order_sql = self._compile_ordering()
        parts = [f"SELECT {', '.join(columns + related_columns)}", "FROM", self._from_clause()]
        if where_sql:
            parts.append(f"WHERE {where_sql}")
        if order_sql:
            parts.append(f"ORDER BY {order_sql}")
        limit_clause = self.dialect.limit_clause(self.limit, self.offset)
        if limit_clause:
            parts.append(limit_clause)
        return CompiledQuery(" ".join(parts), tuple(params))

    def compile_pk_select(self, *, keep_ordering: bool = True) -> CompiledQuery:
        pk = self._pk_column()
        where_sql, params = self._compile_where()
        order_sql = self._compile_ordering() if keep_ordering else ""
        parts = [f"SELECT {pk}", "FROM", self._from_clause()]
        if where_sql:
            parts.append(f"WHERE {where_sql}")
        if order_sql:
            parts.append(f"ORDER BY {order_sql}")
        limit_clause = self.dialect.limit_clause(self.limit, self.offset)
        if limit_clause:
            parts.append(limit_clause)
        return CompiledQuery(" ".join(parts), tuple(params))

    def compile_count(self) -> CompiledQuery:
        if self._is_sliced():
            inner = self.compile_pk_select()
            return CompiledQuery(f'SELECT COUNT(*) FROM ({inner.sql}) subquery', inner.params)
        where_sql, params = self._compile_where()
        parts = ["SELECT COUNT(*)", "FROM", self._from_clause()]
        if where_sql:
            parts.append(f"WHERE {where_sql}")
        return CompiledQuery(" ".join(parts), tuple(params))

    def compile_exists(self) -> CompiledQuery:
        if self._is_sliced():
            inner = self.compile_pk_select()
            return CompiledQuery(f"SELECT 1 AS {self.dialect.quote_identifier('a')} FROM ({inner.sql}) subquery LIMIT 1", inner.params)
        where_sql, params = self._compile_where()
        parts = [f"SELECT 1 AS {self.dialect.quote_identifier('a')}", "FROM", self._from_clause()]
        if where_sql:
            parts.append(f"WHERE {where_sql}")
        parts.append("LIMIT 1")
        return CompiledQuery(" ".join(parts), tuple(params))

    def compile_update(self, assignments: Sequence[Tuple[str, Any]]) -> CompiledQuery:
        table = self.dialect.format_table(self.model._meta.table_name)
        set_sql = ", ".join(
            f"{self.dialect.quote_identifier(column)} = ?" for column, _ in assignments
        )
        params: List[Any] = [value for _, value in assignments]
        where_sql, where_params = self._compile_where()
        if self.joins:
            pk_column = self.dialect.quote_identifier(self.model._meta.primary_key.column_name())
            inner = self.compile_pk_select(keep_ordering=False)
            sql = f"UPDATE {table} SET {set_sql} WHERE {pk_column} IN ({inner.sql})"
            return CompiledQuery(sql, tuple(params) + inner.params)
        sql = f"UPDATE {table} SET {set_sql}"
        if where_sql:
            sql += f" WHERE {where_sql}"
        return CompiledQuery(sql, tuple(params + where_params))

    # FROM / SELECT helpers ---------------------------------------------
    def _from_clause(self) -> str:
        parts = [self.dialect.format_table(self.model._meta.table_name)]
        parts.extend(join.as_sql(self.dialect) for join in self.joins.values())
        return " ".join(parts)

    def _qualified(self, alias: str, column: str) -> str:
        return f"{self.dialect.quote_identifier(alias)}.{self.dialect.quote_identifier(column)}"

    def _pk_column(self) -> str:
        return self._qualified(self.base_alias, self.model._meta.primary_key.column_name())

    def _base_columns(self) -> List[str]:
        return [
            self._qualified(self.base_alias, f.column_name()) for f in self.model._meta.get_fields()
        ]

    def _select_related_columns(self) -> List[str]:
        columns: List[str] = []
        for name in self.select_related:
            relation = self._relation_field(self.model, name)
            alias = self._join(self.base_alias, relation, outer=True)
            for related_field in relation.require_remote_model()._meta.get_fields():
                label = f"{name}__{related_field.column_name()}"
                columns.append(
                    f"{self._qualified(alias, related_field.column_name())} AS {self.dialect.quote_identifier(label)}"
                )
        return columns

    def _join(self, parent_alias: str, relation: "ForeignKey", *, outer: bool = False) -> str:
        key = (parent_alias, relation.require_name())
        existing = self.joins.get(key)
        if existing is not None:
            return existing.alias
        remote = relation.require_remote_model()
        table = remote._meta.table_name
        taken = {self.base_alias, *(join.alias for join in self.joins.values())}
        alias = table if table not in taken else f"T{len(self.joins) + 2}"
        parent_outer = any(j.alias == parent_alias and j.outer for j in self.joins.values())
        self.joins[key] = Join(
            alias=alias,
            table=table,
            parent_alias=parent_alias,
            fk_column=relation.column_name(),
            remote_column=relation.target_field.column_name(),
            outer=outer or relation.nullable or parent_outer,
        )
        return alias

    @staticmethod
    def _relation_field(model: type["Model"], name: str) -> "ForeignKey":
        if "__" in name:
            raise FieldError(f"select_related() supports direct foreign keys only, got '{name}'.")
        candidate = model._meta.get_field(name)
        if not candidate.is_relation:
            raise FieldError(
                f"Non-relational field given in select_related: '{name}' on '{model.__name__}'."
            )
        return candidate  # type: ignore[return-value]

    # Path resolution ---------------------------------------------------
    def resolve_path(self, path: str, *, allow_lookup: bool = True) -> Tuple[str, "Field", List[str]]:
        """
        Walk ``author__username__istartswith`` style paths, adding joins for
        every relation crossed. Returns the column expression, the final
        field and the unconsumed (transform / lookup) parts.
        """
        alias, current, rest = self._resolve(path, allow_lookup=allow_lookup)
        return self._qualified(alias, current.column_name()), current, rest

    def _resolve(self, path: str, *, allow_lookup: bool = True) -> Tuple[str, "Field", List[str]]:
        parts = path.split("__")
        model = self.model
        alias = self.base_alias
        current = model._meta.get_field(parts[0])
        index = 1
        while current.is_relation and index < len(parts) and parts[index] not in LOOKUPS:
            alias = self._join(alias, current)  # type: ignore[arg-type]
            model = current.require_remote_model()  # type: ignore[attr-defined]
            current = model._meta.get_field(parts[index])
            index += 1
        rest = parts[index:]
        if not allow_lookup and rest:
            raise FieldError(f"Cannot resolve '{path}': '{rest[0]}' is not a field.")
        return alias, current, rest

    def _is_outer(self, alias: str) -> bool:
        return any(join.alias == alias and join.outer for join in self.joins.values())

    def check_lookup(self, field_lookup: str) -> None:
        """
        Raise ``FieldError`` for unknown fields, transforms or lookups in
        ``field_lookup`` without looking at the value.
        """
        _, target, rest = self._resolve(field_lookup)
        self._split_lookup(field_lookup, target, rest)

    def check_ordering(self, term: str) -> None:
        if term != "?":
            self._resolve(term.lstrip("-"), allow_lookup=False)

    # WHERE --------------------------------------------------------------
    def _compile_where(self) -> Tuple[str, List[Any]]:
        if self.where is None or self.where.is_empty():
            return "", []
        return self._compile_q(self.where)

    def _compile_q(self, q: Q, *, negated: bool = False) -> Tuple[str, List[Any]]:
        negated = negated or q.negated
        parts: List[str] = []
        params: List[Any] = []
        for child in q.children:
            if isinstance(child, Q):
                child_sql, child_params = self._compile_q(child, negated=negated)
                if child_sql:
                    parts.append(f"({child_sql})" if len(q.children) > 1 else child_sql)
                    params.extend(child_params)
            else:
                field_lookup, value = child
                sql, child_params = self._compile_lookup(field_lookup, value, negated=negated)
                parts.append(sql)
                params.extend(child_params)
        if not parts:
            return "", []
        sql = f" {q.connector} ".join(parts)
        if q.negated:
            sql = f"NOT ({sql})"
        return sql, params

    def _compile_lookup(
        self, field_lookup: str, value: Any, *, negated: bool = False
    ) -> Tuple[str, List[Any]]:
        alias, target, rest = self._resolve(field_lookup)
        lhs = self._qualified(alias, target.column_name())
        transform_name, lookup_name = self._split_lookup(field_lookup, target, rest)
        sql, params = build_lookup(lhs, target, lookup_name, value, transform_name).as_sql()
        # NULL rows must match the negation, as in filter(x) | exclude(x) == all().
        if (
            negated
            and value is not None
            and lookup_name != "isnull"
            and (target.nullable or self._is_outer(alias))
        ):
            sql = f"{sql} AND {lhs} IS NOT NULL"
        return sql, params

    @staticmethod
    def _split_lookup(
        field_lookup: str, target: "Field", rest: List[str]
    ) -> Tuple[Optional[str], str]:
        rest = list(rest)
        transform_name = None
        if rest and rest[0] in TRANSFORMS:
            transform_name = rest.pop(0)
            if transform_name not in target.transforms:
                raise FieldError(
                    f"Unsupported transform '{transform_name}' for "
                    f"{target.__class__.__name__} '{target.name}'."
                )
        if len(rest) > 1:
            raise FieldError(f"Unsupported lookup '{'__'.join(rest)}' in '{field_lookup}'.")
        lookup_name = rest[0] if rest else "exact"
        if lookup_name not in LOOKUPS:
            raise FieldError(
                f"Unsupported lookup '{lookup_name}' for {target.__class__.__name__} '{target.name}'."
            )
        return transform_name, lookup_name

    # ORDER BY -----------------------------------------------------------
    def _compile_ordering(self) -> str:
        terms: List[str] = []
        for term in self.ordering:
            if term == "?":
                terms.append("RANDOM()")
                continue
            descending = term.startswith("-")
            name = term.lstrip("-")
            column, _, _ = self.resolve_path(name, allow_lookup=False)
            terms.append(f"{column} DESC" if descending else f"{column} ASC")
        return ", ".join(terms)

    def _is_sliced(self) -> bool:
        return self.limit is not None or self.offset is not None


# Row-level statements ------------------------------------------------------
def compile_insert(model: type["Model"], columns: Sequence[str], dialect: SQLiteDialect) -> str:
    table = dialect.format_table(model._meta.table_name)
    if not columns:
        return f"INSERT INTO {table} DEFAULT VALUES"
    column_sql = ", ".join(dialect.quote_identifier(column) for column in columns)
    placeholders = ", ".join(dialect.parameter_placeholder() for _ in columns)
    return f"INSERT INTO {table} ({column_sql}) VALUES ({placeholders})"


def compile_update_row(model: type["Model"], columns: Sequence[str], dialect: SQLiteDialect) -> str:
    table = dialect.format_table(model._meta.table_name)
    set_sql = ", ".join(f"{dialect.quote_identifier(column)} = ?" for column in columns)
    pk_column = dialect.quote_identifier(model._meta.primary_key.column_name())
    return f"UPDATE {table} SET {set_sql} WHERE {pk_column} = ?"


def compile_delete_pks(model: type["Model"], count: int, dialect: SQLiteDialect) -> str:
    table = dialect.format_table(model._meta.table_name)
    pk_column = dialect.quote_identifier(model._meta.primary_key.column_name())
    placeholders = ", ".join(dialect.parameter_placeholder() for _ in range(count))
    return f"DELETE FROM {table} WHERE {pk_column} IN ({placeholders})"


def compile_null_fk(field: "ForeignKey", count: int, dialect: SQLiteDialect) -> str:
    model = field.require_model()
    table = dialect.format_table(model._meta.table_name)
    column = dialect.quote_identifier(field.column_name())
    pk_column = dialect.quote_identifier(model._meta.primary_key.column_name())
    placeholders = ", ".join(dialect.parameter_placeholder() for _ in range(count))
    return f"UPDATE {table} SET {column} = NULL WHERE {pk_column} IN ({placeholders})"


# Display -------------------------------------------------------------------
def render_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (datetime, date)):
        value = value.isoformat(sep=" ") if isinstance(value, datetime) else value.isoformat()
    text = str(value).replace("'", "''")
    return f"'{text}'"


def interpolate(sql: str, params: Sequence[Any]) -> str:
    """
    Substitute ``?`` placeholders outside string literals with SQL literals.
    """
    values = iter(params)
    pieces: List[str] = []
    in_literal = False
    for char in sql:
        if char == "'":
            in_literal = not in_literal
            pieces.append(char)
        elif char == "?" and not in_literal:
            try:
                pieces.append(render_literal(next(values)))
            except StopIteration:
                pieces.append(char)
        else:
            pieces.append(char)
    return "".join(pieces)

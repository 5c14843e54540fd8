"""
Lazy, chainable QuerySet.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from ..adapters.base import IntegrityError
from ..exceptions import FieldError
from .compiler import CompiledQuery, SQLCompiler
from .expressions import Q

if TYPE_CHECKING:
    from ..core.model import Model
    from ..db.database import Database


MAX_GET_RESULTS = 21
REPR_OUTPUT_SIZE = 20


class QuerySet:
    """
    A lazily evaluated database query for one model.

    Building methods (``filter``, ``exclude``, ``order_by``, slicing) return
    new QuerySets without touching the database. SQL runs when the
    QuerySet is iterated, measured with ``len()``, tested with ``bool()``,
    printed with ``repr()`` or indexed; the rows are then cached on this
    QuerySet and reused.
    """

    def __init__(
        self,
        model: type["Model"],
        *,
        database: Optional["Database"] = None,
        where: Optional[Q] = None,
        ordering: Optional[Tuple[str, ...]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        select_related: Tuple[str, ...] = (),
        empty: bool = False,
    ) -> None:
        self.model = model
        self._database = database
        self._where = where or Q()
        # None means "use Meta.ordering"; an empty tuple means unordered.
        self._ordering = ordering
        self._limit = limit
        self._offset = offset
        self._select_related = select_related
        self._empty = empty
        self._result_cache: Optional[List["Model"]] = None

    # Building ----------------------------------------------------------
    def all(self) -> "QuerySet":
        return self._clone()

    def filter(self, *conditions: Q, **lookups: Any) -> "QuerySet":
        self._assert_not_sliced("filter")
        q_object = self._build_q(conditions, lookups)
        self._check_q(q_object)
        return self._clone(where=self._add_q(q_object))

    def exclude(self, *conditions: Q, **lookups: Any) -> "QuerySet":
        self._assert_not_sliced("filter")
        q_object = self._build_q(conditions, lookups)
        self._check_q(q_object)
        return self._clone(where=self._add_q(~q_object))

    def order_by(self, *fields: str) -> "QuerySet":
        self._assert_not_sliced("reorder")
        for name in fields:
            if not isinstance(name, str) or not name:
                raise FieldError(f"Invalid order_by argument: {name!r}")
        compiler = SQLCompiler(self.model)
        for name in fields:
            compiler.check_ordering(name)
        return self._clone(ordering=tuple(fields))

    def reverse(self) -> "QuerySet":
        self._assert_not_sliced("reverse")
        flipped = tuple(
            term if term == "?" else (term[1:] if term.startswith("-") else f"-{term}")
            for term in self._effective_ordering()
        )
        return self._clone(ordering=flipped)

    def select_related(self, *fields: str) -> "QuerySet":
        if not fields:
            raise ValueError("select_related() requires at least one relationship name.")
        combined = tuple(dict.fromkeys(self._select_related + fields))
        return self._clone(select_related=combined)

    def none(self) -> "QuerySet":
        return self._clone(empty=True)

    def using(self, database: "Database") -> "QuerySet":
        return self._clone(database=database)

    @property
    def ordered(self) -> bool:
        return bool(self._effective_ordering())

    # Slicing -----------------------------------------------------------
    def __getitem__(self, key: int | slice) -> Any:
        if not isinstance(key, (int, slice)):
            raise TypeError(
                f"QuerySet indices must be integers or slices, not {type(key).__name__}."
            )
        if (isinstance(key, int) and key < 0) or (
            isinstance(key, slice)
            and ((key.start is not None and key.start < 0) or (key.stop is not None and key.stop < 0))
        ):
            raise ValueError("Negative indexing is not supported.")

        if isinstance(key, slice) and key.step is not None and key.step <= 0:
            raise ValueError("QuerySet slice step must be a positive integer.")

        if self._result_cache is not None:
            return self._result_cache[key]

        if isinstance(key, slice):
            clone = self._with_limits(key.start, key.stop)
            if key.step is not None:
                return list(clone)[:: key.step]
            return clone

        clone = self._with_limits(key, key + 1)
        clone._fetch_all()
        if not clone._result_cache:
            raise IndexError("QuerySet index out of range")
        return clone._result_cache[0]

    # Evaluation --------------------------------------------------------
    def __iter__(self) -> Iterator["Model"]:
        self._fetch_all()
        return iter(self._result_cache)  # type: ignore[arg-type]

    def __len__(self) -> int:
        self._fetch_all()
        return len(self._result_cache)  # type: ignore[arg-type]

    def __bool__(self) -> bool:
        self._fetch_all()
        return bool(self._result_cache)

    def __repr__(self) -> str:
        data: List[Any] = list(self[: REPR_OUTPUT_SIZE + 1])
        if len(data) > REPR_OUTPUT_SIZE:
            data[-1] = "...(remaining elements truncated)..."
        return f"<{self.__class__.__name__} {data!r}>"

    def get(self, *conditions: Q, **lookups: Any) -> "Model":
        """
        Return the single object matching the lookups.

        Raises ``Model.DoesNotExist`` when nothing matches and
        ``Model.MultipleObjectsReturned`` when more than one row does.
        """
        clone = self.filter(*conditions, **lookups) if (conditions or lookups) else self._clone()
        if not clone._is_sliced():
            clone = clone._clone(ordering=())._with_limits(0, MAX_GET_RESULTS)
        clone._fetch_all()
        results = clone._result_cache or []
        num = len(results)
        if num == 1:
            return results[0]
        name = self.model.__name__
        if not num:
            raise self.model.DoesNotExist(f"{name} matching query does not exist.")
        reported = num if num < MAX_GET_RESULTS else f"more than {MAX_GET_RESULTS - 1}"
        raise self.model.MultipleObjectsReturned(
            f"get() returned more than one {name} -- it returned {reported}!"
        )

    def create(self, **values: Any) -> "Model":
        instance = self.model(**values)
        instance.save(force_insert=True, using=self._database)
        return instance

    def get_or_create(
        self, defaults: Dict[str, Any] | None = None, **lookups: Any
    ) -> Tuple["Model", bool]:
        """
        Fetch the object matching ``lookups`` or create it from the plain
        (non ``__``) lookups merged with ``defaults``. Returns
        ``(object, created)``.
        """
        try:
            return self.get(**lookups), False
        except self.model.DoesNotExist:
            pass
        params = {key: value for key, value in lookups.items() if "__" not in key}
        for key, value in (defaults or {}).items():
            params[key] = value() if callable(value) else value
        database = self._get_database()
        try:
            with database.atomic():
                instance = self.model(**params)
                instance.save(force_insert=True, using=database)
            return instance, True
        except IntegrityError:
            # A concurrent writer may have created the row first.
            try:
                return self.get(**lookups), False
            except self.model.DoesNotExist:
                pass
            raise

    def update_or_create(
        self, defaults: Dict[str, Any] | None = None, **lookups: Any
    ) -> Tuple["Model", bool]:
        defaults = defaults or {}
        database = self._get_database()
        with database.atomic():
            instance, created = self.using(database).get_or_create(defaults=defaults, **lookups)
            if created:
                return instance, True
            for key, value in defaults.items():
                setattr(instance, key, value() if callable(value) else value)
            instance.save(using=database)
        return instance, False

    def count(self) -> int:
        if self._result_cache is not None:
            return len(self._result_cache)
        if self._empty:
            return 0
        query = self._compiler().compile_count()
        row = self._get_database().execute(query.sql, query.params).fetchone()
        return int(row[0])

    def exists(self) -> bool:
        if self._result_cache is not None:
            return bool(self._result_cache)
        if self._empty:
            return False
        query = self._compiler().compile_exists()
        return self._get_database().execute(query.sql, query.params).fetchone() is not None

    def first(self) -> Optional["Model"]:
        queryset = self if self.ordered else self.order_by("pk")
        for instance in queryset[:1]:
            return instance
        return None

    def last(self) -> Optional["Model"]:
        queryset = self.reverse() if self.ordered else self.order_by("-pk")
        for instance in queryset[:1]:
            return instance
        return None

    def update(self, **values: Any) -> int:
        """
        Apply ``values`` to every matching row in one UPDATE statement and
        return the number of rows changed. ``save()`` is not called.
        """
        self._assert_not_sliced("update")
        if not values:
            raise ValueError("update() requires at least one field value.")
        if self._empty:
            return 0
        assignments = []
        for name, value in values.items():
            target = self.model._meta.get_field(name)
            if target.primary_key:
                raise FieldError("update() cannot change the primary key.")
            assignments.append((target.column_name(), target.to_db(target.clean_value(value))))
        query = self._compiler().compile_update(assignments)
        database = self._get_database()
        with database.atomic():
            cursor = database.execute(query.sql, query.params)
        self._result_cache = None
        return cursor.rowcount

    def delete(self) -> Tuple[int, Dict[str, int]]:
        """
        Delete every matching object (and its dependants, per ``on_delete``).
        Returns ``(total, {"app.Model": count, ...})``.
        """
        self._assert_not_sliced("delete")
        from ..db.deletion import Collector

        database = self._get_database()
        collector = Collector(database)
        collector.collect(list(self._clone()))
        self._result_cache = None
        return collector.delete()

    # Introspection -----------------------------------------------------
    @property
    def query(self) -> CompiledQuery:
        return self._compiler().compile_select()

    def to_sql(self) -> tuple[str, list[Any]]:
        compiled = self.query
        return compiled.sql, list(compiled.params)

    # Internal helpers --------------------------------------------------
    def _fetch_all(self) -> None:
        if self._result_cache is not None:
            return
        if self._empty:
            self._result_cache = []
            return
        database = self._get_database()
        query = self._compiler().compile_select()
        cursor = database.execute(query.sql, query.params)
        self._result_cache = [self._hydrate(database, dict(row)) for row in cursor.fetchall()]

    def _hydrate(self, database: "Database", row: Dict[str, Any]) -> "Model":
        instance = self.model.from_db(database, row)
        for name in self._select_related:
            relation = self.model._meta.get_field(name)
            remote = relation.require_remote_model()  # type: ignore[attr-defined]
            prefix = f"{name}__"
            chunk = {key[len(prefix):]: value for key, value in row.items() if key.startswith(prefix)}
            if chunk.get(remote._meta.primary_key.column_name()) is None:
                continue
            instance._related_cache[name] = remote.from_db(database, chunk)
        return instance

    def _compiler(self) -> SQLCompiler:
        return SQLCompiler(
            model=self.model,
            where=self._where,
            ordering=self._effective_ordering(),
            limit=self._limit,
            offset=self._offset,
            select_related=self._select_related,
        )

    def _effective_ordering(self) -> Tuple[str, ...]:
        if self._ordering is None:
            return self.model._meta.ordering
        return self._ordering

    def _get_database(self) -> "Database":
        if self._database is not None:
            return self._database
        from ..db.connection import get_database

        return get_database()

    def _is_sliced(self) -> bool:
        return self._limit is not None or bool(self._offset)

    def _assert_not_sliced(self, action: str) -> None:
        if self._is_sliced():
            raise TypeError(f"Cannot {action} a query once a slice has been taken.")

    def _with_limits(self, start: Optional[int], stop: Optional[int]) -> "QuerySet":
        low = self._offset or 0
        high = None if self._limit is None else low + self._limit
        new_low = low + (start or 0)
        new_high = high
        if stop is not None:
            new_high = low + stop if high is None else min(high, low + stop)
        if new_high is not None:
            new_high = max(new_high, new_low)
        return self._clone(
            offset=new_low or None,
            limit=None if new_high is None else new_high - new_low,
        )

    @staticmethod
    def _build_q(conditions: Tuple[Q, ...], lookups: Dict[str, Any]) -> Q:
        q = Q()
        for condition in conditions:
            if not isinstance(condition, Q):
                raise TypeError(f"Positional filter arguments must be Q objects, got {condition!r}")
            q = q & condition
        return q & Q(**lookups)

    def _check_q(self, q_object: Q) -> None:
        compiler = SQLCompiler(self.model)
        pending = [q_object]
        while pending:
            for child in pending.pop().children:
                if isinstance(child, Q):
                    pending.append(child)
                else:
                    compiler.check_lookup(child[0])

    def _add_q(self, q_object: Q) -> Q:
        if self._where.is_empty():
            return q_object
        return self._where & q_object

    def _clone(self, **overrides: Any) -> "QuerySet":
        params = {
            "database": self._database,
            "where": self._where,
            "ordering": self._ordering,
            "limit": self._limit,
            "offset": self._offset,
            "select_related": self._select_related,
            "empty": self._empty,
        }
        params.update(overrides)
        return self.__class__(self.model, **params)

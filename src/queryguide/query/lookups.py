"""
Field lookups (``title__icontains``) and datetime transforms
(``publish__year``) compiled to SQLite expressions.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Tuple, Type

from ..exceptions import FieldError

if TYPE_CHECKING:
    from ..core.fields import Field


LIKE_ESCAPE = "ESCAPE '\\'"


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Transform:
    """
    Wraps a column expression and converts lookup values to match it.
    """

    name = ""

    def __init__(self, field: "Field") -> None:
        self.field = field

    def apply(self, lhs: str) -> str:
        raise NotImplementedError

    def prepare(self, value: Any) -> Any:
        raise NotImplementedError


class _DatePartTransform(Transform):
    part = ""

    def apply(self, lhs: str) -> str:
        return f"CAST(strftime('{self.part}', {lhs}) AS INTEGER)"

    def prepare(self, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'{self.name}' lookups expect an integer, got {value!r}") from exc


class YearTransform(_DatePartTransform):
    name = "year"
    part = "%Y"


class MonthTransform(_DatePartTransform):
    name = "month"
    part = "%m"


class DayTransform(_DatePartTransform):
    name = "day"
    part = "%d"


class DateTransform(Transform):
    name = "date"

    def apply(self, lhs: str) -> str:
        return f"DATE({lhs})"

    def prepare(self, value: Any) -> str:
        if isinstance(value, datetime):
            return self.field.to_python(value).date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str):
            return date.fromisoformat(value).isoformat()
        raise ValueError(f"'date' lookups expect a date, got {value!r}")


TRANSFORMS: Dict[str, Type[Transform]] = {
    cls.name: cls for cls in (YearTransform, MonthTransform, DayTransform, DateTransform)
}


class Lookup:
    """
    A single ``<lhs> <operator> <value>`` condition.
    """

    lookup_name = ""
    operator = ""

    def __init__(self, lhs: str, field: "Field", value: Any, transform: Transform | None = None) -> None:
        self.lhs = transform.apply(lhs) if transform else lhs
        self.field = field
        self.transform = transform
        self.value = value

    def prepare(self, value: Any) -> Any:
        if value is None:
            raise ValueError(f"Cannot use None as a query value for '{self.lookup_name}'")
        if self.transform is not None:
            return self.transform.prepare(value)
        return self.field.to_db(value)

    def as_sql(self) -> Tuple[str, List[Any]]:
        return f"{self.lhs} {self.operator} ?", [self.prepare(self.value)]


class Exact(Lookup):
    lookup_name = "exact"
    operator = "="

    def as_sql(self) -> Tuple[str, List[Any]]:
        if self.value is None:
            return f"{self.lhs} IS NULL", []
        return super().as_sql()


class GreaterThan(Lookup):
    lookup_name = "gt"
    operator = ">"


class GreaterThanOrEqual(Lookup):
    lookup_name = "gte"
    operator = ">="


class LessThan(Lookup):
    lookup_name = "lt"
    operator = "<"


class LessThanOrEqual(Lookup):
    lookup_name = "lte"
    operator = "<="


class PatternLookup(Lookup):
    """
    ``LIKE`` based lookups. The connection runs with case-sensitive LIKE,
    so the case-insensitive variants lower both sides.
    """

    pattern = "%s"
    case_insensitive = False

    def as_sql(self) -> Tuple[str, List[Any]]:
        if self.value is None and self.lookup_name == "iexact":
            return f"{self.lhs} IS NULL", []
        if self.value is None:
            raise ValueError(f"Cannot use None as a query value for '{self.lookup_name}'")
        raw = self.transform.prepare(self.value) if self.transform else self.field.to_db(self.value)
        param = self.pattern % escape_like(str(raw))
        if self.case_insensitive:
            return f"LOWER({self.lhs}) LIKE LOWER(?) {LIKE_ESCAPE}", [param]
        return f"{self.lhs} LIKE ? {LIKE_ESCAPE}", [param]


class IExact(PatternLookup):
    lookup_name = "iexact"
    case_insensitive = True


class Contains(PatternLookup):
    lookup_name = "contains"
    pattern = "%%%s%%"


class IContains(Contains):
    lookup_name = "icontains"
    case_insensitive = True


class StartsWith(PatternLookup):
    lookup_name = "startswith"
    pattern = "%s%%"


class IStartsWith(StartsWith):
    lookup_name = "istartswith"
    case_insensitive = True


class EndsWith(PatternLookup):
    lookup_name = "endswith"
    pattern = "%%%s"


class IEndsWith(EndsWith):
    lookup_name = "iendswith"
    case_insensitive = True


class In(Lookup):
    lookup_name = "in"

    def as_sql(self) -> Tuple[str, List[Any]]:
        if isinstance(self.value, (str, bytes)) or not hasattr(self.value, "__iter__"):
            raise TypeError(f"'in' lookups expect an iterable, got {self.value!r}")
        params = [self.prepare(item) for item in self.value if item is not None]
        params = list(dict.fromkeys(params))
        if not params:
            # Empty membership matches nothing.
            return "0 = 1", []
        placeholders = ", ".join("?" for _ in params)
        return f"{self.lhs} IN ({placeholders})", params


class Range(Lookup):
    lookup_name = "range"

    def as_sql(self) -> Tuple[str, List[Any]]:
        try:
            low, high = self.value
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'range' lookups expect a (low, high) pair, got {self.value!r}") from exc
        return f"{self.lhs} BETWEEN ? AND ?", [self.prepare(low), self.prepare(high)]


class IsNull(Lookup):
    lookup_name = "isnull"

    def as_sql(self) -> Tuple[str, List[Any]]:
        if not isinstance(self.value, bool):
            raise ValueError("The QuerySet value for an isnull lookup must be True or False.")
        if self.value:
            return f"{self.lhs} IS NULL", []
        return f"{self.lhs} IS NOT NULL", []


LOOKUPS: Dict[str, Type[Lookup]] = {
    cls.lookup_name: cls
    for cls in (
        Exact,
        IExact,
        Contains,
        IContains,
        StartsWith,
        IStartsWith,
        EndsWith,
        IEndsWith,
        In,
        GreaterThan,
        GreaterThanOrEqual,
        LessThan,
        LessThanOrEqual,
        Range,
        IsNull,
    )
}


def build_lookup(
    lhs: str, field: "Field", lookup_name: str, value: Any, transform_name: str | None = None
) -> Lookup:
    transform = None
    if transform_name is not None:
        if transform_name not in field.transforms:
            raise FieldError(
                f"Unsupported transform '{transform_name}' for {field.__class__.__name__} '{field.name}'."
            )
        transform = TRANSFORMS[transform_name](field)
    lookup_cls = LOOKUPS.get(lookup_name)
    if lookup_cls is None:
        raise FieldError(
            f"Unsupported lookup '{lookup_name}' for {field.__class__.__name__} '{field.name}'."
        )
    return lookup_cls(lhs, field, value, transform)

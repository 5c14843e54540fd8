"""
Field definitions and descriptors for queryguide models.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence, cast

from ..exceptions import FieldError

if TYPE_CHECKING:
    from .model import Model


DATETIME_STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class Field:
    """
    Base class for model field descriptors.

    A field stores its value on the instance under ``attname`` and knows
    how to convert between Python values and their SQLite representation.
    """

    _creation_counter = 0
    is_relation = False
    transforms: tuple[str, ...] = ()

    def __init__(
        self,
        *,
        primary_key: bool = False,
        unique: bool = False,
        nullable: bool = True,
        default: Any = None,
        db_type: Optional[str] = None,
        db_column: Optional[str] = None,
        index: bool = False,
        choices: Optional[Sequence[Any]] = None,
        help_text: Optional[str] = None,
    ) -> None:
        self.primary_key = primary_key
        self.unique = unique
        self.nullable = nullable
        self.default = default
        self.db_type = db_type
        self.db_column = db_column
        self.index = index
        self.choices = tuple(_plain(choice) for choice in choices) if choices is not None else None
        self.help_text = help_text

        self.model: type["Model"] | None = None
        self.name: str | None = None
        self.attname: str | None = None
        self.creation_counter = Field._creation_counter
        Field._creation_counter += 1

    def __repr__(self) -> str:
        if self.model is not None and self.name is not None:
            return f"<{self.__class__.__name__}: {self.model.__name__}.{self.name}>"
        return f"<{self.__class__.__name__}>"

    # Descriptor protocol -------------------------------------------------
    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        model_instance = cast("Model", instance)
        return model_instance._field_values.get(self.require_attname())

    def __set__(self, instance: object, value: Any) -> None:
        model_instance = cast("Model", instance)
        model_instance._field_values[self.require_attname()] = self.clean_value(value)

    def clean_value(self, value: Any) -> Any:
        name = self.require_name()
        if value is None:
            if not self.nullable and not self.primary_key:
                raise ValueError(f"Field '{name}' cannot be None")
            return None
        value = _plain(value)
        if self.choices and value not in self.choices:
            raise ValueError(f"Value '{value}' for field '{name}' not in choices {self.choices}")
        return self.to_python(value)

    # Metadata helpers ----------------------------------------------------
    def get_attname(self) -> str:
        return self.require_name()

    def contribute_to_class(self, model: type["Model"], name: str) -> None:
        """
        Bind the field to ``model`` and install it as a descriptor.
        """
        self.model = model
        self.name = name
        self.attname = self.get_attname()
        setattr(model, self.attname, self)

    def require_name(self) -> str:
        if self.name is None:
            raise FieldError("Field name is not set.")
        return self.name

    def require_attname(self) -> str:
        if self.attname is None:
            raise FieldError("Field attname is not set.")
        return self.attname

    def column_name(self) -> str:
        if self.db_column:
            return self.db_column
        return self.require_attname()

    # Conversion ----------------------------------------------------------
    @property
    def has_default(self) -> bool:
        return self.default is not None

    def get_default(self) -> Any:
        if callable(self.default):
            return self.default()
        return self.default

    def to_python(self, value: Any) -> Any:
        return value

    def to_db(self, value: Any) -> Any:
        """
        Convert a Python value (or a lookup argument) into a SQLite value.
        """
        if value is None:
            return None
        return self.to_python(_plain(value))

    def from_db(self, value: Any) -> Any:
        if value is None:
            return None
        return self.to_python(value)

    def pre_save(self, instance: "Model", add: bool) -> Any:
        """
        Return the value to persist for ``instance``.
        """
        return instance._field_values.get(self.require_attname())


class AutoField(Field):
    """
    Auto-incrementing integer field used as default primary key.
    """

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("primary_key", True)
        kwargs.setdefault("nullable", False)
        kwargs.setdefault("db_type", "INTEGER")
        super().__init__(**kwargs)

    def to_python(self, value: Any) -> int | None:
        if value is None:
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value '{value}' for AutoField") from exc


class IntegerField(Field):
    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", "INTEGER")
        super().__init__(**kwargs)

    def to_python(self, value: Any) -> int | None:
        if value is None:
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid integer value '{value}'") from exc


class BooleanField(Field):
    def __init__(self, *, default: Any = False, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", "BOOLEAN")
        kwargs.setdefault("nullable", False)
        super().__init__(default=default, **kwargs)

    def to_python(self, value: Any) -> bool | None:
        if value is None:
            return value
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in {"true", "t", "1"}:
                return True
            if lowered in {"false", "f", "0"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"Invalid boolean value '{value}'")

    def to_db(self, value: Any) -> int | None:
        value = self.to_python(value)
        if value is None:
            return None
        return int(value)


class StringField(Field):
    """Bounded text, rendered as ``VARCHAR(max_length)``."""

    def __init__(self, *, max_length: int = 255, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", f"VARCHAR({max_length})")
        kwargs.setdefault("nullable", False)
        super().__init__(**kwargs)
        self.max_length = max_length

    def to_python(self, value: Any) -> str | None:
        if value is None:
            return value
        result = str(_plain(value))
        if self.max_length and len(result) > self.max_length:
            raise ValueError(
                f"Value for field '{self.require_name()}' exceeds max_length {self.max_length}"
            )
        return result

    def to_db(self, value: Any) -> Any:
        # Lookup arguments (patterns, partial values) skip the length check.
        if value is None:
            return None
        return str(_plain(value))


class TextField(Field):
    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("db_type", "TEXT")
        kwargs.setdefault("nullable", False)
        super().__init__(**kwargs)

    def to_python(self, value: Any) -> str | None:
        if value is None:
            return value
        return str(_plain(value))


class SlugField(StringField):
    def __init__(self, *, max_length: int = 50, **kwargs: Any) -> None:
        kwargs.setdefault("index", True)
        super().__init__(max_length=max_length, **kwargs)

    def to_python(self, value: Any) -> str | None:
        result = super().to_python(value)
        if result is not None and any(ch.isspace() for ch in result):
            raise ValueError(f"Slug '{result}' for field '{self.require_name()}' contains whitespace")
        return result


class DateTimeField(Field):
    """
    Timezone-aware datetime stored as UTC text.

    Naive datetimes are taken to be UTC. ``auto_now`` refreshes the value
    on every save and ``auto_now_add`` stamps it on the first insert.
    """

    transforms = ("year", "month", "day", "date")

    def __init__(
        self, *, auto_now: bool = False, auto_now_add: bool = False, **kwargs: Any
    ) -> None:
        kwargs.setdefault("db_type", "DATETIME")
        if auto_now or auto_now_add:
            kwargs.setdefault("nullable", True)
        else:
            kwargs.setdefault("nullable", False)
        super().__init__(**kwargs)
        self.auto_now = auto_now
        self.auto_now_add = auto_now_add

    def to_python(self, value: Any) -> datetime | None:
        if value is None:
            return value
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime(value.year, value.month, value.day)
        elif isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError as exc:
                raise ValueError(
                    f"Invalid datetime value {value!r} for field '{self.name}'"
                ) from exc
        else:
            raise ValueError(f"Expected datetime for field '{self.name}', received {value!r}")
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def to_db(self, value: Any) -> str | None:
        value = self.to_python(value)
        if value is None:
            return None
        return value.strftime(DATETIME_STORAGE_FORMAT)

    def pre_save(self, instance: "Model", add: bool) -> Any:
        if self.auto_now or (self.auto_now_add and add):
            value = datetime.now(timezone.utc)
            setattr(instance, self.require_attname(), value)
            return value
        return super().pre_save(instance, add)

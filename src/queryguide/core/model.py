"""
Model base class and metadata orchestration.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Type

from ..exceptions import (
    FieldError,
    ModelConfigurationError,
    MultipleObjectsReturned,
    ObjectDoesNotExist,
)
from ..utils import default_table_name, model_label
from .fields import AutoField, Field
from .manager import Manager
from .relations import ForeignKey, relation_registry

if TYPE_CHECKING:
    from ..db.database import Database
    from ..query.queryset import QuerySet


@dataclass(frozen=True)
class Index:
    """
    Secondary index declared through ``Meta.indexes``; prefix a field
    name with ``-`` for a descending column.
    """

    fields: Sequence[str]
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.fields:
            raise ModelConfigurationError("Index requires at least one field.")
        object.__setattr__(self, "fields", tuple(self.fields))


@dataclass
class ModelOptions:
    """
    Container for model metadata calculated by :class:`ModelMeta`.
    """

    model: Type["Model"]
    table_name: str = ""
    app_label: Optional[str] = None
    ordering: tuple[str, ...] = ()
    indexes: List[Index] = field(default_factory=list)
    fields: "OrderedDict[str, Field]" = field(default_factory=OrderedDict)
    primary_key: Optional[Field] = None
    managers: List[Manager] = field(default_factory=list)

    def add_field(self, field_obj: Field) -> None:
        if field_obj.name in self.fields:
            raise ModelConfigurationError(
                f"Duplicate field name '{field_obj.name}' on model '{self.model.__name__}'"
            )
        self.fields[field_obj.require_name()] = field_obj
        if field_obj.primary_key:
            if self.primary_key and self.primary_key is not field_obj:
                raise ModelConfigurationError(
                    f"Multiple primary keys defined on model '{self.model.__name__}'"
                )
            self.primary_key = field_obj

    def add_manager(self, manager: Manager) -> None:
        self.managers.append(manager)

    @property
    def label(self) -> str:
        return model_label(self.model.__name__, self.app_label)

    @property
    def default_manager(self) -> Manager:
        if not self.managers:
            raise ModelConfigurationError(f"Model '{self.model.__name__}' has no managers.")
        return self.managers[0]

    def get_field(self, name: str) -> Field:
        """
        Resolve a field by name, by its ``attname`` or by the ``pk`` alias.
        """
        if name == "pk" and self.primary_key is not None:
            return self.primary_key
        if name in self.fields:
            return self.fields[name]
        for candidate in self.fields.values():
            if candidate.attname == name:
                return candidate
        choices = ", ".join(["pk", *self.fields])
        raise FieldError(
            f"Cannot resolve keyword '{name}' into field on '{self.model.__name__}'. "
            f"Choices are: {choices}"
        )

    def get_fields(self) -> Iterable[Field]:
        return self.fields.values()

    def relation_fields(self) -> List[ForeignKey]:
        return [f for f in self.fields.values() if isinstance(f, ForeignKey)]

    def base_queryset(self) -> "QuerySet":
        """
        Unfiltered QuerySet, used for relation access regardless of what
        custom managers do.
        """
        from ..query.queryset import QuerySet

        return QuerySet(self.model)


class ModelMeta(type):
    """
    Collects fields and managers and establishes model metadata.
    """

    def __new__(mcls, name: str, bases: tuple[type, ...], attrs: Dict[str, Any]) -> "ModelMeta":
        parents = [base for base in bases if isinstance(base, ModelMeta)]
        if not parents:
            return super().__new__(mcls, name, bases, attrs)
        if any(parent is not Model for parent in parents):
            raise ModelConfigurationError(
                f"Model '{name}' subclasses a concrete model; model inheritance is not supported."
            )

        declared_fields: Dict[str, Field] = {}
        declared_managers: Dict[str, Manager] = {}
        for attr_name, value in list(attrs.items()):
            if isinstance(value, Field):
                declared_fields[attr_name] = attrs.pop(attr_name)
            elif isinstance(value, Manager):
                declared_managers[attr_name] = attrs.pop(attr_name)
        meta = attrs.pop("Meta", None)

        cls = super().__new__(mcls, name, bases, attrs)

        app_label = getattr(meta, "app_label", None)
        cls._meta = ModelOptions(
            model=cls,
            app_label=app_label,
            table_name=getattr(meta, "db_table", None) or default_table_name(name, app_label),
            ordering=tuple(getattr(meta, "ordering", ())),
            indexes=list(getattr(meta, "indexes", ())),
        )

        sorted_fields = sorted(declared_fields.items(), key=lambda item: item[1].creation_counter)
        for attr_name, field_obj in sorted_fields:
            field_obj.contribute_to_class(cls, attr_name)
            cls._meta.add_field(field_obj)
            if isinstance(field_obj, ForeignKey):
                relation_registry.register_field(cls, field_obj)

        if not cls._meta.primary_key:
            if "id" in cls._meta.fields:
                raise ModelConfigurationError(
                    f"Model '{name}' defines a field named 'id' but no primary key. "
                    "Either set primary_key=True on that field or define a different name."
                )
            auto_field = AutoField()
            auto_field.contribute_to_class(cls, "id")
            cls._meta.add_field(auto_field)
            cls._meta.fields.move_to_end("id", last=False)

        cls.DoesNotExist = mcls._error_class(cls, "DoesNotExist", ObjectDoesNotExist)
        cls.MultipleObjectsReturned = mcls._error_class(
            cls, "MultipleObjectsReturned", MultipleObjectsReturned
        )

        if not declared_managers:
            declared_managers["objects"] = Manager()
        for manager_name, manager in declared_managers.items():
            manager.contribute_to_class(cls, manager_name)

        relation_registry.register_model(cls)
        return cls

    @staticmethod
    def _error_class(model: type, name: str, base: type[Exception]) -> type[Exception]:
        return type(
            name,
            (base,),
            {"__module__": model.__module__, "__qualname__": f"{model.__qualname__}.{name}"},
        )


class Model(metaclass=ModelMeta):
    """
    Base model: a row of the model's table as a Python object.
    """

    _meta: ModelOptions
    DoesNotExist: Type[ObjectDoesNotExist]
    MultipleObjectsReturned: Type[MultipleObjectsReturned]

    def __init__(self, **kwargs: Any) -> None:
        self._field_values: Dict[str, Any] = {}
        self._related_cache: Dict[str, Any] = {}
        self._database: Optional["Database"] = None

        accepted = set()
        for field_obj in self._meta.get_fields():
            accepted.update({field_obj.require_name(), field_obj.require_attname()})
        unexpected = sorted(set(kwargs) - accepted)
        if unexpected:
            raise TypeError(
                f"{self.__class__.__name__}() got unexpected keyword arguments: {', '.join(unexpected)}"
            )

        for field_obj in self._meta.get_fields():
            name, attname = field_obj.require_name(), field_obj.require_attname()
            if name in kwargs:
                setattr(self, name, kwargs[name])
            elif attname in kwargs:
                setattr(self, attname, kwargs[attname])
            elif field_obj.has_default:
                setattr(self, attname, field_obj.get_default())

    @classmethod
    def from_db(cls, database: Optional["Database"], row: Dict[str, Any]) -> "Model":
        """
        Build an instance from a row keyed by column name.
        """
        instance = cls.__new__(cls)
        instance._field_values = {}
        instance._related_cache = {}
        instance._database = database
        for field_obj in cls._meta.get_fields():
            column = field_obj.column_name()
            if column in row:
                instance._field_values[field_obj.require_attname()] = field_obj.from_db(row[column])
        return instance

    def __str__(self) -> str:
        return f"{self.__class__.__name__} object ({self.pk})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model) or type(other) is not type(self):
            return NotImplemented
        if self.pk is None:
            return self is other
        return self.pk == other.pk

    def __hash__(self) -> int:
        if self.pk is None:
            raise TypeError("Model instances without primary key value are unhashable")
        return hash((type(self), self.pk))

    @property
    def pk(self) -> Any:
        if not self._meta.primary_key:
            raise ModelConfigurationError(
                f"Model '{self.__class__.__name__}' does not define a primary key."
            )
        return self._field_values.get(self._meta.primary_key.require_attname())

    @pk.setter
    def pk(self, value: Any) -> None:
        if not self._meta.primary_key:
            raise ModelConfigurationError(
                f"Model '{self.__class__.__name__}' does not define a primary key."
            )
        setattr(self, self._meta.primary_key.require_attname(), value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            field_obj.require_attname(): self._field_values.get(field_obj.require_attname())
            for field_obj in self._meta.get_fields()
        }

    # Persistence ---------------------------------------------------------
    def save(
        self,
        *,
        update_fields: Iterable[str] | None = None,
        force_insert: bool = False,
        using: Optional["Database"] = None,
    ) -> None:
        """
        INSERT when the primary key is unset (or ``force_insert``), UPDATE
        otherwise. An UPDATE that matches no row falls back to INSERT.
        """
        from ..db.persistence import save_instance

        save_instance(
            self._resolve_database(using),
            self,
            update_fields=update_fields,
            force_insert=force_insert,
        )

    def delete(self, *, using: Optional["Database"] = None) -> tuple[int, Dict[str, int]]:
        if self.pk is None:
            raise ValueError(
                f"{self.__class__.__name__} object can't be deleted because its "
                f"{self._meta.primary_key.name} attribute is set to None."
            )
        from ..db.deletion import Collector

        collector = Collector(self._resolve_database(using))
        collector.collect([self])
        return collector.delete()

    def refresh_from_db(self, *, using: Optional["Database"] = None) -> None:
        database = self._resolve_database(using)
        fresh = self._meta.base_queryset().using(database).get(pk=self.pk)
        self._field_values = dict(fresh._field_values)
        self._related_cache.clear()
        self._database = database

    def _resolve_database(self, using: Optional["Database"]) -> "Database":
        if using is not None:
            return using
        if self._database is not None:
            return self._database
        from ..db.connection import get_database

        return get_database()

    @classmethod
    def register_hook(cls, event: str, handler) -> None:
        from ..hooks import hooks

        hooks.register(event, handler, model=cls)

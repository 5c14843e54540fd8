"""
Managers: the named entry points through which a model's QuerySets are
obtained.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Type

from ..query.expressions import Q
from ..query.queryset import QuerySet

if TYPE_CHECKING:
    from ..db.database import Database
    from .model import Model
    from .relations import ForeignKey


class Manager:
    """
    Default manager providing QuerySet access for a model.

    Subclasses customise the base QuerySet by overriding
    :meth:`get_queryset`; every proxy method below starts from it.
    """

    def __init__(self) -> None:
        self.model: Optional[Type["Model"]] = None
        self.name: Optional[str] = None

    def __repr__(self) -> str:
        if self.model is None:
            return f"<{self.__class__.__name__}>"
        return f"<{self.__class__.__name__}: {self.model.__name__}.{self.name}>"

    def __get__(self, instance: object | None, owner: type | None = None) -> "Manager":
        if instance is not None:
            raise AttributeError(
                f"Manager isn't accessible via {type(instance).__name__} instances"
            )
        return self

    def contribute_to_class(self, model: Type["Model"], name: str) -> None:
        self.model = model
        self.name = name
        setattr(model, name, self)
        model._meta.add_manager(self)

    def require_model(self) -> Type["Model"]:
        if self.model is None:
            raise RuntimeError(f"{self.__class__.__name__} is not attached to a model.")
        return self.model

    def get_queryset(self) -> QuerySet:
        return QuerySet(self.require_model())

    # Proxies -------------------------------------------------------------
    def all(self) -> QuerySet:
        return self.get_queryset()

    def filter(self, *conditions: Q, **lookups: Any) -> QuerySet:
        return self.get_queryset().filter(*conditions, **lookups)

    def exclude(self, *conditions: Q, **lookups: Any) -> QuerySet:
        return self.get_queryset().exclude(*conditions, **lookups)

    def get(self, *conditions: Q, **lookups: Any) -> "Model":
        return self.get_queryset().get(*conditions, **lookups)

    def create(self, **values: Any) -> "Model":
        return self.get_queryset().create(**values)

    def get_or_create(self, defaults: dict[str, Any] | None = None, **lookups: Any) -> tuple["Model", bool]:
        return self.get_queryset().get_or_create(defaults=defaults, **lookups)

    def update_or_create(self, defaults: dict[str, Any] | None = None, **lookups: Any) -> tuple["Model", bool]:
        return self.get_queryset().update_or_create(defaults=defaults, **lookups)

    def order_by(self, *fields: str) -> QuerySet:
        return self.get_queryset().order_by(*fields)

    def reverse(self) -> QuerySet:
        return self.get_queryset().reverse()

    def select_related(self, *fields: str) -> QuerySet:
        return self.get_queryset().select_related(*fields)

    def count(self) -> int:
        return self.get_queryset().count()

    def exists(self) -> bool:
        return self.get_queryset().exists()

    def first(self) -> Optional["Model"]:
        return self.get_queryset().first()

    def last(self) -> Optional["Model"]:
        return self.get_queryset().last()

    def update(self, **values: Any) -> int:
        return self.get_queryset().update(**values)

    def none(self) -> QuerySet:
        return self.get_queryset().none()

    def using(self, database: "Database") -> QuerySet:
        return self.get_queryset().using(database)


class RelatedManager(Manager):
    """
    Reverse side of a foreign key, pre-filtered to one parent instance.

    Starts from the related model's default manager, so a custom first
    manager also narrows what the reverse accessor returns.
    """

    def __init__(self, model: Type["Model"], field: "ForeignKey", instance: "Model") -> None:
        super().__init__()
        self.model = model
        self.name = field.accessor_name()
        self.field = field
        self.instance = instance

    def get_queryset(self) -> QuerySet:
        if self.instance.pk is None:
            raise ValueError(
                f"'{type(self.instance).__name__}' instance needs a primary key value "
                "before this relationship can be used."
            )
        queryset = self.require_model()._meta.default_manager.get_queryset()
        if self.instance._database is not None:
            queryset = queryset.using(self.instance._database)
        return queryset.filter(**{self.field.require_name(): self.instance.pk})

    def create(self, **values: Any) -> "Model":
        values[self.field.require_name()] = self.instance
        return self.get_queryset().create(**values)

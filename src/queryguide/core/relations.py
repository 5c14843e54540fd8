"""
Foreign-key field, relation accessors and the model registry used to
resolve relation targets declared by name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

from ..exceptions import ModelConfigurationError
from .fields import Field

if TYPE_CHECKING:
    from .manager import RelatedManager
    from .model import Model


CASCADE = "CASCADE"
SET_NULL = "SET_NULL"
PROTECT = "PROTECT"
ON_DELETE_CHOICES = (CASCADE, SET_NULL, PROTECT)


class ForeignKey(Field):
    """
    Many-to-one relation stored in a ``<name>_id`` column.

    ``instance.<name>`` loads the related object on first access and caches
    it; ``instance.<name>_id`` exposes the raw key.
    """

    is_relation = True

    def __init__(
        self,
        to: Type["Model"] | str,
        *,
        related_name: Optional[str] = None,
        on_delete: str = CASCADE,
        **kwargs: Any,
    ) -> None:
        if on_delete not in ON_DELETE_CHOICES:
            raise ModelConfigurationError(
                f"on_delete must be one of {ON_DELETE_CHOICES}, got {on_delete!r}"
            )
        kwargs.setdefault("db_type", "INTEGER")
        kwargs.setdefault("nullable", False)
        kwargs.setdefault("index", True)
        super().__init__(**kwargs)
        if on_delete == SET_NULL and not self.nullable:
            raise ModelConfigurationError("on_delete=SET_NULL requires nullable=True")
        self.to = to
        self.related_name = related_name
        self.on_delete = on_delete
        self.remote_model: Optional[Type["Model"]] = to if isinstance(to, type) else None

    # Metadata ------------------------------------------------------------
    def get_attname(self) -> str:
        return f"{self.require_name()}_id"

    def contribute_to_class(self, model: Type["Model"], name: str) -> None:
        super().contribute_to_class(model, name)
        setattr(model, name, self)
        setattr(model, self.require_attname(), ForeignKeyIdDescriptor(self))

    def resolve_model(self, model: Type["Model"]) -> None:
        self.remote_model = model

    def require_remote_model(self) -> Type["Model"]:
        if self.remote_model is None:
            raise ModelConfigurationError(f"Relation target '{self.to}' is not resolved.")
        return self.remote_model

    @property
    def target_field(self) -> Field:
        pk = self.require_remote_model()._meta.primary_key
        if pk is None:
            raise ModelConfigurationError(
                f"Related model '{self.require_remote_model().__name__}' lacks a primary key."
            )
        return pk

    def accessor_name(self) -> str:
        return self.related_name or f"{self.require_model().__name__.lower()}_set"

    def require_model(self) -> Type["Model"]:
        if self.model is None:
            raise ModelConfigurationError("Field model is not set.")
        return self.model

    # Descriptor protocol -------------------------------------------------
    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        model_instance: "Model" = instance  # type: ignore[assignment]
        raw = model_instance._field_values.get(self.require_attname())
        if raw is None:
            return None
        cached = model_instance._related_cache.get(self.require_name())
        if cached is not None and cached.pk == raw:
            return cached
        queryset = self.require_remote_model()._meta.base_queryset()
        if model_instance._database is not None:
            queryset = queryset.using(model_instance._database)
        related = queryset.get(pk=raw)
        model_instance._related_cache[self.require_name()] = related
        return related

    def __set__(self, instance: object, value: Any) -> None:
        model_instance: "Model" = instance  # type: ignore[assignment]
        name = self.require_name()
        if value is None:
            if not self.nullable:
                raise ValueError(f"Field '{name}' cannot be None")
            model_instance._field_values[self.require_attname()] = None
            model_instance._related_cache.pop(name, None)
            return
        from .model import Model

        if isinstance(value, Model):
            remote = self.require_remote_model()
            if not isinstance(value, remote):
                raise ValueError(
                    f"Cannot assign {value!r}: '{self.require_model().__name__}.{name}' "
                    f"must be a '{remote.__name__}' instance."
                )
            if value.pk is None:
                raise ValueError(f"Cannot assign unsaved {remote.__name__} to '{name}'")
            model_instance._field_values[self.require_attname()] = value.pk
            model_instance._related_cache[name] = value
            return
        model_instance._field_values[self.require_attname()] = self.to_python(value)
        model_instance._related_cache.pop(name, None)

    # Conversion ----------------------------------------------------------
    def to_python(self, value: Any) -> Any:
        if value is None:
            return None
        if hasattr(value, "_meta"):
            return value.pk
        return self.target_field.to_python(value)

    def to_db(self, value: Any) -> Any:
        if value is None:
            return None
        if hasattr(value, "_meta"):
            value = value.pk
        return self.target_field.to_db(value)


class ForeignKeyIdDescriptor:
    """
    Raw key access (``post.author_id``); writing it drops the cached object.
    """

    def __init__(self, field: ForeignKey) -> None:
        self.field = field

    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._field_values.get(self.field.require_attname())  # type: ignore[attr-defined]

    def __set__(self, instance: object, value: Any) -> None:
        if value is None and not self.field.nullable:
            raise ValueError(f"Field '{self.field.require_name()}' cannot be None")
        instance._field_values[self.field.require_attname()] = self.field.to_python(value)  # type: ignore[attr-defined]
        instance._related_cache.pop(self.field.require_name(), None)  # type: ignore[attr-defined]


class ReverseRelationAccessor:
    """
    Installed on the target model under the relation's ``related_name``.
    """

    def __init__(self, source_model: Type["Model"], field: ForeignKey) -> None:
        self.source_model = source_model
        self.field = field

    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        from .manager import RelatedManager

        manager: "RelatedManager" = RelatedManager(self.source_model, self.field, instance)
        return manager


class RelationRegistry:
    """
    Tracks declared models so string relation targets resolve once the
    target class exists, and records reverse relations for delete handling.
    """

    def __init__(self) -> None:
        self.models: Dict[str, Type["Model"]] = {}
        self.pending_fields: List[Tuple[Type["Model"], ForeignKey]] = []
        self.reverse: Dict[Type["Model"], List[ForeignKey]] = {}

    def register_model(self, model: Type["Model"]) -> None:
        self.models[model.__name__] = model
        self._resolve_pending()

    def register_field(self, model: Type["Model"], field: ForeignKey) -> None:
        target = self._resolve_target(field.to)
        if target is None:
            self.pending_fields.append((model, field))
            return
        self._link(model, field, target)

    def reverse_relations(self, model: Type["Model"]) -> List[ForeignKey]:
        return list(self.reverse.get(model, []))

    def _resolve_pending(self) -> None:
        unresolved = []
        for model, field in self.pending_fields:
            target = self._resolve_target(field.to)
            if target is None:
                unresolved.append((model, field))
                continue
            self._link(model, field, target)
        self.pending_fields = unresolved

    def _resolve_target(self, target: Type["Model"] | str) -> Optional[Type["Model"]]:
        if isinstance(target, type):
            return target
        return self.models.get(target.split(".")[-1])

    def _link(self, model: Type["Model"], field: ForeignKey, target: Type["Model"]) -> None:
        field.resolve_model(target)
        self.reverse.setdefault(target, []).append(field)
        setattr(target, field.accessor_name(), ReverseRelationAccessor(model, field))


relation_registry = RelationRegistry()

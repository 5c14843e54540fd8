"""
Row persistence for model instances (INSERT / UPDATE on save).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from ..hooks import POST_SAVE, PRE_SAVE, hooks
from ..query.compiler import compile_insert, compile_update_row

if TYPE_CHECKING:
    from ..core.model import Model
    from .database import Database


def save_instance(
    database: "Database",
    instance: "Model",
    *,
    update_fields: Optional[Iterable[str]] = None,
    force_insert: bool = False,
) -> None:
    if force_insert and update_fields is not None:
        raise ValueError("Cannot force an insert while restricting update_fields.")
    if update_fields is not None and instance.pk is None:
        raise ValueError("Cannot restrict update_fields on an unsaved instance.")
    fields_to_update = _resolve_update_fields(instance, update_fields)
    add = force_insert or instance.pk is None
    hooks.fire(PRE_SAVE, instance, database=database, created=add)
    with database.atomic():
        if not add:
            if not _update_row(database, instance, fields_to_update):
                if update_fields is not None:
                    raise instance.DoesNotExist("Save with update_fields did not affect any rows.")
                add = True
        if add:
            _insert_row(database, instance)
    instance._database = database
    hooks.fire(POST_SAVE, instance, database=database, created=add)


def _resolve_update_fields(instance: "Model", update_fields: Optional[Iterable[str]]) -> Optional[set[str]]:
    if update_fields is None:
        return None
    names = set()
    for name in update_fields:
        field = instance._meta.get_field(name)
        if field.primary_key:
            raise ValueError("update_fields cannot include the primary key.")
        names.add(field.require_name())
    return names


def _insert_row(database: "Database", instance: "Model") -> None:
    meta = instance._meta
    pk_field = meta.primary_key
    columns: List[str] = []
    params: List[Any] = []
    for field in meta.get_fields():
        value = field.pre_save(instance, True)
        if field is pk_field and value is None:
            continue
        columns.append(field.column_name())
        params.append(field.to_db(value))
    cursor = database.execute(compile_insert(type(instance), columns, database.dialect), params)
    if pk_field is not None and instance.pk is None:
        instance.pk = database.adapter.last_insert_id(cursor)


def _update_row(database: "Database", instance: "Model", only: Optional[set[str]]) -> bool:
    meta = instance._meta
    columns: List[str] = []
    params: List[Any] = []
    for field in meta.get_fields():
        if field.primary_key:
            continue
        if only is not None and field.require_name() not in only:
            continue
        columns.append(field.column_name())
        params.append(field.to_db(field.pre_save(instance, False)))
    if not columns:
        return meta.base_queryset().using(database).filter(pk=instance.pk).exists()
    params.append(meta.primary_key.to_db(instance.pk))
    cursor = database.execute(compile_update_row(type(instance), columns, database.dialect), params)
    return cursor.rowcount > 0

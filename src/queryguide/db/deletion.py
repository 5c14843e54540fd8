"""
Deletion collector: gathers the objects a delete reaches through foreign
keys and removes them in dependency order.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

from ..core.relations import CASCADE, PROTECT, SET_NULL, ForeignKey, relation_registry
from ..exceptions import ProtectedError
from ..hooks import POST_DELETE, PRE_DELETE, hooks
from ..query.compiler import compile_delete_pks, compile_null_fk
from ..utils import get_logger

if TYPE_CHECKING:
    from ..core.model import Model
    from .database import Database

CHUNK_SIZE = 500

logger = get_logger("db.deletion")


def _chunks(values: Sequence, size: int = CHUNK_SIZE):
    for start in range(0, len(values), size):
        yield values[start:start + size]


class Collector:
    def __init__(self, database: "Database") -> None:
        self.database = database
        self.data: "OrderedDict[type[Model], Dict[object, Model]]" = OrderedDict()
        self.field_updates: List[Tuple[ForeignKey, List["Model"]]] = []

    def collect(self, instances: Sequence["Model"]) -> None:
        if not instances:
            return
        model = type(instances[0])
        bucket = self.data.setdefault(model, {})
        new = [obj for obj in instances if obj.pk not in bucket]
        if not new:
            return
        for obj in new:
            bucket[obj.pk] = obj
        pks = [obj.pk for obj in new]
        for relation in relation_registry.reverse_relations(model):
            dependants = list(
                relation.require_model()._meta.base_queryset()
                .using(self.database)
                .filter(**{f"{relation.require_name()}__in": pks})
            )
            if not dependants:
                continue
            if relation.on_delete == PROTECT:
                raise ProtectedError(
                    f"Cannot delete some instances of model '{model.__name__}' because they are "
                    f"referenced through protected foreign key "
                    f"'{relation.require_model().__name__}.{relation.require_name()}'",
                    dependants,
                )
            if relation.on_delete == SET_NULL:
                self.field_updates.append((relation, dependants))
            elif relation.on_delete == CASCADE:
                self.collect(dependants)

    def delete(self) -> Tuple[int, Dict[str, int]]:
        counts: Dict[str, int] = {}
        dialect = self.database.dialect
        with self.database.atomic():
            for bucket in self.data.values():
                for obj in bucket.values():
                    hooks.fire(PRE_DELETE, obj, database=self.database)

            for relation, dependants in self.field_updates:
                pks = [obj.pk for obj in dependants]
                for chunk in _chunks(pks):
                    self.database.execute(compile_null_fk(relation, len(chunk), dialect), chunk)
                for obj in dependants:
                    setattr(obj, relation.require_attname(), None)

            # Dependants were collected after their parents: delete in reverse.
            for model, bucket in reversed(list(self.data.items())):
                pks = list(bucket)
                deleted = 0
                for chunk in _chunks(pks):
                    cursor = self.database.execute(compile_delete_pks(model, len(chunk), dialect), chunk)
                    deleted += cursor.rowcount
                counts[model._meta.label] = counts.get(model._meta.label, 0) + deleted

            for bucket in self.data.values():
                for obj in bucket.values():
                    hooks.fire(POST_DELETE, obj, database=self.database)
                    obj.pk = None

        total = sum(counts.values())
        logger.debug("Deleted %s rows: %s", total, counts)
        return total, dict(reversed(list(counts.items())))

"""
Core building blocks: fields, relations, managers and models.
"""

from .fields import (
    AutoField,
    BooleanField,
    DateTimeField,
    Field,
    IntegerField,
    SlugField,
    StringField,
    TextField,
)
from .manager import Manager, RelatedManager
from .model import Index, Model, ModelMeta, ModelOptions
from .relations import CASCADE, PROTECT, SET_NULL, ForeignKey, relation_registry

__all__ = [
    "AutoField",
    "BooleanField",
    "CASCADE",
    "DateTimeField",
    "Field",
    "ForeignKey",
    "Index",
    "IntegerField",
    "Manager",
    "Model",
    "ModelMeta",
    "ModelOptions",
    "PROTECT",
    "RelatedManager",
    "SET_NULL",
    "SlugField",
    "StringField",
    "TextField",
    "relation_registry",
]

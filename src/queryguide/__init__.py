"""
queryguide public package initialization.

A compact SQLite query layer exposing a Django-style model and QuerySet
API: managers, lazy querysets, field lookups and ``Q`` expressions.
"""

from .config import Settings  # noqa: F401
from .core import fields  # noqa: F401
from .core.fields import (
    AutoField,
    BooleanField,
    DateTimeField,
    IntegerField,
    SlugField,
    StringField,
    TextField,
)  # noqa: F401
from .core.manager import Manager  # noqa: F401
from .core.model import Index, Model  # noqa: F401
from .core.relations import CASCADE, PROTECT, SET_NULL, ForeignKey  # noqa: F401
from .db import Database, DatabaseNotConfigured, connect, disconnect, get_database, use  # noqa: F401
from .exceptions import (
    FieldError,
    ModelConfigurationError,
    MultipleObjectsReturned,
    ObjectDoesNotExist,
    ProtectedError,
)  # noqa: F401
from .hooks import hooks  # noqa: F401
from .query import Q, QuerySet  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AutoField",
    "BooleanField",
    "CASCADE",
    "Database",
    "DatabaseNotConfigured",
    "DateTimeField",
    "FieldError",
    "ForeignKey",
    "Index",
    "IntegerField",
    "Manager",
    "Model",
    "ModelConfigurationError",
    "MultipleObjectsReturned",
    "ObjectDoesNotExist",
    "PROTECT",
    "ProtectedError",
    "Q",
    "QuerySet",
    "SET_NULL",
    "Settings",
    "SlugField",
    "StringField",
    "TextField",
    "connect",
    "disconnect",
    "fields",
    "get_database",
    "hooks",
    "use",
]

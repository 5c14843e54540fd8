"""
Errors raised by models and querysets.
"""

from __future__ import annotations

from typing import Any, Iterable


class ObjectDoesNotExist(Exception):
    """The requested object does not exist."""


class MultipleObjectsReturned(Exception):
    """A lookup expected to match one object matched several."""


class FieldError(Exception):
    """Raised for unknown fields, lookups or relation paths."""


class ModelConfigurationError(Exception):
    """Raised when a model class is misconfigured."""


class ProtectedError(Exception):
    """
    Raised when deleting an object referenced through a PROTECT foreign key.
    """

    def __init__(self, message: str, protected_objects: Iterable[Any]) -> None:
        self.protected_objects = list(protected_objects)
        super().__init__(message)

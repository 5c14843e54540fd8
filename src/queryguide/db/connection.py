"""
Default and context-bound database resolution.

Models and querysets that were not given a database explicitly use the
one bound with :func:`use` for the current context, else the default
installed by :func:`connect`.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

from ..config import Settings
from ..utils import configure_logging
from .database import Database


class DatabaseNotConfigured(RuntimeError):
    """Raised when a query runs before any database is available."""


_current: ContextVar[Optional[Database]] = ContextVar("queryguide_database", default=None)
_default: Optional[Database] = None


def connect(dsn: Optional[str] = None, *, settings: Optional[Settings] = None) -> Database:
    """
    Open a database from ``dsn`` (or the configured URL) and install it as
    the default.
    """
    global _default
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    database = Database(dsn or settings.database_url, settings=settings)
    if _default is not None:
        _default.close()
    _default = database
    return database


def disconnect() -> None:
    global _default
    if _default is not None:
        _default.close()
        _default = None


def get_database() -> Database:
    current = _current.get()
    if current is not None:
        return current
    if _default is not None:
        return _default
    raise DatabaseNotConfigured("No database configured. Call queryguide.connect() first.")


@contextmanager
def use(database: Database) -> Generator[Database, None, None]:
    token = _current.set(database)
    try:
        yield database
    finally:
        _current.reset(token)

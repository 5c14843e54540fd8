"""
Database adapter interfaces and the SQLite implementation.
"""

from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    ConnectionConfig,
    DatabaseAdapter,
    DSNConfig,
    IntegrityError,
    parse_dsn,
)
from .sqlite import SQLiteAdapter

__all__ = [
    "AdapterConfigurationError",
    "AdapterConnectionError",
    "AdapterError",
    "AdapterExecutionError",
    "ConnectionConfig",
    "DSNConfig",
    "DatabaseAdapter",
    "IntegrityError",
    "SQLiteAdapter",
    "parse_dsn",
]

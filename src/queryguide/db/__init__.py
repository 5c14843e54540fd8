"""
Database handle, transactions and default-database resolution.
"""

from .connection import DatabaseNotConfigured, connect, disconnect, get_database, use
from .database import Database
from .transaction import TransactionError, TransactionManager

__all__ = [
    "Database",
    "DatabaseNotConfigured",
    "TransactionError",
    "TransactionManager",
    "connect",
    "disconnect",
    "get_database",
    "use",
]

"""
SQL dialect support.
"""

from .sqlite import SQLiteDialect

__all__ = ["SQLiteDialect"]

"""
Query construction APIs: Q expressions, lookups, compilation and QuerySets.
"""

from .compiler import CompiledQuery, SQLCompiler
from .expressions import Q
from .lookups import LOOKUPS, TRANSFORMS
from .queryset import QuerySet

__all__ = ["CompiledQuery", "LOOKUPS", "Q", "QuerySet", "SQLCompiler", "TRANSFORMS"]

"""
Utility helpers shared across queryguide packages.
"""

from .logging import configure_logging, get_logger, redact_params, time_call
from .naming import camel_to_snake, default_table_name, model_label
from .querylog import CapturedQuery, QueryLog

__all__ = [
    "CapturedQuery",
    "QueryLog",
    "camel_to_snake",
    "configure_logging",
    "default_table_name",
    "get_logger",
    "model_label",
    "redact_params",
    "time_call",
]

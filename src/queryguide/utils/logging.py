"""Structured logging helpers for queryguide."""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Iterable, Optional

ROOT_LOGGER = "queryguide"

_correlation_id: ContextVar[str | None] = ContextVar("queryguide_correlation_id", default=None)

_SENSITIVE_TOKENS = ("password", "secret", "token")


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def configure_logging(level: int | str | None = None) -> None:
    """
    Attach the package handler once. Later calls only adjust the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    if logger.handlers:
        if level is not None:
            logger.setLevel(level)
        return
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(correlation_id)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    logger.addHandler(handler)
    logger.setLevel(level if level is not None else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def set_correlation_id(value: Optional[str] = None) -> str:
    token = value or uuid.uuid4().hex[:12]
    _correlation_id.set(token)
    return token


def get_correlation_id() -> str:
    cid = _correlation_id.get()
    if cid is None:
        cid = set_correlation_id()
    return cid


def redact_params(params: Iterable[Any] | None) -> list[Any]:
    redacted = []
    for value in params or ():
        if isinstance(value, str) and any(token in value.lower() for token in _SENSITIVE_TOKENS):
            redacted.append("***")
        else:
            redacted.append(value)
    return redacted


class time_call:
    """
    Context manager logging how long a block took.

    Blocks slower than ``threshold_ms`` are logged at WARNING, the rest at
    DEBUG. The measured duration is available as ``elapsed_ms`` afterwards.
    """

    def __init__(
        self,
        name: str,
        logger: logging.Logger,
        *,
        sql: str | None = None,
        params: Iterable[Any] | None = None,
        threshold_ms: float = 100,
    ) -> None:
        self.name = name
        self.logger = logger
        self.sql = sql
        self.params = redact_params(params) if params is not None else None
        self.threshold_ms = threshold_ms
        self.elapsed_ms = 0.0
        self._start = 0.0

    def __enter__(self) -> "time_call":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.elapsed_ms = (time.monotonic() - self._start) * 1000
        level = logging.WARNING if self.elapsed_ms >= self.threshold_ms else logging.DEBUG
        extra = {"sql": self.sql, "params": self.params, "elapsed_ms": self.elapsed_ms}
        self.logger.log(level, "%s took %.2fms", self.name, self.elapsed_ms, extra=extra)

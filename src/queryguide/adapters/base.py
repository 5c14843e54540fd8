"""
Connection configuration and the adapter error hierarchy.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence
from urllib.parse import parse_qs, urlencode, urlparse

from ..dialects import SQLiteDialect


class AdapterError(RuntimeError):
    """Base error for adapter-related failures."""


class AdapterConfigurationError(AdapterError):
    """Raised when configuration is invalid."""


class AdapterConnectionError(AdapterError):
    """Raised when establishing or using a connection fails."""


class AdapterExecutionError(AdapterError):
    """Raised when SQL execution fails."""


class IntegrityError(AdapterExecutionError):
    """Raised when a statement violates a database constraint."""


@dataclass
class DSNConfig:
    driver: str
    username: Optional[str]
    password: Optional[str]
    host: Optional[str]
    port: Optional[int]
    path: str
    query: dict[str, str]

    def redacted(self) -> str:
        """
        Return the DSN with the password masked.
        """
        netloc = ""
        if self.username:
            netloc += self.username
            if self.password:
                netloc += ":***"
            netloc += "@"
        if self.host:
            netloc += self.host
        if self.port:
            netloc += f":{self.port}"
        result = f"{self.driver}://{netloc}{self.path}"
        if self.query:
            result += f"?{urlencode(self.query)}"
        return result


def parse_dsn(dsn: str) -> DSNConfig:
    parsed = urlparse(dsn)
    return DSNConfig(
        driver=parsed.scheme,
        username=parsed.username,
        password=parsed.password,
        host=parsed.hostname,
        port=parsed.port,
        path=parsed.path or "",
        query={key: values[0] for key, values in parse_qs(parsed.query).items()},
    )


def _parse_float(value: str, *, key: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise AdapterConfigurationError(f"Invalid float value for '{key}': {value!r}") from exc


@dataclass
class ConnectionConfig:
    """
    Normalized connection configuration for adapters.

    ``isolation_level`` selects the SQLite ``BEGIN`` mode (DEFERRED,
    IMMEDIATE or EXCLUSIVE); ``timeout`` is the busy timeout in seconds.
    """

    url: str
    timeout: float | None = None
    isolation_level: str | None = None
    options: dict[str, Any] | None = None
    dsn: DSNConfig | None = None
    source: str | None = None

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a connection config by parsing the DSN string. Keyword
        arguments override values found in the query string.
        """
        parsed = parse_dsn(dsn)
        if parsed.driver != "sqlite":
            raise AdapterConfigurationError(
                f"Unsupported database driver '{parsed.driver}'; only sqlite DSNs are accepted."
            )
        query = dict(parsed.query)
        timeout = _parse_float(query.pop("timeout"), key="timeout") if "timeout" in query else None
        isolation_level = query.pop("isolation_level", None)
        if isolation_level and isolation_level.upper() not in SQLiteDialect.transaction_modes:
            raise AdapterConfigurationError(
                f"Invalid isolation_level {isolation_level!r}; expected one of "
                f"{', '.join(SQLiteDialect.transaction_modes)}"
            )

        options = dict(query)
        options.update(kwargs.pop("options", None) or {})

        return cls(
            url=dsn,
            dsn=parsed,
            timeout=kwargs.pop("timeout", timeout),
            isolation_level=kwargs.pop("isolation_level", isolation_level),
            options=options or None,
            **kwargs,
        )

    @classmethod
    def from_env(cls, env_var: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a config from an environment variable containing a DSN.
        """
        value = os.getenv(env_var)
        if not value:
            raise AdapterConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **kwargs)

    def redacted_dsn(self) -> str:
        if self.dsn:
            return self.dsn.redacted()
        return self.url

    def descriptive_label(self) -> str:
        redacted = self.redacted_dsn()
        if self.source:
            return f"{self.source} ({redacted})"
        return redacted


class DatabaseAdapter(Protocol):
    """
    Operations the database layer needs from a driver adapter.
    """

    dialect: SQLiteDialect

    def connect(self, config: ConnectionConfig) -> Any: ...

    def close(self) -> None: ...

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any: ...

    def executemany(self, sql: str, seq_of_params: Sequence[Sequence[Any]]) -> Any: ...

    def begin(self, mode: str | None = None) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def last_insert_id(self, cursor: Any) -> Any: ...

"""
Environment-driven settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .adapters.base import AdapterConfigurationError

ENV_PREFIX = "QUERYGUIDE_"
DEFAULT_DATABASE_URL = "sqlite:///:memory:"


def _read_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise AdapterConfigurationError(f"Invalid integer value for '{key}': {raw!r}") from exc
    if value < 0:
        raise AdapterConfigurationError(f"'{key}' must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "WARNING"
    slow_query_ms: int = 200
    n_plus_one_threshold: int = 5

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Read ``QUERYGUIDE_*`` variables, falling back to the defaults.
        """
        env = os.environ if env is None else env
        return cls(
            database_url=env.get(f"{ENV_PREFIX}DATABASE_URL") or DEFAULT_DATABASE_URL,
            log_level=(env.get(f"{ENV_PREFIX}LOG_LEVEL") or "WARNING").upper(),
            slow_query_ms=_read_int(env, f"{ENV_PREFIX}SLOW_QUERY_MS", 200),
            n_plus_one_threshold=_read_int(env, f"{ENV_PREFIX}N_PLUS_ONE_THRESHOLD", 5),
        )

"""
Executed-statement log with repeated-query (N+1) detection.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, List, Sequence


@dataclass(frozen=True)
class CapturedQuery:
    sql: str
    params: tuple[Any, ...]
    elapsed_ms: float

    def __str__(self) -> str:
        from ..query.compiler import interpolate

        return interpolate(self.sql, self.params)


@dataclass
class QueryStat:
    sql: str
    count: int = 0
    total_ms: float = 0.0
    fingerprints: set[str] = field(default_factory=set)

    def record(self, fingerprint: str, elapsed_ms: float) -> None:
        self.count += 1
        self.total_ms += elapsed_ms
        if fingerprint:
            self.fingerprints.add(fingerprint)

    @property
    def average_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_ms / self.count


class QueryLog:
    """
    Records every statement a database executes.

    Statements are aggregated by their normalised SQL. When one statement
    runs ``n_plus_one_threshold`` times or more with at least two distinct
    parameter sets a single warning is logged, which is the shape lazy
    foreign-key access inside a loop produces. Only SELECT statements are
    considered.
    """

    def __init__(self, logger: logging.Logger, *, n_plus_one_threshold: int = 5) -> None:
        self.logger = logger
        self.n_plus_one_threshold = n_plus_one_threshold
        self.stats: dict[str, QueryStat] = {}
        self._reported: set[str] = set()
        self._captures: List[List[CapturedQuery]] = []

    def record(self, sql: str, params: Sequence[Any], elapsed_ms: float) -> CapturedQuery:
        normalized_sql = self._normalize_sql(sql)
        entry = CapturedQuery(sql=normalized_sql, params=tuple(params), elapsed_ms=elapsed_ms)
        for bucket in self._captures:
            bucket.append(entry)
        stat = self.stats.setdefault(normalized_sql, QueryStat(sql=normalized_sql))
        stat.record(self._fingerprint(params), elapsed_ms)
        if self._should_report(stat):
            self._report(stat)
        return entry

    @contextmanager
    def capture(self) -> Generator[List[CapturedQuery], None, None]:
        bucket: List[CapturedQuery] = []
        self._captures.append(bucket)
        try:
            yield bucket
        finally:
            self._captures.remove(bucket)

    def summary(self) -> List[dict[str, object]]:
        return [
            {
                "sql": stat.sql,
                "count": stat.count,
                "total_ms": stat.total_ms,
                "average_ms": stat.average_ms,
                "distinct_params": len(stat.fingerprints),
            }
            for stat in self.stats.values()
        ]

    @property
    def total_queries(self) -> int:
        return sum(stat.count for stat in self.stats.values())

    def reset(self) -> None:
        self.stats.clear()
        self._reported.clear()

    def _should_report(self, stat: QueryStat) -> bool:
        if not stat.sql.upper().startswith("SELECT"):
            return False
        if stat.count < self.n_plus_one_threshold:
            return False
        if len(stat.fingerprints) < 2:
            return False
        return stat.sql not in self._reported

    def _report(self, stat: QueryStat) -> None:
        self._reported.add(stat.sql)
        self.logger.warning(
            "Potential N+1 detected for SQL '%s' (%s executions, %s distinct params)",
            self._abbreviate(stat.sql),
            stat.count,
            len(stat.fingerprints),
            extra={"sql": stat.sql, "count": stat.count, "distinct_params": len(stat.fingerprints)},
        )

    @staticmethod
    def _normalize_sql(sql: str) -> str:
        return " ".join(sql.strip().split())

    @staticmethod
    def _fingerprint(params: Sequence[Any]) -> str:
        if not params:
            return ""
        return repr(tuple(params))

    @staticmethod
    def _abbreviate(sql: str, max_length: int = 80) -> str:
        if len(sql) <= max_length:
            return sql
        return sql[: max_length - 3] + "..."

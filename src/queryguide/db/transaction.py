"""
Transaction manager handling nested transactions through savepoints.
"""

from __future__ import annotations

import itertools
from contextlib import contextmanager
from typing import Generator, List

from ..adapters.base import DatabaseAdapter


class TransactionError(RuntimeError):
    pass


class TransactionManager:
    """
    The outermost block issues BEGIN/COMMIT/ROLLBACK; nested blocks use
    savepoints, so an inner failure only undoes the inner block.
    """

    def __init__(self, adapter: DatabaseAdapter, *, mode: str | None = None) -> None:
        self.adapter = adapter
        self.mode = mode
        self._stack: List[str | None] = []
        self._savepoint_counter = itertools.count(1)

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def active(self) -> bool:
        return bool(self._stack)

    def begin(self) -> None:
        if self.depth == 0:
            self.adapter.begin(self.mode)
            self._stack.append(None)
            return
        name = f"sp_{next(self._savepoint_counter)}"
        self.adapter.execute(f'SAVEPOINT "{name}"')
        self._stack.append(name)

    def commit(self) -> None:
        if self.depth == 0:
            raise TransactionError("No active transaction to commit.")
        savepoint = self._stack.pop()
        if savepoint is None:
            self.adapter.commit()
            return
        self.adapter.execute(f'RELEASE SAVEPOINT "{savepoint}"')

    def rollback(self) -> None:
        if self.depth == 0:
            raise TransactionError("No active transaction to roll back.")
        savepoint = self._stack.pop()
        if savepoint is None:
            self.adapter.rollback()
            return
        self.adapter.execute(f'ROLLBACK TO SAVEPOINT "{savepoint}"')
        self.adapter.execute(f'RELEASE SAVEPOINT "{savepoint}"')

    @contextmanager
    def atomic(self) -> Generator[None, None, None]:
        self.begin()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        else:
            self.commit()

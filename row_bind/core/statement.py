"""Prepared statement wrapper.

DB-API has no portable prepare step, so a ``Stmt`` keeps its SQL text and
runs it through the executor that created it, with its own field-matching
mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from row_bind.core import query as _query
from row_bind.core.enums import FieldMatching
from row_bind.core.exceptions import ExecutionError
from row_bind.core.rows import ExecResult, Row, Rows
from row_bind.mapping.descriptor import TypeDescriptorCache

if TYPE_CHECKING:
    from row_bind.core.executor import BaseExecutor


class Stmt:
    """A SQL statement bound to an executor, run with positional args."""

    def __init__(
        self,
        executor: BaseExecutor,
        sql: str,
        *,
        field_matching: FieldMatching = FieldMatching.STRICT,
        cache: TypeDescriptorCache | None = None,
    ) -> None:
        self._executor = executor
        self._sql = sql
        self._field_matching = field_matching
        self._cache = cache

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def field_matching(self) -> FieldMatching:
        return self._field_matching

    @property
    def cache(self) -> TypeDescriptorCache | None:
        return self._cache

    def with_relaxed_field_matching(self) -> Stmt:
        """Return a copy that discards unmapped columns when scanning."""
        return Stmt(
            self._executor,
            self._sql,
            field_matching=FieldMatching.RELAXED,
            cache=self._cache,
        )

    def bind(self, executor: BaseExecutor) -> Stmt:
        """Return a copy of this statement running on ``executor``."""
        return Stmt(
            executor,
            self._sql,
            field_matching=executor.field_matching,
            cache=executor.cache,
        )

    def query(self, *args: Any) -> Rows:
        cursor = self._executor._run(self._sql, args)
        return Rows(cursor, sql=self._sql, field_matching=self._field_matching, cache=self._cache)

    def query_row(self, *args: Any) -> Row:
        try:
            return Row(self.query(*args))
        except ExecutionError as e:
            return Row(None, e)

    def execute(self, *args: Any) -> ExecResult:
        return self._executor.execute(self._sql, *args)

    def select(self, target: Any, *args: Any) -> list[Any]:
        return _query.select(_StmtQueryer(self), target, self._sql, *args)

    def get(self, target: Any, *args: Any) -> Any:
        return _query.get(_StmtQueryer(self), target, self._sql, *args)

    def get_or_none(self, target: Any, *args: Any) -> Any | None:
        return _query.get_or_none(_StmtQueryer(self), target, self._sql, *args)

    def close(self) -> None:
        """Statements hold no driver resources; provided for symmetry."""


class _StmtQueryer:
    """Lets a Stmt act as a Queryer by ignoring the SQL argument."""

    def __init__(self, stmt: Stmt) -> None:
        self._stmt = stmt

    def query(self, sql: str, *args: Any) -> Rows:
        return self._stmt.query(*args)

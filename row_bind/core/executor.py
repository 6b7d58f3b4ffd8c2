"""Shared behaviour of the connection and transaction wrappers."""

from __future__ import annotations

import copy
import logging
from collections.abc import MutableSequence
from pathlib import Path
from typing import Any, TypeVar

from row_bind.core import query as _query
from row_bind.core.enums import FieldMatching
from row_bind.core.exceptions import ExecutionError, ShapeMismatchError
from row_bind.core.rows import ExecResult, Row, Rows
from row_bind.core.statement import Stmt
from row_bind.mapping.descriptor import NameMapper, TypeDescriptorCache, default_cache
from row_bind.mapping.marshal import MapOptions, map_to_columns

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="BaseExecutor")


class BaseExecutor:
    """Runs SQL on a DB-API connection and maps results.

    Args:
        connection: An open DB-API 2.0 connection.
        driver_name: Informational driver name.
        placeholder: Positional bind marker used for generated inserts.
        field_matching: How to treat result columns with no destination field.
        cache: Descriptor cache; ``None`` uses the shared default cache.
    """

    def __init__(
        self,
        connection: Any,
        *,
        driver_name: str = "",
        placeholder: str = "?",
        field_matching: FieldMatching = FieldMatching.STRICT,
        cache: TypeDescriptorCache | None = None,
    ) -> None:
        self._connection = connection
        self._driver_name = driver_name
        self._placeholder = placeholder
        self._field_matching = field_matching
        self._cache = cache

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def driver_name(self) -> str:
        return self._driver_name

    @property
    def placeholder(self) -> str:
        return self._placeholder

    @property
    def field_matching(self) -> FieldMatching:
        return self._field_matching

    @property
    def cache(self) -> TypeDescriptorCache | None:
        return self._cache

    def _derive(self: E, **changes: Any) -> E:
        derived = copy.copy(self)
        derived.__dict__.update(changes)
        return derived

    def with_relaxed_field_matching(self: E) -> E:
        """Return a copy that silently discards unmapped result columns.

        Statements and transactions created from the copy inherit the mode.
        """
        return self._derive(_field_matching=FieldMatching.RELAXED)

    def with_name_mapper(self: E, name_mapper: NameMapper) -> E:
        """Return a copy that maps untagged fields with ``name_mapper``."""
        tag = (self._cache if self._cache is not None else default_cache()).tag
        return self._derive(_cache=TypeDescriptorCache(name_mapper, tag))

    # --- execution ---

    def _check_usable(self) -> None:
        """Hook for wrappers with a lifecycle."""

    def _run(self, sql: str, args: tuple[Any, ...]) -> Any:
        self._check_usable()
        logger.debug("Executing %s with %d args", sql, len(args))
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql, args)
        except Exception as e:
            cursor.close()
            raise ExecutionError(sql, str(e)) from e
        return cursor

    def _after_execute(self) -> None:
        """Hook run after a successful ``execute``."""

    def query(self, sql: str, *args: Any) -> Rows:
        """Run a query and return its cursor. Close it when done."""
        return Rows(
            self._run(sql, args),
            sql=sql,
            field_matching=self._field_matching,
            cache=self._cache,
        )

    def query_row(self, sql: str, *args: Any) -> Row:
        """Run a query expected to return one row. Errors surface on scan."""
        try:
            return Row(self.query(sql, *args))
        except ExecutionError as e:
            return Row(None, e)

    def execute(self, sql: str, *args: Any) -> ExecResult:
        """Run a statement and report affected rows and the last insert id."""
        cursor = self._run(sql, args)
        try:
            result = ExecResult(cursor.rowcount, getattr(cursor, "lastrowid", None))
        finally:
            cursor.close()
        self._after_execute()
        logger.debug("Executed statement with %d rows affected", result.rowcount)
        return result

    def prepare(self, sql: str) -> Stmt:
        """Return a statement that inherits this wrapper's field matching."""
        self._check_usable()
        return Stmt(self, sql, field_matching=self._field_matching, cache=self._cache)

    # --- mapping ---

    def select(self, target: Any, sql: str, *args: Any) -> list[Any]:
        return _query.select(self, target, sql, *args)

    def select_into(self, dest: MutableSequence[Any], target: Any, sql: str, *args: Any) -> None:
        _query.select_into(self, dest, target, sql, *args)

    def get(self, target: Any, sql: str, *args: Any) -> Any:
        return _query.get(self, target, sql, *args)

    def get_or_none(self, target: Any, sql: str, *args: Any) -> Any | None:
        return _query.get_or_none(self, target, sql, *args)

    def insert(self, item: Any, options: MapOptions | None = None) -> ExecResult:
        """Insert ``item`` into the table named after its class."""
        name, columns, values = map_to_columns(item, options, cache=self._cache)
        if not name:
            raise ShapeMismatchError(
                "insert needs a structured value; use insert_table for mappings"
            )
        return self._insert(name, columns, values)

    def insert_table(
        self, table: str, item: Any, options: MapOptions | None = None
    ) -> ExecResult:
        """Insert ``item`` into ``table``."""
        _, columns, values = map_to_columns(item, options, cache=self._cache)
        return self._insert(table, columns, values)

    def _insert(self, table: str, columns: list[str], values: list[Any]) -> ExecResult:
        sql = _query.build_insert(table, columns, self._placeholder)
        logger.debug("Generated insert: %s", sql)
        return self.execute(sql, *values)

    def load_file(self, path: Path | str) -> ExecResult:
        return _query.load_file(self, path)

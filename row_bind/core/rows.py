"""Cursor wrappers.

``Rows`` adapts a DB-API cursor to the :class:`~row_bind.core.protocol.Cursor`
contract and carries the field-matching mode and descriptor cache of the
wrapper that opened it. ``Row`` is the single-row variant returned by
``query_row``.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from row_bind.core.enums import FieldMatching
from row_bind.core.exceptions import ExecutionError, NoRowsError, ScanError
from row_bind.core.protocol import Slot
from row_bind.mapping.descriptor import TypeDescriptorCache
from row_bind.mapping.scanner import map_scan, scan_all, scan_one, slice_scan


@dataclass(frozen=True)
class ExecResult:
    """Outcome of ``execute``."""

    rowcount: int
    lastrowid: Any = None

    def rows_affected(self) -> int:
        return self.rowcount

    def last_insert_id(self) -> Any:
        return self.lastrowid


class _CursorState:
    """Iteration state shared by a cursor and its relaxed views."""

    def __init__(self) -> None:
        self.current: Sequence[Any] | None = None
        self.index = -1
        self.err: BaseException | None = None
        self.closed = False


class Rows:
    """Forward-only cursor over a query result.

    Closing is idempotent; use as a context manager to release the driver
    cursor on every exit path.
    """

    def __init__(
        self,
        cursor: Any,
        *,
        sql: str = "",
        field_matching: FieldMatching = FieldMatching.STRICT,
        cache: TypeDescriptorCache | None = None,
    ) -> None:
        self._cursor = cursor
        self._sql = sql
        self._field_matching = field_matching
        self._cache = cache
        self._columns: tuple[str, ...] = tuple(
            desc[0] for desc in (cursor.description or ())
        )
        self._state = _CursorState()

    # --- field matching ---

    @property
    def field_matching(self) -> FieldMatching:
        return self._field_matching

    @property
    def cache(self) -> TypeDescriptorCache | None:
        return self._cache

    def with_relaxed_field_matching(self) -> Rows:
        """Return a view of this cursor that discards unmapped columns.

        The view shares the driver cursor and the iteration state: advancing
        or closing either one advances or closes both.
        """
        rows = Rows.__new__(Rows)
        rows.__dict__.update(self.__dict__)
        rows._field_matching = FieldMatching.RELAXED
        return rows

    # --- cursor contract ---

    def columns(self) -> tuple[str, ...]:
        return self._columns

    def next(self) -> bool:
        state = self._state
        if state.closed or state.err is not None:
            return False
        try:
            row = self._cursor.fetchone()
        except Exception as e:
            state.err = ExecutionError(self._sql, str(e))
            state.err.__cause__ = e
            return False
        if row is None:
            state.current = None
            return False
        state.current = row
        state.index += 1
        return True

    def scan(self, *slots: Slot) -> None:
        """Store the current row into ``slots``, one per column."""
        state = self._state
        if state.current is None:
            raise ScanError(None, None, "scan called without calling next")
        if len(slots) != len(self._columns):
            raise ScanError(
                None,
                state.index,
                f"expected {len(self._columns)} destination arguments in scan, not {len(slots)}",
            )
        for column, slot, value in zip(self._columns, slots, state.current, strict=True):
            try:
                slot.set(value)
            except ScanError as e:
                raise ScanError(column, state.index, e.detail) from e.__cause__
            except (TypeError, ValueError, ArithmeticError) as e:
                raise ScanError(column, state.index, str(e)) from e

    def err(self) -> BaseException | None:
        return self._state.err

    def close(self) -> None:
        if not self._state.closed:
            self._state.closed = True
            self._cursor.close()

    def __enter__(self) -> Rows:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # --- conveniences ---

    def struct_scan(self, target: type) -> Any:
        """Scan the next row into a new structured ``target`` value."""
        return scan_one(
            self,
            target,
            relaxed=self._field_matching is FieldMatching.RELAXED,
            cache=self._cache,
            struct_only=True,
        )

    def scan_all(self, target: Any) -> list[Any]:
        """Scan every remaining row into ``target`` values."""
        return scan_all(
            self,
            target,
            relaxed=self._field_matching is FieldMatching.RELAXED,
            cache=self._cache,
        )

    def map_scan(self, dest: dict[str, Any] | None = None) -> dict[str, Any]:
        return map_scan(self, dest)

    def slice_scan(self) -> list[Any]:
        return slice_scan(self)

    def __iter__(self) -> Iterator[Rows]:
        while self.next():
            yield self
        if self._state.err is not None:
            raise self._state.err


class Row:
    """Result of a single-row query.

    Holds either an open ``Rows`` or the error raised while querying. Every
    scan method closes the cursor.
    """

    def __init__(self, rows: Rows | None = None, err: BaseException | None = None) -> None:
        self._rows = rows
        self._err = err

    @property
    def field_matching(self) -> FieldMatching:
        if self._rows is None:
            return FieldMatching.STRICT
        return self._rows.field_matching

    def with_relaxed_field_matching(self) -> Row:
        if self._rows is None:
            return Row(None, self._err)
        return Row(self._rows.with_relaxed_field_matching(), self._err)

    def err(self) -> BaseException | None:
        return self._err

    def _open(self) -> Rows:
        if self._err is not None:
            raise self._err
        if self._rows is None:
            raise NoRowsError()
        return self._rows

    def columns(self) -> tuple[str, ...]:
        return self._open().columns()

    def scan(self, target: Any) -> Any:
        """Scan the first row into a new ``target`` value.

        Raises:
            NoRowsError: The query returned no rows.
        """
        with self._open() as rows:
            return scan_one(
                rows,
                target,
                relaxed=rows.field_matching is FieldMatching.RELAXED,
                cache=rows.cache,
            )

    def struct_scan(self, target: type) -> Any:
        with self._open() as rows:
            return rows.struct_scan(target)

    def map_scan(self, dest: dict[str, Any] | None = None) -> dict[str, Any]:
        with self._open() as rows:
            self._advance(rows)
            return rows.map_scan(dest)

    def slice_scan(self) -> list[Any]:
        with self._open() as rows:
            self._advance(rows)
            return rows.slice_scan()

    @staticmethod
    def _advance(rows: Rows) -> None:
        if not rows.next():
            err = rows.err()
            if err is not None:
                raise err
            raise NoRowsError()

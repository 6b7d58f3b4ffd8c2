"""Executor and cursor protocols.

The mapping core only talks to the database through these. ``Rows``,
``DB``, ``Tx`` and ``Stmt`` implement them over a DB-API connection, but
any object with the same shape works.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Slot(Protocol):
    """A write-once destination for one column of the current row."""

    def set(self, value: Any) -> None: ...


@runtime_checkable
class Cursor(Protocol):
    """Forward-only handle over the rows of one query."""

    def columns(self) -> Sequence[str]:
        """Result column names in result-set order."""
        ...

    def next(self) -> bool:
        """Advance to the next row. Returns False once exhausted or failed."""
        ...

    def scan(self, *slots: Slot) -> None:
        """Store the current row, one column per slot."""
        ...

    def err(self) -> BaseException | None:
        """The error that ended iteration early, if any."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class Result(Protocol):
    """Outcome of a statement execution."""

    def rows_affected(self) -> int: ...

    def last_insert_id(self) -> Any: ...


@runtime_checkable
class Queryer(Protocol):
    """Runs a query and returns a cursor."""

    def query(self, sql: str, *args: Any) -> Any: ...


@runtime_checkable
class Execer(Protocol):
    """Runs a statement and returns a result."""

    def execute(self, sql: str, *args: Any) -> Result: ...

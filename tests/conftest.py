"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from row_bind.core.connection import ConnectionConfig
from row_bind.core.db import DB


class FakeRows:
    """In-memory cursor implementing the Cursor contract."""

    def __init__(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]] = (),
        *,
        error: BaseException | None = None,
    ) -> None:
        self._columns = tuple(columns)
        self._rows = list(rows)
        self._pos = -1
        self._error = error
        self._err: BaseException | None = None
        self.closed = False

    def columns(self) -> tuple[str, ...]:
        return self._columns

    def next(self) -> bool:
        if self._pos + 1 >= len(self._rows):
            self._err = self._error
            return False
        self._pos += 1
        return True

    def scan(self, *slots: Any) -> None:
        for slot, value in zip(slots, self._rows[self._pos], strict=True):
            slot.set(value)

    def err(self) -> BaseException | None:
        return self._err

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_rows() -> type[FakeRows]:
    """Factory for in-memory cursors.

    Usage:
        fake_rows(["id", "name"], [(7, "ann")])
    """
    return FakeRows


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:")


@pytest.fixture
def db(sqlite_config: ConnectionConfig) -> Iterator[DB]:
    """In-memory SQLite database with a ``person`` table."""
    database = DB.open(sqlite_config)
    database.execute(
        "CREATE TABLE person ("
        "id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT, nickname TEXT)"
    )
    yield database
    database.close()


@pytest.fixture
def write_sql(tmp_path: Path):
    """Helper to write SQL files into a temp directory."""

    def _write(relative_path: str, content: str) -> Path:
        file_path = tmp_path / "sql" / relative_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return file_path

    return _write

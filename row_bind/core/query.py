"""Query helpers usable with any Queryer.

Each helper closes the cursor it opens, whether scanning succeeds or not.
The field-matching mode and descriptor cache come from the cursor, so a
cursor opened by a relaxed wrapper scans relaxed.
"""

from __future__ import annotations

from collections.abc import MutableSequence
from contextlib import closing
from pathlib import Path
from typing import Any

from row_bind.core.enums import FieldMatching
from row_bind.core.exceptions import NoRowsError, ShapeMismatchError
from row_bind.core.protocol import Execer, Queryer, Result
from row_bind.mapping.descriptor import TypeDescriptorCache
from row_bind.mapping.scanner import scan_all, scan_one


def is_relaxed(obj: Any) -> bool:
    """Whether ``obj`` discards unmapped columns. Plain cursors are strict."""
    return getattr(obj, "field_matching", FieldMatching.STRICT) is FieldMatching.RELAXED


def cache_for(obj: Any) -> TypeDescriptorCache | None:
    return getattr(obj, "cache", None)


def select(q: Queryer, target: Any, sql: str, *args: Any) -> list[Any]:
    """Run ``sql`` and scan every row into a ``target`` value.

    Scannable targets require a single-column result.
    """
    with closing(q.query(sql, *args)) as rows:
        return scan_all(rows, target, relaxed=is_relaxed(rows), cache=cache_for(rows))


def select_into(
    q: Queryer,
    dest: MutableSequence[Any],
    target: Any,
    sql: str,
    *args: Any,
) -> None:
    """Like :func:`select`, replacing the contents of ``dest`` with the rows."""
    if dest is None:
        raise ShapeMismatchError("nil list passed to select_into destination")
    if not isinstance(dest, MutableSequence):
        raise ShapeMismatchError(
            f"select_into destination must be a mutable sequence, not {type(dest).__name__}"
        )
    dest[:] = select(q, target, sql, *args)


def get(q: Queryer, target: Any, sql: str, *args: Any) -> Any:
    """Run ``sql`` and scan its first row into a ``target`` value.

    Raises:
        NoRowsError: The result set is empty.
    """
    with closing(q.query(sql, *args)) as rows:
        return scan_one(rows, target, relaxed=is_relaxed(rows), cache=cache_for(rows))


def get_or_none(q: Queryer, target: Any, sql: str, *args: Any) -> Any | None:
    """Like :func:`get`, returning None instead of raising on an empty result."""
    try:
        return get(q, target, sql, *args)
    except NoRowsError:
        return None


def load_file(e: Execer, path: Path | str) -> Result:
    """Execute the contents of a SQL file as one statement.

    The whole file is read into memory; multi-statement files only work
    with drivers that accept them in a single call.
    """
    contents = Path(path).resolve().read_text(encoding="utf-8")
    return e.execute(contents)


def build_insert(table: str, columns: list[str], placeholder: str) -> str:
    """Build ``insert into table(c1,c2) values(p,p)``."""
    if not columns:
        return f"insert into {table} default values"
    names = ",".join(columns)
    placeholders = ",".join([placeholder] * len(columns))
    return f"insert into {table}({names}) values({placeholders})"

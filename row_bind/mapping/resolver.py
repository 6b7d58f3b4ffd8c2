"""Column resolution.

Matches an ordered set of result columns against a type descriptor. The
result keeps result-set order, one entry per column; columns with no
matching field carry an empty traversal.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from row_bind.mapping.descriptor import FieldInfo, TypeDescriptor


@dataclass(frozen=True)
class ColumnResolution:
    """Per-column destination fields for one scan."""

    columns: tuple[str, ...]
    fields: tuple[FieldInfo | None, ...]

    @property
    def traversals(self) -> tuple[tuple[int, ...], ...]:
        """Field index paths in column order; ``()`` marks an unmapped column."""
        return tuple(f.index if f is not None else () for f in self.fields)

    def __len__(self) -> int:
        return len(self.columns)


def resolve(columns: Sequence[str], descriptor: TypeDescriptor) -> ColumnResolution:
    """Resolve each column name to its field in ``descriptor``."""
    names = tuple(columns)
    return ColumnResolution(
        columns=names,
        fields=tuple(descriptor.by_name.get(name) for name in names),
    )


@lru_cache(maxsize=256)
def resolve_cached(descriptor: TypeDescriptor, columns: tuple[str, ...]) -> ColumnResolution:
    """Memoized :func:`resolve` keyed by descriptor identity and column tuple."""
    return resolve(columns, descriptor)


def first_missing(resolution: ColumnResolution) -> int | None:
    """Index of the first column without a destination field, if any."""
    for i, f in enumerate(resolution.fields):
        if f is None:
            return i
    return None

"""Value marshaling.

Converts a structured value or a mapping into sorted column names and
values, ready for an insert statement.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from row_bind.core.enums import Capability
from row_bind.core.exceptions import MarshalError, ShapeMismatchError
from row_bind.mapping.descriptor import (
    FieldInfo,
    TypeDescriptorCache,
    default_cache,
    is_structured,
    snake_case,
)

_CONTAINERS = (list, tuple, set, frozenset, bytes, bytearray)


@dataclass(frozen=True)
class MapOptions:
    """Marshaling options.

    ``omitempty`` fields are skipped when empty unless the matching flag is
    set, in which case they are emitted with an empty-string placeholder.
    """

    include_zeroed: bool = False
    include_nil: bool = False


DEFAULT_MAP_OPTIONS = MapOptions()


def marshal_value(value: Any) -> Any:
    """Apply a value's ``to_db`` hook, if it has one."""
    to_db = getattr(value, "to_db", None)
    if not callable(to_db):
        return value
    try:
        return to_db()
    except Exception as e:
        raise MarshalError(f"to_db failed for {type(value).__name__}: {e}") from e


def _read_path(item: Any, path: tuple[str, ...]) -> Any:
    value = item
    for attr in path:
        if value is None:
            return None
        value = getattr(value, attr)
    return value


def is_zero(info: FieldInfo, value: Any) -> bool:
    """Whether ``value`` counts as empty for the field.

    Checked in order: an ``is_zero()`` method, emptiness of a sequence or
    byte string, equality with the field's zero value.
    """
    if Capability.ZERO_CHECKER in info.capabilities or (
        Capability.DYNAMIC in info.capabilities and callable(getattr(value, "is_zero", None))
    ):
        return bool(value.is_zero())
    if isinstance(value, _CONTAINERS):
        return len(value) == 0
    try:
        return bool(value == info.zero())
    except (TypeError, ValueError):
        return False


def _emit(info: FieldInfo, value: Any) -> Any:
    if Capability.VALUER in info.capabilities or Capability.DYNAMIC in info.capabilities:
        return marshal_value(value)
    return value


def map_to_columns(
    item: Any,
    options: MapOptions | None = None,
    *,
    cache: TypeDescriptorCache | None = None,
) -> tuple[str, list[str], list[Any]]:
    """Map a structured value or a mapping to ``(name, columns, values)``.

    ``name`` is the snake_cased class name of a structured value (usable as
    a default table name) and ``""`` for mappings. Columns are sorted by
    name; values follow their columns.

    Raises:
        ShapeMismatchError: ``item`` is None or neither structured nor a mapping.
        MarshalError: A ``to_db`` hook failed.
    """
    if options is None:
        options = DEFAULT_MAP_OPTIONS
    if item is None:
        raise ShapeMismatchError("expecting either a mapping or a structured value, got None")

    pairs: list[tuple[str, Any]] = []

    if isinstance(item, Mapping):
        name = ""
        for key, value in item.items():
            pairs.append((str(key), marshal_value(value)))
    elif is_structured(type(item)):
        name = snake_case(type(item).__name__)
        descriptor = (cache if cache is not None else default_cache()).describe(type(item))
        for info in descriptor.fields:
            value = _read_path(item, info.path)
            omitempty = info.omitempty

            if value is None:
                if omitempty and not options.include_nil:
                    continue
                pairs.append((info.name, "" if omitempty else None))
                continue

            zero = is_zero(info, value)
            if zero and omitempty and not options.include_zeroed:
                continue

            emitted = _emit(info, value)
            if zero and omitempty:
                emitted = ""
            pairs.append((info.name, emitted))
    else:
        raise ShapeMismatchError(
            f"expecting either a mapping or a structured value, got {type(item).__name__}"
        )

    pairs.sort(key=lambda pair: pair[0])
    return name, [p[0] for p in pairs], [p[1] for p in pairs]

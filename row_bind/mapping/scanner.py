"""Row scanner.

Turns cursor rows into values of a target type. A target is either

* directly scannable -- not a structured type, a type with ``from_db``, or a
  structured type without visible fields; the result must have exactly one
  column, or
* structured -- columns are resolved against the type's descriptor and each
  row is scanned into a fresh :class:`ScanTarget`.

``dict`` targets receive ``{column: value}`` and ``tuple`` targets receive
the raw row.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, get_origin

from row_bind.core.enums import Capability
from row_bind.core.exceptions import (
    ColumnCountMismatchError,
    MarshalError,
    NoRowsError,
    ScanError,
    ShapeMismatchError,
    UnmappedColumnError,
)
from row_bind.core.protocol import Cursor
from row_bind.mapping.descriptor import (
    FieldInfo,
    StructPlan,
    TypeDescriptor,
    TypeDescriptorCache,
    _capabilities,
    _unwrap_optional,
    default_cache,
    is_structured,
    registry_version,
)
from row_bind.mapping.resolver import ColumnResolution, first_missing, resolve_cached

DEPRECATED_JSONB_TAG = (
    'Tag "jsonb" is deprecated; serialize the field with a to_db/from_db type instead'
)


# --- Value conversion ---


def _text(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return value


def _to_int(value: Any) -> int:
    value = _text(value)
    if isinstance(value, (float, Decimal)):
        integral = int(value)
        if integral != value:
            raise ValueError(f"converting {value!r} to int loses precision")
        return integral
    return int(value)


def _to_bool(value: Any) -> bool:
    value = _text(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "t", "true"):
            return True
        if lowered in ("0", "f", "false"):
            return False
        raise ValueError(f"cannot parse {value!r} as bool")
    if isinstance(value, (int, float, Decimal)):
        if value == 1:
            return True
        if value == 0:
            return False
        raise ValueError(f"cannot parse {value!r} as bool")
    raise TypeError(f"unsupported type {type(value).__name__} for bool")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(_text(value)))
    except InvalidOperation as e:
        raise ValueError(f"cannot parse {value!r} as Decimal") from e


_COERCIONS: dict[type, Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: lambda v: float(_text(v)),
    str: lambda v: str(_text(v)),
    bytes: _to_bytes,
    Decimal: _to_decimal,
}


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", repr(tp))


def convert_value(
    value: Any,
    annotation: Any,
    nullable: bool,
    capabilities: Capability,
) -> Any:
    """Convert a raw driver value towards ``annotation``.

    Raises:
        ScanError: NULL into a non-optional field, or an impossible conversion.
    """
    if Capability.SCANNER in capabilities:
        if value is None and nullable:
            return None
        return annotation.from_db(value)
    if value is None:
        if nullable or Capability.DYNAMIC in capabilities:
            return None
        raise ScanError(None, None, f"converting NULL to {_type_name(annotation)} is unsupported")
    if Capability.DYNAMIC in capabilities:
        return value
    cls = get_origin(annotation) or annotation
    if type(value) is cls:
        return value
    convert = _COERCIONS.get(cls)
    if convert is None:
        return value
    try:
        return convert(value)
    except (TypeError, ValueError, ArithmeticError) as e:
        raise ScanError(
            None,
            None,
            f"converting {type(value).__name__} {value!r} to {_type_name(cls)}: {e}",
        ) from e


# --- Slots ---


class DiscardSlot:
    """Swallows the value of a column that has no destination."""

    def set(self, value: Any) -> None:
        pass


class ValueSlot:
    """Holds one converted column value."""

    def __init__(
        self,
        annotation: Any = Any,
        nullable: bool = True,
        capabilities: Capability = Capability.DYNAMIC,
    ) -> None:
        self._annotation = annotation
        self._nullable = nullable
        self._capabilities = capabilities
        self.value: Any = None

    def set(self, value: Any) -> None:
        self.value = convert_value(value, self._annotation, self._nullable, self._capabilities)


class FieldSlot:
    """Writes a converted column value at a field path inside a value tree."""

    def __init__(self, tree: dict[str, Any], info: FieldInfo) -> None:
        self._tree = tree
        self._info = info

    def set(self, value: Any) -> None:
        info = self._info
        node = self._tree
        for attr in info.path[:-1]:
            node = node.setdefault(attr, {})
        node[info.path[-1]] = convert_value(
            value, info.annotation, info.nullable, info.capabilities
        )


class ScanTarget:
    """A freshly allocated destination for one row.

    Holds one slot per result column; unmapped columns get a discard slot.
    """

    def __init__(self, plan: StructPlan, resolution: ColumnResolution) -> None:
        self._plan = plan
        self.values: dict[str, Any] = {}
        self.slots = tuple(
            FieldSlot(self.values, info) if info is not None else DiscardSlot()
            for info in resolution.fields
        )

    def build(self) -> Any:
        return self._plan.build(self.values)


# --- Target classification ---


# ``version`` is the registry version: a later register() call invalidates entries.
@lru_cache(maxsize=512)
def _is_scannable(tp: type, cache: TypeDescriptorCache, version: int) -> bool:
    if callable(getattr(tp, "from_db", None)):
        return True
    if not is_structured(tp):
        return True
    return len(cache.describe(tp)) == 0


def is_scannable(tp: Any, cache: TypeDescriptorCache | None = None) -> bool:
    """Return True if ``tp`` is scanned from a single column as a whole.

    A type is directly scannable if it is not structured, implements
    ``from_db``, or is structured but has no visible fields.
    """
    if not isinstance(tp, type):
        return True
    if cache is None:
        cache = default_cache()
    return _is_scannable(tp, cache, registry_version())


def struct_only_error(tp: Any) -> ShapeMismatchError:
    """Explain why ``tp`` cannot be struct-scanned."""
    name = _type_name(tp)
    if not is_structured(tp):
        return ShapeMismatchError(f"expected a structured type but got {name}")
    if callable(getattr(tp, "from_db", None)):
        return ShapeMismatchError(
            f"structscan expects a struct dest but the provided struct type {name} "
            "implements from_db"
        )
    return ShapeMismatchError(f"expected a struct, but struct {name} has no exported fields")


def _target_shape(target: Any) -> tuple[Any, bool]:
    if target is None:
        raise ShapeMismatchError("nil destination type passed to scan")
    base, nullable = _unwrap_optional(target)
    if base is not Any and not isinstance(base, type):
        raise ShapeMismatchError(f"must pass a type, not a value, as scan target: {target!r}")
    return base, nullable


# --- Readers ---

RowReader = Callable[[Cursor], Any]


def _check_options(resolution: ColumnResolution) -> None:
    for info in resolution.fields:
        if info is not None and "jsonb" in info.options:
            raise MarshalError(DEPRECATED_JSONB_TAG)


def _struct_reader(descriptor: TypeDescriptor, resolution: ColumnResolution) -> RowReader:
    def read(rows: Cursor) -> Any:
        target = ScanTarget(descriptor.plan, resolution)
        rows.scan(*target.slots)
        return target.build()

    return read


def prepare_reader(
    rows: Cursor,
    target: Any,
    *,
    relaxed: bool = False,
    cache: TypeDescriptorCache | None = None,
    struct_only: bool = False,
) -> RowReader:
    """Validate ``target`` against the cursor's columns and return a row reader.

    All shape checks happen here, before any row is read.

    Raises:
        ShapeMismatchError: ``target`` is not a usable type.
        ColumnCountMismatchError: A scannable target with more than one column.
        UnmappedColumnError: A column without a field under strict matching.
        MarshalError: A resolved field uses a deprecated option.
    """
    base, nullable = _target_shape(target)
    columns = tuple(rows.columns())

    if isinstance(base, type) and issubclass(base, Mapping):
        return lambda r: dict(zip(columns, slice_scan(r), strict=True))
    if base is tuple:
        return lambda r: tuple(slice_scan(r))

    if cache is None:
        cache = default_cache()
    scannable = is_scannable(base, cache)
    if struct_only and scannable:
        raise struct_only_error(base)

    if scannable:
        if len(columns) > 1:
            raise ColumnCountMismatchError(_type_name(base), len(columns))
        capabilities = _capabilities(base) if base is not Any else Capability.DYNAMIC

        def read_value(r: Cursor) -> Any:
            slot = ValueSlot(base, nullable, capabilities)
            r.scan(slot)
            return slot.value

        return read_value

    descriptor = cache.describe(base)
    resolution = resolve_cached(descriptor, columns)
    missing = first_missing(resolution)
    if missing is not None and not relaxed:
        raise UnmappedColumnError(columns[missing], _type_name(base))
    _check_options(resolution)
    return _struct_reader(descriptor, resolution)


def _read(reader: RowReader, rows: Cursor, index: int) -> Any:
    try:
        return reader(rows)
    except (TypeError, ValueError) as e:
        raise ScanError(None, index, str(e)) from e


def scan_one(
    rows: Cursor,
    target: Any,
    *,
    relaxed: bool = False,
    cache: TypeDescriptorCache | None = None,
    struct_only: bool = False,
) -> Any:
    """Scan the next row of ``rows`` into a new ``target`` value.

    Raises:
        NoRowsError: The cursor has no row left.
    """
    reader = prepare_reader(rows, target, relaxed=relaxed, cache=cache, struct_only=struct_only)
    if not rows.next():
        err = rows.err()
        if err is not None:
            raise err
        raise NoRowsError()
    return _read(reader, rows, 0)


def scan_all(
    rows: Cursor,
    target: Any,
    *,
    relaxed: bool = False,
    cache: TypeDescriptorCache | None = None,
    struct_only: bool = False,
) -> list[Any]:
    """Scan every remaining row of ``rows`` into a list of ``target`` values.

    Any error that ended iteration is raised after the loop.
    """
    reader = prepare_reader(rows, target, relaxed=relaxed, cache=cache, struct_only=struct_only)
    results: list[Any] = []
    while rows.next():
        results.append(_read(reader, rows, len(results)))
    err = rows.err()
    if err is not None:
        raise err
    return results


def slice_scan(rows: Cursor) -> list[Any]:
    """Return the current row's raw values in column order."""
    slots = [ValueSlot() for _ in rows.columns()]
    rows.scan(*slots)
    return [slot.value for slot in slots]


def map_scan(rows: Cursor, dest: dict[str, Any] | None = None) -> dict[str, Any]:
    """Store the current row into ``dest`` keyed by column name.

    Duplicate column names overwrite each other.
    """
    if dest is None:
        dest = {}
    for name, value in zip(rows.columns(), slice_scan(rows), strict=True):
        dest[name] = value
    return dest

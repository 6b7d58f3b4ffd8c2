"""Enumerations shared by the mapping core and the wrapper layer."""

from __future__ import annotations

from enum import Enum, Flag, auto


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class FieldMatching(Enum):
    """How result columns without a destination field are treated."""

    STRICT = "strict"
    RELAXED = "relaxed"


class Capability(Flag):
    """Conversion capabilities of a field's declared type."""

    PLAIN = 0
    SCANNER = auto()  # from_db(value)
    VALUER = auto()  # to_db()
    ZERO_CHECKER = auto()  # is_zero()
    DYNAMIC = auto()  # decided per value

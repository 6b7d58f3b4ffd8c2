"""RowBind - map query results onto dataclasses and Pydantic models, and back."""

from __future__ import annotations

from row_bind.core.connection import ConnectionConfig
from row_bind.core.db import DB
from row_bind.core.enums import Capability, DatabaseBackend, FieldMatching
from row_bind.core.exceptions import (
    AdapterError,
    ColumnCountMismatchError,
    ConnectionError,  # noqa: A004
    DuplicateColumnError,
    ExecutionError,
    MappingError,
    MarshalError,
    NoRowsError,
    RowBindError,
    ScanError,
    ShapeMismatchError,
    TransactionError,
    TransactionStateError,
    UnmappedColumnError,
)
from row_bind.core.query import get, get_or_none, load_file, select, select_into
from row_bind.core.rows import ExecResult, Row, Rows
from row_bind.core.statement import Stmt
from row_bind.core.transaction import Tx
from row_bind.mapping.descriptor import (
    FieldSpec,
    TypeDescriptorCache,
    column,
    register,
    set_name_mapper,
)
from row_bind.mapping.marshal import MapOptions, map_to_columns

__all__ = [
    # Connection
    "ConnectionConfig",
    "DB",
    "Tx",
    "Stmt",
    "Rows",
    "Row",
    "ExecResult",
    # Helpers
    "select",
    "select_into",
    "get",
    "get_or_none",
    "load_file",
    # Mapping
    "TypeDescriptorCache",
    "FieldSpec",
    "column",
    "register",
    "set_name_mapper",
    "MapOptions",
    "map_to_columns",
    # Enums
    "Capability",
    "DatabaseBackend",
    "FieldMatching",
    # Exceptions
    "RowBindError",
    "MappingError",
    "ShapeMismatchError",
    "UnmappedColumnError",
    "ColumnCountMismatchError",
    "DuplicateColumnError",
    "MarshalError",
    "NoRowsError",
    "ScanError",
    "ExecutionError",
    "TransactionError",
    "TransactionStateError",
    "AdapterError",
    "ConnectionError",
]

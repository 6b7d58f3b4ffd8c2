"""Mapping layer - descriptors, column resolution, scanning and marshaling."""

from __future__ import annotations

from row_bind.mapping.descriptor import (
    FieldInfo,
    FieldSpec,
    TypeDescriptor,
    TypeDescriptorCache,
    column,
    default_cache,
    describe,
    is_structured,
    register,
    set_name_mapper,
    snake_case,
)
from row_bind.mapping.marshal import MapOptions, map_to_columns, marshal_value
from row_bind.mapping.protocol import Scanner, Valuer, ZeroChecker
from row_bind.mapping.resolver import ColumnResolution, first_missing, resolve
from row_bind.mapping.scanner import (
    ScanTarget,
    is_scannable,
    map_scan,
    scan_all,
    scan_one,
    slice_scan,
)

__all__ = [
    # Descriptors
    "TypeDescriptorCache",
    "TypeDescriptor",
    "FieldInfo",
    "FieldSpec",
    "column",
    "register",
    "describe",
    "default_cache",
    "is_structured",
    "set_name_mapper",
    "snake_case",
    # Resolution
    "ColumnResolution",
    "resolve",
    "first_missing",
    # Scanning
    "ScanTarget",
    "is_scannable",
    "scan_one",
    "scan_all",
    "map_scan",
    "slice_scan",
    # Marshaling
    "MapOptions",
    "map_to_columns",
    "marshal_value",
    # Protocols
    "Scanner",
    "Valuer",
    "ZeroChecker",
]

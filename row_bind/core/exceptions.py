"""RowBind exception hierarchy.

All exceptions are RowBind-specific. Raw driver exceptions are never
exposed to callers; they are chained as ``__cause__``.
"""

from __future__ import annotations


class RowBindError(Exception):
    """Base exception for all RowBind errors."""


# --- Mapping ---


class MappingError(RowBindError):
    """Base for mapping errors."""


class ShapeMismatchError(MappingError):
    """Raised when a destination or source has the wrong shape for an operation."""


class UnmappedColumnError(MappingError):
    """Raised when a result column has no destination field under strict matching."""

    def __init__(self, column: str, target_class: str) -> None:
        self.column = column
        self.target_class = target_class
        super().__init__(f"missing destination name '{column}' in {target_class}")


class ColumnCountMismatchError(MappingError):
    """Raised when a directly scannable destination receives more than one column."""

    def __init__(self, target_class: str, column_count: int) -> None:
        self.target_class = target_class
        self.column_count = column_count
        super().__init__(
            f"non-struct dest type {target_class} with >1 columns ({column_count})"
        )


class DuplicateColumnError(MappingError):
    """Raised when two fields of one type resolve to the same column name."""

    def __init__(self, target_class: str, column: str) -> None:
        self.target_class = target_class
        self.column = column
        super().__init__(f"Duplicate column name '{column}' in {target_class}")


class MarshalError(MappingError):
    """Raised when a value cannot be converted for the driver."""


# --- Scanning ---


class NoRowsError(RowBindError):
    """Raised when a single-row fetch finds no rows."""

    def __init__(self) -> None:
        super().__init__("no rows in result set")


class ScanError(RowBindError):
    """Raised when a row value cannot be stored in its destination."""

    def __init__(self, column: str | None, row_index: int | None, detail: str) -> None:
        self.column = column
        self.row_index = row_index
        self.detail = detail
        location = []
        if row_index is not None:
            location.append(f"row {row_index}")
        if column is not None:
            location.append(f"column '{column}'")
        prefix = f"Scan error on {', '.join(location)}: " if location else "Scan error: "
        super().__init__(prefix + detail)


# --- Execution ---


class ExecutionError(RowBindError):
    """Raised when the driver fails to run a query or statement."""

    def __init__(self, sql: str, detail: str) -> None:
        self.sql = sql
        super().__init__(f"Execution failed for '{sql}': {detail}")


# --- Transaction ---


class TransactionError(RowBindError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


# --- Adapter ---


class AdapterError(RowBindError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""

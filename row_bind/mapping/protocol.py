"""Value conversion protocols.

Field types opt into custom conversion by implementing any of these.
Capabilities are detected once per field when a type is described.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Scanner(Protocol):
    """Builds a value from a raw driver value."""

    @classmethod
    def from_db(cls, value: Any) -> Any:
        """Convert a raw column value into an instance."""
        ...


@runtime_checkable
class Valuer(Protocol):
    """Converts a value into something the driver can bind."""

    def to_db(self) -> Any:
        """Return a driver-representable value."""
        ...


@runtime_checkable
class ZeroChecker(Protocol):
    """Reports whether a value counts as empty for ``omitempty``."""

    def is_zero(self) -> bool: ...

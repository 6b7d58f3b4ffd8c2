"""Database adapter protocol.

Every adapter module MUST implement this protocol so ``DB.open`` can treat
backends uniformly.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from row_bind.core.connection import ConnectionConfig


@runtime_checkable
class Adapter(Protocol):
    """Opens DB-API connections for one backend."""

    @property
    def driver_name(self) -> str:
        """Name reported by ``DB.driver_name``."""
        ...

    @property
    def placeholder(self) -> str:
        """Positional bind marker: '?' (qmark) or '%s' (format)."""
        ...

    def connect(self, config: ConnectionConfig) -> Any:
        """Open a DB-API 2.0 connection."""
        ...

"""Connection configuration and adapter loading.

ConnectionConfig is a Pydantic model for type-safe connection config.
Adapters are imported lazily so optional drivers are only required when
their backend is used.
"""

from __future__ import annotations

import importlib
from typing import Any

from pydantic import BaseModel

from row_bind.core.enums import DatabaseBackend
from row_bind.core.exceptions import AdapterError


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    extra: dict[str, Any] = {}


# Adapter module mapping: backend → (module_path, class_name)
_ADAPTER_MAP: dict[DatabaseBackend, tuple[str, str]] = {
    DatabaseBackend.SQLITE: ("row_bind.adapters.sqlite", "SqliteAdapter"),
    DatabaseBackend.POSTGRESQL: ("row_bind.adapters.postgresql", "PostgresqlAdapter"),
}


def load_adapter(driver: str) -> Any:
    """Load an adapter by driver name."""
    try:
        backend = DatabaseBackend(driver.lower())
    except ValueError:
        raise AdapterError(f"Unsupported database driver: {driver}") from None

    module_path, cls_name = _ADAPTER_MAP[backend]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e

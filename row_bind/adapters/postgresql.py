"""PostgreSQL adapter using psycopg (v3+)."""

from __future__ import annotations

from typing import Any

from row_bind.core.connection import ConnectionConfig


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    parts: list[str] = []
    if config.host is not None:
        parts.append(f"host={config.host}")
    if config.port is not None:
        parts.append(f"port={config.port}")
    if config.user is not None:
        parts.append(f"user={config.user}")
    if config.password is not None:
        parts.append(f"password={config.password}")
    parts.append(f"dbname={config.database}")
    return " ".join(parts)


class PostgresqlAdapter:
    """PostgreSQL adapter using psycopg (v3+) with tuple rows."""

    @property
    def driver_name(self) -> str:
        return "postgres"

    @property
    def placeholder(self) -> str:
        return "%s"

    def connect(self, config: ConnectionConfig) -> Any:
        import psycopg

        return psycopg.connect(_build_conninfo(config), **config.extra)

"""SQLite adapter using stdlib sqlite3."""

from __future__ import annotations

import sqlite3

from row_bind.core.connection import ConnectionConfig


class SqliteAdapter:
    """SQLite adapter using stdlib sqlite3."""

    @property
    def driver_name(self) -> str:
        return "sqlite3"

    @property
    def placeholder(self) -> str:
        return "?"

    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        conn = sqlite3.connect(config.database, **config.extra)
        if config.database != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

"""Contract tests for adapter protocol compliance."""

from __future__ import annotations

import pytest

from row_bind.adapters.postgresql import PostgresqlAdapter, _build_conninfo
from row_bind.adapters.protocol import Adapter
from row_bind.adapters.sqlite import SqliteAdapter
from row_bind.core.connection import ConnectionConfig, load_adapter
from row_bind.core.exceptions import AdapterError


class TestSqliteAdapterProtocol:
    def test_implements_protocol(self) -> None:
        assert isinstance(SqliteAdapter(), Adapter)

    def test_placeholder(self) -> None:
        adapter = SqliteAdapter()
        assert adapter.placeholder == "?"
        assert adapter.driver_name == "sqlite3"

    def test_connect(self, sqlite_config: ConnectionConfig) -> None:
        conn = SqliteAdapter().connect(sqlite_config)
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 AS val")
            assert cursor.description[0][0] == "val"
            assert cursor.fetchone() == (1,)
        finally:
            conn.close()


class TestPostgresqlAdapterProtocol:
    def test_implements_protocol(self) -> None:
        assert isinstance(PostgresqlAdapter(), Adapter)

    def test_placeholder(self) -> None:
        adapter = PostgresqlAdapter()
        assert adapter.placeholder == "%s"
        assert adapter.driver_name == "postgres"

    def test_conninfo(self) -> None:
        config = ConnectionConfig(
            driver="postgresql",
            host="localhost",
            port=5432,
            user="app",
            password="secret",
            database="appdb",
        )
        assert _build_conninfo(config) == (
            "host=localhost port=5432 user=app password=secret dbname=appdb"
        )

    def test_conninfo_minimal(self) -> None:
        config = ConnectionConfig(driver="postgresql", database="appdb")
        assert _build_conninfo(config) == "dbname=appdb"


class TestLoadAdapter:
    @pytest.mark.parametrize(
        ("driver", "adapter_cls"),
        [("sqlite", SqliteAdapter), ("SQLite", SqliteAdapter), ("postgresql", PostgresqlAdapter)],
    )
    def test_known_drivers(self, driver: str, adapter_cls: type) -> None:
        assert isinstance(load_adapter(driver), adapter_cls)

    def test_unknown_driver(self) -> None:
        with pytest.raises(AdapterError, match="Unsupported database driver: mysql"):
            load_adapter("mysql")

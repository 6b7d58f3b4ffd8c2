"""Database wrapper.

``DB`` wraps one DB-API connection. Statements run through ``execute`` are
committed immediately; use :meth:`DB.begin` to group them.
"""

from __future__ import annotations

import logging
from typing import Any

from row_bind.core.connection import ConnectionConfig, load_adapter
from row_bind.core.exceptions import ConnectionError  # noqa: A004
from row_bind.core.executor import BaseExecutor
from row_bind.core.transaction import Tx

logger = logging.getLogger(__name__)


class DB(BaseExecutor):
    """Connection wrapper that maps query results onto structured values."""

    @classmethod
    def open(cls, config: ConnectionConfig) -> DB:
        """Connect using the adapter for ``config.driver``.

        Raises:
            AdapterError: Unknown driver or driver package not installed.
            ConnectionError: The driver failed to connect.
        """
        adapter = load_adapter(config.driver)
        try:
            connection = adapter.connect(config)
        except Exception as e:
            raise ConnectionError(f"Failed to connect to '{config.database}': {e}") from e
        logger.debug("Opened %s connection to %s", adapter.driver_name, config.database)
        return cls(
            connection,
            driver_name=adapter.driver_name,
            placeholder=adapter.placeholder,
        )

    def _after_execute(self) -> None:
        self._connection.commit()

    def begin(self) -> Tx:
        """Start a transaction that inherits this wrapper's field matching and cache."""
        return Tx(
            self._connection,
            driver_name=self._driver_name,
            placeholder=self._placeholder,
            field_matching=self._field_matching,
            cache=self._cache,
        )

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> DB:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

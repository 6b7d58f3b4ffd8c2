"""Transaction wrapper.

A ``Tx`` runs statements on its connection without committing them.
Used as a context manager it commits on success and rolls back on
exception. Copies made with ``with_relaxed_field_matching`` share the
transaction state.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from row_bind.core.enums import FieldMatching
from row_bind.core.exceptions import TransactionStateError
from row_bind.core.executor import BaseExecutor
from row_bind.core.statement import Stmt
from row_bind.mapping.descriptor import TypeDescriptorCache

logger = logging.getLogger(__name__)


class _TxState(Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class _TxStatus:
    def __init__(self) -> None:
        self.state = _TxState.ACTIVE


class Tx(BaseExecutor):
    """Transaction started by :meth:`row_bind.core.db.DB.begin`."""

    def __init__(
        self,
        connection: Any,
        *,
        driver_name: str = "",
        placeholder: str = "?",
        field_matching: FieldMatching = FieldMatching.STRICT,
        cache: TypeDescriptorCache | None = None,
    ) -> None:
        super().__init__(
            connection,
            driver_name=driver_name,
            placeholder=placeholder,
            field_matching=field_matching,
            cache=cache,
        )
        self._status = _TxStatus()
        logger.debug("Started transaction for connection %s", id(connection))

    @property
    def state(self) -> str:
        return self._status.state.value

    def __enter__(self) -> Tx:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._status.state != _TxState.ACTIVE:
            return
        if exc_type is not None:
            logger.warning("Rolling back the current transaction")
            self._connection.rollback()
            self._status.state = _TxState.ROLLED_BACK
        else:
            self._connection.commit()
            self._status.state = _TxState.COMMITTED
            logger.debug("Committed transaction for connection %s", id(self._connection))

    def commit(self) -> None:
        """Explicitly commit the transaction."""
        if self._status.state != _TxState.ACTIVE:
            raise TransactionStateError(self._status.state.value, "commit")
        self._connection.commit()
        self._status.state = _TxState.COMMITTED
        logger.debug("Committed transaction for connection %s", id(self._connection))

    def rollback(self) -> None:
        """Explicitly roll back the transaction."""
        if self._status.state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "rollback")
        self._connection.rollback()
        self._status.state = _TxState.ROLLED_BACK
        logger.debug("Rolled back transaction for connection %s", id(self._connection))

    def stmt(self, stmt: Stmt) -> Stmt:
        """Return a version of ``stmt`` that runs within this transaction."""
        return stmt.bind(self)

    def _check_usable(self) -> None:
        if self._status.state != _TxState.ACTIVE:
            raise TransactionStateError(self._status.state.value, "execute")

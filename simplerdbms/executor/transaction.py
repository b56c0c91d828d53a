"""
Transaction bookkeeping.

Every statement is persisted as soon as it runs, so there is nothing to
commit or roll back. The manager only tracks whether a BEGIN is open so
that misuse (nested BEGIN, COMMIT without BEGIN) is reported.
"""

import logging

from ..utils.exceptions import TransactionError

logger = logging.getLogger(__name__)


class TransactionManager:
    """Tracks BEGIN/COMMIT/ROLLBACK state without providing atomicity."""

    def __init__(self):
        self._active = False

    @property
    def in_transaction(self) -> bool:
        return self._active

    def begin(self) -> None:
        """
        Open a transaction.

        Raises:
            TransactionError: If one is already open
        """
        if self._active:
            raise TransactionError("A transaction is already in progress")
        self._active = True
        logger.debug("Transaction started")

    def commit(self) -> None:
        """
        Close the open transaction. Changes are already on disk.

        Raises:
            TransactionError: If no transaction is open
        """
        if not self._active:
            raise TransactionError("No transaction in progress")
        self._active = False
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """
        Close the open transaction and report that nothing was undone.

        Raises:
            TransactionError: Always; statements are persisted as they run
        """
        was_active = self._active
        self._active = False
        if not was_active:
            raise TransactionError("No transaction in progress")
        logger.warning("ROLLBACK requested but changes were already persisted")
        raise TransactionError(
            "ROLLBACK is not supported: changes are persisted as each statement runs"
        )

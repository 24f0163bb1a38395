"""
Transaction Coordination

Owns the begin/commit/rollback lifecycle of one connection. State is either
IDLE or IN_PROGRESS; begin() hands out a Transaction token that commit() and
rollback() may be given to make sure the caller closes the transaction it
opened.
"""

# Standard library imports
import logging
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID, uuid4

# Local imports
from dbcomms.database.adapter import DatabaseAdapter
from dbcomms.exceptions import (
    ExecutionError,
    NoActiveTransactionError,
    TransactionAlreadyActiveError,
    TransactionMismatchError,
)

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    """Lifecycle state of the coordinator."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class Transaction:
    """Token identifying one begun transaction."""

    id: UUID = field(default_factory=uuid4)

    def __str__(self) -> str:
        return f"Transaction({self.id.hex[:8]})"


class TransactionCoordinator:
    """
    Begin/commit/rollback state machine over a DatabaseAdapter.

    Transitions:
        begin:    IDLE -> IN_PROGRESS  (TransactionAlreadyActiveError otherwise)
        commit:   IN_PROGRESS -> IDLE  (NoActiveTransactionError otherwise)
        rollback: IN_PROGRESS -> IDLE  (NoActiveTransactionError otherwise)
        reset:    any -> IDLE
    """

    def __init__(self, adapter: DatabaseAdapter) -> None:
        self._adapter = adapter
        self._transaction: Transaction | None = None

    @property
    def state(self) -> TransactionState:
        """Current lifecycle state."""
        return TransactionState.IN_PROGRESS if self._transaction else TransactionState.IDLE

    @property
    def in_progress(self) -> bool:
        """Check if there's an active transaction."""
        return self._transaction is not None

    @property
    def current(self) -> Transaction | None:
        """The active transaction token, if any."""
        return self._transaction

    def begin(self) -> Transaction:
        """
        Begin a database transaction.

        Returns:
            Token for the new transaction

        Raises:
            TransactionAlreadyActiveError: If a transaction is already active
            ExecutionError: If the driver rejects BEGIN
        """
        if self.in_progress:
            raise TransactionAlreadyActiveError()

        self._adapter.run("BEGIN")
        self._transaction = Transaction()
        logger.debug(f"{self._transaction} started")
        return self._transaction

    def commit(self, transaction: Transaction | None = None) -> None:
        """
        Commit the current transaction.

        Raises:
            NoActiveTransactionError: If no transaction is active
            TransactionMismatchError: If transaction is not the active one
            ExecutionError: If the driver rejects COMMIT. A ROLLBACK is then
                attempted so the connection is not left inside the failed
                transaction; state is reset either way
        """
        self._finish("COMMIT", "commit", transaction)

    def rollback(self, transaction: Transaction | None = None) -> None:
        """
        Rollback the current transaction.

        Raises:
            NoActiveTransactionError: If no transaction is active
            TransactionMismatchError: If transaction is not the active one
            ExecutionError: If the driver rejects ROLLBACK (state is still reset)
        """
        self._finish("ROLLBACK", "rollback", transaction)

    def reset(self) -> None:
        """Forget any active transaction without touching the connection."""
        if self._transaction is not None:
            logger.warning(f"Abandoning {self._transaction} on disconnect")
        self._transaction = None

    def _finish(self, statement: str, action: str, transaction: Transaction | None) -> None:
        active = self._transaction
        if active is None:
            raise NoActiveTransactionError(action)
        if transaction is not None and transaction != active:
            raise TransactionMismatchError(transaction)

        try:
            self._adapter.run(statement)
            logger.debug(f"{active} {action} done")
        except ExecutionError as e:
            if statement == "COMMIT":
                self._discard(active, e)
            raise
        finally:
            self._transaction = None

    def _discard(self, active: Transaction, commit_error: ExecutionError) -> None:
        """Roll back after a failed COMMIT, attaching any rollback failure to commit_error."""
        logger.warning(f"{active} commit failed, rolling back: {commit_error}")
        try:
            self._adapter.run("ROLLBACK")
        except ExecutionError as rollback_error:
            logger.error(f"Rollback after failed commit also failed: {rollback_error}")
            commit_error.context["rollback_error"] = str(rollback_error)

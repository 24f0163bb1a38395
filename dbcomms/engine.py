"""
DBComms engine

Public entry point: seven canned statement shapes over one connection, with
mutations wrapped in a transaction and every failure returned as an
OperationResult envelope (and appended to the error log) instead of raised.
"""

# Standard library imports
import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from functools import wraps
from typing import Any, TypeVar

# Local imports
from dbcomms.config import DatabaseConfig
from dbcomms.database.adapter import DatabaseAdapter, FetchMode, Row
from dbcomms.database.connection import ConnectionFactory, DatabaseConnection
from dbcomms.database.query_builder import QueryBuilder, QueryResult
from dbcomms.database.transaction import Transaction, TransactionCoordinator, TransactionState
from dbcomms.exceptions import (
    ConnectionError,
    DBCommsError,
    ExecutionError,
    NotConnectedError,
    TypeMismatchError,
)
from dbcomms.monitoring.logging import get_error_logger
from dbcomms.results import ErrorReporter, OperationResult
from dbcomms.security.input_sanitizer import InputSanitizer, build_conditions, validate_request
from dbcomms.types import Condition

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _reported(action: str) -> Callable[[F], F]:
    """Turn DBCommsError raised by the wrapped operation into a failure envelope."""

    def decorator(method: F) -> F:
        @wraps(method)
        def wrapper(self: "DBComms", *args: Any, **kwargs: Any) -> Any:
            try:
                return method(self, *args, **kwargs)
            except DBCommsError as e:
                return self._reporter.failure(f"{action} failed", e)

        return wrapper  # type: ignore[return-value]

    return decorator


class DBComms:
    """
    Parameterized query engine over a single database connection.

    Construction never raises on connection failure: the engine comes up with
    is_connected == False and every operation fails fast with a
    NotConnectedError envelope.

    insert_row, update_row and delete_row each run in their own transaction.
    Inside a transaction opened with begin_transaction() or transaction() they
    join it instead: no nested BEGIN (so no TransactionAlreadyActiveError), no
    COMMIT, and no automatic ROLLBACK when they fail. The caller decides.

    Example:
        db = DBComms("localhost", "app", "app_user", "secret")
        user = db.get_row("users", ["username"], ["="], ["john_doe"])
        db.insert_row("users", ["username", "email"], ["jane", "jane@example.com"])
        n = db.count_rows("users", ["active"], ["="], [True])
    """

    def __init__(
        self,
        host: str = "",
        database: str = "",
        user: str = "",
        password: str | None = None,
        options: dict[str, Any] | None = None,
        *,
        config: DatabaseConfig | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        """
        Initialize the engine and connect.

        Args:
            host: Database server host
            database: Database name (file path for SQLite)
            user: Database user
            password: Database password
            options: Extra driver connection keyword arguments
            config: Full configuration; overrides the positional arguments
            connection_factory: Callable opening the DB-API connection
        """
        self.config = config or DatabaseConfig(
            host=host,
            database=database,
            user=user,
            password=password,
            options=dict(options or {}),
        )
        self._reporter = ErrorReporter(get_error_logger(self.config.error_log_file))
        self._db = DatabaseConnection(self.config, connection_factory)
        self._builder = QueryBuilder(self._db.dialect)
        self._adapter: DatabaseAdapter | None = None
        self._transactions: TransactionCoordinator | None = None

        try:
            connection = self._db.connect()
        except ConnectionError as e:
            self._reporter.failure("Connection failed", e)
        else:
            self._adapter = DatabaseAdapter(connection, self._db.dialect)
            self._transactions = TransactionCoordinator(self._adapter)

    @classmethod
    def from_config(
        cls, config: DatabaseConfig, connection_factory: ConnectionFactory | None = None
    ) -> "DBComms":
        """Create an engine from a DatabaseConfig."""
        return cls(config=config, connection_factory=connection_factory)

    @classmethod
    def from_env(cls) -> "DBComms":
        """Create an engine from DATABASE_* environment variables."""
        return cls(config=DatabaseConfig.from_env())

    # --- Connection -----------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        """Check if the engine holds a live connection."""
        return self._adapter is not None and self._db.is_connected

    @property
    def connection(self) -> Any | None:
        """Raw driver connection for statements the canned operations don't cover."""
        return self._db.raw

    @property
    def builder(self) -> QueryBuilder:
        """The statement assembler used by this engine."""
        return self._builder

    @property
    def transaction_state(self) -> TransactionState:
        """IDLE or IN_PROGRESS."""
        return self._transactions.state if self._transactions else TransactionState.IDLE

    def disconnect(self) -> None:
        """Close the connection and abandon any open transaction."""
        if self._transactions is not None:
            self._transactions.reset()
        self._db.disconnect()
        self._adapter = None
        self._transactions = None

    def health_check(self) -> bool:
        """
        Perform a health check on the database connection.

        Returns:
            True if the database answers SELECT 1, False otherwise
        """
        if self._adapter is None:
            return False
        return self._adapter.health_check()

    # --- Reads ----------------------------------------------------------------------

    @_reported("Get row")
    def get_row(
        self,
        table: str,
        conditions: Sequence[str] = (),
        operators: Sequence[str] = (),
        values: Sequence[Any] = (),
        connective: str = "AND",
    ) -> Row | None | OperationResult:
        """
        Fetch the first row matching all (or any) conditions.

        Returns:
            Row dict, None when nothing matches, or a failure envelope
        """
        query = self._builder.select_one(
            table, self._conditions(table, conditions, operators, values), connective
        )
        return self._gateway().execute(query, FetchMode.ONE)

    @_reported("Get rows")
    def get_rows(
        self,
        table: str,
        conditions: Sequence[str] = (),
        operators: Sequence[str] = (),
        values: Sequence[Any] = (),
        order_by: str = "id",
        direction: str = "ASC",
        limit: int | None = None,
        offset: int | None = None,
        connective: str = "AND",
    ) -> list[Row] | OperationResult:
        """
        Fetch matching rows ordered by one column, optionally paginated.

        offset is ignored unless limit is given.

        Returns:
            List of row dicts, or a failure envelope
        """
        query = self._builder.select_many(
            table,
            self._conditions(table, conditions, operators, values),
            connective,
            order_by=order_by,
            direction=direction,
            limit=limit,
            offset=offset,
        )
        return self._gateway().execute(query, FetchMode.ALL)

    @_reported("Count rows")
    def count_rows(
        self,
        table: str,
        conditions: Sequence[str] = (),
        operators: Sequence[str] = (),
        values: Sequence[Any] = (),
        connective: str = "AND",
    ) -> int | OperationResult:
        """Count matching rows."""
        query = self._builder.count(
            table, self._conditions(table, conditions, operators, values), connective
        )
        return int(self._fetch_scalar(query, "count"))

    @_reported("Get aggregate")
    def get_aggregate(
        self,
        table: str,
        function: str,
        column: str,
        conditions: Sequence[str] = (),
        operators: Sequence[str] = (),
        values: Sequence[Any] = (),
        connective: str = "AND",
    ) -> Any:
        """
        Compute COUNT/SUM/AVG/MIN/MAX of a column over matching rows.

        Returns:
            The aggregate value (None for SUM/AVG/MIN/MAX over no rows),
            or a failure envelope
        """
        query = self._builder.aggregate(
            table, function, column, self._conditions(table, conditions, operators, values), connective
        )
        return self._fetch_scalar(query, "aggregate")

    # --- Mutations ------------------------------------------------------------------

    @_reported("Insert")
    def insert_row(
        self, table: str, columns: Sequence[str], values: Sequence[Any]
    ) -> OperationResult:
        """Insert one row inside a transaction (or the caller's open one)."""
        validate_request(table, columns, values)
        if not columns:
            raise TypeMismatchError("columns", "a non-empty list or tuple", columns)
        query = self._builder.insert(table, columns, values)
        return OperationResult.ok(affected_rows=self._mutate(query))

    @_reported("Update")
    def update_row(
        self,
        table: str,
        column: str,
        value: Any,
        conditions: Sequence[str] = (),
        operators: Sequence[str] = (),
        values: Sequence[Any] = (),
        connective: str = "AND",
    ) -> OperationResult:
        """Set one column on matching rows in a transaction (or the caller's open one)."""
        InputSanitizer.sanitize_sql_identifier(column)
        query = self._builder.update(
            table,
            column,
            value,
            self._conditions(table, conditions, operators, values),
            connective,
        )
        return OperationResult.ok(affected_rows=self._mutate(query))

    @_reported("Delete")
    def delete_row(
        self,
        table: str,
        conditions: Sequence[str] = (),
        operators: Sequence[str] = (),
        values: Sequence[Any] = (),
        connective: str = "AND",
    ) -> OperationResult:
        """Delete matching rows inside a transaction (or the caller's open one)."""
        query = self._builder.delete(
            table, self._conditions(table, conditions, operators, values), connective
        )
        return OperationResult.ok(affected_rows=self._mutate(query))

    # --- Transactions ---------------------------------------------------------------

    @_reported("Begin transaction")
    def begin_transaction(self) -> OperationResult:
        """
        Begin an explicit transaction.

        The envelope's context["transaction"] holds the token that may be
        passed to commit()/rollback().
        """
        _, transactions = self._require_connection()
        return OperationResult.ok(transaction=transactions.begin())

    @_reported("Commit")
    def commit(self, transaction: Transaction | None = None) -> OperationResult:
        """Commit the active transaction."""
        _, transactions = self._require_connection()
        transactions.commit(transaction)
        return OperationResult.ok()

    @_reported("Rollback")
    def rollback(self, transaction: Transaction | None = None) -> OperationResult:
        """Roll back the active transaction."""
        _, transactions = self._require_connection()
        transactions.rollback(transaction)
        return OperationResult.ok()

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Run a block inside one transaction.

        Commits on normal exit, rolls back and re-raises on exception. Unlike
        the other operations this raises DBCommsError if the transaction
        cannot be begun or committed.
        """
        _, transactions = self._require_connection()
        token = transactions.begin()
        try:
            yield token
        except BaseException:
            if transactions.current == token:
                try:
                    transactions.rollback(token)
                except DBCommsError as rollback_error:
                    # Don't suppress the original exception
                    self._reporter.failure("Rollback failed", rollback_error)
            raise
        else:
            if transactions.current == token:
                transactions.commit(token)

    # --- Internal -------------------------------------------------------------------

    def _require_connection(self) -> tuple[DatabaseAdapter, TransactionCoordinator]:
        if self._adapter is None or self._transactions is None:
            raise NotConnectedError()
        return self._adapter, self._transactions

    def _gateway(self) -> DatabaseAdapter:
        return self._require_connection()[0]

    @staticmethod
    def _conditions(
        table: Any, columns: Any, operators: Any, values: Any
    ) -> list[Condition]:
        validate_request(table, columns, values)
        return build_conditions(columns, operators, values)

    def _fetch_scalar(self, query: QueryResult, key: str) -> Any:
        row = self._gateway().execute(query, FetchMode.ONE)
        if row is None:
            raise ExecutionError("Query returned no row", query=query.sql, parameters=query.parameters)
        return row[key]

    def _mutate(self, query: QueryResult) -> int:
        """
        Execute a mutation in its own transaction, or in the caller's if one is open.

        Returns:
            Affected row count
        """
        adapter, transactions = self._require_connection()
        if transactions.in_progress:
            return adapter.execute(query, FetchMode.NONE)

        token = transactions.begin()
        try:
            affected = adapter.execute(query, FetchMode.NONE)
        except ExecutionError as e:
            self._rollback_after_failure(transactions, token, e)
            raise

        try:
            transactions.commit(token)
        except ExecutionError as e:
            # Report the mutation, not the bare COMMIT
            e.context.update(
                query=query.sql, params=dict(query.parameters), failed_statement="COMMIT"
            )
            raise
        return affected

    def _rollback_after_failure(
        self, transactions: TransactionCoordinator, token: Transaction, error: DBCommsError
    ) -> None:
        try:
            transactions.rollback(token)
        except DBCommsError as rollback_error:
            logger.error(f"Rollback after failed statement also failed: {rollback_error}")
            self._reporter.failure("Rollback failed", rollback_error)
            error.context["rollback_error"] = str(rollback_error)

    def __str__(self) -> str:
        """String representation of the engine."""
        tx_info = (
            "with active transaction"
            if self.transaction_state is TransactionState.IN_PROGRESS
            else "no transaction"
        )
        return f"DBComms({self._db}, {tx_info})"

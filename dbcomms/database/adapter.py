"""
Database Adapter

Submits assembled statements and their bound parameters to a DB-API
connection, fetches results as plain dicts, and translates driver faults
into ExecutionError.
"""

# Standard library imports
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

# Local imports
from dbcomms.database.dialect import Dialect
from dbcomms.database.query_builder import QueryResult
from dbcomms.exceptions import ExecutionError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class FetchMode(Enum):
    """What to retrieve after executing a statement."""

    ONE = "one"
    ALL = "all"
    NONE = "none"


class DatabaseAdapter:
    """
    Execution gateway over a single DB-API connection.

    The connection is expected to run in autocommit mode; transactions are
    opened and closed explicitly by the TransactionCoordinator through run().
    """

    def __init__(self, connection: Any, dialect: Dialect) -> None:
        """
        Initialize adapter with a live connection.

        Args:
            connection: DB-API 2.0 connection (psycopg or sqlite3)
            dialect: Dialect matching the connection's driver
        """
        self._connection = connection
        self._dialect = dialect

    @property
    def connection(self) -> Any:
        """Get the underlying connection."""
        return self._connection

    @property
    def dialect(self) -> Dialect:
        """Get the dialect in use."""
        return self._dialect

    def execute(
        self, query: QueryResult, fetch: FetchMode = FetchMode.ALL
    ) -> Row | list[Row] | int | None:
        """
        Execute a built query.

        Args:
            query: Statement and its named parameters
            fetch: ONE returns a row or None, ALL a list of rows,
                NONE the affected row count

        Returns:
            Row, list of rows, or row count depending on fetch

        Raises:
            ExecutionError: If the driver raises while executing or fetching
        """
        logger.debug(f"Executing SQL: {query.sql}")
        logger.debug(f"With parameters: {query.parameters}")

        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(query.sql, query.parameters)
                if fetch is FetchMode.ONE:
                    result = self._to_row(cursor, cursor.fetchone())
                    logger.debug(f"Fetch one query: {query.sql[:100]} | Found: {result is not None}")
                    return result
                if fetch is FetchMode.ALL:
                    rows = [self._to_row(cursor, row) for row in cursor.fetchall()]
                    logger.debug(f"Fetch all query: {query.sql[:100]} | Count: {len(rows)}")
                    return rows
                logger.debug(f"Query executed: {query.sql[:100]} | Rows: {cursor.rowcount}")
                return cursor.rowcount
            finally:
                cursor.close()
        except self._dialect.driver_errors as e:
            code = self._dialect.error_code(e)
            logger.error(f"Query execution failed: {e} | Query: {query.sql[:100]}")
            raise ExecutionError(
                str(e).strip(),
                underlying_code=code,
                query=query.sql,
                parameters=query.parameters,
                cause=e,
            ) from e

    def run(self, statement: str) -> None:
        """
        Execute a parameterless control statement such as BEGIN or COMMIT.

        Raises:
            ExecutionError: If the driver rejects the statement
        """
        logger.debug(f"Executing control statement: {statement}")
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(statement)
            finally:
                cursor.close()
        except self._dialect.driver_errors as e:
            logger.error(f"{statement} failed: {e}")
            raise ExecutionError(
                str(e).strip(), underlying_code=self._dialect.error_code(e), query=statement, cause=e
            ) from e

    def health_check(self) -> bool:
        """
        Perform a health check on the connection.

        Returns:
            True if SELECT 1 succeeds, False otherwise
        """
        try:
            self.execute(QueryResult("SELECT 1", {}), FetchMode.ONE)
            return True
        except ExecutionError as e:
            logger.error(f"Health check failed: {e}")
            return False

    @staticmethod
    def _to_row(cursor: Any, row: Any) -> Row | None:
        if row is None:
            return None
        if isinstance(row, Mapping):
            return dict(row)
        columns = [description[0] for description in cursor.description]
        return dict(zip(columns, row))

    def __str__(self) -> str:
        """String representation of the adapter."""
        return f"DatabaseAdapter({self._dialect.name})"

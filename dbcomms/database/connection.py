"""
Database Connection Management

Opens and closes the single driver connection an engine works on. PostgreSQL
connections come from psycopg, SQLite connections from the standard library
driver; both are put in autocommit mode so transactions are only ever opened
by an explicit BEGIN.
"""

# Standard library imports
import logging
import sqlite3
from collections.abc import Callable
from typing import Any

# Third-party imports
import psycopg
from psycopg.rows import dict_row

# Local imports
from dbcomms.config import DatabaseConfig
from dbcomms.database.dialect import Dialect, get_dialect
from dbcomms.exceptions import ConnectionError

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[DatabaseConfig], Any]


def connect_postgresql(config: DatabaseConfig) -> psycopg.Connection:
    """Open an autocommit psycopg connection returning dict rows."""
    return psycopg.connect(
        config.build_dsn(), autocommit=True, row_factory=dict_row, **config.options
    )


def connect_sqlite(config: DatabaseConfig) -> sqlite3.Connection:
    """Open an autocommit sqlite3 connection returning sqlite3.Row rows."""
    kwargs: dict[str, Any] = dict(config.options)
    if config.connect_timeout is not None:
        kwargs.setdefault("timeout", config.connect_timeout)
    # isolation_level=None -> autocommit; BEGIN/COMMIT/ROLLBACK are explicit
    conn = sqlite3.connect(config.database or ":memory:", isolation_level=None, **kwargs)
    conn.row_factory = sqlite3.Row
    return conn


DEFAULT_FACTORIES: dict[str, ConnectionFactory] = {
    "postgresql": connect_postgresql,
    "sqlite": connect_sqlite,
}


class DatabaseConnection:
    """
    Connection manager for one engine.

    Holds at most one live driver connection.
    """

    def __init__(
        self, config: DatabaseConfig, factory: ConnectionFactory | None = None
    ) -> None:
        """
        Initialize connection manager.

        Args:
            config: Database configuration
            factory: Callable opening a DB-API connection from config;
                defaults to the driver's factory

        Raises:
            ValueError: If config.driver is not supported
        """
        self.config = config
        self.dialect: Dialect = get_dialect(config.driver)
        self._factory = factory or DEFAULT_FACTORIES[self.dialect.name]
        self._connection: Any | None = None

    @property
    def is_connected(self) -> bool:
        """Check if a connection is open."""
        return self._connection is not None

    @property
    def raw(self) -> Any | None:
        """The live driver connection, or None."""
        return self._connection

    def connect(self) -> Any:
        """
        Open the connection if it is not already open.

        Returns:
            DB-API connection

        Raises:
            ConnectionError: If the driver cannot connect
        """
        if self._connection is not None:
            return self._connection

        logger.info(
            f"Connecting to {self.dialect.name} database: "
            f"{self.config.host}/{self.config.database}"
        )
        try:
            self._connection = self._factory(self.config)
        except (*self.dialect.driver_errors, OSError) as e:
            logger.error(f"Failed to connect to database: {e}")
            raise ConnectionError(f"Failed to connect to database: {e}", cause=e) from e

        logger.info("Database connected successfully")
        return self._connection

    def disconnect(self) -> None:
        """Close the connection. Safe to call when already closed."""
        if self._connection is None:
            return

        logger.info("Disconnecting from database...")
        try:
            self._connection.close()
        except self.dialect.driver_errors as e:
            logger.warning(f"Error while closing connection: {e}")
        finally:
            self._connection = None
        logger.info("Database disconnected")

    def __str__(self) -> str:
        """String representation."""
        status = "connected" if self.is_connected else "disconnected"
        return f"DatabaseConnection({self.dialect.name}:{self.config.host}/{self.config.database}, {status})"

"""Global pytest configuration and fixtures."""

# Standard library imports
import sys
from pathlib import Path
from typing import Any

# Load test environment variables
from dotenv import load_dotenv

test_env_path = Path(__file__).parent.parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)

# Third-party imports
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Local imports
from dbcomms import DatabaseConfig, DBComms


class RecordingCursor:
    """DB-API cursor stand-in that records every statement it is given."""

    def __init__(self, connection: "RecordingConnection") -> None:
        self.connection = connection
        self.rowcount = -1
        self.description = None
        self._rows: list[Any] = []

    def execute(self, sql: str, params: Any = None) -> None:
        self.connection.executed.append((sql, params))
        for fragment, error in self.connection.failures.items():
            if fragment in sql:
                raise error
        self._rows = list(self.connection.rows) if sql.lstrip().startswith("SELECT") else []
        self.rowcount = self.connection.rowcount

    def fetchone(self) -> Any:
        return self._rows[0] if self._rows else None

    def fetchall(self) -> list[Any]:
        return list(self._rows)

    def close(self) -> None:
        pass


class RecordingConnection:
    """
    Synthetic connection capturing SQL text and bound parameters.

    rows: returned by every SELECT
    failures: {sql fragment: exception} raised when a statement contains the fragment
    """

    def __init__(self) -> None:
        self.executed: list[tuple[str, Any]] = []
        self.rows: list[Any] = []
        self.rowcount = 1
        self.failures: dict[str, Exception] = {}
        self.closed = False

    def cursor(self) -> RecordingCursor:
        return RecordingCursor(self)

    def close(self) -> None:
        self.closed = True

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.executed]

    def data_statements(self) -> list[tuple[str, Any]]:
        """Executed statements other than BEGIN/COMMIT/ROLLBACK."""
        return [
            (sql, params)
            for sql, params in self.executed
            if sql not in ("BEGIN", "COMMIT", "ROLLBACK")
        ]


@pytest.fixture
def error_log(tmp_path) -> Path:
    """Path of the error sink for the test."""
    return tmp_path / "error_log.txt"


@pytest.fixture
def fake_connection() -> RecordingConnection:
    """Provides a recording connection."""
    return RecordingConnection()


@pytest.fixture
def engine(fake_connection, error_log) -> DBComms:
    """Engine (PostgreSQL dialect) wired to the recording connection."""
    config = DatabaseConfig(host="db.test", database="app", user="app", error_log_file=str(error_log))
    return DBComms(config=config, connection_factory=lambda _config: fake_connection)


@pytest.fixture
def sqlite_engine(error_log):
    """Engine on an in-memory SQLite database with a users table."""
    config = DatabaseConfig(driver="sqlite", database=":memory:", error_log_file=str(error_log))
    db = DBComms(config=config)
    db.connection.execute(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            email TEXT,
            age INTEGER
        )
        """
    )
    yield db
    db.disconnect()

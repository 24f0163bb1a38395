"""
SQL dialects supported by the engine.

A dialect only knows how to render a placeholder, quote an identifier, and
recognise its driver's exceptions. Everything else in the statement text is
shared.
"""

import sqlite3
from dataclasses import dataclass

import psycopg


@dataclass(frozen=True)
class Dialect:
    """Rendering rules for one DB-API driver."""

    name: str
    placeholder_format: str
    driver_errors: tuple[type[Exception], ...]
    error_code_attribute: str
    identifier_quote: str = '"'

    def placeholder(self, name: str) -> str:
        """Render a named placeholder, e.g. :name or %(name)s."""
        return self.placeholder_format.format(name=name)

    def quote(self, identifier: str) -> str:
        """Quote an already-validated identifier."""
        q = self.identifier_quote
        return f"{q}{identifier}{q}"

    def error_code(self, error: Exception) -> str | None:
        """Extract the driver's error code (SQLSTATE, SQLite error name) if any."""
        return getattr(error, self.error_code_attribute, None)


POSTGRESQL = Dialect(
    name="postgresql",
    placeholder_format="%({name})s",
    driver_errors=(psycopg.Error,),
    error_code_attribute="sqlstate",
)

SQLITE = Dialect(
    name="sqlite",
    placeholder_format=":{name}",
    driver_errors=(sqlite3.Error,),
    error_code_attribute="sqlite_errorname",
)

DIALECTS: dict[str, Dialect] = {
    POSTGRESQL.name: POSTGRESQL,
    SQLITE.name: SQLITE,
}


def get_dialect(driver: str) -> Dialect:
    """
    Look up the dialect for a driver name.

    Raises:
        ValueError: If the driver is not supported
    """
    try:
        return DIALECTS[driver.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported database driver: {driver} (supported: {', '.join(DIALECTS)})"
        ) from None

"""
Database Infrastructure Module

Statement assembly, execution and transaction coordination over a single
PostgreSQL (psycopg) or SQLite connection.
"""

from .adapter import DatabaseAdapter, FetchMode
from .connection import DatabaseConnection
from .dialect import POSTGRESQL, SQLITE, Dialect, get_dialect
from .query_builder import QueryBuilder, QueryResult, bind_parameters, build_clause
from .transaction import Transaction, TransactionCoordinator, TransactionState

__all__ = [
    "DatabaseAdapter",
    "FetchMode",
    "DatabaseConnection",
    "Dialect",
    "POSTGRESQL",
    "SQLITE",
    "get_dialect",
    "QueryBuilder",
    "QueryResult",
    "bind_parameters",
    "build_clause",
    "Transaction",
    "TransactionCoordinator",
    "TransactionState",
]

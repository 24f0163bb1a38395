"""
dbcomms - parameterized query building and transactional execution.

Turns (table, conditions, operators, values, connective) descriptions into
injection-safe SQL with named bound parameters, runs mutations inside a
transaction, and reports failures as OperationResult envelopes.
"""

from .config import ERROR_LOG_FILE, DatabaseConfig
from .engine import DBComms
from .results import OperationResult, is_failure
from .types import AggregateFunction, Condition, Connective, Operator, SortDirection

__version__ = "0.1.0"

__all__ = [
    "DBComms",
    "DatabaseConfig",
    "ERROR_LOG_FILE",
    "OperationResult",
    "is_failure",
    "Condition",
    "Operator",
    "Connective",
    "SortDirection",
    "AggregateFunction",
]

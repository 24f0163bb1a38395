"""
dbcomms Exception Definitions

Defines the exceptions raised by the validator, query builder, transaction
coordinator and execution gateway. The public DBComms facade converts these
into OperationResult envelopes; nothing below it swallows them.
"""

# Standard library imports
from typing import Any


class DBCommsError(Exception):
    """Base exception for all dbcomms operations."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context or {})

    @property
    def code(self) -> str:
        """Stable error type name reported in envelopes and logs."""
        return type(self).__name__


class ConnectionError(DBCommsError):
    """Raised when the database connection cannot be established."""

    def __init__(
        self, message: str = "Database connection failed", cause: Exception | None = None
    ) -> None:
        super().__init__(message, cause)


class NotConnectedError(ConnectionError):
    """Raised when an operation is attempted on an engine with no live connection."""

    def __init__(self) -> None:
        super().__init__("Not connected to the database")


class ValidationError(DBCommsError):
    """Base exception for input rejected before any SQL is built."""

    pass


class InvalidTableNameError(ValidationError):
    """Raised when a table name is not a valid identifier."""

    def __init__(self, table: Any) -> None:
        super().__init__(f"Invalid table name: {table!r}", context={"table": repr(table)})
        self.table = table


class InvalidColumnNameError(ValidationError):
    """Raised when a column name is not a valid identifier."""

    def __init__(self, column: Any) -> None:
        super().__init__(f"Invalid column name: {column!r}", context={"column": repr(column)})
        self.column = column


class CountMismatchError(ValidationError):
    """Raised when parallel sequences differ in length."""

    def __init__(self, expected: int, actual: int, what: str = "parameters") -> None:
        super().__init__(
            f"Mismatch between column count and {what} count: {expected} != {actual}",
            context={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class TypeMismatchError(ValidationError):
    """Raised when an argument has the wrong container or value type."""

    def __init__(self, argument: str, expected: str, value: Any) -> None:
        super().__init__(
            f"{argument} must be {expected}, got {type(value).__name__}",
            context={"argument": argument},
        )
        self.argument = argument


class InvalidOperatorError(ValidationError):
    """Raised when an operator, connective, direction or function is not allowed."""

    def __init__(self, kind: str, value: Any, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid {kind}: {value!r} (allowed: {', '.join(allowed)})",
            context={kind.replace(" ", "_"): repr(value)},
        )
        self.kind = kind
        self.value = value


class DuplicateIdentifierError(ValidationError):
    """Raised when two bindings in one statement share a placeholder name."""

    def __init__(self, name: str, source: str | None = None) -> None:
        message = f"Duplicate placeholder name: {name}"
        context: dict[str, Any] = {"placeholder": name}
        if source:
            message = f"{message} (from {source})"
            context["source"] = source
        super().__init__(message, context=context)
        self.name = name
        self.source = source


class InvalidPaginationError(ValidationError):
    """Raised when LIMIT or OFFSET is not a non-negative integer."""

    def __init__(self, clause: str, value: Any) -> None:
        super().__init__(
            f"{clause} must be a non-negative integer, got {value!r}",
            context={clause.lower(): repr(value)},
        )
        self.clause = clause


class TransactionStateError(DBCommsError):
    """Base exception for begin/commit/rollback called in the wrong state."""

    pass


class TransactionAlreadyActiveError(TransactionStateError):
    """Raised when attempting to start a transaction when one is already active."""

    def __init__(self) -> None:
        super().__init__("Transaction is already active")


class NoActiveTransactionError(TransactionStateError):
    """Raised when commit or rollback is requested with no active transaction."""

    def __init__(self, action: str = "commit") -> None:
        super().__init__(f"No active transaction to {action}")


class TransactionMismatchError(TransactionStateError):
    """Raised when commit or rollback is given a token that is not the active one."""

    def __init__(self, token: Any) -> None:
        super().__init__(f"Transaction {token} is not the active transaction")


class ExecutionError(DBCommsError):
    """Raised when the driver fails to prepare, execute or fetch a statement."""

    def __init__(
        self,
        underlying_message: str,
        underlying_code: str | None = None,
        query: str | None = None,
        parameters: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        context: dict[str, Any] = {}
        if query is not None:
            context["query"] = query
            context["params"] = dict(parameters or {})
        super().__init__(underlying_message, cause, context)
        self.underlying_message = underlying_message
        self.underlying_code = underlying_code
        self.query = query
        self.parameters = parameters

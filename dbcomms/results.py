"""
Operation results.

Every public DBComms operation either returns its data (rows, a count, an
aggregate value) or an OperationResult. Failures are always an
OperationResult with success=False, and they are falsy, so `if not row:`
treats a failed read like an absent one.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from dbcomms.exceptions import DBCommsError, ExecutionError


@dataclass(frozen=True)
class OperationResult:
    """Uniform success/failure envelope."""

    success: bool
    message: str = ""
    error: str = ""
    error_type: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str = "", **context: Any) -> "OperationResult":
        return cls(success=True, message=message, context=context)

    @classmethod
    def failed(
        cls,
        message: str,
        error: str,
        error_type: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            message=message,
            error=error,
            error_type=error_type,
            context=dict(context or {}),
        )

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, **({"context": self.context} if self.context else {})}
        return {
            "success": False,
            "message": self.message,
            "error": self.error,
            "context": self.context,
        }


def is_failure(value: Any) -> bool:
    """True if value is a failed OperationResult rather than operation data."""
    return isinstance(value, OperationResult) and not value.success


class ErrorReporter:
    """Builds failure envelopes and appends one structured record per failure."""

    def __init__(self, sink: logging.Logger) -> None:
        self._sink = sink

    def failure(self, message: str, error: DBCommsError | str) -> OperationResult:
        """
        Report a failed operation.

        Args:
            message: Human message, e.g. "Insert failed"
            error: The exception that caused the failure, or a detail string

        Returns:
            Failure envelope
        """
        if isinstance(error, DBCommsError):
            detail = str(error)
            error_type = error.code
            context = dict(error.context)
            sql_error_code = error.underlying_code if isinstance(error, ExecutionError) else None
        else:
            detail = error
            error_type = None
            context = {}
            sql_error_code = None

        self.log(message, detail, error_type=error_type, sql_error_code=sql_error_code, context=context)
        return OperationResult.failed(message, detail, error_type, context)

    def log(
        self,
        message: str,
        detail: str,
        error_type: str | None = None,
        sql_error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Append a record to the sink without building an envelope."""
        extra: dict[str, Any] = {"error_detail": detail}
        if error_type:
            extra["error_type"] = error_type
        if sql_error_code:
            extra["sql_error_code"] = sql_error_code
        if context:
            extra["context"] = context
        self._sink.error(message, extra=extra)

"""
Input Sanitization - Validation of everything that is interpolated into SQL.

Identifiers (tables, columns) cannot be bound as parameters, so they are
checked against a strict character set before any statement is built.
Operators, connectives, sort directions and aggregate functions are resolved
against closed enums. Values are never inspected here beyond their container
type: they only ever reach the driver as bound parameters.
"""

import logging
import re
from collections.abc import Sequence
from enum import Enum
from typing import Any, TypeVar

from dbcomms.exceptions import (
    CountMismatchError,
    InvalidColumnNameError,
    InvalidOperatorError,
    InvalidPaginationError,
    InvalidTableNameError,
    TypeMismatchError,
)
from dbcomms.types import AggregateFunction, Condition, Connective, Operator, SortDirection

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class InputSanitizer:
    """
    Input validation for security purposes.

    Every method either returns the validated value or raises a
    ValidationError subclass. No method has side effects beyond logging.
    """

    @classmethod
    def is_identifier(cls, value: Any) -> bool:
        """Return True if value is a string made only of [A-Za-z0-9_]."""
        return isinstance(value, str) and IDENTIFIER_PATTERN.fullmatch(value) is not None

    @classmethod
    def sanitize_table_name(cls, table: Any) -> str:
        """
        Validate a table name.

        Raises:
            InvalidTableNameError: If table is not a string identifier
        """
        if not cls.is_identifier(table):
            logger.debug(f"Rejected table name: {table!r}")
            raise InvalidTableNameError(table)
        return table

    @classmethod
    def sanitize_sql_identifier(cls, identifier: Any) -> str:
        """
        Validate a column name.

        Raises:
            InvalidColumnNameError: If identifier is not a string identifier
        """
        if not cls.is_identifier(identifier):
            logger.debug(f"Rejected column name: {identifier!r}")
            raise InvalidColumnNameError(identifier)
        return identifier

    @classmethod
    def ensure_sequence(cls, argument: str, value: Any) -> Sequence[Any]:
        """
        Require an ordered list or tuple.

        Strings are sequences too but are never a valid column or value list.

        Raises:
            TypeMismatchError: If value is not a list or tuple
        """
        if not isinstance(value, (list, tuple)):
            raise TypeMismatchError(argument, "a list or tuple", value)
        return value

    @classmethod
    def sanitize_operator(cls, operator: Any) -> Operator:
        """Resolve an operator string against the allowed comparison operators."""
        return cls._resolve(Operator, operator, "operator")

    @classmethod
    def sanitize_connective(cls, connective: Any) -> Connective:
        """Resolve AND/OR (case-insensitive)."""
        return cls._resolve(Connective, connective, "connective")

    @classmethod
    def sanitize_direction(cls, direction: Any) -> SortDirection:
        """Resolve ASC/DESC (case-insensitive)."""
        return cls._resolve(SortDirection, direction, "sort direction")

    @classmethod
    def sanitize_aggregate(cls, function: Any) -> AggregateFunction:
        """Resolve an aggregate function name (case-insensitive)."""
        return cls._resolve(AggregateFunction, function, "aggregate function")

    @classmethod
    def sanitize_pagination(cls, clause: str, value: Any) -> int | None:
        """
        Validate a LIMIT or OFFSET value.

        None passes through. bool is rejected even though it subclasses int.

        Raises:
            InvalidPaginationError: If value is not a non-negative int
        """
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidPaginationError(clause, value)
        return value

    @classmethod
    def _resolve(cls, enum_type: type[E], value: Any, kind: str) -> E:
        if isinstance(value, enum_type):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in enum_type:
                if member.value == normalized:
                    return member
        raise InvalidOperatorError(kind, value, [member.value for member in enum_type])


def validate_request(table: Any, columns: Any, params: Any) -> None:
    """
    Validate a table name plus a column list and its parallel value list.

    Raises:
        InvalidTableNameError: If table is not a string identifier
        TypeMismatchError: If columns or params are not lists/tuples
        InvalidColumnNameError: If any column fails the identifier pattern
        CountMismatchError: If len(columns) != len(params)
    """
    InputSanitizer.sanitize_table_name(table)
    InputSanitizer.ensure_sequence("columns", columns)
    InputSanitizer.ensure_sequence("params", params)
    for column in columns:
        InputSanitizer.sanitize_sql_identifier(column)
    if len(columns) != len(params):
        raise CountMismatchError(len(columns), len(params))


def build_conditions(columns: Any, operators: Any, values: Any) -> list[Condition]:
    """
    Turn parallel column/operator/value sequences into Condition tuples.

    Assumes validate_request() already accepted columns and values.

    Raises:
        TypeMismatchError: If operators is not a list/tuple, or an IN value is
            not a non-empty list/tuple
        CountMismatchError: If len(operators) != len(values)
        InvalidOperatorError: If an operator is not in the allowed set
    """
    InputSanitizer.ensure_sequence("operators", operators)
    if len(operators) != len(values):
        raise CountMismatchError(len(values), len(operators), what="operator")

    conditions = []
    for column, raw_operator, value in zip(columns, operators, values):
        operator = InputSanitizer.sanitize_operator(raw_operator)
        if operator is Operator.IN and (not isinstance(value, (list, tuple)) or not value):
            raise TypeMismatchError(f"IN value for {column}", "a non-empty list or tuple", value)
        conditions.append(Condition(column, operator, value))
    return conditions

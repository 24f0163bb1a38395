"""
Type-safe SQL Query Builder - Secure parameterized query construction.

This module assembles the seven statement shapes the engine supports and the
named parameter set that goes with each of them.

Key Security Features:
- All values are bound as named parameters (never concatenated)
- Identifiers are validated by InputSanitizer and then quoted
- Operators, connectives, directions and aggregate functions come from
  closed enums
- LIMIT/OFFSET are validated integers

Usage Examples:
    builder = QueryBuilder(SQLITE)

    query = builder.select_many(
        "users",
        [Condition("status", Operator.EQ, "active")],
        order_by="created_at",
        direction="DESC",
        limit=10,
    )
    # query.sql == 'SELECT * FROM "users" WHERE "status" = :status
    #               ORDER BY "created_at" DESC LIMIT 10'
    # query.parameters == {"status": "active"}
"""

import logging
from collections.abc import Sequence
from typing import Any

from dbcomms.database.dialect import POSTGRESQL, Dialect
from dbcomms.exceptions import CountMismatchError, DuplicateIdentifierError
from dbcomms.security.input_sanitizer import InputSanitizer
from dbcomms.types import Condition, Connective, Operator

logger = logging.getLogger(__name__)

# Placeholder name reserved for the SET value of an UPDATE.
UPDATE_VALUE_PLACEHOLDER = "value"


class QueryResult:
    """
    Result of query building containing the SQL and parameters.

    This class encapsulates the final SQL query and its parameters,
    ensuring they can only be used together safely.
    """

    def __init__(self, sql: str, parameters: dict[str, Any]):
        self.sql = sql
        self.parameters = parameters
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after creation for security."""
        if hasattr(self, "_frozen") and self._frozen and name != "_frozen":
            raise AttributeError("QueryResult is immutable after creation")
        super().__setattr__(name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryResult):
            return NotImplemented
        return self.sql == other.sql and self.parameters == other.parameters

    def __str__(self) -> str:
        return f"QueryResult(sql={self.sql!r}, parameters={self.parameters!r})"

    def __repr__(self) -> str:
        return self.__str__()


def bind_parameters(names: Sequence[str], values: Sequence[Any]) -> dict[str, Any]:
    """
    Zip placeholder names to values position by position.

    Args:
        names: Placeholder names, without the driver marker
        values: Values in the same order

    Returns:
        Mapping of placeholder name to value, in input order

    Raises:
        CountMismatchError: If the sequences differ in length
        DuplicateIdentifierError: If a name repeats
    """
    if len(names) != len(values):
        raise CountMismatchError(len(names), len(values))

    parameters: dict[str, Any] = {}
    for name, value in zip(names, values):
        if name in parameters:
            raise DuplicateIdentifierError(name)
        parameters[name] = value
    return parameters


def build_clause(
    conditions: Sequence[Condition],
    connective: Connective | str = Connective.AND,
    dialect: Dialect = POSTGRESQL,
) -> str:
    """
    Render conditions as the body of a WHERE clause.

    Returns an empty string for no conditions. IN conditions expand to one
    placeholder per element, named in_<column>_0, in_<column>_1, ...
    """
    if not conditions:
        return ""

    joiner = f" {InputSanitizer.sanitize_connective(connective).value} "
    parts = []
    for condition in conditions:
        column = dialect.quote(InputSanitizer.sanitize_sql_identifier(condition.column))
        placeholders = [dialect.placeholder(name) for name in condition.placeholders()]
        if condition.operator is Operator.IN:
            parts.append(f"{column} IN ({', '.join(placeholders)})")
        else:
            parts.append(f"{column} {condition.operator.value} {placeholders[0]}")
    return joiner.join(parts)


def condition_parameters(conditions: Sequence[Condition]) -> tuple[list[str], list[Any]]:
    """Flatten conditions into parallel placeholder-name and value lists."""
    names: list[str] = []
    values: list[Any] = []
    for condition in conditions:
        names.extend(condition.placeholders())
        values.extend(condition.bound_values())
    return names, values


class QueryBuilder:
    """
    SQL statement assembler with automatic parameterization.

    One method per supported statement shape. Each returns an immutable
    QueryResult whose parameter keys match the placeholders in its SQL.
    """

    def __init__(self, dialect: Dialect = POSTGRESQL) -> None:
        """
        Initialize the builder.

        Args:
            dialect: Placeholder and quoting rules of the target driver
        """
        self.dialect = dialect

    def _table(self, table: str) -> str:
        return self.dialect.quote(InputSanitizer.sanitize_table_name(table))

    def _column(self, column: str) -> str:
        return self.dialect.quote(InputSanitizer.sanitize_sql_identifier(column))

    def _where(
        self,
        conditions: Sequence[Condition],
        connective: Connective | str,
        leading: Sequence[tuple[str, Any]] = (),
    ) -> tuple[str, dict[str, Any]]:
        """Build ' WHERE ...' (or '') and the full parameter set."""
        names = [name for name, _ in leading]
        values = [value for _, value in leading]
        condition_names, condition_values = condition_parameters(conditions)
        try:
            parameters = bind_parameters(names + condition_names, values + condition_values)
        except DuplicateIdentifierError as e:
            for condition in conditions:
                if condition.operator is Operator.IN and e.name in condition.placeholders():
                    raise DuplicateIdentifierError(
                        e.name, f"IN expansion of {condition.column}"
                    ) from e
            raise

        clause = build_clause(conditions, connective, self.dialect)
        return (f" WHERE {clause}" if clause else ""), parameters

    def select_one(
        self,
        table: str,
        conditions: Sequence[Condition] = (),
        connective: Connective | str = Connective.AND,
    ) -> QueryResult:
        """Build SELECT * ... LIMIT 1."""
        where, parameters = self._where(conditions, connective)
        return QueryResult(f"SELECT * FROM {self._table(table)}{where} LIMIT 1", parameters)

    def select_many(
        self,
        table: str,
        conditions: Sequence[Condition] = (),
        connective: Connective | str = Connective.AND,
        order_by: str = "id",
        direction: str = "ASC",
        limit: int | None = None,
        offset: int | None = None,
    ) -> QueryResult:
        """
        Build SELECT * ... ORDER BY ... [LIMIT n [OFFSET m]].

        OFFSET is dropped when no LIMIT is given.

        Raises:
            InvalidColumnNameError: If order_by is not a valid identifier
            InvalidOperatorError: If direction is not ASC/DESC
            InvalidPaginationError: If limit/offset are not non-negative ints
        """
        sort = InputSanitizer.sanitize_direction(direction)
        limit = InputSanitizer.sanitize_pagination("LIMIT", limit)
        offset = InputSanitizer.sanitize_pagination("OFFSET", offset)

        where, parameters = self._where(conditions, connective)
        sql = f"SELECT * FROM {self._table(table)}{where} ORDER BY {self._column(order_by)} {sort.value}"

        if limit is not None:
            sql += f" LIMIT {limit}"
            if offset is not None:
                sql += f" OFFSET {offset}"
        elif offset is not None:
            logger.debug(f"Ignoring OFFSET {offset} without LIMIT")

        return QueryResult(sql, parameters)

    def insert(self, table: str, columns: Sequence[str], values: Sequence[Any]) -> QueryResult:
        """Build INSERT INTO ... (cols) VALUES (placeholders)."""
        parameters = bind_parameters(list(columns), list(values))
        columns_str = ", ".join(self._column(column) for column in columns)
        placeholders = ", ".join(self.dialect.placeholder(column) for column in columns)
        return QueryResult(
            f"INSERT INTO {self._table(table)} ({columns_str}) VALUES ({placeholders})",
            parameters,
        )

    def update(
        self,
        table: str,
        column: str,
        value: Any,
        conditions: Sequence[Condition] = (),
        connective: Connective | str = Connective.AND,
    ) -> QueryResult:
        """
        Build UPDATE ... SET col = :value [WHERE ...].

        The SET value binds under the reserved name 'value'.
        """
        target = self._column(column)
        where, parameters = self._where(
            conditions, connective, leading=[(UPDATE_VALUE_PLACEHOLDER, value)]
        )
        placeholder = self.dialect.placeholder(UPDATE_VALUE_PLACEHOLDER)
        return QueryResult(
            f"UPDATE {self._table(table)} SET {target} = {placeholder}{where}", parameters
        )

    def delete(
        self,
        table: str,
        conditions: Sequence[Condition] = (),
        connective: Connective | str = Connective.AND,
    ) -> QueryResult:
        """Build DELETE FROM ... [WHERE ...]."""
        where, parameters = self._where(conditions, connective)
        if not where:
            logger.warning("DELETE query without WHERE clause - this will delete ALL rows!")
        return QueryResult(f"DELETE FROM {self._table(table)}{where}", parameters)

    def count(
        self,
        table: str,
        conditions: Sequence[Condition] = (),
        connective: Connective | str = Connective.AND,
    ) -> QueryResult:
        """Build SELECT COUNT(*) AS count ..."""
        where, parameters = self._where(conditions, connective)
        return QueryResult(f"SELECT COUNT(*) AS count FROM {self._table(table)}{where}", parameters)

    def aggregate(
        self,
        table: str,
        function: str,
        column: str,
        conditions: Sequence[Condition] = (),
        connective: Connective | str = Connective.AND,
    ) -> QueryResult:
        """
        Build SELECT FN(col) AS aggregate ...

        Raises:
            InvalidOperatorError: If function is not COUNT/SUM/AVG/MIN/MAX
        """
        fn = InputSanitizer.sanitize_aggregate(function)
        where, parameters = self._where(conditions, connective)
        return QueryResult(
            f"SELECT {fn.value}({self._column(column)}) AS aggregate FROM {self._table(table)}{where}",
            parameters,
        )

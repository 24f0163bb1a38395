"""
Value types shared by the validator and the query builder.

The enums are closed sets: anything interpolated into SQL text that is not an
identifier must come from one of them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operator(Enum):
    """Comparison operators allowed in a condition."""

    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    LIKE = "LIKE"
    IN = "IN"


class Connective(Enum):
    """Logical connective joining the conditions of one clause."""

    AND = "AND"
    OR = "OR"


class SortDirection(Enum):
    """ORDER BY direction."""

    ASC = "ASC"
    DESC = "DESC"


class AggregateFunction(Enum):
    """Aggregate functions accepted by get_aggregate."""

    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


@dataclass(frozen=True)
class Condition:
    """A single `column operator value` predicate."""

    column: str
    operator: Operator
    value: Any

    def placeholders(self) -> list[str]:
        """Placeholder names this condition binds, in clause order."""
        if self.operator is Operator.IN:
            return [f"in_{self.column}_{i}" for i in range(len(self.value))]
        return [self.column]

    def bound_values(self) -> list[Any]:
        """Values matching placeholders() position for position."""
        if self.operator is Operator.IN:
            return list(self.value)
        return [self.value]

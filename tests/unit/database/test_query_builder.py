"""
Unit tests for the query builder.

Tests cover:
- WHERE clause rendering and connectives
- Positional parameter binding
- Each of the seven statement shapes
- Pagination clause text
- Dialect placeholder styles
"""

import pytest

from dbcomms.database.dialect import POSTGRESQL, SQLITE
from dbcomms.database.query_builder import (
    QueryBuilder,
    QueryResult,
    bind_parameters,
    build_clause,
)
from dbcomms.exceptions import (
    CountMismatchError,
    DuplicateIdentifierError,
    InvalidColumnNameError,
    InvalidOperatorError,
    InvalidPaginationError,
    InvalidTableNameError,
)
from dbcomms.types import Condition, Connective, Operator


@pytest.fixture
def builder():
    return QueryBuilder(SQLITE)


@pytest.mark.unit
class TestBindParameters:
    """Test positional binding of names to values."""

    def test_binds_by_position(self):
        params = bind_parameters(["username", "email"], ["john_doe", "a@b.com"])
        assert params == {"username": "john_doe", "email": "a@b.com"}
        assert list(params) == ["username", "email"]

    def test_empty(self):
        assert bind_parameters([], []) == {}

    def test_count_mismatch(self):
        with pytest.raises(CountMismatchError):
            bind_parameters(["a", "b"], [1])

    def test_duplicate_names_rejected(self):
        with pytest.raises(DuplicateIdentifierError) as exc_info:
            bind_parameters(["age", "age"], [1, 2])
        assert exc_info.value.name == "age"


@pytest.mark.unit
class TestBuildClause:
    """Test WHERE clause rendering."""

    def test_empty_conditions(self):
        assert build_clause([], "AND", SQLITE) == ""

    def test_single_condition(self):
        clause = build_clause([Condition("username", Operator.EQ, "x")], "AND", SQLITE)
        assert clause == '"username" = :username'

    def test_and_preserves_order(self):
        conditions = [
            Condition("b", Operator.GT, 1),
            Condition("a", Operator.LE, 2),
        ]
        assert build_clause(conditions, Connective.AND, SQLITE) == '"b" > :b AND "a" <= :a'

    def test_or_connective_case_insensitive(self):
        conditions = [Condition("a", Operator.EQ, 1), Condition("b", Operator.NE, 2)]
        assert build_clause(conditions, "or", SQLITE) == '"a" = :a OR "b" != :b'

    def test_in_expands_placeholders(self):
        clause = build_clause([Condition("id", Operator.IN, [1, 2, 3])], "AND", SQLITE)
        assert clause == '"id" IN (:in_id_0, :in_id_1, :in_id_2)'

    def test_pyformat_placeholders(self):
        clause = build_clause([Condition("email", Operator.LIKE, "%@x")], "AND", POSTGRESQL)
        assert clause == '"email" LIKE %(email)s'

    def test_invalid_connective(self):
        with pytest.raises(InvalidOperatorError):
            build_clause([Condition("a", Operator.EQ, 1)], "AND 1=1; --", SQLITE)


@pytest.mark.unit
class TestStatementShapes:
    """Test each supported statement template."""

    def test_select_one(self, builder):
        query = builder.select_one("users", [Condition("username", Operator.EQ, "john_doe")])
        assert query.sql == 'SELECT * FROM "users" WHERE "username" = :username LIMIT 1'
        assert query.parameters == {"username": "john_doe"}

    def test_select_one_without_conditions_has_no_where(self, builder):
        query = builder.select_one("users")
        assert query.sql == 'SELECT * FROM "users" LIMIT 1'
        assert query.parameters == {}

    def test_insert(self, builder):
        query = builder.insert("users", ["username", "email"], ["john_doe", "a@b.com"])
        assert query.sql == (
            'INSERT INTO "users" ("username", "email") VALUES (:username, :email)'
        )
        assert query.parameters == {"username": "john_doe", "email": "a@b.com"}

    def test_update(self, builder):
        query = builder.update(
            "users", "email", "new@b.com", [Condition("id", Operator.EQ, 7)]
        )
        assert query.sql == 'UPDATE "users" SET "email" = :value WHERE "id" = :id'
        assert query.parameters == {"value": "new@b.com", "id": 7}

    def test_update_condition_named_value_collides(self, builder):
        with pytest.raises(DuplicateIdentifierError):
            builder.update("t", "a", 1, [Condition("value", Operator.EQ, 2)])

    def test_in_expansion_beside_similarly_named_column(self, builder):
        query = builder.select_one(
            "t", [Condition("id", Operator.IN, [1, 2]), Condition("id_0", Operator.EQ, 3)]
        )
        assert query.sql == (
            'SELECT * FROM "t" WHERE "id" IN (:in_id_0, :in_id_1) AND "id_0" = :id_0 LIMIT 1'
        )
        assert query.parameters == {"in_id_0": 1, "in_id_1": 2, "id_0": 3}

    def test_in_expansion_collision_names_source(self, builder):
        conditions = [Condition("id", Operator.IN, [1]), Condition("in_id_0", Operator.EQ, 3)]

        with pytest.raises(DuplicateIdentifierError) as exc_info:
            builder.delete("t", conditions)

        assert exc_info.value.name == "in_id_0"
        assert exc_info.value.source == "IN expansion of id"
        assert str(exc_info.value) == (
            "Duplicate placeholder name: in_id_0 (from IN expansion of id)"
        )

    def test_delete(self, builder):
        query = builder.delete("users", [Condition("id", Operator.EQ, 7)])
        assert query.sql == 'DELETE FROM "users" WHERE "id" = :id'

    def test_delete_without_where_warns(self, builder, caplog):
        query = builder.delete("users")
        assert query.sql == 'DELETE FROM "users"'
        assert "without WHERE" in caplog.text

    def test_count(self, builder):
        query = builder.count("users", [Condition("age", Operator.GE, 18)])
        assert query.sql == 'SELECT COUNT(*) AS count FROM "users" WHERE "age" >= :age'
        assert query.parameters == {"age": 18}

    def test_aggregate(self, builder):
        query = builder.aggregate("orders", "sum", "total", [Condition("user_id", Operator.EQ, 3)])
        assert query.sql == (
            'SELECT SUM("total") AS aggregate FROM "orders" WHERE "user_id" = :user_id'
        )

    def test_aggregate_rejects_unknown_function(self, builder):
        with pytest.raises(InvalidOperatorError):
            builder.aggregate("orders", "pg_sleep", "total")

    def test_invalid_table(self, builder):
        with pytest.raises(InvalidTableNameError):
            builder.select_one("users; DROP TABLE users")

    def test_invalid_column(self, builder):
        with pytest.raises(InvalidColumnNameError):
            builder.insert("users", ["user name"], ["x"])


@pytest.mark.unit
class TestPagination:
    """Test ORDER BY / LIMIT / OFFSET rendering."""

    def test_limit_and_offset(self, builder):
        query = builder.select_many("users", order_by="id", direction="ASC", limit=10, offset=0)
        assert query.sql == 'SELECT * FROM "users" ORDER BY "id" ASC LIMIT 10 OFFSET 0'

    def test_offset_without_limit_is_omitted(self, builder):
        query = builder.select_many("users", order_by="id", offset=20)
        assert query.sql == 'SELECT * FROM "users" ORDER BY "id" ASC'

    def test_limit_only(self, builder):
        query = builder.select_many("users", order_by="created_at", direction="desc", limit=5)
        assert query.sql == 'SELECT * FROM "users" ORDER BY "created_at" DESC LIMIT 5'

    def test_conditions_before_order_by(self, builder):
        query = builder.select_many(
            "users", [Condition("age", Operator.LT, 30)], order_by="age", limit=1
        )
        assert query.sql == (
            'SELECT * FROM "users" WHERE "age" < :age ORDER BY "age" ASC LIMIT 1'
        )

    @pytest.mark.parametrize("value", [-1, 1.5, "10", True])
    def test_invalid_limit(self, builder, value):
        with pytest.raises(InvalidPaginationError):
            builder.select_many("users", limit=value)

    def test_invalid_offset(self, builder):
        with pytest.raises(InvalidPaginationError):
            builder.select_many("users", limit=10, offset=-5)

    def test_invalid_direction(self, builder):
        with pytest.raises(InvalidOperatorError):
            builder.select_many("users", direction="ASC; DROP TABLE users")

    def test_invalid_order_by(self, builder):
        with pytest.raises(InvalidColumnNameError):
            builder.select_many("users", order_by="id desc")


@pytest.mark.unit
class TestQueryResult:
    """Test QueryResult immutability."""

    def test_immutable(self):
        result = QueryResult("SELECT 1", {})
        with pytest.raises(AttributeError, match="immutable"):
            result.sql = "DROP TABLE users"

    def test_equality(self):
        assert QueryResult("SELECT 1", {"a": 1}) == QueryResult("SELECT 1", {"a": 1})
        assert QueryResult("SELECT 1", {}) != QueryResult("SELECT 2", {})

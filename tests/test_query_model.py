"""Tests for the query model: construction, paths, scopes, traversal and validation."""

import pytest
from pydantic import TypeAdapter, ValidationError

from queryadvisor.exceptions import MalformedQueryModel, UnknownColumn, UnknownTable
from queryadvisor.query import (
    And,
    ClausePath,
    ColumnRef,
    Comparison,
    Delete,
    Exists,
    FunctionCall,
    In,
    JoinClause,
    JoinKind,
    Or,
    QueryModel,
    Scope,
    Select,
    SelectRole,
    TableRef,
    Union,
    iter_comparisons,
    iter_selects,
    validate_query,
)


def eq(column: str, value) -> Comparison:
    return Comparison(column=column, operator="=", value=value)


class TestConstruction:
    """Text coercion and discriminated unions."""

    def test_column_and_table_text_forms(self):
        select = Select(
            table="orders o",
            projection=["o.id", "o.status"],
            joins=[{"table": "users AS u", "left": "u.id", "right": "o.user_id"}],
        )

        assert select.table == TableRef(name="orders", alias="o")
        assert select.projection[0] == ColumnRef(table="o", column="id")
        assert select.joins[0].table.ref_name == "u"
        assert select.joins[0].kind is JoinKind.INNER

    def test_comparison_value_string_stays_literal(self):
        comparison = eq("status", "shipped")
        assert comparison.column == ColumnRef(column="status")
        assert comparison.value == "shipped"
        assert str(comparison) == "status = 'shipped'"

    @pytest.mark.parametrize("operator,value,expected", [
        ("IS NULL", None, True),
        ("is", None, True),
        ("IS NOT DISTINCT FROM", None, True),
        ("is not  distinct from", 5, False),
        ("IS NOT NULL", None, False),
        ("=", None, False),
    ])
    def test_null_tests(self, operator, value, expected):
        comparison = Comparison(column="status", operator=operator, value=value)
        assert comparison.is_null_test is expected

    def test_query_document_dispatches_on_kind(self):
        adapter = TypeAdapter(QueryModel)
        query = adapter.validate_python({
            "kind": "delete",
            "table": "orders",
            "where": {"kind": "comparison", "column": "id", "value": 7},
        })
        assert isinstance(query, Delete)
        assert isinstance(query.where, Comparison)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(QueryModel).validate_python({"kind": "merge", "table": "orders"})

    def test_union_needs_two_members(self):
        with pytest.raises(ValidationError):
            Union(queries=[Select(table="orders")])

    def test_or_needs_a_child(self):
        with pytest.raises(ValidationError):
            Or(args=[])

    def test_negative_limit_rejected(self):
        with pytest.raises(ValidationError):
            Select(table="orders", limit=-1)

    def test_models_are_frozen(self):
        select = Select(table="orders")
        with pytest.raises(ValidationError):
            select.limit = 10

    def test_projects_all(self):
        assert Select(table="orders").projects_all
        assert Select(table="orders o", projection=["o.*"]).projects_all
        assert not Select(table="orders", projection=["id"]).projects_all

    def test_aggregate_only(self):
        count = FunctionCall(name="COUNT", args=["*"])
        assert Select(table="orders", projection=[count]).is_aggregate_only
        assert not Select(
            table="orders", projection=[count, "status"], group_by=["status"],
        ).is_aggregate_only


class TestClausePath:
    """Textual ordering of paths."""

    def test_str_and_depth(self):
        path = ClausePath.root().child("where").child("args", 1)
        assert str(path) == "query → where → args[1]"
        assert path.depth == 2
        assert path.parent() == ClausePath.root().child("where")

    def test_clause_order_follows_sql_text(self):
        root = ClausePath.root()
        ordered = [
            root.child("projection"),
            root.child("joins", 0),
            root.child("joins", 1),
            root.child("where"),
            root.child("group_by", 0),
            root.child("order_by", 0),
            root.child("limit"),
            root.child("offset"),
        ]
        assert sorted(reversed(ordered)) == ordered

    def test_list_index_order(self):
        where = ClausePath.root().child("where")
        assert where.child("args", 2) < where.child("args", 10)


class TestScope:
    """Column resolution through aliases and enclosing scopes."""

    def test_alias_resolution(self, catalog):
        scope = Scope.of([TableRef(name="orders", alias="o")])
        resolved = scope.resolve(ColumnRef(table="o", column="status"), catalog)
        assert (resolved.table, resolved.column, resolved.local) == ("orders", "status", True)

    def test_unqualified_unique_column(self, catalog):
        scope = Scope.of([TableRef(name="orders"), TableRef(name="users")])
        resolved = scope.resolve(ColumnRef(column="status"), catalog)
        assert resolved.table == "orders"
        assert resolved.ref == "orders"

    def test_self_join_keeps_matched_alias(self, catalog):
        scope = Scope.of([TableRef(name="users", alias="u1"), TableRef(name="users", alias="u2")])
        first = scope.resolve(ColumnRef(table="u1", column="name"), catalog)
        second = scope.resolve(ColumnRef(table="U2", column="name"), catalog)

        assert (first.table, first.ref) == ("users", "u1")
        assert (second.table, second.ref) == ("users", "u2")
        assert first == second

    def test_unqualified_ambiguous_column(self, catalog):
        scope = Scope.of([TableRef(name="orders"), TableRef(name="users")])
        with pytest.raises(UnknownColumn, match="Ambiguous"):
            scope.resolve(ColumnRef(column="id"), catalog)

    def test_correlated_reference_resolves_outward(self, catalog):
        outer = Scope.of([TableRef(name="users", alias="u")])
        inner = outer.child([TableRef(name="orders", alias="o")])
        resolved = inner.resolve(ColumnRef(table="u", column="id"), catalog)
        assert resolved.table == "users"
        assert resolved.local is False

    def test_unknown_table(self, catalog):
        scope = Scope.of([TableRef(name="invoices")])
        with pytest.raises(UnknownTable):
            scope.resolve(ColumnRef(column="id"), catalog)

    def test_unknown_qualifier(self, catalog):
        scope = Scope.of([TableRef(name="orders")])
        with pytest.raises(UnknownTable):
            scope.resolve(ColumnRef(table="x", column="id"), catalog)


class TestTraversal:
    """iter_selects / iter_comparisons."""

    def test_subqueries_follow_their_parent(self):
        query = Select(
            table="users u",
            where=And(args=[
                eq("u.name", "x"),
                Exists(subquery=Select(table="orders o", where=eq("o.user_id", ColumnRef.parse("u.id")))),
                In(column="u.id", subquery=Select(table="orders", projection=["user_id"])),
            ]),
        )

        sites = list(iter_selects(query))

        assert [s.role for s in sites] == [SelectRole.TOP, SelectRole.EXISTS, SelectRole.IN]
        assert str(sites[1].path) == "query → where → args[1] → subquery"
        assert sites[1].scope.parent is sites[0].scope

    def test_union_members(self):
        query = Union(queries=[Select(table="orders"), Select(table="users")])
        roles = [s.role for s in iter_selects(query)]
        assert roles == [SelectRole.UNION_MEMBER, SelectRole.UNION_MEMBER]

    def test_comparisons_include_mutation_where(self):
        query = Delete(table="orders", where=Or(args=[eq("status", "a"), eq("status", "b")]))
        paths = [str(s.path) for s in iter_comparisons(query)]
        assert paths == ["query → where → args[0]", "query → where → args[1]"]


class TestValidateQuery:
    """Structural invariants."""

    def test_valid_query_counts_nodes(self):
        query = Select(
            table="orders",
            projection=[FunctionCall(name="count", args=["*"])],
            where=And(args=[eq("status", "a"), eq("total", 3)]),
        )
        # select, count(), and, two comparisons
        assert validate_query(query) == 5

    def test_cycle_is_rejected(self):
        cyclic = Or.model_construct(args=[])
        cyclic.args.append(eq("status", "a"))
        cyclic.args.append(cyclic)
        query = Select.model_construct(table=TableRef(name="orders"), where=cyclic)

        with pytest.raises(MalformedQueryModel, match="Cyclic"):
            validate_query(query)

    def test_shared_subtree_is_not_a_cycle(self):
        shared = eq("status", "a")
        query = Select(table="orders", where=Or(args=[shared, And(args=[shared])]))
        assert validate_query(query) == 5

    def test_depth_limit(self):
        predicate = eq("status", "a")
        for _ in range(10):
            predicate = And(args=[predicate])
        query = Select(table="orders", where=predicate)

        with pytest.raises(MalformedQueryModel, match="deeply nested"):
            validate_query(query, max_depth=5)

    def test_node_limit(self):
        query = Select(
            table="orders",
            where=Or(args=[eq("id", i) for i in range(20)]),
        )
        with pytest.raises(MalformedQueryModel, match="too large"):
            validate_query(query, max_nodes=10)

    def test_non_statement_root(self):
        with pytest.raises(MalformedQueryModel):
            validate_query(eq("status", "a"))

    def test_foreign_node_in_tree(self):
        query = Select.model_construct(table=TableRef(name="orders"), where="status = 1")
        with pytest.raises(MalformedQueryModel, match="Unexpected str"):
            validate_query(query)

    def test_join_clause_kind_from_text(self):
        join = JoinClause(table="users", left="users.id", right="orders.user_id", kind="left")
        assert join.kind.is_outer

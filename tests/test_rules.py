"""Per-rule detection tests, run directly against a RuleContext."""

import pytest

from queryadvisor.analyzer.models import Severity
from queryadvisor.analyzer.rules import (
    DEFAULT_RULE_CLASSES,
    FunctionOnIndexedColumn,
    InVsExists,
    LargeOffsetPagination,
    LeadingWildcardLike,
    MissingIndexOnGroupOrOrderColumn,
    MissingLimit,
    OrOnUnindexed,
    OuterJoinPreference,
    UnfilteredMutation,
    UnindexedJoin,
    UnnecessaryDistinct,
    WildcardProjection,
)
from queryadvisor.analyzer.rules.base import RuleContext, create_index_sql, index_name
from queryadvisor.config import AdvisorConfig, RuleSettings
from queryadvisor.exceptions import UnknownColumn, UnknownTable
from queryadvisor.query import (
    And,
    ColumnRef,
    Comparison,
    Delete,
    Exists,
    FunctionCall,
    In,
    Or,
    Select,
    Union,
    Update,
)


def run(rule, query, catalog, config=None, estimated_rows=None):
    return rule.analyze(RuleContext(query, catalog, config, estimated_rows))


def cmp(column, value, operator="="):
    return Comparison(column=column, operator=operator, value=value)


def join(table, left, right, kind="inner"):
    return {"table": table, "left": left, "right": right, "kind": kind}


class TestRuleContract:
    """Every default rule follows the Rule contract."""

    @pytest.mark.parametrize("rule_class", DEFAULT_RULE_CLASSES)
    def test_metadata(self, rule_class):
        rule = rule_class()
        assert rule.rule_id.isupper()
        assert rule.description
        assert isinstance(rule.severity, Severity)
        assert rule.rule_id in repr(rule)

    @pytest.mark.parametrize("rule_class", DEFAULT_RULE_CLASSES)
    def test_clean_query_has_no_findings(self, rule_class, catalog):
        query = Select(table="users", projection=["id", "email"], where=cmp("email", "a@b.c"))
        assert run(rule_class(), query, catalog, estimated_rows=1) == []

    def test_rule_ids_are_unique(self):
        ids = [cls.rule_id for cls in DEFAULT_RULE_CLASSES]
        assert len(ids) == len(set(ids))

    def test_config_from_dict(self):
        rule = UnindexedJoin({"critical_multiplier": 5})
        assert rule.config.critical_multiplier == 5

    def test_config_rejects_unknown_keys(self):
        with pytest.raises(ValueError):
            UnindexedJoin({"no_such_knob": 1})

    def test_index_helpers(self):
        assert index_name("Orders", "user_id") == "idx_orders_user_id"
        assert create_index_sql("orders", "a", "b") == "CREATE INDEX idx_orders_a_b ON orders (a, b);"


class TestWildcardProjection:
    def test_select_star_on_top_level(self, catalog):
        findings = run(WildcardProjection(), Select(table="orders"), catalog)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.severity is Severity.WARNING
        assert str(finding.path) == "query → projection"
        assert finding.context.table == "orders"
        assert "id, user_id, status, total, created_at" in finding.suggestion

    def test_qualified_star_in_join(self, catalog):
        query = Select(
            table="orders o",
            projection=["o.*"],
            joins=[join("users u", "u.id", "o.user_id")],
        )
        findings = run(WildcardProjection(), query, catalog)
        assert [f.context.table for f in findings] == ["orders"]

    def test_exists_subquery_star_not_flagged(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            where=Exists(subquery=Select(table="orders o", where=cmp("o.user_id", "u.id"))),
        )
        assert run(WildcardProjection(), query, catalog) == []

    def test_each_union_branch(self, catalog):
        query = Union(queries=[Select(table="orders"), Select(table="users")])
        findings = run(WildcardProjection(), query, catalog)
        assert [str(f.path) for f in findings] == [
            "query → queries[0] → projection",
            "query → queries[1] → projection",
        ]

    def test_unknown_table_still_reported(self, catalog):
        findings = run(WildcardProjection(), Select(table="invoices"), catalog)
        assert len(findings) == 1
        assert findings[0].suggestion.startswith("-- Replace *")


class TestUnindexedJoin:
    def query(self):
        return Select(
            table="orders o",
            projection=["o.id"],
            joins=[join("users u", "u.id", "o.user_id")],
        )

    def test_unindexed_side_reported(self, catalog):
        findings = run(UnindexedJoin(), self.query(), catalog)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.severity is Severity.INFO
        assert str(finding.path) == "query → joins[0]"
        assert (finding.context.table, finding.context.column) == ("orders", "user_id")
        assert finding.suggestion == "CREATE INDEX idx_orders_user_id ON orders (user_id);"
        assert finding.metrics == {"unindexed_sides": 1}

    def test_indexed_join_is_clean(self, catalog):
        query = Select(
            table="order_items i",
            projection=["i.id"],
            joins=[join("orders o", "o.id", "i.order_id")],
        )
        assert run(UnindexedJoin(), query, catalog) == []

    @pytest.mark.parametrize("rows,expected", [
        (5_000, Severity.INFO),
        (10_000, Severity.WARNING),
        (1_000_000, Severity.CRITICAL),
    ])
    def test_severity_scales_with_estimate(self, catalog, rows, expected):
        findings = run(UnindexedJoin(), self.query(), catalog, estimated_rows=rows)
        assert findings[0].severity is expected
        assert findings[0].metrics["estimated_rows"] == rows

    def test_per_rule_threshold_override(self, catalog):
        config = AdvisorConfig(rules={
            "UNINDEXED_JOIN": RuleSettings(thresholds={"critical_multiplier": 2}),
        })
        findings = run(UnindexedJoin(), self.query(), catalog, config, estimated_rows=20_000)
        assert findings[0].severity is Severity.CRITICAL

    def test_unknown_join_table_propagates(self, catalog):
        query = Select(table="orders o", joins=[join("invoices v", "v.order_id", "o.id")])
        with pytest.raises(UnknownTable):
            run(UnindexedJoin(), query, catalog)


class TestOuterJoinPreference:
    def test_left_join_without_null_handling(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            joins=[join("orders o", "o.user_id", "u.id", "left")],
        )
        findings = run(OuterJoinPreference(), query, catalog)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.severity is Severity.INFO
        assert finding.title == "LEFT JOIN orders may not need outer semantics"
        assert "Review manually" in finding.message
        assert finding.suggestion is None

    def test_filter_on_nullable_side_behaves_like_inner(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            joins=[join("orders o", "o.user_id", "u.id", "left")],
            where=And(args=[cmp("o.status", "paid"), cmp("u.name", "x")]),
        )
        findings = run(OuterJoinPreference(), query, catalog)
        assert "already behaves like an inner join" in findings[0].message

    def test_is_null_test_keeps_outer_join(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            joins=[join("orders o", "o.user_id", "u.id", "left")],
            where=Comparison(column="o.id", operator="IS NULL"),
        )
        assert run(OuterJoinPreference(), query, catalog) == []

    def test_coalesce_keeps_outer_join(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            joins=[join("orders o", "o.user_id", "u.id", "left")],
            where=Comparison(
                column=FunctionCall(name="COALESCE", args=[ColumnRef.parse("o.status"), "none"]),
                value="none",
            ),
        )
        assert run(OuterJoinPreference(), query, catalog) == []

    def test_right_join_nullable_side_is_preceding_tables(self, catalog):
        query = Select(
            table="orders o",
            projection=["u.id"],
            joins=[join("users u", "u.id", "o.user_id", "right")],
            where=Comparison(column="o.id", operator="IS NULL"),
        )
        assert run(OuterJoinPreference(), query, catalog) == []

    def test_self_join_null_test_on_preserved_side(self, catalog):
        query = Select(
            table="users u1",
            projection=["u1.id"],
            joins=[join("users u2", "u1.id", "u2.id", "left")],
            where=Comparison(column="u1.name", operator="IS NULL"),
        )
        findings = run(OuterJoinPreference(), query, catalog)

        assert len(findings) == 1
        assert findings[0].title == "LEFT JOIN users may not need outer semantics"

    def test_self_join_null_test_on_nullable_side(self, catalog):
        query = Select(
            table="users u1",
            projection=["u1.id"],
            joins=[join("users u2", "u1.id", "u2.id", "left")],
            where=Comparison(column="u2.id", operator="IS NULL"),
        )
        assert run(OuterJoinPreference(), query, catalog) == []

    def test_not_distinct_from_value_is_not_a_null_test(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            joins=[join("orders o", "o.user_id", "u.id", "left")],
            where=Comparison(column="o.total", operator="IS NOT DISTINCT FROM", value=5),
        )
        findings = run(OuterJoinPreference(), query, catalog)

        assert len(findings) == 1
        assert "already behaves like an inner join" in findings[0].message

    def test_inner_join_ignored(self, catalog):
        query = Select(
            table="users u",
            projection=["u.id"],
            joins=[join("orders o", "o.user_id", "u.id")],
        )
        assert run(OuterJoinPreference(), query, catalog) == []


class TestMissingLimit:
    def test_large_unbounded_select(self, catalog):
        query = Select(table="orders", projection=["id"])
        findings = run(MissingLimit(), query, catalog, estimated_rows=50_000)

        assert len(findings) == 1
        assert str(findings[0].path) == "query → limit"
        assert findings[0].metrics == {"estimated_rows": 50_000, "threshold": 10_000}

    def test_threshold_is_exclusive(self, catalog):
        query = Select(table="orders", projection=["id"])
        assert run(MissingLimit(), query, catalog, estimated_rows=10_000) == []

    def test_no_estimate(self, catalog):
        assert run(MissingLimit(), Select(table="orders", projection=["id"]), catalog) == []

    def test_limited_query(self, catalog):
        query = Select(table="orders", projection=["id"], limit=50)
        assert run(MissingLimit(), query, catalog, estimated_rows=50_000) == []

    def test_aggregate_only(self, catalog):
        query = Select(table="orders", projection=[FunctionCall(name="count", args=["*"])])
        assert run(MissingLimit(), query, catalog, estimated_rows=50_000) == []

    def test_configured_threshold(self, catalog):
        config = AdvisorConfig(row_count_threshold_for_limit_warning=100)
        query = Select(table="orders", projection=["id"])
        assert len(run(MissingLimit(), query, catalog, config, estimated_rows=101)) == 1

    def test_union_checked_as_a_whole(self, catalog):
        query = Union(queries=[
            Select(table="orders", projection=["id"]),
            Select(table="users", projection=["id"]),
        ])
        findings = run(MissingLimit(), query, catalog, estimated_rows=20_000)
        assert len(findings) == 1
        assert findings[0].context.table is None

    def test_mutations_ignored(self, catalog):
        query = Delete(table="orders", where=cmp("id", 1))
        assert run(MissingLimit(), query, catalog, estimated_rows=50_000) == []


class TestFunctionOnIndexedColumn:
    def test_function_on_indexed_column(self, catalog):
        query = Select(
            table="users",
            projection=["id"],
            where=cmp(FunctionCall(name="lower", args=[ColumnRef(column="email")]), "a@b.c"),
        )
        findings = run(FunctionOnIndexedColumn(), query, catalog)

        assert len(findings) == 1
        finding = findings[0]
        assert str(finding.path) == "query → where → column"
        assert (finding.context.table, finding.context.column) == ("users", "email")
        assert "CREATE INDEX idx_users_lower_email ON users ((lower(email)));" in finding.suggestion

    def test_function_on_unindexed_column(self, catalog):
        query = Select(
            table="users",
            projection=["id"],
            where=cmp(FunctionCall(name="lower", args=[ColumnRef(column="name")]), "bob"),
        )
        assert run(FunctionOnIndexedColumn(), query, catalog) == []

    def test_aggregate_ignored(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            where=cmp(FunctionCall(name="max", args=[ColumnRef(column="id")]), 3, ">"),
        )
        assert run(FunctionOnIndexedColumn(), query, catalog) == []

    def test_bare_indexed_column(self, catalog):
        query = Select(table="users", projection=["id"], where=cmp("email", "a@b.c"))
        assert run(FunctionOnIndexedColumn(), query, catalog) == []


class TestInVsExists:
    def test_in_subquery(self, catalog):
        query = Select(
            table="users",
            projection=["id"],
            where=In(column="id", subquery=Select(table="orders", projection=["user_id"])),
        )
        findings = run(InVsExists(), query, catalog)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.severity is Severity.INFO
        assert finding.title == "IN subquery on id can be EXISTS"
        assert finding.suggestion == "EXISTS (SELECT 1 FROM orders WHERE user_id = id)"

    def test_not_in_is_a_warning(self, catalog):
        query = Select(
            table="users",
            projection=["id"],
            where=In(
                column="id",
                subquery=Select(table="orders", projection=["user_id"]),
                negated=True,
            ),
        )
        findings = run(InVsExists(), query, catalog)
        assert findings[0].severity is Severity.WARNING
        assert findings[0].title == "NOT IN subquery on id can be NOT EXISTS"

    def test_multi_column_projection_ignored(self, catalog):
        query = Select(
            table="users",
            projection=["id"],
            where=In(column="id", subquery=Select(table="orders", projection=["user_id", "id"])),
        )
        assert run(InVsExists(), query, catalog) == []

    def test_star_projection_ignored(self, catalog):
        query = Select(
            table="users",
            projection=["id"],
            where=In(column="id", subquery=Select(table="orders")),
        )
        assert run(InVsExists(), query, catalog) == []


class TestOrOnUnindexed:
    def test_same_column_equality_suggests_in_list(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            where=Or(args=[cmp("status", "shipped"), cmp("status", "delivered")]),
        )
        findings = run(OrOnUnindexed(), query, catalog)

        assert len(findings) == 1
        finding = findings[0]
        assert str(finding.path) == "query → where"
        assert (finding.context.table, finding.context.column) == ("orders", "status")
        assert "status IN ('shipped', 'delivered')" in finding.suggestion
        assert finding.metrics == {"branches": 2, "unindexed_columns": 1}

    def test_nested_or_reported_once(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            where=Or(args=[
                cmp("status", "a"),
                Or(args=[cmp("status", "b"), cmp("status", "c")]),
            ]),
        )
        findings = run(OrOnUnindexed(), query, catalog)
        assert len(findings) == 1
        assert findings[0].metrics["branches"] == 3

    def test_mixed_columns_suggest_union(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            where=Or(args=[cmp("status", "a"), cmp("id", 3)]),
        )
        findings = run(OrOnUnindexed(), query, catalog)
        assert "UNION" in findings[0].suggestion

    def test_all_indexed_is_clean(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            where=Or(args=[cmp("id", 1), cmp("created_at", "2024-01-01")]),
        )
        assert run(OrOnUnindexed(), query, catalog) == []

    def test_complex_branch_ignored(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            where=Or(args=[cmp("status", "a"), And(args=[cmp("status", "b"), cmp("id", 1)])]),
        )
        assert run(OrOnUnindexed(), query, catalog) == []

    def test_plain_chain_nested_in_complex_chain(self, catalog):
        query = Select(
            table="orders o",
            projection=["o.id"],
            where=Or(args=[
                Or(args=[cmp("o.status", "shipped"), cmp("o.status", "delivered")]),
                Exists(subquery=Select(table="users u", where=cmp("u.id", "o.user_id"))),
            ]),
        )
        findings = run(OrOnUnindexed(), query, catalog)

        assert len(findings) == 1
        assert str(findings[0].path) == "query → where → args[0]"
        assert findings[0].metrics["branches"] == 2
        assert "o.status IN ('shipped', 'delivered')" in findings[0].suggestion

    def test_or_inside_delete(self, catalog):
        query = Delete(
            table="orders",
            where=Or(args=[cmp("status", "a"), cmp("status", "b")]),
        )
        assert len(run(OrOnUnindexed(), query, catalog)) == 1


class TestUnnecessaryDistinct:
    def test_plain_distinct_is_info(self, catalog):
        query = Select(table="orders", projection=["status"], distinct=True)
        findings = run(UnnecessaryDistinct(), query, catalog)

        assert len(findings) == 1
        assert findings[0].severity is Severity.INFO
        assert findings[0].suggestion is None

    def test_projection_covering_unique_index_is_warning(self, catalog):
        query = Select(table="products", projection=["sku", "name"], distinct=True)
        findings = run(UnnecessaryDistinct(), query, catalog)
        assert findings[0].severity is Severity.WARNING
        assert "products_sku_key" in findings[0].message

    def test_primary_key_counts(self, catalog):
        query = Select(table="orders", projection=["id", "status"], distinct=True)
        findings = run(UnnecessaryDistinct(), query, catalog)
        assert findings[0].severity is Severity.WARNING

    def test_distinct_with_join_ignored(self, catalog):
        query = Select(
            table="orders o",
            projection=["o.status"],
            joins=[join("users u", "u.id", "o.user_id")],
            distinct=True,
        )
        assert run(UnnecessaryDistinct(), query, catalog) == []

    def test_distinct_with_group_by_ignored(self, catalog):
        query = Select(table="orders", projection=["status"], group_by=["status"], distinct=True)
        assert run(UnnecessaryDistinct(), query, catalog) == []


class TestMissingIndexOnGroupOrOrderColumn:
    def test_group_by_unindexed_column(self, catalog):
        query = Select(
            table="orders",
            projection=["status", FunctionCall(name="count", args=["*"])],
            group_by=["status"],
        )
        findings = run(MissingIndexOnGroupOrOrderColumn(), query, catalog)

        assert len(findings) == 1
        assert str(findings[0].path) == "query → group_by[0]"
        assert findings[0].title == "GROUP BY column orders.status has no index"

    def test_order_by_leading_index_column_is_clean(self, catalog):
        query = Select(table="orders", projection=["id"], order_by=["created_at"])
        assert run(MissingIndexOnGroupOrOrderColumn(), query, catalog) == []

    def test_composite_index_serves_clause(self, catalog):
        query = Select(table="orders", projection=["id"], order_by=["created_at", "total"])
        assert run(MissingIndexOnGroupOrOrderColumn(), query, catalog) == []

    def test_non_leading_composite_column(self, catalog):
        query = Select(table="orders", projection=["id"], order_by=["total"])
        findings = run(MissingIndexOnGroupOrOrderColumn(), query, catalog)
        assert [str(f.path) for f in findings] == ["query → order_by[0]"]

    def test_multiple_columns_suggest_composite(self, catalog):
        query = Select(table="orders", projection=["id"], order_by=["status", "user_id"])
        findings = run(MissingIndexOnGroupOrOrderColumn(), query, catalog)
        assert len(findings) == 2
        assert findings[0].suggestion == (
            "CREATE INDEX idx_orders_status_user_id ON orders (status, user_id);"
        )

    def test_unknown_column_propagates(self, catalog):
        query = Select(table="orders", projection=["id"], order_by=["missing"])
        with pytest.raises(UnknownColumn):
            run(MissingIndexOnGroupOrOrderColumn(), query, catalog)


class TestLeadingWildcardLike:
    @pytest.mark.parametrize("operator", ["LIKE", "ilike", "NOT LIKE"])
    def test_leading_percent(self, catalog, operator):
        query = Select(table="users", projection=["id"], where=cmp("name", "%smith", operator))
        findings = run(LeadingWildcardLike(), query, catalog)

        assert len(findings) == 1
        assert (findings[0].context.table, findings[0].context.column) == ("users", "name")

    def test_leading_underscore(self, catalog):
        query = Select(table="users", projection=["id"], where=cmp("name", "_mith", "LIKE"))
        assert len(run(LeadingWildcardLike(), query, catalog)) == 1

    def test_anchored_pattern_is_clean(self, catalog):
        query = Select(table="users", projection=["id"], where=cmp("name", "smi%", "LIKE"))
        assert run(LeadingWildcardLike(), query, catalog) == []

    def test_unknown_table_does_not_raise(self, catalog):
        query = Select(table="invoices", projection=["id"], where=cmp("memo", "%x", "LIKE"))
        findings = run(LeadingWildcardLike(), query, catalog)
        assert findings[0].context.table == "invoices"


class TestLargeOffsetPagination:
    def test_offset_at_threshold(self, catalog):
        query = Select(table="orders", projection=["id"], order_by=["id"], offset=1_000, limit=20)
        findings = run(LargeOffsetPagination(), query, catalog)

        assert len(findings) == 1
        assert str(findings[0].path) == "query → offset"
        assert "WHERE (id) > (<last seen values>)" in findings[0].suggestion

    def test_small_offset(self, catalog):
        query = Select(table="orders", projection=["id"], offset=999)
        assert run(LargeOffsetPagination(), query, catalog) == []

    def test_descending_key_seeks_backwards(self, catalog):
        query = Select(
            table="orders",
            projection=["id"],
            order_by=[{"column": "created_at", "descending": True}],
            offset=5_000,
        )
        findings = run(LargeOffsetPagination(), query, catalog)
        assert "WHERE (created_at) < " in findings[0].suggestion

    def test_union_offset(self, catalog):
        query = Union(
            queries=[Select(table="orders", projection=["id"]), Select(table="users", projection=["id"])],
            offset=2_000,
        )
        findings = run(LargeOffsetPagination(), query, catalog)
        assert [str(f.path) for f in findings] == ["query → offset"]

    def test_configured_threshold(self, catalog):
        config = AdvisorConfig(offset_threshold=10)
        query = Select(table="orders", projection=["id"], offset=10)
        assert len(run(LargeOffsetPagination(), query, catalog, config)) == 1


class TestUnfilteredMutation:
    def test_delete_without_where(self, catalog):
        findings = run(UnfilteredMutation(), Delete(table="orders"), catalog)

        assert len(findings) == 1
        assert findings[0].severity is Severity.CRITICAL
        assert findings[0].title == "DELETE on orders without WHERE"
        assert str(findings[0].path) == "query → where"

    def test_update_without_where(self, catalog):
        query = Update(table="orders", assignments={"status": "void"})
        findings = run(UnfilteredMutation(), query, catalog, estimated_rows=10)
        assert findings[0].title == "UPDATE on orders without WHERE"
        assert findings[0].metrics == {"estimated_rows": 10}

    def test_filtered_mutation(self, catalog):
        query = Update(table="orders", assignments={"status": "void"}, where=cmp("id", 1))
        assert run(UnfilteredMutation(), query, catalog) == []

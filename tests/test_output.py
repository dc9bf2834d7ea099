"""Tests for result rendering: text, JSON, Markdown and rich tables."""

import json

import pytest

from queryadvisor.analyzer import Advisor, AnalysisResult
from queryadvisor.output import (
    SCHEMA_VERSION,
    OutputFormat,
    get_json_schema,
    render,
    render_table,
    result_to_dict,
)
from queryadvisor.query import Select


@pytest.fixture
def result(catalog, config, metrics) -> AnalysisResult:
    query = Select(
        table="orders o",
        joins=[{"table": "users u", "left": "u.id", "right": "o.user_id"}],
    )
    return Advisor(config=config, metrics=metrics).analyze(query, catalog)


@pytest.fixture
def empty_result(catalog, config, metrics) -> AnalysisResult:
    query = Select(table="invoices", projection=["id"], order_by=["id"])
    return Advisor(config=config, metrics=metrics).analyze(query, catalog)


class TestJson:
    def test_document_shape(self, result):
        data = json.loads(render(result, OutputFormat.JSON))

        assert data["version"] == SCHEMA_VERSION
        assert data["query_kind"] == "select"
        assert data["summary"]["total"] == 2
        assert [f["rule_id"] for f in data["findings"]] == ["WILDCARD_PROJECTION", "UNINDEXED_JOIN"]
        assert data["findings"][1]["context"] == {
            "path": ["query", "joins[0]"],
            "clause": "join",
            "table": "orders",
            "column": "user_id",
        }
        assert len(data["rule_runs"]) == 12

    def test_dict_matches_rendered_json(self, result):
        assert json.loads(render(result, "json")) == result_to_dict(result)

    def test_json_schema(self):
        schema = get_json_schema()
        assert "findings" in schema["properties"]


class TestText:
    def test_findings_listed_in_order(self, result):
        text = render(result)

        assert "Query Advisor Report" in text
        assert text.index("WILDCARD_PROJECTION") < text.index("UNINDEXED_JOIN")
        assert "Location: query → joins[0]" in text
        assert "CREATE INDEX idx_orders_user_id ON orders (user_id);" in text

    def test_skipped_rules_and_no_findings(self, empty_result):
        text = render(empty_result, OutputFormat.TEXT)

        assert "No issues found" in text
        assert "skipped MISSING_INDEX_ON_GROUP_OR_ORDER_COLUMN" in text


class TestMarkdown:
    def test_badge_and_sections(self, result):
        markdown = render(result, OutputFormat.MARKDOWN)

        assert markdown.startswith("# Query Advisor Report")
        assert "**Warnings found**" in markdown
        assert "```sql" in markdown
        assert "<summary>Rule Execution Details</summary>" in markdown

    def test_clean_result(self, empty_result):
        assert "**No issues found**" in render(empty_result, "markdown")

    def test_unknown_format(self, result):
        with pytest.raises(ValueError):
            render(result, "html")


class TestTable:
    def test_rows_per_finding(self, result):
        table = render_table(result)

        assert "WILDCARD_PROJECTION" in table
        assert "UNINDEXED_JOIN" in table
        assert "join: orders.user_id" in table

    def test_empty(self, empty_result):
        assert render_table(empty_result).strip() == "No issues found"

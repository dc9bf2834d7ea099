"""
Rule: Leading Wildcard LIKE

Detects ``LIKE '%term'`` / ``LIKE '_term'`` patterns.

A B-tree index can only serve LIKE when the pattern has a fixed prefix.
A leading wildcard means every row is read and matched.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import ColumnRef, Comparison
from queryadvisor.query.walk import iter_comparisons

LIKE_OPERATORS = frozenset({"LIKE", "ILIKE", "NOT LIKE", "NOT ILIKE"})


class LeadingWildcardLike(Rule):
    """Flag LIKE patterns that start with a wildcard."""

    rule_id = "LEADING_WILDCARD_LIKE"
    version = "1.0.0"
    severity = Severity.WARNING
    description = "Detects LIKE patterns with a leading wildcard"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_comparisons(ctx.query):
            comparison: Comparison = site.node
            if comparison.normalized_operator not in LIKE_OPERATORS:
                continue
            pattern = comparison.value
            if not isinstance(pattern, str) or not pattern.startswith(("%", "_")):
                continue

            table = column = None
            if isinstance(comparison.column, ColumnRef):
                column = comparison.column.column
                if comparison.column.table:
                    table = site.scope.lookup(comparison.column.table) or comparison.column.table
                elif len(site.scope.tables) == 1:
                    table = site.scope.table_names()[0]

            findings.append(self.finding(
                context=ClauseContext(
                    path=site.path,
                    clause="where",
                    table=table,
                    column=column,
                ),
                title=f"Leading wildcard in {comparison.normalized_operator} on {comparison.column}",
                message=(
                    f"The pattern {pattern!r} in {comparison} starts with a "
                    f"wildcard, so no B-tree index can narrow the search and every "
                    f"row is scanned."
                ),
                suggestion=(
                    "-- Anchor the pattern ('term%') if the application allows, or use\n"
                    "-- a trigram / full-text index, e.g. in PostgreSQL:\n"
                    f"CREATE INDEX ON {table or '<table>'} USING gin "
                    f"({column or '<column>'} gin_trgm_ops);"
                ),
            ))

        return findings

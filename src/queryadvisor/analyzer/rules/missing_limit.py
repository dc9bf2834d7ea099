"""
Rule: Missing Limit

Detects an unbounded result set on a query the caller expects to be large.

Only the statement itself is checked (a SELECT, or the UNION as a whole),
and only when the caller supplies ``estimated_rows``: without an estimate
there is nothing to compare against.

A SELECT whose projection is aggregates only, with no GROUP BY, returns a
single row and is never flagged.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import Select, Union
from queryadvisor.query.path import ClausePath


class MissingLimit(Rule):
    """Flag large, unbounded SELECT / UNION statements."""

    rule_id = "MISSING_LIMIT"
    version = "1.0.0"
    severity = Severity.WARNING
    description = "Detects unbounded result sets above the configured row threshold"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        query = ctx.query
        if not isinstance(query, (Select, Union)) or query.limit is not None:
            return []
        if isinstance(query, Select) and query.is_aggregate_only:
            return []
        if ctx.estimated_rows is None:
            return []

        threshold = self.threshold(ctx, "row_count_threshold_for_limit_warning")
        if ctx.estimated_rows <= threshold:
            return []

        table = None
        if isinstance(query, Select) and query.table is not None:
            table = query.table.name

        return [self.finding(
            context=ClauseContext(
                path=ClausePath.root().child("limit"),
                clause="limit",
                table=table,
            ),
            title=f"No LIMIT on a query returning ~{ctx.estimated_rows:,} rows",
            message=(
                f"The query has no LIMIT and is estimated to return "
                f"{ctx.estimated_rows:,} rows, above the threshold of "
                f"{threshold:,}. The whole result is materialised and sent to "
                f"the client."
            ),
            suggestion=(
                "-- Page through the result instead:\n"
                "... ORDER BY <key> LIMIT 100"
            ),
            metrics={"estimated_rows": ctx.estimated_rows, "threshold": threshold},
        )]

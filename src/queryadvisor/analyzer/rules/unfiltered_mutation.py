"""
Rule: Unfiltered Mutation

Detects UPDATE or DELETE statements without a WHERE clause. These touch
every row of the table: a full-table write, long-held locks and, usually,
a mistake.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import Delete, Update
from queryadvisor.query.path import ClausePath


class UnfilteredMutation(Rule):
    """Flag UPDATE / DELETE without WHERE."""

    rule_id = "UNFILTERED_MUTATION"
    version = "1.0.0"
    severity = Severity.CRITICAL
    description = "Detects UPDATE and DELETE statements without a WHERE clause"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        query = ctx.query
        if not isinstance(query, (Update, Delete)) or query.where is not None:
            return []

        verb = "UPDATE" if isinstance(query, Update) else "DELETE"
        table = query.table.name
        metrics: dict[str, int | float] = {}
        if ctx.estimated_rows is not None:
            metrics["estimated_rows"] = ctx.estimated_rows

        return [self.finding(
            context=ClauseContext(
                path=ClausePath.root().child("where"),
                clause="where",
                table=table,
            ),
            title=f"{verb} on {table} without WHERE",
            message=(
                f"This {verb} has no WHERE clause and affects every row of "
                f"{table}, holding locks on the whole table while it runs."
            ),
            suggestion=(
                f"-- Add a WHERE clause; if every row really must change, "
                f"do it in batches:\n{verb} ... WHERE <key> BETWEEN <lo> AND <hi>"
            ),
            metrics=metrics,
        )]

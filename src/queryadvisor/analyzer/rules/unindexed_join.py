"""
Rule: Unindexed Join

Detects join conditions where a side's column has no index to serve it.

Why it matters:
- Without an index on the join column, the database must hash or scan the
  whole table for every join, instead of probing a B-tree
- Foreign-key columns are the usual culprit: the referenced primary key is
  indexed automatically, the referencing column is not

Severity scales with the caller's row estimate:
- no estimate: INFO
- estimate >= row_count_threshold_for_limit_warning: WARNING
- estimate >= threshold * critical_multiplier: CRITICAL
"""

from __future__ import annotations

from pydantic import Field

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleConfig, RuleContext, create_index_sql
from queryadvisor.query.scope import ResolvedColumn
from queryadvisor.query.walk import iter_selects


class UnindexedJoinConfig(RuleConfig):
    """
    Configuration for unindexed join detection.

    Attributes:
        critical_multiplier: Multiple of the row threshold at which the
            finding becomes CRITICAL.
    """

    critical_multiplier: int = Field(
        default=100,
        gt=0,
        description="Multiple of the row threshold that escalates to CRITICAL",
    )


class UnindexedJoin(Rule):
    """Flag join clauses with an unindexed side."""

    rule_id = "UNINDEXED_JOIN"
    version = "1.0.0"
    severity = Severity.INFO
    description = "Detects joins on columns without a usable index"

    config_schema = UnindexedJoinConfig

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []
        severity = self._severity(ctx)

        for site in iter_selects(ctx.query):
            for i, join in enumerate(site.select.joins):
                sides = [
                    ctx.resolve(site.scope, join.left),
                    ctx.resolve(site.scope, join.right),
                ]
                unindexed: list[ResolvedColumn] = []
                for side in sides:
                    if not ctx.is_resolved_indexed(side) and side not in unindexed:
                        unindexed.append(side)
                if not unindexed:
                    continue

                findings.append(self._build_finding(
                    ctx,
                    ClauseContext(
                        path=site.path.child("joins", i),
                        clause="join",
                        table=unindexed[0].table,
                        column=unindexed[0].column,
                    ),
                    sides,
                    unindexed,
                    severity,
                ))

        return findings

    def _severity(self, ctx: RuleContext) -> Severity:
        if ctx.estimated_rows is None:
            return self.severity
        threshold = self.threshold(ctx, "row_count_threshold_for_limit_warning")
        multiplier = self.threshold(ctx, "critical_multiplier")
        if ctx.estimated_rows >= threshold * multiplier:
            return Severity.CRITICAL
        if ctx.estimated_rows >= threshold:
            return Severity.WARNING
        return self.severity

    def _build_finding(
        self,
        ctx: RuleContext,
        context: ClauseContext,
        sides: list[ResolvedColumn],
        unindexed: list[ResolvedColumn],
        severity: Severity,
    ) -> Finding:
        names = " and ".join(str(col) for col in unindexed)
        condition = f"{sides[0]} = {sides[1]}"

        message = (
            f"The join condition {condition} has no index on {names}. "
            f"Each probe of that side scans the table instead of an index lookup."
        )
        if ctx.estimated_rows is not None:
            message += f" The query is estimated to touch {ctx.estimated_rows:,} rows."

        metrics: dict[str, int | float] = {"unindexed_sides": len(unindexed)}
        if ctx.estimated_rows is not None:
            metrics["estimated_rows"] = ctx.estimated_rows

        return self.finding(
            context=context,
            severity=severity,
            title=f"Join on unindexed column {names}",
            message=message,
            suggestion="\n".join(
                create_index_sql(col.table, col.column) for col in unindexed
            ),
            metrics=metrics,
        )

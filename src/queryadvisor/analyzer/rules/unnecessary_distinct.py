"""
Rule: Unnecessary DISTINCT

Detects SELECT DISTINCT on a single-table query without GROUP BY, where
the query shape itself cannot produce duplicates.

Why it matters:
- DISTINCT forces a sort or hash over the whole result
- It is often added to paper over duplicates from a join; without joins
  that reason does not apply

Advisory: the base rows of the table may still contain duplicate value
combinations, so the finding is INFO and asks for review. When the
projection covers a unique index (or the primary key) duplicates are
impossible and the finding is escalated to WARNING.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.catalog.models import Index
from queryadvisor.query.models import ColumnRef
from queryadvisor.query.walk import SelectSite, iter_selects


class UnnecessaryDistinct(Rule):
    """Flag DISTINCT where no join or grouping can create duplicates."""

    rule_id = "UNNECESSARY_DISTINCT"
    version = "1.0.0"
    severity = Severity.INFO
    description = "Detects DISTINCT on single-table queries without GROUP BY"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_selects(ctx.query):
            select = site.select
            if not select.distinct or select.joins or select.group_by:
                continue
            if select.table is None:
                continue

            covered = self._covered_unique_index(ctx, site)
            findings.append(self._build_finding(site, covered))

        return findings

    def _covered_unique_index(self, ctx: RuleContext, site: SelectSite) -> Index | None:
        """A unique index whose columns are all projected, if any."""
        table = ctx.catalog.table(site.select.table.name)
        unique = table.unique_indexes()
        if not unique:
            return None

        if site.select.projects_all:
            return unique[0]

        projected: set[str] = set()
        for item in site.select.projection:
            if isinstance(item, ColumnRef):
                resolved = ctx.resolve(site.scope, item)
                projected.add(resolved.column.lower())

        for index in unique:
            if all(column.lower() in projected for column in index.columns):
                return index
        return None

    def _build_finding(self, site: SelectSite, covered: Index | None) -> Finding:
        table = site.select.table.name
        context = ClauseContext(
            path=site.path.child("projection"),
            clause="projection",
            table=table,
        )

        if covered is not None:
            label = covered.name or ", ".join(covered.columns)
            return self.finding(
                context=context,
                severity=Severity.WARNING,
                title=f"DISTINCT on {table} is redundant",
                message=(
                    f"The projection includes every column of unique index "
                    f"{label} on {table}, so no two result rows can be equal. "
                    f"DISTINCT only adds a sort or hash step."
                ),
                suggestion="-- Remove DISTINCT.",
            )

        return self.finding(
            context=context,
            title=f"DISTINCT on single-table query over {table}",
            message=(
                f"The query reads only {table}, with no joins or GROUP BY that "
                f"could multiply rows. Review whether DISTINCT is needed: it "
                f"forces a sort or hash over the whole result."
            ),
            suggestion=None,
        )

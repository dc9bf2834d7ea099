"""
Rule: Wildcard Projection

Detects SELECT * (or table.*) in a statement whose rows reach the client.

Why it matters:
- Every column is read and shipped, including wide text/JSON columns the
  caller never looks at
- Index-only scans become impossible: the covering index would have to
  contain the whole row
- Adding a column to the table silently changes the result shape

Only outer selects are checked: the statement itself, or each branch of a
UNION. ``EXISTS (SELECT * ...)`` is idiomatic and never flagged, and the
projection of an IN subquery is checked by other rules.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import ColumnRef
from queryadvisor.query.walk import SelectSite, iter_selects


class WildcardProjection(Rule):
    """Flag outer selects that project every column."""

    rule_id = "WILDCARD_PROJECTION"
    version = "1.0.0"
    severity = Severity.WARNING
    description = "Detects SELECT * in queries returning rows to the client"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_selects(ctx.query):
            if not site.is_outer or not site.select.projects_all:
                continue
            findings.append(self._build_finding(ctx, site))

        return findings

    def _build_finding(self, ctx: RuleContext, site: SelectSite) -> Finding:
        tables = self._wildcard_tables(site)
        primary = tables[0] if tables else None
        label = ", ".join(tables) if tables else "the selected tables"

        columns: list[str] = []
        for table in tables:
            if ctx.catalog.has_table(table):
                qualify = len(tables) > 1
                for column in ctx.catalog.table(table).columns:
                    columns.append(f"{table}.{column.name}" if qualify else column.name)

        if columns:
            suggestion = (
                f"-- Name only the columns the caller uses, e.g.:\n"
                f"SELECT {', '.join(columns)} ..."
            )
        else:
            suggestion = "-- Replace * with the columns the caller actually reads."

        return self.finding(
            context=ClauseContext(
                path=site.path.child("projection"),
                clause="projection",
                table=primary,
            ),
            title=f"SELECT * on {label}",
            message=(
                f"The query projects every column of {label}. Unused columns "
                f"are still read and transferred, covering indexes cannot be "
                f"used, and schema changes alter the result shape."
            ),
            suggestion=suggestion,
            metrics={"columns": len(columns)} if columns else {},
        )

    @staticmethod
    def _wildcard_tables(site: SelectSite) -> list[str]:
        """Catalog names of the tables whose columns the wildcard expands to."""
        select = site.select
        if select.projection == "*":
            return list(site.scope.table_names())

        tables: list[str] = []
        for item in select.projection:
            if not isinstance(item, ColumnRef) or not item.is_wildcard:
                continue
            if item.table is None:
                return list(site.scope.table_names())
            name = site.scope.lookup(item.table) or item.table
            if name not in tables:
                tables.append(name)
        return tables

"""
Rule: Missing Index On GROUP BY / ORDER BY Column

Detects grouping and sort keys that no index can deliver in order.

Why it matters:
- Without an index on the key, GROUP BY and ORDER BY need an explicit sort
  (or hash) of every qualifying row, which may spill to disk
- With an index whose leading columns match the key, rows can be read
  already ordered

A clause whose columns all belong to one table and are served together by
a composite index (leftmost prefix) is fine as a whole. Otherwise each
column without an index of its own is reported.

ORDER BY on a UNION refers to output columns and is not checked.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext, create_index_sql
from queryadvisor.query.models import ColumnRef
from queryadvisor.query.path import ClausePath
from queryadvisor.query.scope import ResolvedColumn
from queryadvisor.query.walk import iter_selects

_CLAUSE_LABELS = {"group_by": "GROUP BY", "order_by": "ORDER BY"}


class MissingIndexOnGroupOrOrderColumn(Rule):
    """Flag GROUP BY / ORDER BY columns without a supporting index."""

    rule_id = "MISSING_INDEX_ON_GROUP_OR_ORDER_COLUMN"
    version = "1.0.0"
    severity = Severity.INFO
    description = "Detects GROUP BY and ORDER BY columns that no index serves"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_selects(ctx.query):
            select = site.select
            clauses: list[tuple[str, list[ColumnRef]]] = [
                ("group_by", list(select.group_by)),
                ("order_by", [item.column for item in select.order_by]),
            ]
            for clause, columns in clauses:
                if not columns:
                    continue
                resolved = [ctx.resolve(site.scope, col) for col in columns]
                if self._served_together(ctx, resolved):
                    continue
                for i, column in enumerate(resolved):
                    if ctx.is_resolved_indexed(column):
                        continue
                    findings.append(self._build_finding(
                        site.path.child(clause, i), clause, column, resolved,
                    ))

        return findings

    @staticmethod
    def _served_together(ctx: RuleContext, resolved: list[ResolvedColumn]) -> bool:
        tables = {col.table.lower() for col in resolved}
        if len(tables) != 1 or len(resolved) < 2:
            return False
        return ctx.is_indexed(resolved[0].table, *(col.column for col in resolved))

    def _build_finding(
        self,
        path: ClausePath,
        clause: str,
        column: ResolvedColumn,
        resolved: list[ResolvedColumn],
    ) -> Finding:
        label = _CLAUSE_LABELS[clause]
        same_table = [c.column for c in resolved if c.table.lower() == column.table.lower()]
        if len(same_table) > 1:
            suggestion = create_index_sql(column.table, *same_table)
        else:
            suggestion = create_index_sql(column.table, column.column)

        return self.finding(
            context=ClauseContext(
                path=path,
                clause=clause,
                table=column.table,
                column=column.column,
            ),
            title=f"{label} column {column} has no index",
            message=(
                f"{label} {column} is not the leading column of any index on "
                f"{column.table}, so rows must be sorted or hashed explicitly "
                f"instead of being read in index order."
            ),
            suggestion=suggestion,
        )

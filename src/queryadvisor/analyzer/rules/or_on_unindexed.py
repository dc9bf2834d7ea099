"""
Rule: OR On Unindexed Columns

Detects OR chains whose branches compare columns that have no index.

Why it matters:
- A disjunction can only use indexes if every branch is indexable; one
  unindexed branch forces a full scan for the whole predicate
- Rewriting as a UNION of separately indexable queries, or as an IN list
  when every branch tests the same column for equality, gives the planner
  a plan per branch

Nested ORs (``a OR (b OR c)``) are flattened and reported once, at the
outermost OR. Chains containing anything other than plain column
comparisons (AND groups, subqueries, functions) are left alone, though an
OR nested inside such a chain is still checked as a chain of its own.
"""

from __future__ import annotations

from typing import Any, Iterator

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext, create_index_sql
from queryadvisor.query.models import ColumnRef, Comparison, Or, render_value
from queryadvisor.query.path import ClausePath
from queryadvisor.query.scope import ResolvedColumn
from queryadvisor.query.walk import PredicateSite, iter_predicate_sites


class OrOnUnindexed(Rule):
    """Flag OR chains over unindexed columns."""

    rule_id = "OR_ON_UNINDEXED"
    version = "1.0.0"
    severity = Severity.WARNING
    description = "Detects OR predicates on unindexed columns"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        # Paths of ORs folded into an evaluated chain; sites come in preorder
        evaluated: set[ClausePath] = set()

        for site in iter_predicate_sites(ctx.query):
            if not isinstance(site.node, Or):
                continue
            if site.path.parent() in evaluated:
                evaluated.add(site.path)
                continue

            branches = list(_flatten(site.node))
            if len(branches) < 2 or not all(_is_plain_comparison(b) for b in branches):
                continue  # nested ORs are tried as chains of their own
            evaluated.add(site.path)

            resolved = [ctx.resolve(site.scope, b.column) for b in branches]
            unindexed: list[ResolvedColumn] = []
            for column in resolved:
                if column not in unindexed and not ctx.is_resolved_indexed(column):
                    unindexed.append(column)
            if not unindexed:
                continue

            findings.append(self._build_finding(site, branches, resolved, unindexed))

        return findings

    def _build_finding(
        self,
        site: PredicateSite,
        branches: list[Comparison],
        resolved: list[ResolvedColumn],
        unindexed: list[ResolvedColumn],
    ) -> Finding:
        names = ", ".join(str(col) for col in unindexed)
        same_column = len({(c.table.lower(), c.column.lower()) for c in resolved}) == 1
        all_equality = all(b.normalized_operator == "=" for b in branches)

        index_sql = "\n".join(create_index_sql(c.table, c.column) for c in unindexed)
        if same_column and all_equality:
            values = ", ".join(render_value(b.value) for b in branches)
            rewrite = f"{branches[0].column} IN ({values})"
            suggestion = f"-- Use an IN list:\nWHERE {rewrite}\n-- and index it:\n{index_sql}"
        else:
            union = "\nUNION\n".join(f"SELECT ... WHERE {b}" for b in branches)
            suggestion = (
                f"-- Split into separately indexable queries:\n{union}\n"
                f"-- after indexing:\n{index_sql}"
            )

        return self.finding(
            context=ClauseContext(
                path=site.path,
                clause="where",
                table=unindexed[0].table,
                column=unindexed[0].column,
            ),
            title=f"OR across {len(branches)} branches on unindexed {names}",
            message=(
                f"The predicate {' OR '.join(str(b) for b in branches)} filters "
                f"on {names}, which has no index. A disjunction with an "
                f"unindexed branch forces a full scan."
            ),
            suggestion=suggestion,
            metrics={"branches": len(branches), "unindexed_columns": len(unindexed)},
        )


def _flatten(node: Any) -> Iterator[Any]:
    if isinstance(node, Or):
        for arg in node.args:
            yield from _flatten(arg)
    else:
        yield node


def _is_plain_comparison(node: Any) -> bool:
    return (
        isinstance(node, Comparison)
        and isinstance(node.column, ColumnRef)
        and not node.column.is_wildcard
    )

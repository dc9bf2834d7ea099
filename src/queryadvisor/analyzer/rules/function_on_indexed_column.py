"""
Rule: Function On Indexed Column

Detects comparisons that wrap an indexed column in a function call, e.g.
``lower(users.email) = 'a@b.c'`` or ``date(orders.created_at) = '2024-01-01'``.

Why it matters:
- A B-tree index stores the raw column values; the predicate compares the
  function's output, so the index cannot be used (the predicate is not
  sargable) and the table is scanned
- This is invisible at the application layer: the SQL "looks fine"

Fixes are either to rewrite the predicate against the bare column (e.g. a
range on created_at instead of date(created_at)) or to add an expression
index on the function.

Aggregate calls (count, sum, ...) are not row-level predicates and are
ignored.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext, index_name
from queryadvisor.query.models import Comparison, FunctionCall, render_value
from queryadvisor.query.scope import ResolvedColumn
from queryadvisor.query.walk import iter_comparisons


class FunctionOnIndexedColumn(Rule):
    """Flag function calls that hide an indexed column from its index."""

    rule_id = "FUNCTION_ON_INDEXED_COLUMN"
    version = "1.0.0"
    severity = Severity.WARNING
    description = "Detects functions wrapping indexed columns in predicates"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_comparisons(ctx.query):
            comparison: Comparison = site.node
            call = comparison.column
            if not isinstance(call, FunctionCall) or call.is_aggregate:
                continue

            seen: set[tuple[str, str]] = set()
            for ref in call.column_refs():
                if ref.is_wildcard:
                    continue
                resolved = ctx.resolve(site.scope, ref)
                key = (resolved.table.lower(), resolved.column.lower())
                if key in seen or not ctx.is_resolved_indexed(resolved):
                    continue
                seen.add(key)
                findings.append(self._build_finding(
                    ClauseContext(
                        path=site.path.child("column"),
                        clause="where",
                        table=resolved.table,
                        column=resolved.column,
                    ),
                    comparison,
                    call,
                    resolved,
                ))

        return findings

    def _build_finding(
        self,
        context: ClauseContext,
        comparison: Comparison,
        call: FunctionCall,
        resolved: ResolvedColumn,
    ) -> Finding:
        expression = f"{call.name}({resolved.column})"
        return self.finding(
            context=context,
            title=f"Function {call.name}() on indexed column {resolved}",
            message=(
                f"The predicate {comparison} applies {call.name}() to "
                f"{resolved}, which is indexed. The index stores raw values, so "
                f"it cannot serve this comparison and the table is scanned."
            ),
            suggestion=(
                f"-- Compare the bare column where possible, e.g.:\n"
                f"-- {resolved.column} {comparison.normalized_operator} "
                f"{render_value(comparison.value)} (adjusting the value)\n"
                f"-- or add an expression index:\n"
                f"CREATE INDEX {index_name(resolved.table, call.name, resolved.column)} "
                f"ON {resolved.table} (({expression}));"
            ),
        )

"""
Rule: Outer Join Preference

Detects LEFT / RIGHT / FULL joins whose outer semantics nothing in the
query appears to rely on.

Why it matters:
- An outer join constrains the planner: the preserved side must be scanned
  in full and join reordering is restricted
- If no unmatched rows are wanted, an INNER JOIN is both cheaper and
  clearer
- A WHERE filter on the nullable side (e.g. ``o.status = 'paid'``) throws
  away the NULL-extended rows anyway, so the join already behaves like an
  INNER JOIN

This is advisory only. Whether unmatched rows are needed depends on the
caller, so the finding asks for manual review and proposes no rewrite.

Outer semantics are considered "required" when the WHERE clause tests a
nullable-side column with IS NULL, or wraps one in a NULL-handling function
such as COALESCE.
"""

from __future__ import annotations

from typing import Any, Iterator

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import (
    And,
    ColumnRef,
    Comparison,
    FunctionCall,
    JoinKind,
    Select,
)
from queryadvisor.query.path import ClausePath
from queryadvisor.query.scope import Scope
from queryadvisor.query.walk import iter_predicates, iter_selects

# Functions whose purpose is to handle the NULLs an outer join produces
NULL_HANDLING_FUNCTIONS = frozenset({
    "coalesce", "ifnull", "isnull", "nvl", "nvl2", "nullif",
})


class OuterJoinPreference(Rule):
    """Flag outer joins for manual review when outer semantics look unused."""

    rule_id = "OUTER_JOIN_PREFERENCE"
    version = "1.0.0"
    severity = Severity.INFO
    description = "Flags outer joins whose unmatched rows the query never uses"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_selects(ctx.query):
            select = site.select
            for i, join in enumerate(select.joins):
                if not join.kind.is_outer:
                    continue

                nullable = self._nullable_refs(select, i, site.scope)
                where = select.where
                if where is not None and self._requires_outer(ctx, site.scope, where, nullable):
                    continue

                rejecting = where is not None and self._has_null_rejecting_filter(
                    ctx, site.scope, where, nullable,
                )
                findings.append(self._build_finding(
                    site.path.child("joins", i),
                    join.kind,
                    join.table.name,
                    sorted(nullable),
                    rejecting,
                ))

        return findings

    @staticmethod
    def _nullable_refs(select: Select, index: int, scope: Scope) -> set[str]:
        """Aliases (or names) of the tables whose columns may come back NULL."""
        join = select.joins[index]
        before = {j.table.ref_name for j in select.joins[:index]}
        if select.table is not None:
            before.add(select.table.ref_name)
        joined = {join.table.ref_name}

        if join.kind is JoinKind.LEFT:
            return joined
        if join.kind is JoinKind.RIGHT:
            return before
        return joined | before

    def _requires_outer(
        self,
        ctx: RuleContext,
        scope: Scope,
        where: Any,
        nullable: set[str],
    ) -> bool:
        for _, node in iter_predicates(where, ClausePath.root()):
            if not isinstance(node, Comparison):
                continue
            if node.is_null_test and self._touches(ctx, scope, node.column, nullable):
                return True
            for operand in (node.column, node.value):
                if (
                    isinstance(operand, FunctionCall)
                    and operand.name.lower() in NULL_HANDLING_FUNCTIONS
                    and self._touches(ctx, scope, operand, nullable)
                ):
                    return True
        return False

    def _has_null_rejecting_filter(
        self,
        ctx: RuleContext,
        scope: Scope,
        where: Any,
        nullable: set[str],
    ) -> bool:
        """True if a top-level conjunct compares a nullable-side column."""
        for node in _conjuncts(where):
            if not isinstance(node, Comparison) or node.is_null_test:
                continue
            if isinstance(node.column, ColumnRef) and self._touches(
                ctx, scope, node.column, nullable
            ):
                return True
        return False

    @staticmethod
    def _touches(ctx: RuleContext, scope: Scope, operand: Any, nullable: set[str]) -> bool:
        if isinstance(operand, ColumnRef):
            refs = [operand]
        elif isinstance(operand, FunctionCall):
            refs = list(operand.column_refs())
        else:
            return False
        lowered = {name.lower() for name in nullable}
        for ref in refs:
            if ref.is_wildcard:
                continue
            resolved = ctx.resolve(scope, ref)
            if resolved.local and resolved.ref is not None and resolved.ref.lower() in lowered:
                return True
        return False

    def _build_finding(
        self,
        path: ClausePath,
        kind: JoinKind,
        table: str,
        nullable: list[str],
        rejecting: bool,
    ) -> Finding:
        join_sql = f"{kind.value.upper()} JOIN {table}"
        side = ", ".join(nullable)

        if rejecting:
            message = (
                f"{join_sql} is filtered in WHERE on a column of {side}, which "
                f"discards the NULL-extended rows. The join already behaves like "
                f"an inner join; review whether INNER JOIN expresses the intent."
            )
        else:
            message = (
                f"Nothing in the query tests columns of {side} for NULL, so the "
                f"unmatched rows {join_sql} preserves may not be needed. Review "
                f"manually: if they are not, an INNER JOIN gives the planner "
                f"more freedom."
            )

        return self.finding(
            context=ClauseContext(path=path, clause="join", table=table),
            title=f"{join_sql} may not need outer semantics",
            message=message,
            suggestion=None,
        )


def _conjuncts(predicate: Any) -> Iterator[Any]:
    """Predicates that must all hold: flattened through AND only."""
    if isinstance(predicate, And):
        for arg in predicate.args:
            yield from _conjuncts(arg)
    else:
        yield predicate

"""
Rule: IN vs EXISTS

Detects ``col [NOT] IN (SELECT one_column FROM ...)`` subqueries that can
be written as a correlated ``[NOT] EXISTS``.

Why it matters:
- EXISTS stops at the first matching row; some planners materialise the
  full IN list first
- NOT IN is a correctness trap as well as a performance one: if the
  subquery yields a single NULL, ``x NOT IN (...)`` is never true and the
  query silently returns nothing. NOT EXISTS has no such pitfall, so the
  NOT IN form is reported as a WARNING
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import ColumnRef, In
from queryadvisor.query.walk import PredicateSite, iter_predicate_sites


class InVsExists(Rule):
    """Suggest EXISTS for single-column IN subqueries."""

    rule_id = "IN_VS_EXISTS"
    version = "1.0.0"
    severity = Severity.INFO
    description = "Suggests rewriting IN (subquery) as a correlated EXISTS"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        findings: list[Finding] = []

        for site in iter_predicate_sites(ctx.query):
            node = site.node
            if not isinstance(node, In):
                continue
            projection = node.subquery.projection
            if projection == "*" or len(projection) != 1:
                continue
            inner = projection[0]
            if not isinstance(inner, ColumnRef) or inner.is_wildcard:
                continue
            findings.append(self._build_finding(site, node, inner))

        return findings

    def _build_finding(self, site: PredicateSite, node: In, inner: ColumnRef) -> Finding:
        sub = node.subquery
        negation = "NOT " if node.negated else ""
        source = str(sub.table) if sub.table is not None else "..."

        condition = f"{inner} = {node.column}"
        if sub.where is not None:
            condition += " AND <existing subquery filter>"

        if node.negated:
            severity = Severity.WARNING
            message = (
                f"{node.column} NOT IN (SELECT {inner} FROM {source} ...) returns "
                f"no rows at all if the subquery yields a NULL, and the list may "
                f"be materialised in full. NOT EXISTS is NULL-safe and can stop "
                f"at the first match."
            )
        else:
            severity = self.severity
            message = (
                f"{node.column} IN (SELECT {inner} FROM {source} ...) compares "
                f"against a single subquery column. A correlated EXISTS lets the "
                f"database stop at the first match."
            )

        table = sub.table.name if sub.table is not None else None
        return self.finding(
            context=ClauseContext(
                path=site.path,
                clause="where",
                table=table,
                column=inner.column,
            ),
            severity=severity,
            title=f"{negation}IN subquery on {node.column} can be {negation}EXISTS",
            message=message,
            suggestion=f"{negation}EXISTS (SELECT 1 FROM {source} WHERE {condition})",
        )

"""
Rule: Large OFFSET Pagination

Detects OFFSET values at or above ``offset_threshold``.

OFFSET n still produces and discards the first n rows, so deep pages get
linearly slower. Keyset ("seek") pagination filters on the last key seen
instead and costs the same on every page.
"""

from __future__ import annotations

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.query.models import OrderItem, Union
from queryadvisor.query.path import ClausePath
from queryadvisor.query.walk import iter_selects


class LargeOffsetPagination(Rule):
    """Flag deep OFFSET pagination."""

    rule_id = "LARGE_OFFSET_PAGINATION"
    version = "1.0.0"
    severity = Severity.WARNING
    description = "Detects large OFFSET values and suggests keyset pagination"

    def analyze(self, ctx: RuleContext) -> list[Finding]:
        threshold = self.threshold(ctx, "offset_threshold")
        findings: list[Finding] = []

        candidates: list[tuple[ClausePath, int | None, tuple[OrderItem, ...], str | None]] = []
        if isinstance(ctx.query, Union):
            candidates.append((ClausePath.root(), ctx.query.offset, ctx.query.order_by, None))
        for site in iter_selects(ctx.query):
            select = site.select
            table = select.table.name if select.table is not None else None
            candidates.append((site.path, select.offset, select.order_by, table))

        for path, offset, order_by, table in candidates:
            if offset is None or offset < threshold:
                continue
            findings.append(self._build_finding(path, offset, order_by, table, threshold))

        return findings

    def _build_finding(
        self,
        path: ClausePath,
        offset: int,
        order_by: tuple[OrderItem, ...],
        table: str | None,
        threshold: int,
    ) -> Finding:
        if order_by:
            keys = ", ".join(str(item.column) for item in order_by)
            op = "<" if order_by[0].descending else ">"
            seek = f"WHERE ({keys}) {op} (<last seen values>) ORDER BY {keys} LIMIT <page size>"
        else:
            seek = "WHERE <key> > <last seen key> ORDER BY <key> LIMIT <page size>"

        return self.finding(
            context=ClauseContext(path=path.child("offset"), clause="offset", table=table),
            title=f"OFFSET {offset:,} pagination",
            message=(
                f"OFFSET {offset:,} makes the database produce and discard "
                f"{offset:,} rows before returning a page (threshold "
                f"{threshold:,}). Cost grows with every page."
            ),
            suggestion=f"-- Use keyset pagination:\n... {seek}",
            metrics={"offset": offset, "threshold": threshold},
        )

"""
Data models for the analyzer module.

These models represent the output of analysis rules - the advice produced
for a query. They're designed to be:
- Immutable (frozen=True): Findings don't change after creation
- Serializable: Easy JSON output for reports
- Hashable: Can be used in sets for deduplication
- Observable: Explicit status for PASS/SKIP/FAIL distinction
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from queryadvisor.query.path import ClausePath


class RuleRunStatus(str, Enum):
    """
    Status of a rule execution - distinguishes PASS vs SKIP vs FAIL.

    Users must be able to tell why a rule produced no findings: no issue,
    not evaluable for this query (catalog lookup failed), or crashed.
    """

    PASS = "pass"      # Rule executed normally
    SKIP = "skip"      # Could not evaluate (unknown table/column)
    FAIL = "fail"      # Rule crashed with an error


class Severity(str, Enum):
    """
    Severity levels for findings.

    CRITICAL: Query is likely to cause an outage or damage (e.g. unfiltered DELETE)
    WARNING: Significant performance issue that should be addressed
    INFO: Optimization opportunity or advice needing manual review
    """

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank: 0 for CRITICAL, 2 for INFO."""
        return _SEVERITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        """Enable sorting by severity (CRITICAL > WARNING > INFO)."""
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass(frozen=True)
class ClauseContext:
    """
    Where in the query a finding applies.

    Attributes:
        path: Location in the query model
        clause: Clause kind ("projection", "join", "where", "group_by", ...)
        table: Catalog table involved, if any
        column: Column involved, if any
    """

    path: ClausePath
    clause: str
    table: str | None = None
    column: str | None = None

    @classmethod
    def root(cls, clause: str = "query") -> "ClauseContext":
        return cls(path=ClausePath.root(), clause=clause)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": list(self.path.segments),
            "clause": self.clause,
            "table": self.table,
            "column": self.column,
        }


class Finding(BaseModel):
    """
    A single advisory result produced by one rule for one query.

    Attributes:
        rule_id: Identifier of the rule that produced this finding
            (UPPER_SNAKE_CASE, e.g. "UNINDEXED_JOIN").
        severity: How serious the issue is.
        context: Where in the query it applies.
        title: Human-readable one-line summary.
        message: Explanation with the offending names substituted in.
        suggestion: Suggested rewrite or fix as text, if any.
        metrics: Quantitative data about the issue for programmatic use.

    Example:
        Finding(
            rule_id="UNINDEXED_JOIN",
            severity=Severity.WARNING,
            context=ClauseContext(path=path, clause="join",
                                  table="orders", column="user_id"),
            title="Join on unindexed column orders.user_id",
            message="No index serves orders.user_id ...",
            suggestion="CREATE INDEX idx_orders_user_id ON orders (user_id);",
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    rule_id: str = Field(..., description="Unique identifier for the rule (UPPER_SNAKE_CASE)")
    severity: Severity = Field(..., description="Severity level of the finding")
    context: ClauseContext = Field(..., description="Location of the finding in the query")
    title: str = Field(..., min_length=1, description="Human-readable one-line summary")
    message: str = Field(..., min_length=1, description="Detailed explanation")
    suggestion: str | None = Field(default=None, description="Suggested rewrite or fix")
    metrics: dict[str, int | float] = Field(
        default_factory=dict,
        description="Quantitative data about the issue",
    )

    @property
    def path(self) -> ClausePath:
        return self.context.path

    def sort_key(self) -> tuple[Any, ...]:
        """
        Deterministic ordering key.

        Severity (CRITICAL first), then rule_id, then position in the
        query, then title.
        """
        return (
            self.severity.rank,
            self.rule_id,
            self.context.path.sort_key,
            self.context.path.segments,
            self.title,
        )

    def dedup_key(self) -> tuple[Any, ...]:
        return (
            self.rule_id,
            self.severity,
            self.context.path.segments,
            self.context.table,
            self.context.column,
            self.title,
        )

    def __lt__(self, other: "Finding") -> bool:
        return self.sort_key() < other.sort_key()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Finding):
            return NotImplemented
        return self.dedup_key() == other.dedup_key() and self.message == other.message

    def __hash__(self) -> int:
        """Enable use in sets for deduplication."""
        return hash(self.dedup_key())


def order_findings(findings: Iterable[Finding]) -> list[Finding]:
    """
    Deduplicate and sort findings into their canonical report order.

    The first occurrence of a duplicate wins.
    """
    unique: dict[tuple[Any, ...], Finding] = {}
    for finding in findings:
        unique.setdefault(finding.dedup_key(), finding)
    return sorted(unique.values(), key=Finding.sort_key)


class RuleRun(BaseModel):
    """
    Record of a single rule execution.

    Lets users distinguish PASS vs SKIP vs FAIL and see exactly what
    happened during analysis.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Unique rule identifier")
    version: str = Field(..., description="Rule version")
    status: RuleRunStatus = Field(..., description="Execution status")
    runtime_ms: float = Field(default=0.0, description="Execution time in milliseconds")
    findings_count: int = Field(default=0, description="Number of findings kept")
    error_summary: str | None = Field(default=None, description="Error message if FAIL")
    skip_reason: str | None = Field(default=None, description="Reason if SKIP")


class ExecutionMetadata(BaseModel):
    """
    Metadata about analysis execution.

    Separated from AnalysisResult so execution details can grow
    independently of the findings.
    """

    model_config = ConfigDict(frozen=True)

    rules_run: int = Field(default=0, description="Rules that were executed")
    rules_failed: int = Field(default=0, description="Rules that failed with errors")
    rules_skipped: int = Field(default=0, description="Rules that could not be evaluated")
    node_count: int = Field(default=0, description="Nodes in the query model")
    analysis_duration_ms: float | None = Field(
        default=None,
        description="Total analysis duration in milliseconds",
    )
    parallel: bool = Field(default=False, description="Whether rules ran on a thread pool")

    @property
    def success_rate(self) -> float:
        """Fraction of executed rules that completed successfully."""
        if self.rules_run == 0:
            return 1.0
        return (self.rules_run - self.rules_failed) / self.rules_run


class AnalysisResult(BaseModel):
    """
    Complete result of analysing one query.

    Contains:
    - findings: All advice, deduplicated and in canonical order
    - rule_runs: Status of each rule execution (PASS/SKIP/FAIL), in rule order
    - errors: Errors from rules that failed
    - metadata: Execution statistics
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    query_kind: str = Field(default="select", description="Statement kind analysed")
    findings: tuple[Finding, ...] = Field(default_factory=tuple)
    rule_runs: tuple[RuleRun, ...] = Field(default_factory=tuple)
    errors: tuple[Any, ...] = Field(default_factory=tuple)
    metadata: ExecutionMetadata = Field(default_factory=ExecutionMetadata)

    @classmethod
    def create(
        cls,
        findings: Iterable[Finding],
        rule_runs: Iterable[RuleRun] = (),
        errors: Iterable[Any] = (),
        metadata: ExecutionMetadata | None = None,
        query_kind: str = "select",
    ) -> "AnalysisResult":
        """Build a result, putting findings into canonical order."""
        return cls(
            query_kind=query_kind,
            findings=tuple(order_findings(findings)),
            rule_runs=tuple(rule_runs),
            errors=tuple(errors),
            metadata=metadata or ExecutionMetadata(),
        )

    @property
    def has_critical(self) -> bool:
        return any(f.severity == Severity.CRITICAL for f in self.findings)

    @property
    def has_warnings(self) -> bool:
        return any(f.severity == Severity.WARNING for f in self.findings)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def findings_by_severity(self, severity: Severity) -> list[Finding]:
        return [f for f in self.findings if f.severity == severity]

    def findings_for_rule(self, rule_id: str) -> list[Finding]:
        return [f for f in self.findings if f.rule_id == rule_id]

    def rule_runs_by_status(self, status: RuleRunStatus) -> list[RuleRun]:
        return [r for r in self.rule_runs if r.status == status]

    def summary(self) -> dict[str, int | float | str]:
        """Counts by severity and rule status."""
        return {
            "total": len(self.findings),
            "critical": len(self.findings_by_severity(Severity.CRITICAL)),
            "warning": len(self.findings_by_severity(Severity.WARNING)),
            "info": len(self.findings_by_severity(Severity.INFO)),
            "rules_passed": len(self.rule_runs_by_status(RuleRunStatus.PASS)),
            "rules_skipped": len(self.rule_runs_by_status(RuleRunStatus.SKIP)),
            "rules_failed": len(self.rule_runs_by_status(RuleRunStatus.FAIL)),
            "success_rate": self.metadata.success_rate,
            "query_kind": self.query_kind,
        }

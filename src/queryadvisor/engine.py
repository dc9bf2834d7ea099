"""
AnalysisService - orchestration layer for queryadvisor.

This is the entry point for running analyses over many queries (CI checks,
query-log sweeps). Delivery mechanisms should be thin adapters around it.

Each query in a batch is analysed independently: a malformed query model or
an unreadable query document becomes an error entry for that query only,
and the rest of the batch carries on. Cancellation is checked between
queries, never inside one; queries not started when the event is set are
reported as cancelled.

Usage:
    from queryadvisor.engine import AnalysisService

    service = AnalysisService()

    # Single query
    result = service.analyze(query, catalog)

    # CI pipeline: analyze many queries
    report = service.analyze_batch(
        [("orders_by_user", query1), ("nightly_cleanup", "cleanup.yaml")],
        catalog,
        fail_on="warning",
    )
    if report.has_failures:
        ...
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Union as TypingUnion

from queryadvisor.analyzer.advisor import Advisor
from queryadvisor.analyzer.models import AnalysisResult, Severity
from queryadvisor.exceptions import ConfigurationError, QueryAdvisorError
from queryadvisor.loader import parse_query
from queryadvisor.query.models import Delete, Select, Union, Update

if TYPE_CHECKING:
    from queryadvisor.analyzer.observability import AdvisorMetrics
    from queryadvisor.analyzer.ruleset import RuleSet
    from queryadvisor.catalog.models import SchemaCatalog
    from queryadvisor.config import AdvisorConfig

logger = logging.getLogger(__name__)

FAIL_ON_LEVELS = ("critical", "warning", "info", "none")

# A batch item: an already-built statement, or a query document to load
QuerySource = TypingUnion[Select, Update, Delete, Union, str, Path, dict]


@dataclass(frozen=True)
class AnalysisReport:
    """
    Outcome of analysing one query of a batch.

    Exactly one of ``result`` / ``error`` is set, unless the query was
    cancelled before it started, in which case neither is.
    """

    query_id: str
    result: AnalysisResult | None = None
    error: dict[str, Any] | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.result is not None

    @property
    def has_critical(self) -> bool:
        """Whether critical findings were detected."""
        return self.result is not None and self.result.has_critical

    @property
    def has_warnings(self) -> bool:
        """Whether warnings were detected."""
        return self.result is not None and self.result.has_warnings

    def count(self, severity: Severity) -> int:
        if self.result is None:
            return 0
        return len(self.result.findings_by_severity(severity))


@dataclass(frozen=True)
class BatchReport:
    """
    Report for a batch of analyses (CI/CD use case).

    Aggregates AnalysisReports, in input order, and determines pass/fail.
    Per-query errors count as failures at every ``fail_on`` level except
    "none".
    """

    reports: tuple[AnalysisReport, ...] = ()
    fail_on: str = "warning"  # "critical", "warning", "info", "none"

    @property
    def total_queries(self) -> int:
        return len(self.reports)

    @property
    def analysed_count(self) -> int:
        return sum(1 for r in self.reports if r.ok)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.reports if r.error is not None)

    @property
    def cancelled_count(self) -> int:
        return sum(1 for r in self.reports if r.cancelled)

    @property
    def critical_count(self) -> int:
        return sum(r.count(Severity.CRITICAL) for r in self.reports)

    @property
    def warning_count(self) -> int:
        return sum(r.count(Severity.WARNING) for r in self.reports)

    @property
    def info_count(self) -> int:
        return sum(r.count(Severity.INFO) for r in self.reports)

    @property
    def has_failures(self) -> bool:
        """Check if any report exceeds the fail_on threshold."""
        if self.fail_on == "none":
            return False
        if self.error_count > 0 or self.critical_count > 0:
            return True
        if self.fail_on == "warning":
            return self.warning_count > 0
        if self.fail_on == "info":
            return self.warning_count > 0 or self.info_count > 0
        return False

    def get(self, query_id: str) -> AnalysisReport | None:
        for report in self.reports:
            if report.query_id == query_id:
                return report
        return None

    def to_summary_dict(self) -> dict[str, Any]:
        """Export summary as dictionary for JSON output."""
        return {
            "total_queries": self.total_queries,
            "analysed_count": self.analysed_count,
            "error_count": self.error_count,
            "cancelled_count": self.cancelled_count,
            "critical_count": self.critical_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "fail_on": self.fail_on,
            "has_failures": self.has_failures,
        }


class AnalysisService:
    """
    Orchestration service for queryadvisor.

    Wraps one Advisor (rules and configuration fixed at construction) and
    applies it to single queries or batches.
    """

    def __init__(
        self,
        config: "AdvisorConfig | None" = None,
        rules: "RuleSet | None" = None,
        fail_fast: bool = False,
        metrics: "AdvisorMetrics | None" = None,
        max_workers: int = 1,
    ) -> None:
        """
        Initialize the service.

        Args:
            config: Configuration instance (if None, uses get_config())
            rules: Rules to run (if None, default_rules())
            fail_fast: Raise on the first failing rule (per query)
            metrics: Metrics collector shared by all analyses
            max_workers: Queries analysed concurrently in a batch
        """
        if max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1", config_key="max_workers")
        self._advisor = Advisor(rules=rules, config=config, fail_fast=fail_fast, metrics=metrics)
        self.max_workers = max_workers

    @property
    def advisor(self) -> Advisor:
        """Access the underlying Advisor."""
        return self._advisor

    def analyze(
        self,
        query: QuerySource,
        catalog: "SchemaCatalog",
        estimated_rows: int | None = None,
    ) -> AnalysisResult:
        """
        Analyze a single query.

        Raises:
            LoadError: If ``query`` is a document that cannot be loaded
            MalformedQueryModel: If the query violates a structural invariant
        """
        return self._advisor.analyze(_as_statement(query), catalog, estimated_rows)

    def analyze_batch(
        self,
        queries: Iterable[tuple[str, QuerySource]],
        catalog: "SchemaCatalog",
        estimated_rows: dict[str, int] | None = None,
        cancel_event: threading.Event | None = None,
        fail_on: str = "warning",
    ) -> BatchReport:
        """
        Analyze a batch of queries.

        Args:
            queries: (query_id, query) pairs; a query may be a statement or a
                query document (path, JSON/YAML text, or dict)
            catalog: Schema catalog shared by every analysis
            estimated_rows: Row estimates by query_id
            cancel_event: When set, queries not yet started are cancelled
            fail_on: Severity threshold for failure ("critical", "warning",
                "info", "none")

        Returns:
            BatchReport with one AnalysisReport per query, in input order
        """
        if fail_on not in FAIL_ON_LEVELS:
            raise ConfigurationError(
                f"fail_on must be one of {', '.join(FAIL_ON_LEVELS)}, got {fail_on!r}",
                config_key="fail_on",
            )

        items = list(queries)
        estimates = estimated_rows or {}

        def run(item: tuple[str, QuerySource]) -> AnalysisReport:
            query_id, query = item
            return self._analyze_one(
                query_id, query, catalog, estimates.get(query_id), cancel_event,
            )

        if self.max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                reports = list(pool.map(run, items))
        else:
            reports = [run(item) for item in items]

        report = BatchReport(reports=tuple(reports), fail_on=fail_on)
        if report.cancelled_count:
            logger.info(
                "Batch cancelled: %d of %d queries not analysed",
                report.cancelled_count, report.total_queries,
            )
        return report

    def _analyze_one(
        self,
        query_id: str,
        query: QuerySource,
        catalog: "SchemaCatalog",
        estimated_rows: int | None,
        cancel_event: threading.Event | None,
    ) -> AnalysisReport:
        if cancel_event is not None and cancel_event.is_set():
            return AnalysisReport(query_id=query_id, cancelled=True)

        try:
            result = self._advisor.analyze(_as_statement(query), catalog, estimated_rows)
        except QueryAdvisorError as e:
            logger.warning("Failed to analyze %s: %s", query_id, e.message)
            return AnalysisReport(query_id=query_id, error=e.to_dict())
        except Exception as e:
            logger.warning("Failed to analyze %s: %s", query_id, e)
            return AnalysisReport(
                query_id=query_id,
                error={"error_type": type(e).__name__, "message": str(e)},
            )

        return AnalysisReport(query_id=query_id, result=result)


def _as_statement(query: QuerySource) -> Select | Update | Delete | Union:
    if isinstance(query, (Select, Update, Delete, Union)):
        return query
    return parse_query(query)

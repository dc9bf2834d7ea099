"""
Advisor engine: runs a RuleSet against one query and collects the advice.

Every enabled rule runs exactly once per analysis, independently of the
others. Each rule run ends in one of three states:

- PASS: the rule completed (with or without findings)
- SKIP: the rule hit a CatalogError (unknown table or column). It could not
  be evaluated for this query and contributes no findings
- FAIL: the rule raised anything else. Logged at warning level, or raised
  as RuleError when ``fail_fast`` is set

Findings from all rules are merged in rule order, deduplicated and sorted
into canonical order (severity, rule ID, position in the query, title), so
the output is the same whether rules run on a thread pool or sequentially.
"""

from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Iterable

from queryadvisor.analyzer.models import (
    AnalysisResult,
    ExecutionMetadata,
    Finding,
    RuleRun,
    RuleRunStatus,
)
from queryadvisor.analyzer.observability import AdvisorMetrics
from queryadvisor.analyzer.rules.base import Rule, RuleContext
from queryadvisor.analyzer.ruleset import RuleSet, default_rules
from queryadvisor.config import AdvisorConfig, get_config
from queryadvisor.exceptions import CatalogError, ConfigurationError, RuleError
from queryadvisor.query.validation import validate_query

if TYPE_CHECKING:
    from queryadvisor.catalog.models import SchemaCatalog
    from queryadvisor.query.models import Statement

logger = logging.getLogger(__name__)

# Global metrics instance, shared by advisors that are not given their own
_global_metrics = AdvisorMetrics()


def get_metrics() -> AdvisorMetrics:
    """Get the global advisor metrics."""
    return _global_metrics


class Advisor:
    """
    Rule-based query advisor.

    Thread-safe: one Advisor can analyse many queries concurrently. It
    holds only the immutable RuleSet, the frozen configuration and the
    (locked) metrics collector.

    Example:
        from queryadvisor import Advisor, load_catalog, parse_query

        catalog = load_catalog("schema.yaml")
        query = parse_query("query.yaml")

        result = Advisor().analyze(query, catalog, estimated_rows=250_000)
        for finding in result.findings:
            print(f"{finding.severity.value}: {finding.title}")
    """

    def __init__(
        self,
        rules: RuleSet | Iterable[Rule] | None = None,
        config: AdvisorConfig | None = None,
        fail_fast: bool = False,
        metrics: AdvisorMetrics | None = None,
    ) -> None:
        """
        Initialize the advisor.

        Args:
            rules: Rules to run (default: default_rules())
            config: Configuration (default: get_config(), i.e. environment)
            fail_fast: Raise RuleError on the first failing rule
            metrics: Metrics collector (default: the global instance)

        Raises:
            ConfigurationError: If enabled_rules names a rule not in the set
        """
        self.config = config if config is not None else get_config()

        if rules is None:
            rule_set = default_rules()
        elif isinstance(rules, RuleSet):
            rule_set = rules
        else:
            rule_set = RuleSet(rules)

        if self.config.enabled_rules is not None:
            unknown = self.config.enabled_rules - set(rule_set.ids())
            if unknown:
                raise ConfigurationError(
                    f"Unknown rule IDs in enabled_rules: {', '.join(sorted(unknown))}",
                    config_key="enabled_rules",
                )

        self.all_rules = rule_set
        self.rules = rule_set.filter(
            include=[rid for rid in rule_set.ids() if self.config.is_rule_enabled(rid)]
        )
        self.fail_fast = fail_fast
        self.metrics = metrics if metrics is not None else _global_metrics

    def analyze(
        self,
        query: "Statement",
        catalog: "SchemaCatalog",
        estimated_rows: int | None = None,
    ) -> AnalysisResult:
        """
        Analyze one query against a catalog.

        Args:
            query: The statement to analyse
            catalog: Schema catalog (read-only, may be shared)
            estimated_rows: Caller's estimate of rows the statement touches

        Returns:
            AnalysisResult with ordered findings, rule runs and metadata

        Raises:
            MalformedQueryModel: If the query violates a structural invariant
            RuleError: If a rule fails and ``fail_fast`` is set
        """
        if estimated_rows is not None and estimated_rows < 0:
            raise ValueError(f"estimated_rows must be non-negative, got {estimated_rows}")

        start_time = time.perf_counter()
        node_count = validate_query(
            query,
            max_depth=self.config.max_predicate_depth,
            max_nodes=self.config.max_predicate_nodes,
        )

        ctx = RuleContext(
            query=query,
            catalog=catalog,
            config=self.config,
            estimated_rows=estimated_rows,
        )

        rules = list(self.rules)
        parallel = self.config.parallel and len(rules) > 1
        if parallel:
            workers = min(self.config.max_workers, len(rules))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # map() yields in submission order, keeping the merge deterministic
                outcomes = list(pool.map(lambda rule: self._run_rule(rule, ctx), rules))
        else:
            outcomes = [self._run_rule(rule, ctx) for rule in rules]

        findings: list[Finding] = []
        rule_runs: list[RuleRun] = []
        errors: list[dict[str, Any]] = []
        for rule_findings, run, error in outcomes:
            findings.extend(rule_findings)
            rule_runs.append(run)
            if error is not None:
                errors.append(error)

        return self._build_result(
            query, findings, rule_runs, errors, node_count, parallel, start_time,
        )

    def _run_rule(
        self,
        rule: Rule,
        ctx: RuleContext,
    ) -> tuple[list[Finding], RuleRun, dict[str, Any] | None]:
        """Run one rule and record its PASS / SKIP / FAIL status."""
        rule_start = time.perf_counter()
        try:
            rule_findings = rule.analyze(ctx)
        except CatalogError as e:
            runtime_ms = (time.perf_counter() - rule_start) * 1000
            logger.debug("Rule %s skipped: %s", rule.rule_id, e)
            self.metrics.record_rule_execution(rule.rule_id, RuleRunStatus.SKIP.value)
            return [], RuleRun(
                rule_id=rule.rule_id,
                version=rule.version,
                status=RuleRunStatus.SKIP,
                runtime_ms=runtime_ms,
                skip_reason=e.message,
            ), None
        except Exception as e:
            runtime_ms = (time.perf_counter() - rule_start) * 1000
            error = RuleError(rule.rule_id, rule.version, e)

            if self.fail_fast:
                raise error from e

            logger.warning("Rule %s failed: %s", rule.rule_id, e)
            self.metrics.record_rule_execution(rule.rule_id, RuleRunStatus.FAIL.value)
            return [], RuleRun(
                rule_id=rule.rule_id,
                version=rule.version,
                status=RuleRunStatus.FAIL,
                runtime_ms=runtime_ms,
                error_summary=str(e),
            ), error.to_dict()

        kept = rule_findings[: self.config.max_findings_per_rule]
        if len(kept) < len(rule_findings):
            logger.debug(
                "Rule %s produced %d findings, keeping %d",
                rule.rule_id, len(rule_findings), len(kept),
            )

        runtime_ms = (time.perf_counter() - rule_start) * 1000
        self.metrics.record_rule_execution(rule.rule_id, RuleRunStatus.PASS.value)
        return kept, RuleRun(
            rule_id=rule.rule_id,
            version=rule.version,
            status=RuleRunStatus.PASS,
            runtime_ms=runtime_ms,
            findings_count=len(kept),
        ), None

    def _build_result(
        self,
        query: "Statement",
        findings: list[Finding],
        rule_runs: list[RuleRun],
        errors: list[dict[str, Any]],
        node_count: int,
        parallel: bool,
        start_time: float,
    ) -> AnalysisResult:
        """Build the final AnalysisResult and record metrics."""
        duration_ms = (time.perf_counter() - start_time) * 1000

        skipped = len([r for r in rule_runs if r.status == RuleRunStatus.SKIP])
        failed = len([r for r in rule_runs if r.status == RuleRunStatus.FAIL])

        metadata = ExecutionMetadata(
            rules_run=len(rule_runs) - skipped,
            rules_failed=failed,
            rules_skipped=skipped,
            node_count=node_count,
            analysis_duration_ms=duration_ms,
            parallel=parallel,
        )

        result = AnalysisResult.create(
            findings=findings,
            rule_runs=rule_runs,
            errors=errors,
            metadata=metadata,
            query_kind=query.kind,
        )

        self.metrics.record_analysis(
            duration_ms=duration_ms,
            findings_count=len(result.findings),
            skipped_count=skipped,
            failed_count=failed,
        )
        logger.debug(
            "Analysed %s query: %d findings, %d rules skipped, %d failed",
            query.kind, len(result.findings), skipped, failed,
        )
        return result

    async def analyze_async(
        self,
        query: "Statement",
        catalog: "SchemaCatalog",
        estimated_rows: int | None = None,
    ) -> AnalysisResult:
        """
        Async version of analyze() for use in async applications.

        Runs the analysis in a thread pool to avoid blocking the event loop.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.analyze(query, catalog, estimated_rows),
        )


def analyze(
    query: "Statement",
    catalog: "SchemaCatalog",
    config: AdvisorConfig | None = None,
    estimated_rows: int | None = None,
) -> list[Finding]:
    """
    Analyze a query with the default rules and return the ordered findings.

    Convenience wrapper around ``Advisor(config=config).analyze(...)``.
    """
    return list(Advisor(config=config).analyze(query, catalog, estimated_rows).findings)

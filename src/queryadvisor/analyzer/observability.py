"""
Metrics for the advisor.

AdvisorMetrics is the one writable object shared between concurrent
analyses (the catalog and query are read-only), so every update goes
through its lock.

Usage:
    from queryadvisor.analyzer.observability import AdvisorMetrics

    metrics = AdvisorMetrics()
    advisor = Advisor(metrics=metrics)
    advisor.analyze(query, catalog)
    metrics.to_dict()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any


@dataclass
class AdvisorMetrics:
    """
    In-memory counters and duration samples for the advisor.

    Attributes:
        analyses_total: Completed analyses
        findings_total: Findings returned across all analyses
        rules_skipped_total: Rule runs skipped on catalog errors
        rules_failed_total: Rule runs that raised
        rule_runs: Rule executions by rule ID and status
    """

    analyses_total: int = 0
    findings_total: int = 0
    rules_skipped_total: int = 0
    rules_failed_total: int = 0
    analysis_durations_ms: list[float] = field(default_factory=list)
    rule_runs: dict[str, dict[str, int]] = field(default_factory=dict)

    # Keep only last N samples for memory efficiency
    _max_samples: int = 1000
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_analysis(
        self,
        duration_ms: float,
        findings_count: int,
        skipped_count: int,
        failed_count: int,
    ) -> None:
        """Record metrics for a completed analysis."""
        with self._lock:
            self.analyses_total += 1
            self.findings_total += findings_count
            self.rules_skipped_total += skipped_count
            self.rules_failed_total += failed_count

            self.analysis_durations_ms.append(duration_ms)
            if len(self.analysis_durations_ms) > self._max_samples:
                self.analysis_durations_ms = self.analysis_durations_ms[-self._max_samples:]

    def record_rule_execution(self, rule_id: str, status: str) -> None:
        """Record a single rule execution."""
        with self._lock:
            by_status = self.rule_runs.setdefault(rule_id, {})
            by_status[status] = by_status.get(status, 0) + 1

    @property
    def avg_duration_ms(self) -> float:
        """Average analysis duration in milliseconds."""
        with self._lock:
            samples = list(self.analysis_durations_ms)
        if not samples:
            return 0.0
        return sum(samples) / len(samples)

    @property
    def p95_duration_ms(self) -> float:
        """95th percentile analysis duration."""
        with self._lock:
            samples = sorted(self.analysis_durations_ms)
        if not samples:
            return 0.0
        idx = int(len(samples) * 0.95)
        return samples[min(idx, len(samples) - 1)]

    def reset(self) -> None:
        with self._lock:
            self.analyses_total = 0
            self.findings_total = 0
            self.rules_skipped_total = 0
            self.rules_failed_total = 0
            self.analysis_durations_ms = []
            self.rule_runs = {}

    def to_dict(self) -> dict[str, Any]:
        """Export metrics as dictionary for JSON/monitoring."""
        avg = self.avg_duration_ms
        p95 = self.p95_duration_ms
        with self._lock:
            return {
                "analyses_total": self.analyses_total,
                "findings_total": self.findings_total,
                "rules_skipped_total": self.rules_skipped_total,
                "rules_failed_total": self.rules_failed_total,
                "avg_duration_ms": avg,
                "p95_duration_ms": p95,
                "rule_runs": {k: dict(v) for k, v in self.rule_runs.items()},
            }

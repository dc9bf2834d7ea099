"""Analyzer module - rules, rule sets and the advisor engine."""

from queryadvisor.analyzer.advisor import Advisor, analyze, get_metrics
from queryadvisor.analyzer.models import (
    AnalysisResult,
    ClauseContext,
    ExecutionMetadata,
    Finding,
    RuleRun,
    RuleRunStatus,
    Severity,
    order_findings,
)
from queryadvisor.analyzer.observability import AdvisorMetrics
from queryadvisor.analyzer.rules import Rule, RuleConfig, RuleContext
from queryadvisor.analyzer.ruleset import RuleSet, default_rules

__all__ = [
    "Advisor",
    "analyze",
    "get_metrics",
    "AdvisorMetrics",
    "AnalysisResult",
    "ClauseContext",
    "ExecutionMetadata",
    "Finding",
    "RuleRun",
    "RuleRunStatus",
    "Severity",
    "order_findings",
    "Rule",
    "RuleConfig",
    "RuleContext",
    "RuleSet",
    "default_rules",
]

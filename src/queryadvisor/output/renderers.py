"""
Output renderers for different formats.

Separates presentation logic from analysis logic.
Uses schema.py Pydantic models as the single source of truth
for JSON serialization - no manual dict construction.
"""

from __future__ import annotations

import io
import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

from queryadvisor.analyzer.models import RuleRunStatus, Severity
from queryadvisor.output.schema import (
    SCHEMA_VERSION,
    AnalysisResultSchema,
    ClauseContextSchema,
    FindingSchema,
    MetadataSchema,
    RuleRunSchema,
    SummarySchema,
)

if TYPE_CHECKING:
    from queryadvisor.analyzer.models import AnalysisResult, Finding, RuleRun


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def render(result: "AnalysisResult", format: OutputFormat | str = OutputFormat.TEXT) -> str:
    """
    Render analysis result in the specified format.

    Args:
        result: Analysis result to render
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    format = OutputFormat(format)
    if format == OutputFormat.TEXT:
        return render_text(result)
    elif format == OutputFormat.JSON:
        return render_json(result)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(result)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Schema-based serialization (single source of truth)
# =============================================================================


def result_to_schema(result: "AnalysisResult") -> AnalysisResultSchema:
    """Convert AnalysisResult to the Pydantic schema model."""
    summary_dict = result.summary()

    return AnalysisResultSchema(
        version=SCHEMA_VERSION,
        query_kind=result.query_kind,
        summary=SummarySchema(
            total=summary_dict["total"],
            critical=summary_dict["critical"],
            warning=summary_dict["warning"],
            info=summary_dict["info"],
            rules_passed=summary_dict["rules_passed"],
            rules_skipped=summary_dict["rules_skipped"],
            rules_failed=summary_dict["rules_failed"],
            success_rate=summary_dict["success_rate"],
        ),
        findings=[_finding_to_schema(f) for f in result.findings],
        rule_runs=[_rule_run_to_schema(r) for r in result.rule_runs],
        metadata=MetadataSchema(
            node_count=result.metadata.node_count,
            analysis_duration_ms=result.metadata.analysis_duration_ms,
            parallel=result.metadata.parallel,
            rules_run=result.metadata.rules_run,
            rules_failed=result.metadata.rules_failed,
            rules_skipped=result.metadata.rules_skipped,
        ),
    )


def _finding_to_schema(finding: "Finding") -> FindingSchema:
    """Convert Finding to the Pydantic schema model."""
    return FindingSchema(
        rule_id=finding.rule_id,
        severity=finding.severity.value,
        title=finding.title,
        message=finding.message,
        suggestion=finding.suggestion,
        metrics=finding.metrics,
        context=ClauseContextSchema(**finding.context.to_dict()),
    )


def _rule_run_to_schema(run: "RuleRun") -> RuleRunSchema:
    """Convert RuleRun to the Pydantic schema model."""
    return RuleRunSchema(
        rule_id=run.rule_id,
        version=run.version,
        status=run.status.value,
        runtime_ms=run.runtime_ms,
        findings_count=run.findings_count,
        error_summary=run.error_summary,
        skip_reason=run.skip_reason,
    )


def result_to_dict(result: "AnalysisResult") -> dict[str, Any]:
    """Convert AnalysisResult to dictionary via the schema model."""
    return result_to_schema(result).model_dump(mode="json")


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def render_text(result: "AnalysisResult") -> str:
    """Render analysis result as plain terminal text."""
    lines: list[str] = []

    # Header
    summary = result.summary()
    lines.append("=" * 60)
    lines.append("Query Advisor Report")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"Statement: {result.query_kind.upper()}")
    lines.append("")

    # Summary
    lines.append("Summary:")
    lines.append(f"  Total Findings: {summary['total']}")
    if summary["critical"]:
        lines.append(f"  🔴 Critical: {summary['critical']}")
    if summary["warning"]:
        lines.append(f"  🟡 Warnings: {summary['warning']}")
    if summary["info"]:
        lines.append(f"  🔵 Info: {summary['info']}")
    lines.append("")

    # Rule execution status
    if result.rule_runs:
        lines.append(
            f"Rules: {summary['rules_passed']} passed, "
            f"{summary['rules_skipped']} skipped, {summary['rules_failed']} failed"
        )
        for run in result.rule_runs_by_status(RuleRunStatus.SKIP):
            lines.append(f"  skipped {run.rule_id}: {run.skip_reason}")
        for run in result.rule_runs_by_status(RuleRunStatus.FAIL):
            lines.append(f"  failed {run.rule_id}: {run.error_summary}")
        lines.append("")

    # Findings
    if result.findings:
        lines.append("-" * 60)
        lines.append("FINDINGS")
        lines.append("-" * 60)

        for i, finding in enumerate(result.findings, 1):
            lines.append("")
            lines.append(
                f"[{i}] {_severity_icon(finding.severity)} {finding.title}"
            )
            lines.append(f"    Rule: {finding.rule_id}")
            lines.append(f"    Location: {finding.context.path}")
            lines.append("")
            lines.append(f"    {finding.message}")

            if finding.suggestion:
                lines.append("")
                lines.append("    Suggestion:")
                for line in finding.suggestion.split("\n"):
                    lines.append(f"      {line}")
    else:
        lines.append("✓ No issues found")

    lines.append("")
    lines.append("=" * 60)

    return "\n".join(lines)


# =============================================================================
# JSON renderer (uses schema models)
# =============================================================================


def render_json(result: "AnalysisResult", indent: int = 2) -> str:
    """
    Render analysis result as stable JSON schema.

    Uses Pydantic schema models for guaranteed consistency.
    Suitable for API responses, CI/CD integration, log aggregation.
    """
    return json.dumps(result_to_dict(result), indent=indent, default=str)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(result: "AnalysisResult") -> str:
    """
    Render analysis result as Markdown.

    Suitable for GitHub comments/issues, Slack messages, documentation.
    """
    lines: list[str] = []

    summary = result.summary()
    lines.append("# Query Advisor Report")
    lines.append("")

    # Status badge
    if summary["critical"]:
        lines.append("🔴 **Critical issues found**")
    elif summary["warning"]:
        lines.append("🟡 **Warnings found**")
    elif summary["rules_failed"]:
        lines.append("⚠️ **Some rules failed**")
    else:
        lines.append("✅ **No issues found**")
    lines.append("")

    # Summary table
    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Statement | `{result.query_kind}` |")
    lines.append(f"| Total Findings | {summary['total']} |")
    lines.append(f"| Critical | {summary['critical']} |")
    lines.append(f"| Warnings | {summary['warning']} |")
    lines.append(f"| Info | {summary['info']} |")
    lines.append("")

    # Findings
    if result.findings:
        lines.append("## Findings")
        lines.append("")

        for i, finding in enumerate(result.findings, 1):
            lines.append(f"### {i}. {_severity_icon(finding.severity)} {finding.title}")
            lines.append("")
            lines.append(f"**Rule:** `{finding.rule_id}`  ")
            lines.append(f"**Location:** `{finding.context.path}`  ")
            lines.append("")
            lines.append(finding.message)
            lines.append("")

            if finding.suggestion:
                lines.append("**Suggestion:**")
                lines.append("")
                lines.append("```sql")
                lines.append(finding.suggestion)
                lines.append("```")
                lines.append("")

    # Rule execution (collapsible)
    if result.rule_runs:
        lines.append("<details>")
        lines.append("<summary>Rule Execution Details</summary>")
        lines.append("")
        lines.append("| Rule | Status | Runtime |")
        lines.append("|------|--------|---------|")
        for run in result.rule_runs:
            lines.append(
                f"| `{run.rule_id}` | {_STATUS_ICONS[run.status]} {run.status.value} | "
                f"{run.runtime_ms:.1f}ms |"
            )
        lines.append("")
        lines.append("</details>")
        lines.append("")

    return "\n".join(lines)


# =============================================================================
# Table renderer (rich)
# =============================================================================


def build_table(result: "AnalysisResult") -> Table:
    """Build a rich Table with one row per finding."""
    table = Table(title=f"Query Advisor: {result.query_kind.upper()}")
    table.add_column("#", justify="right")
    table.add_column("Severity")
    table.add_column("Rule", style="cyan")
    table.add_column("Location")
    table.add_column("Finding")

    for i, finding in enumerate(result.findings, 1):
        table.add_row(
            str(i),
            f"[{_SEVERITY_STYLES[finding.severity]}]{finding.severity.value}[/]",
            finding.rule_id,
            _location(finding),
            finding.title,
        )
    return table


def render_table(result: "AnalysisResult", width: int = 120) -> str:
    """Render findings as a rich table, returned as plain text."""
    console = Console(file=io.StringIO(), width=width, color_system=None, force_terminal=False)
    if result.findings:
        console.print(build_table(result))
    else:
        console.print("No issues found")
    return console.file.getvalue()


def _location(finding: "Finding") -> str:
    context = finding.context
    if context.table and context.column:
        return f"{context.clause}: {context.table}.{context.column}"
    if context.table:
        return f"{context.clause}: {context.table}"
    return context.clause


_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}

_STATUS_ICONS = {
    RuleRunStatus.PASS: "✅",
    RuleRunStatus.SKIP: "⏭️",
    RuleRunStatus.FAIL: "❌",
}


def _severity_icon(severity: Severity) -> str:
    return {
        Severity.CRITICAL: "🔴",
        Severity.WARNING: "🟡",
        Severity.INFO: "🔵",
    }[severity]

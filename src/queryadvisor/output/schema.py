"""
JSON Schema definitions for stable API output.

Provides versioned schema for:
- API responses
- CI/CD integration
- Documentation generation

The schema is stable across minor versions.
Breaking changes only in major versions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Schema version - increment on breaking changes
SCHEMA_VERSION = "1.0"


class ClauseContextSchema(BaseModel):
    """Schema for the location of a finding."""

    model_config = ConfigDict(frozen=True)

    path: list[str] = Field(..., description="Path segments from the statement root")
    clause: str = Field(..., description="Clause kind (projection, join, where, ...)")
    table: str | None = Field(None, description="Table involved, if any")
    column: str | None = Field(None, description="Column involved, if any")


class FindingSchema(BaseModel):
    """Schema for a single finding."""

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Unique rule identifier")
    severity: str = Field(..., description="Severity level (critical/warning/info)")
    title: str = Field(..., description="One-line summary")
    message: str = Field(..., description="Detailed explanation")
    suggestion: str | None = Field(None, description="Suggested rewrite or fix")
    metrics: dict[str, float] = Field(default_factory=dict, description="Quantitative data")
    context: ClauseContextSchema = Field(..., description="Location in the query")


class RuleRunSchema(BaseModel):
    """Schema for rule execution record."""

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Rule identifier")
    version: str = Field(..., description="Rule version")
    status: str = Field(..., description="Execution status (pass/skip/fail)")
    runtime_ms: float = Field(0.0, description="Execution time in milliseconds")
    findings_count: int = Field(0, description="Number of findings kept")
    error_summary: str | None = Field(None, description="Error message if failed")
    skip_reason: str | None = Field(None, description="Reason if skipped")


class MetadataSchema(BaseModel):
    """Schema for execution metadata."""

    model_config = ConfigDict(frozen=True)

    node_count: int = Field(0, description="Nodes in the query model")
    analysis_duration_ms: float | None = Field(None, description="Analysis duration")
    parallel: bool = Field(False, description="Whether rules ran on a thread pool")
    rules_run: int = Field(0, description="Rules executed")
    rules_failed: int = Field(0, description="Rules that failed")
    rules_skipped: int = Field(0, description="Rules that were skipped")


class SummarySchema(BaseModel):
    """Schema for result summary."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(0, description="Total findings count")
    critical: int = Field(0, description="Critical findings count")
    warning: int = Field(0, description="Warning findings count")
    info: int = Field(0, description="Info findings count")
    rules_passed: int = Field(0, description="Rules that passed")
    rules_skipped: int = Field(0, description="Rules that were skipped")
    rules_failed: int = Field(0, description="Rules that failed")
    success_rate: float = Field(1.0, description="Rule success rate")


class AnalysisResultSchema(BaseModel):
    """
    Top-level schema for analysis results.

    This schema is stable across minor versions.
    Breaking changes require major version bump.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field(SCHEMA_VERSION, description="Schema version")
    query_kind: str = Field(..., description="Statement kind analysed")
    summary: SummarySchema = Field(..., description="Result summary")
    findings: list[FindingSchema] = Field(default_factory=list, description="All findings, in order")
    rule_runs: list[RuleRunSchema] = Field(default_factory=list, description="Rule execution records")
    metadata: MetadataSchema = Field(..., description="Execution metadata")


def get_json_schema() -> dict[str, Any]:
    """
    Get the JSON Schema for API documentation.

    Suitable for OpenAPI/Swagger integration.
    """
    return AnalysisResultSchema.model_json_schema()

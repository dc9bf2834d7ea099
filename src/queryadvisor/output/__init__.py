"""
Output module - Separates rendering from analysis.

Design principle: Presentation ≠ domain logic.

Provides multiple output formats:
- render_text: Plain terminal output
- render_json: Stable JSON schema for APIs and CI
- render_markdown: GitHub/Slack-friendly format
- render_table: rich table of findings

Usage:
    from queryadvisor.output import render, OutputFormat

    result = advisor.analyze(query, catalog)
    print(render(result, OutputFormat.MARKDOWN))
"""

from queryadvisor.output.renderers import (
    OutputFormat,
    build_table,
    render,
    render_json,
    render_markdown,
    render_table,
    render_text,
    result_to_dict,
)
from queryadvisor.output.schema import (
    SCHEMA_VERSION,
    AnalysisResultSchema,
    FindingSchema,
    get_json_schema,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_text",
    "render_json",
    "render_markdown",
    "render_table",
    "build_table",
    "result_to_dict",
    "AnalysisResultSchema",
    "FindingSchema",
    "SCHEMA_VERSION",
    "get_json_schema",
]

"""
Package-level exception hierarchy for queryadvisor.

All exceptions inherit from QueryAdvisorError, enabling:
- Catching all queryadvisor errors with a single except clause
- Rich context fields for debugging (rule_id, table, column, etc.)
- Structured serialization via to_dict() for JSON error responses

Hierarchy:
    QueryAdvisorError
    ├── CatalogError           – Schema catalog lookup failures
    │   ├── UnknownTable       – Referenced table is not in the catalog
    │   └── UnknownColumn      – Referenced column is not in the table
    ├── AnalyzerError          – Errors during analysis orchestration
    │   ├── RuleError          – A specific rule failed during execution
    │   └── ConfigurationError – Invalid advisor configuration
    ├── MalformedQueryModel    – Query model violates a structural invariant
    └── LoadError              – Failed to load a catalog or query document
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from queryadvisor.query.path import ClausePath


class QueryAdvisorError(Exception):
    """
    Base exception for all queryadvisor errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Catalog Errors ───────────────────────────────────────────────────────


class CatalogError(QueryAdvisorError):
    """
    A schema catalog lookup failed.

    Rules let these propagate; the advisor treats them as "cannot evaluate
    this rule for this query" and records the rule as skipped.
    """
    pass


class UnknownTable(CatalogError):
    """
    Referenced table does not exist in the catalog.

    Attributes:
        table: The table name that was looked up.
    """

    def __init__(self, table: str, message: str | None = None) -> None:
        self.table = table
        super().__init__(message or f"Unknown table: {table!r}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["table"] = self.table
        return result


class UnknownColumn(CatalogError):
    """
    Referenced column does not exist (or cannot be resolved unambiguously).

    Attributes:
        table: The table the column was looked up in, if known.
        column: The column name that was looked up.
    """

    def __init__(
        self,
        column: str,
        table: str | None = None,
        message: str | None = None,
    ) -> None:
        self.table = table
        self.column = column
        if message is None:
            if table:
                message = f"Unknown column: {table}.{column}"
            else:
                message = f"Unknown column: {column!r}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["table"] = self.table
        result["column"] = self.column
        return result


# ── Analysis Errors ──────────────────────────────────────────────────────


class AnalyzerError(QueryAdvisorError):
    """Errors during analysis orchestration."""
    pass


class RuleError(AnalyzerError):
    """
    Error during rule execution.

    Captures which rule failed and optionally which clause it was processing.

    Attributes:
        rule_id: The ID of the rule that failed.
        rule_version: Version of the rule.
        path: Path to the clause being processed (if known).
        original_error: The underlying exception.
    """

    def __init__(
        self,
        rule_id: str,
        rule_version: str,
        original_error: Exception,
        path: "ClausePath | None" = None,
    ) -> None:
        self.rule_id = rule_id
        self.rule_version = rule_version
        self.path = path
        self.original_error = original_error

        context = f"Rule '{rule_id}' v{rule_version}"
        if path:
            context += f" at {path}"

        message = (
            f"{context} failed: "
            f"{original_error.__class__.__name__}: {original_error}"
        )
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output / logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "rule_id": self.rule_id,
            "rule_version": self.rule_version,
            "path": str(self.path) if self.path else None,
            "original_error_type": self.original_error.__class__.__name__,
            "original_error_message": str(self.original_error),
        }


class ConfigurationError(AnalyzerError):
    """
    Error in advisor configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


# ── Query Model Errors ───────────────────────────────────────────────────


class MalformedQueryModel(QueryAdvisorError):
    """
    The query model violates a structural invariant.

    Raised for cyclic predicate graphs, trees nested beyond the configured
    depth, or oversized trees. Fatal for the analysis of that one query only.

    Attributes:
        path: Where in the query the violation was found (if known).
    """

    def __init__(self, message: str, path: "ClausePath | None" = None) -> None:
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["path"] = str(self.path) if self.path else None
        return result


# ── Load Errors ──────────────────────────────────────────────────────────


class LoadError(QueryAdvisorError):
    """
    Failed to load a catalog or query document.

    Attributes:
        source: Where the error occurred (e.g., "json_decode", "validation").
        detail: Technical details for debugging (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "unknown",
        detail: str | None = None,
    ) -> None:
        self.source = source
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        result["detail"] = self.detail
        return result

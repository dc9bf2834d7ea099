"""
Base class for analyzer rules.

All rules must inherit from Rule and implement the analyze() method.
This ensures consistent behavior and enables contract testing.

A rule receives a RuleContext holding the query model, the schema catalog,
the advisor configuration and the caller's row estimate. It reads them and
returns findings; it never mutates any of them, and it keeps no state
between invocations, so the same instance can serve concurrent analyses.

Catalog lookups (scope resolution, index checks) raise CatalogError
subclasses when a name is missing. Rules let these propagate: the advisor
records the rule as skipped for that query.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from queryadvisor.analyzer.models import ClauseContext, Finding, Severity
from queryadvisor.config import AdvisorConfig
from queryadvisor.query.scope import ResolvedColumn, Scope

if TYPE_CHECKING:
    from queryadvisor.catalog.models import SchemaCatalog
    from queryadvisor.query.models import ColumnRef, Statement


class RuleConfig(BaseModel):
    """
    Base configuration for all rules.

    Rules can define their own config schema by subclassing this.
    All configs support 'enabled' to allow disabling rules.

    Example:
        class MyRuleConfig(RuleConfig):
            critical_multiplier: int = 100
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True


class RuleContext:
    """
    Everything a rule may read while analysing one query.

    Attributes:
        query: The statement under analysis
        catalog: Schema catalog (read-only)
        config: Advisor configuration (thresholds, per-rule settings)
        estimated_rows: Caller-supplied row estimate for the statement, if any
    """

    def __init__(
        self,
        query: "Statement",
        catalog: "SchemaCatalog",
        config: AdvisorConfig | None = None,
        estimated_rows: int | None = None,
    ) -> None:
        self.query = query
        self.catalog = catalog
        self.config = config or AdvisorConfig()
        self.estimated_rows = estimated_rows

    def resolve(self, scope: Scope, column: "ColumnRef") -> ResolvedColumn:
        """Resolve a column reference in ``scope`` (raises CatalogError)."""
        return scope.resolve(column, self.catalog)

    def is_indexed(self, table: str, *columns: str) -> bool:
        """True if some index serves a lookup on ``columns`` of ``table``."""
        return self.catalog.index_exists(table, list(columns))

    def is_resolved_indexed(self, resolved: ResolvedColumn) -> bool:
        return self.catalog.index_exists(resolved.table, [resolved.column])


class Rule(ABC):
    """
    Abstract base class for analyzer rules.

    Each rule detects one class of problem in a query model.
    Rules should be:
    - Deterministic: Same input always produces same output
    - Fast: O(n) in the size of the query model
    - Focused: One rule, one concern

    Attributes:
        rule_id: Unique identifier, UPPER_SNAKE_CASE (e.g., "UNINDEXED_JOIN")
        version: Semver string, bump when detection logic changes
        severity: Default severity for findings from this rule
        description: One-line description for documentation
        config_schema: Pydantic model for rule configuration (default: RuleConfig)

    Thresholds:
        ``threshold(ctx, name)`` looks a knob up in the advisor config's
        per-rule thresholds first, then the advisor config's global field of
        the same name, then this rule's own config.

    Example:
        class UnindexedJoinConfig(RuleConfig):
            critical_multiplier: int = 100

        class UnindexedJoin(Rule):
            rule_id = "UNINDEXED_JOIN"
            severity = Severity.INFO
            config_schema = UnindexedJoinConfig

            def analyze(self, ctx: RuleContext) -> list[Finding]:
                ...
    """

    # Subclasses must define these
    rule_id: str
    version: str = "1.0.0"
    severity: Severity
    description: str = ""

    # Configuration schema (subclasses can override)
    config_schema: type[RuleConfig] = RuleConfig

    def __init__(self, config: RuleConfig | dict[str, Any] | None = None) -> None:
        """
        Initialize the rule with configuration.

        Args:
            config: Configuration as RuleConfig instance, dict, or None for defaults.
                    If dict, it's validated against config_schema.
        """
        if config is None:
            self.config = self.config_schema()
        elif isinstance(config, dict):
            self.config = self.config_schema(**config)
        else:
            self.config = config

    @abstractmethod
    def analyze(self, ctx: RuleContext) -> list[Finding]:
        """
        Analyze a query and return findings.

        Args:
            ctx: The query, catalog, configuration and row estimate

        Returns:
            List of findings, or empty list if no issues detected.
            Findings should use self.severity unless there's a reason
            to override (e.g., escalate for a large row estimate).

        Raises:
            CatalogError: A name the rule needs is missing from the catalog
        """

    def threshold(self, ctx: RuleContext, name: str) -> Any:
        """Resolve a threshold for this rule (see class docstring)."""
        return ctx.config.get_rule_threshold(
            self.rule_id, name, getattr(self.config, name, None)
        )

    def finding(
        self,
        context: ClauseContext,
        title: str,
        message: str,
        suggestion: str | None = None,
        severity: Severity | None = None,
        metrics: dict[str, int | float] | None = None,
    ) -> Finding:
        """Build a Finding stamped with this rule's id and default severity."""
        return Finding(
            rule_id=self.rule_id,
            severity=severity or self.severity,
            context=context,
            title=title,
            message=message,
            suggestion=suggestion,
            metrics=metrics or {},
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rule_id={self.rule_id!r}, version={self.version!r})"


def index_name(table: str, *columns: str) -> str:
    """Conventional name for a suggested index."""
    return "idx_" + "_".join((table,) + columns).lower().replace(".", "_")


def create_index_sql(table: str, *columns: str) -> str:
    return f"CREATE INDEX {index_name(table, *columns)} ON {table} ({', '.join(columns)});"

"""queryadvisor - Rule-based SQL query advisor over an abstract query model and schema catalog."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from queryadvisor.exceptions import (
    QueryAdvisorError,
    CatalogError,
    UnknownTable,
    UnknownColumn,
    AnalyzerError,
    RuleError,
    ConfigurationError,
    MalformedQueryModel,
    LoadError,
)

# Schema catalog
from queryadvisor.catalog import Column, Index, SchemaCatalog, Table

# Query model
from queryadvisor.query import (
    And,
    ClausePath,
    ColumnRef,
    Comparison,
    Delete,
    Exists,
    FunctionCall,
    In,
    JoinClause,
    JoinKind,
    Or,
    OrderItem,
    QueryModel,
    Select,
    Statement,
    TableRef,
    Union,
    Update,
    validate_query,
)

# Public API exports
from queryadvisor.analyzer import (
    Advisor,
    AdvisorMetrics,
    AnalysisResult,
    ClauseContext,
    ExecutionMetadata,
    Finding,
    Rule,
    RuleConfig,
    RuleContext,
    RuleRun,
    RuleRunStatus,
    RuleSet,
    Severity,
    analyze,
    default_rules,
)
from queryadvisor.config import AdvisorConfig, get_config, reset_config
from queryadvisor.engine import AnalysisReport, AnalysisService, BatchReport
from queryadvisor.loader import load_catalog, parse_query
from queryadvisor.output import OutputFormat, render, render_table

__all__ = [
    "__version__",
    # Exceptions
    "QueryAdvisorError",
    "CatalogError",
    "UnknownTable",
    "UnknownColumn",
    "AnalyzerError",
    "RuleError",
    "ConfigurationError",
    "MalformedQueryModel",
    "LoadError",
    # Catalog
    "Column",
    "Index",
    "SchemaCatalog",
    "Table",
    # Query model
    "And",
    "ClausePath",
    "ColumnRef",
    "Comparison",
    "Delete",
    "Exists",
    "FunctionCall",
    "In",
    "JoinClause",
    "JoinKind",
    "Or",
    "OrderItem",
    "QueryModel",
    "Select",
    "Statement",
    "TableRef",
    "Union",
    "Update",
    "validate_query",
    # Analysis
    "Advisor",
    "AdvisorMetrics",
    "AnalysisResult",
    "ClauseContext",
    "ExecutionMetadata",
    "Finding",
    "Rule",
    "RuleConfig",
    "RuleContext",
    "RuleRun",
    "RuleRunStatus",
    "RuleSet",
    "Severity",
    "analyze",
    "default_rules",
    # Config
    "AdvisorConfig",
    "get_config",
    "reset_config",
    # Orchestration
    "AnalysisService",
    "AnalysisReport",
    "BatchReport",
    # Loading and output
    "load_catalog",
    "parse_query",
    "OutputFormat",
    "render",
    "render_table",
]

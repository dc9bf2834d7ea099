"""Query model - the abstract, already-parsed representation of one statement."""

from queryadvisor.query.models import (
    And,
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
    Predicate,
    QueryModel,
    Select,
    Statement,
    TableRef,
    Union,
    Update,
    render_value,
)
from queryadvisor.query.path import ClausePath
from queryadvisor.query.scope import ResolvedColumn, Scope
from queryadvisor.query.validation import validate_query
from queryadvisor.query.walk import (
    PredicateSite,
    SelectRole,
    SelectSite,
    iter_comparisons,
    iter_predicate_sites,
    iter_predicates,
    iter_selects,
)

__all__ = [
    # Statements
    "QueryModel",
    "Statement",
    "Select",
    "Update",
    "Delete",
    "Union",
    "TableRef",
    "JoinClause",
    "JoinKind",
    "OrderItem",
    # Predicates
    "Predicate",
    "Comparison",
    "And",
    "Or",
    "Exists",
    "In",
    # Operands
    "ColumnRef",
    "FunctionCall",
    "render_value",
    # Navigation
    "ClausePath",
    "Scope",
    "ResolvedColumn",
    "PredicateSite",
    "SelectRole",
    "SelectSite",
    "iter_comparisons",
    "iter_predicate_sites",
    "iter_predicates",
    "iter_selects",
    # Validation
    "validate_query",
]

"""
Structural validation of query models.

Pydantic enforces field-level shape when a model is built. What it cannot
enforce is that the predicate structure is a tree: a model assembled with
``model_construct()`` or by a buggy adapter can point back at one of its
own ancestors, and every recursive rule would then loop forever. This
module walks the structure iteratively, so it cannot overflow the stack
itself, and rejects:

- nodes that are not part of the closed query-model variant,
- cycles (a node reachable from itself),
- trees nested deeper than ``max_depth``,
- trees with more than ``max_nodes`` nodes.
"""

from __future__ import annotations

import logging
from typing import Any

from queryadvisor.exceptions import MalformedQueryModel
from queryadvisor.query.models import (
    And,
    Comparison,
    Delete,
    Exists,
    FunctionCall,
    In,
    Or,
    Select,
    Union,
    Update,
)
from queryadvisor.query.path import ClausePath
from queryadvisor.query.walk import child_nodes

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100
DEFAULT_MAX_NODES = 10_000

_STATEMENTS = (Select, Update, Delete, Union)
_NODES = _STATEMENTS + (Comparison, And, Or, Exists, In, FunctionCall)


def validate_query(
    query: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> int:
    """
    Check the structural invariants of a query model.

    Args:
        query: Statement to validate
        max_depth: Maximum nesting depth of statements/predicates
        max_nodes: Maximum number of nodes in the whole statement

    Returns:
        Number of nodes visited

    Raises:
        MalformedQueryModel: If any invariant is violated
    """
    if not isinstance(query, _STATEMENTS):
        raise MalformedQueryModel(
            f"Expected a Select, Update, Delete or Union statement, "
            f"got {type(query).__name__}"
        )

    # Stack entries: (node, path, depth, exiting). Exit markers pop the
    # node off the ancestor set once its subtree is done.
    stack: list[tuple[Any, ClausePath, int, bool]] = [(query, ClausePath.root(), 0, False)]
    ancestors: set[int] = set()
    visited = 0

    while stack:
        node, path, depth, exiting = stack.pop()
        if exiting:
            ancestors.discard(id(node))
            continue

        if not isinstance(node, _NODES):
            raise MalformedQueryModel(
                f"Unexpected {type(node).__name__} in query model", path=path,
            )
        if id(node) in ancestors:
            raise MalformedQueryModel(
                f"Cyclic query model: {type(node).__name__} at {path} "
                f"contains itself",
                path=path,
            )
        if depth > max_depth:
            raise MalformedQueryModel(
                f"Query model too deeply nested (>{max_depth} levels)", path=path,
            )

        visited += 1
        if visited > max_nodes:
            raise MalformedQueryModel(
                f"Query model too large (>{max_nodes:,} nodes)", path=path,
            )

        ancestors.add(id(node))
        stack.append((node, path, depth, True))
        for child, child_path in reversed(child_nodes(node, path)):
            stack.append((child, child_path, depth + 1, False))

    logger.debug("Validated %s with %d nodes", type(query).__name__, visited)
    return visited

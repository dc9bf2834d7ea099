"""
Traversal helpers over the query model.

These are the canonical way for rules to visit statements and predicates:
each visited node comes with its ClausePath and the Scope its column
references resolve in. Traversal order is the textual order of the
statement, so findings built from it inherit a stable position.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

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
from queryadvisor.query.scope import Scope


class SelectRole(str, Enum):
    """Where a SELECT sits in the statement."""

    TOP = "top"                   # the statement itself
    UNION_MEMBER = "union_member"  # one branch of a top-level UNION
    EXISTS = "exists"             # body of an EXISTS subquery
    IN = "in"                     # body of an IN subquery


@dataclass(frozen=True)
class SelectSite:
    """A SELECT found in the statement, with its location and scope."""

    select: Select
    path: ClausePath
    scope: Scope
    role: SelectRole

    @property
    def is_outer(self) -> bool:
        """True for selects whose rows reach the client."""
        return self.role in (SelectRole.TOP, SelectRole.UNION_MEMBER)


@dataclass(frozen=True)
class PredicateSite:
    """A predicate node found in the statement, with its location and scope."""

    node: Any
    path: ClausePath
    scope: Scope


def iter_predicates(
    predicate: Any,
    path: ClausePath,
) -> Iterator[tuple[ClausePath, Any]]:
    """
    Yield (path, node) for a predicate tree in preorder.

    Descends through And/Or only; subquery bodies are separate statements
    and are visited by iter_selects().
    """
    yield path, predicate
    if isinstance(predicate, (And, Or)):
        for i, arg in enumerate(predicate.args):
            yield from iter_predicates(arg, path.child("args", i))


def iter_selects(
    query: Any,
    path: ClausePath | None = None,
) -> Iterator[SelectSite]:
    """
    Yield every SELECT in a statement, outer queries before their subqueries.

    Example:
        for site in iter_selects(query):
            if site.is_outer and site.select.projects_all:
                ...
    """
    path = path or ClausePath.root()

    if isinstance(query, Select):
        yield from _walk_select(query, path, Scope.of(query.table_refs()), SelectRole.TOP)
    elif isinstance(query, Union):
        for i, member in enumerate(query.queries):
            member_path = path.child("queries", i)
            yield from _walk_select(
                member, member_path, Scope.of(member.table_refs()), SelectRole.UNION_MEMBER,
            )
    elif isinstance(query, (Update, Delete)):
        if query.where is not None:
            scope = Scope.of([query.table])
            yield from _walk_subqueries(query.where, path.child("where"), scope)
    else:
        raise TypeError(f"Unsupported query model: {type(query).__name__}")


def _walk_select(
    select: Select,
    path: ClausePath,
    scope: Scope,
    role: SelectRole,
) -> Iterator[SelectSite]:
    yield SelectSite(select=select, path=path, scope=scope, role=role)
    if select.where is not None:
        yield from _walk_subqueries(select.where, path.child("where"), scope)


def _walk_subqueries(
    predicate: Any,
    path: ClausePath,
    scope: Scope,
) -> Iterator[SelectSite]:
    for node_path, node in iter_predicates(predicate, path):
        if isinstance(node, (Exists, In)):
            sub = node.subquery
            role = SelectRole.EXISTS if isinstance(node, Exists) else SelectRole.IN
            yield from _walk_select(
                sub, node_path.child("subquery"), scope.child(sub.table_refs()), role,
            )


def iter_predicate_sites(query: Any) -> Iterator[PredicateSite]:
    """
    Yield every predicate node of a statement, including subquery predicates.

    Covers SELECT (and each UNION branch and subquery) WHERE clauses as well
    as UPDATE / DELETE WHERE clauses.
    """
    if isinstance(query, (Update, Delete)) and query.where is not None:
        scope = Scope.of([query.table])
        for node_path, node in iter_predicates(query.where, ClausePath.root().child("where")):
            yield PredicateSite(node=node, path=node_path, scope=scope)

    for site in iter_selects(query):
        if site.select.where is None:
            continue
        for node_path, node in iter_predicates(site.select.where, site.path.child("where")):
            yield PredicateSite(node=node, path=node_path, scope=site.scope)


def iter_comparisons(query: Any) -> Iterator[PredicateSite]:
    """Shortcut: only the Comparison nodes of iter_predicate_sites()."""
    for site in iter_predicate_sites(query):
        if isinstance(site.node, Comparison):
            yield site


def child_nodes(node: Any, path: ClausePath) -> list[tuple[Any, ClausePath]]:
    """
    Structural children of any query-model node.

    Used by validation, which must not assume the graph is a tree.
    """
    children: list[tuple[Any, ClausePath]] = []
    if isinstance(node, Union):
        children.extend(
            (member, path.child("queries", i)) for i, member in enumerate(node.queries)
        )
    elif isinstance(node, Select):
        if node.projection != "*":
            children.extend(
                (item, path.child("projection", i))
                for i, item in enumerate(node.projection)
                if isinstance(item, FunctionCall)
            )
        if node.where is not None:
            children.append((node.where, path.child("where")))
    elif isinstance(node, (Update, Delete)):
        if node.where is not None:
            children.append((node.where, path.child("where")))
    elif isinstance(node, (And, Or)):
        children.extend((arg, path.child("args", i)) for i, arg in enumerate(node.args))
    elif isinstance(node, (Exists, In)):
        children.append((node.subquery, path.child("subquery")))
    elif isinstance(node, Comparison):
        if isinstance(node.column, FunctionCall):
            children.append((node.column, path.child("column")))
        if isinstance(node.value, FunctionCall):
            children.append((node.value, path.child("value")))
    elif isinstance(node, FunctionCall):
        children.extend(
            (arg, path.child("args", i))
            for i, arg in enumerate(node.args)
            if isinstance(arg, FunctionCall)
        )
    return children

"""
Name resolution for column references.

A Scope maps the names a statement uses for its tables (alias, or the table
name when there is no alias) to catalog table names. Subqueries get a child
scope whose parent is the enclosing statement's scope, so correlated
references resolve outward.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from queryadvisor.exceptions import UnknownColumn, UnknownTable

if TYPE_CHECKING:
    from queryadvisor.catalog.models import SchemaCatalog
    from queryadvisor.query.models import ColumnRef, TableRef


@dataclass(frozen=True)
class ResolvedColumn:
    """A column reference resolved to a catalog table."""

    table: str
    column: str
    local: bool = True  # False when resolved through an enclosing scope
    ref: str | None = field(default=None, compare=False)  # alias or name matched

    def __str__(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True)
class Scope:
    """
    Tables visible to one statement, in query order.

    Example:
        scope = Scope.of([TableRef(name="users", alias="u"),
                          TableRef(name="orders")])
        scope.resolve(ColumnRef(table="u", column="id"), catalog)
        # ResolvedColumn(table="users", column="id")
    """

    tables: tuple[tuple[str, str], ...] = ()  # (ref_name, table_name)
    parent: "Scope | None" = field(default=None, compare=False)

    @classmethod
    def of(cls, refs: Iterable["TableRef"], parent: "Scope | None" = None) -> "Scope":
        return cls(
            tables=tuple((ref.ref_name, ref.name) for ref in refs),
            parent=parent,
        )

    def child(self, refs: Iterable["TableRef"]) -> "Scope":
        return Scope.of(refs, parent=self)

    def table_names(self) -> tuple[str, ...]:
        return tuple(name for _, name in self.tables)

    def lookup(self, ref_name: str) -> str | None:
        """Table name for an alias or table name visible in this scope only."""
        entry = self._entry(ref_name)
        return entry[1] if entry is not None else None

    def _entry(self, ref_name: str) -> tuple[str, str] | None:
        key = ref_name.lower()
        for alias, name in self.tables:
            if alias.lower() == key:
                return alias, name
        # A table may be referenced by its real name even when aliased
        for alias, name in self.tables:
            if name.lower() == key:
                return alias, name
        return None

    def resolve(self, column: "ColumnRef", catalog: "SchemaCatalog") -> ResolvedColumn:
        """
        Resolve a column reference to (table, column).

        Qualified references are looked up by alias/name, innermost scope
        first. Unqualified references are resolved against the catalog: the
        column must belong to exactly one visible table of the innermost scope
        that has it.

        Raises:
            UnknownTable: A visible table is missing from the catalog
            UnknownColumn: The column cannot be resolved, or is ambiguous
        """
        if column.table:
            scope: Scope | None = self
            local = True
            while scope is not None:
                entry = scope._entry(column.table)
                if entry is not None:
                    ref, name = entry
                    catalog.column(name, column.column)
                    return ResolvedColumn(name, column.column, local, ref)
                scope = scope.parent
                local = False
            # Not in FROM/JOIN: treat the qualifier as a table name
            if not catalog.has_table(column.table):
                raise UnknownTable(column.table)
            catalog.column(column.table, column.column)
            return ResolvedColumn(column.table, column.column, False, column.table)

        scope = self
        local = True
        while scope is not None:
            matches = [
                (ref, name) for ref, name in scope.tables
                if catalog.table(name).has_column(column.column)
            ]
            if len(matches) == 1:
                ref, name = matches[0]
                return ResolvedColumn(name, column.column, local, ref)
            if len(matches) > 1:
                raise UnknownColumn(
                    column.column,
                    message=(
                        f"Ambiguous column {column.column!r}: present in "
                        f"{', '.join(sorted({name for _, name in matches}))}"
                    ),
                )
            scope = scope.parent
            local = False

        only = self.table_names()
        raise UnknownColumn(column.column, table=only[0] if len(only) == 1 else None)

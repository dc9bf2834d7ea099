"""Schema catalog - table, column and index metadata consulted by rules."""

from queryadvisor.catalog.models import Column, Index, SchemaCatalog, Table

__all__ = [
    "Column",
    "Index",
    "SchemaCatalog",
    "Table",
]

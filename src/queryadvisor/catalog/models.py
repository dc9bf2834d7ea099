"""
Pydantic models for schema catalog metadata.

The catalog is the advisor's only knowledge of the database: tables, their
columns and their indexes. It is loaded once per analysis session by an
external schema loader (information_schema dump, config file, ...) and is
read-only for the duration of a run, so a single instance can be shared by
any number of concurrent analyses.

Identifiers are matched case-insensitively, as unquoted SQL identifiers are.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

from queryadvisor.exceptions import UnknownColumn, UnknownTable


def _norm(name: str) -> str:
    return name.lower()


class Column(BaseModel):
    """A single column of a table."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Column name")
    type: str = Field(default="unknown", description="Declared SQL type")
    nullable: bool = Field(default=True, description="Whether NULLs are allowed")


class Index(BaseModel):
    """
    An index over one or more columns, in key order.

    Key order matters: a composite index on (a, b, c) serves lookups on
    (a) and (a, b), never on (b) alone.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Index name, if known")
    columns: tuple[str, ...] = Field(..., min_length=1, description="Key columns in order")
    unique: bool = Field(default=False, description="Whether the index enforces uniqueness")

    def serves(self, columns: Sequence[str]) -> bool:
        """Check whether ``columns`` is a leftmost prefix of this index's key."""
        if not columns or len(columns) > len(self.columns):
            return False
        return all(
            _norm(wanted) == _norm(have)
            for wanted, have in zip(columns, self.columns)
        )


class Table(BaseModel):
    """
    Table metadata: ordered columns, indexes and an optional primary key.

    The primary key is treated as a unique index for every lookup.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Table name")
    columns: tuple[Column, ...] = Field(default_factory=tuple, description="Columns in order")
    indexes: tuple[Index, ...] = Field(default_factory=tuple, description="Secondary indexes")
    primary_key: tuple[str, ...] = Field(default_factory=tuple, description="Primary key columns")

    @model_validator(mode="after")
    def _check_references(self) -> "Table":
        seen: set[str] = set()
        for column in self.columns:
            key = _norm(column.name)
            if key in seen:
                raise ValueError(
                    f"Duplicate column {column.name!r} in table {self.name!r}"
                )
            seen.add(key)

        for index in self.all_indexes():
            for name in index.columns:
                if _norm(name) not in seen:
                    label = index.name or ", ".join(index.columns)
                    raise ValueError(
                        f"Index ({label}) on table {self.name!r} references "
                        f"unknown column {name!r}"
                    )
        return self

    def all_indexes(self) -> tuple[Index, ...]:
        """Secondary indexes plus the primary key (as a unique index)."""
        if not self.primary_key:
            return self.indexes
        pk = Index(name=f"{self.name}_pkey", columns=self.primary_key, unique=True)
        return (pk,) + self.indexes

    def get_column(self, name: str) -> Column:
        key = _norm(name)
        for column in self.columns:
            if _norm(column.name) == key:
                return column
        raise UnknownColumn(name, table=self.name)

    def has_column(self, name: str) -> bool:
        key = _norm(name)
        return any(_norm(c.name) == key for c in self.columns)

    def index_exists(self, columns: Sequence[str]) -> bool:
        return any(index.serves(columns) for index in self.all_indexes())

    def unique_indexes(self) -> tuple[Index, ...]:
        return tuple(i for i in self.all_indexes() if i.unique)


class SchemaCatalog(BaseModel):
    """
    Mapping from table name to table metadata.

    Example:
        catalog = SchemaCatalog.from_tables([
            Table(
                name="orders",
                columns=(Column(name="id", type="bigint", nullable=False),
                         Column(name="user_id", type="bigint")),
                primary_key=("id",),
            ),
        ])

        catalog.index_exists("orders", ["id"])       # True
        catalog.index_exists("orders", ["user_id"])  # False
    """

    model_config = ConfigDict(frozen=True)

    tables: dict[str, Table] = Field(default_factory=dict, description="Tables by name")

    @model_validator(mode="after")
    def _check_names(self) -> "SchemaCatalog":
        seen: set[str] = set()
        for key, table in self.tables.items():
            if _norm(key) != _norm(table.name):
                raise ValueError(
                    f"Catalog key {key!r} does not match table name {table.name!r}"
                )
            if _norm(key) in seen:
                raise ValueError(f"Duplicate table {table.name!r} in catalog")
            seen.add(_norm(key))
        return self

    @classmethod
    def from_tables(cls, tables: Iterable[Table]) -> "SchemaCatalog":
        return cls(tables={t.name: t for t in tables})

    def table(self, name: str) -> Table:
        """
        Look up a table by name.

        Raises:
            UnknownTable: If the table is not in the catalog
        """
        found = self.tables.get(name)
        if found is not None:
            return found
        key = _norm(name)
        for table_name, table in self.tables.items():
            if _norm(table_name) == key:
                return table
        raise UnknownTable(name)

    def has_table(self, name: str) -> bool:
        try:
            self.table(name)
        except UnknownTable:
            return False
        return True

    def column(self, table: str, column: str) -> Column:
        """
        Look up a column.

        Raises:
            UnknownTable: If the table is not in the catalog
            UnknownColumn: If the table has no such column
        """
        return self.table(table).get_column(column)

    def has_column(self, table: str, column: str) -> bool:
        try:
            self.column(table, column)
        except (UnknownTable, UnknownColumn):
            return False
        return True

    def column_type(self, table: str, column: str) -> str:
        """Declared type of a column (raises UnknownTable / UnknownColumn)."""
        return self.column(table, column).type

    def index_exists(self, table: str, columns: Sequence[str]) -> bool:
        """
        Check whether some index can serve a lookup on ``columns``.

        Uses leftmost-prefix semantics: the looked-up columns must be a
        leading prefix of an index's key columns. Every column is validated
        against the table first.

        Raises:
            UnknownTable: If the table is not in the catalog
            UnknownColumn: If one of the columns is not in the table
        """
        tbl = self.table(table)
        for name in columns:
            tbl.get_column(name)
        return tbl.index_exists(columns)

    def unique_indexes(self, table: str) -> tuple[Index, ...]:
        return self.table(table).unique_indexes()

    def iter_tables(self) -> Iterator[Table]:
        return iter(self.tables.values())

    def __len__(self) -> int:
        return len(self.tables)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_table(name)

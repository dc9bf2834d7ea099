"""
Pydantic models for the abstract query representation.

These models are what an external SQL parser produces and what every rule
reads. The structure is:
- QueryModel: closed tagged variant over Select / Update / Delete / Union
- Predicate: closed tagged variant over Comparison / And / Or / Exists / In
- Operands: ColumnRef, FunctionCall, or plain literals

Both variants are discriminated on the ``kind`` field, so documents loaded
from JSON/YAML must carry it on every statement and predicate node. Models
are frozen: a query is constructed once and read-only during analysis.

Column and table references also accept their text form for convenience:
``"orders.user_id"`` for a column, ``"orders"`` or ``"orders o"`` for a table.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Iterator, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# Functions that collapse a result set to a single row when used without GROUP BY
AGGREGATE_FUNCTIONS = frozenset({
    "count", "sum", "avg", "min", "max",
    "array_agg", "string_agg", "group_concat", "bool_and", "bool_or",
})


def _coerce_column(value: Any) -> Any:
    if isinstance(value, str):
        return ColumnRef.parse(value)
    return value


def _coerce_table(value: Any) -> Any:
    if isinstance(value, str):
        return TableRef.parse(value)
    return value


class JoinKind(str, Enum):
    """Join kinds. Everything except INNER preserves unmatched rows."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"

    @property
    def is_outer(self) -> bool:
        return self is not JoinKind.INNER


# =============================================================================
# Operands
# =============================================================================


class ColumnRef(BaseModel):
    """
    Reference to a column, optionally qualified by a table name or alias.

    A column of ``*`` is a wildcard (``SELECT *`` or ``SELECT orders.*``).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["column"] = "column"
    column: str = Field(..., min_length=1)
    table: str | None = Field(default=None, description="Table name or alias")

    @classmethod
    def parse(cls, text: str) -> "ColumnRef":
        """Build from ``"column"`` or ``"table.column"``."""
        table, sep, column = text.strip().rpartition(".")
        if not sep:
            return cls(column=column)
        return cls(table=table, column=column)

    @property
    def is_wildcard(self) -> bool:
        return self.column == "*"

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}.{self.column}"
        return self.column


class FunctionCall(BaseModel):
    """A function applied to operands, e.g. ``lower(users.email)``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["function"] = "function"
    name: str = Field(..., min_length=1)
    args: tuple[ColumnRef | FunctionCall | str | int | float | bool | None, ...] = Field(
        default_factory=tuple,
    )

    @property
    def is_aggregate(self) -> bool:
        return self.name.lower() in AGGREGATE_FUNCTIONS

    def column_refs(self) -> Iterator[ColumnRef]:
        """All column references among the arguments, at any depth."""
        for arg in self.args:
            if isinstance(arg, ColumnRef):
                yield arg
            elif isinstance(arg, FunctionCall):
                yield from arg.column_refs()

    def __str__(self) -> str:
        rendered = []
        for arg in self.args:
            if isinstance(arg, (ColumnRef, FunctionCall)):
                rendered.append(str(arg))
            else:
                rendered.append(_render_literal(arg))
        return f"{self.name}({', '.join(rendered)})"


ColumnField = Annotated[ColumnRef, BeforeValidator(_coerce_column)]
# Strings on the value side of a comparison stay literals; only operands are coerced.
Operand = Annotated[ColumnRef | FunctionCall, BeforeValidator(_coerce_column)]
Scalar = str | int | float | bool | None
Value = ColumnRef | FunctionCall | tuple[Scalar, ...] | Scalar


def _render_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    if isinstance(value, tuple):
        return "(" + ", ".join(_render_literal(v) for v in value) + ")"
    return str(value)


def render_value(value: Any) -> str:
    """Render an operand or literal as SQL text."""
    if isinstance(value, (ColumnRef, FunctionCall)):
        return str(value)
    return _render_literal(value)


# =============================================================================
# Predicates
# =============================================================================


class Comparison(BaseModel):
    """
    ``<column> <operator> <value>``.

    The left side is a column, or a function call wrapping one
    (``lower(email) = 'x'``). The right side is a literal, a list of
    literals, another column, or a function call.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["comparison"] = "comparison"
    column: Operand
    operator: str = Field(default="=", min_length=1)
    value: Value = None

    @property
    def normalized_operator(self) -> str:
        return " ".join(self.operator.upper().split())

    @property
    def is_null_test(self) -> bool:
        op = self.normalized_operator
        return op == "IS NULL" or (
            op in {"IS", "IS NOT DISTINCT FROM"} and self.value is None
        )

    def __str__(self) -> str:
        op = self.normalized_operator
        if op in {"IS NULL", "IS NOT NULL"}:
            return f"{self.column} {op}"
        return f"{self.column} {op} {render_value(self.value)}"


class And(BaseModel):
    """Conjunction of one or more predicates."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["and"] = "and"
    args: tuple[Predicate, ...] = Field(..., min_length=1)


class Or(BaseModel):
    """Disjunction of one or more predicates."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["or"] = "or"
    args: tuple[Predicate, ...] = Field(..., min_length=1)


class Exists(BaseModel):
    """``[NOT] EXISTS (<subquery>)``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["exists"] = "exists"
    subquery: Select
    negated: bool = False


class In(BaseModel):
    """``<column> [NOT] IN (<subquery>)``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["in"] = "in"
    column: ColumnField
    subquery: Select
    negated: bool = False


Predicate = Annotated[
    Comparison | And | Or | Exists | In,
    Field(discriminator="kind"),
]


# =============================================================================
# Statements
# =============================================================================


class TableRef(BaseModel):
    """A table in FROM / JOIN / UPDATE / DELETE, with an optional alias."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    alias: str | None = None

    @classmethod
    def parse(cls, text: str) -> "TableRef":
        """Build from ``"orders"``, ``"orders o"`` or ``"orders AS o"``."""
        parts = text.split()
        if len(parts) == 1:
            return cls(name=parts[0])
        if len(parts) == 2:
            return cls(name=parts[0], alias=parts[1])
        if len(parts) == 3 and parts[1].lower() == "as":
            return cls(name=parts[0], alias=parts[2])
        raise ValueError(f"Cannot parse table reference: {text!r}")

    @property
    def ref_name(self) -> str:
        """Name the rest of the query uses to refer to this table."""
        return self.alias or self.name

    def __str__(self) -> str:
        if self.alias:
            return f"{self.name} {self.alias}"
        return self.name


TableField = Annotated[TableRef, BeforeValidator(_coerce_table)]


class JoinClause(BaseModel):
    """``<kind> JOIN <table> ON <left> = <right>``."""

    model_config = ConfigDict(frozen=True)

    table: TableField
    left: ColumnField
    right: ColumnField
    kind: JoinKind = JoinKind.INNER


class OrderItem(BaseModel):
    """One ORDER BY key."""

    model_config = ConfigDict(frozen=True)

    column: ColumnField
    descending: bool = False


def _coerce_order_item(value: Any) -> Any:
    if isinstance(value, (str, ColumnRef)):
        return {"column": value}
    return value


OrderField = Annotated[OrderItem, BeforeValidator(_coerce_order_item)]
ProjectionItem = Annotated[ColumnRef | FunctionCall, BeforeValidator(_coerce_column)]


class Select(BaseModel):
    """
    A SELECT statement.

    ``projection`` is either the ``"*"`` marker or the projected items.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["select"] = "select"
    table: TableField | None = None
    projection: Literal["*"] | tuple[ProjectionItem, ...] = "*"
    joins: tuple[JoinClause, ...] = Field(default_factory=tuple)
    where: Predicate | None = None
    group_by: tuple[ColumnField, ...] = Field(default_factory=tuple)
    order_by: tuple[OrderField, ...] = Field(default_factory=tuple)
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)
    distinct: bool = False

    @property
    def projects_all(self) -> bool:
        """True for ``SELECT *`` and for any ``table.*`` item."""
        if self.projection == "*":
            return True
        return any(
            isinstance(item, ColumnRef) and item.is_wildcard
            for item in self.projection
        )

    @property
    def is_aggregate_only(self) -> bool:
        """True when every projected item is an aggregate and there is no GROUP BY."""
        if self.group_by or self.projection == "*" or not self.projection:
            return False
        return all(
            isinstance(item, FunctionCall) and item.is_aggregate
            for item in self.projection
        )

    def table_refs(self) -> tuple[TableRef, ...]:
        """FROM table followed by joined tables, in query order."""
        refs: list[TableRef] = []
        if self.table is not None:
            refs.append(self.table)
        refs.extend(join.table for join in self.joins)
        return tuple(refs)


class Update(BaseModel):
    """An UPDATE statement."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["update"] = "update"
    table: TableField
    assignments: dict[str, Any] = Field(default_factory=dict)
    where: Predicate | None = None


class Delete(BaseModel):
    """A DELETE statement."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["delete"] = "delete"
    table: TableField
    where: Predicate | None = None


class Union(BaseModel):
    """``<select> UNION [ALL] <select> ...`` with optional outer ordering and paging."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["union"] = "union"
    queries: tuple[Select, ...] = Field(..., min_length=2)
    all: bool = False
    order_by: tuple[OrderField, ...] = Field(default_factory=tuple)
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)


QueryModel = Annotated[
    Select | Update | Delete | Union,
    Field(discriminator="kind"),
]

Statement = Select | Update | Delete | Union


FunctionCall.model_rebuild()
And.model_rebuild()
Or.model_rebuild()
Exists.model_rebuild()
In.model_rebuild()
Select.model_rebuild()
Update.model_rebuild()
Delete.model_rebuild()
Union.model_rebuild()

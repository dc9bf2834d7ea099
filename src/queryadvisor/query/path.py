"""
ClausePath: First-class type for locating clauses inside a query model.

Provides type-safe, consistent location representation across all rules, and
a total order that follows the textual order of a SQL statement. The order
is the "first occurrence in the query" tie-break used when sorting findings.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema, core_schema

_SEGMENT = re.compile(r"^(?P<name>[a-z_]+)(?:\[(?P<index>\d+)\])?$")

# Textual order of clauses in a statement. Anything unknown sorts last.
_CLAUSE_ORDER: dict[str, int] = {
    "query": 0,
    "queries": 1,
    "projection": 2,
    "table": 3,
    "set": 4,
    "joins": 5,
    "on": 6,
    "where": 7,
    "args": 8,
    "subquery": 9,
    "group_by": 10,
    "order_by": 11,
    "limit": 12,
    "offset": 13,
}
_UNKNOWN_RANK = 99


def _segment_key(segment: str) -> tuple[int, int]:
    match = _SEGMENT.match(segment)
    if match is None:
        return (_UNKNOWN_RANK, 0)
    rank = _CLAUSE_ORDER.get(match.group("name"), _UNKNOWN_RANK)
    index = match.group("index")
    return (rank, int(index) if index is not None else -1)


class ClausePath:
    """
    Immutable path to a clause or predicate node in a query model.

    Paths are sequences of segments from the statement root to the node.

    Example:
        path = ClausePath.root()            # ("query",)
        where = path.child("where")         # ("query", "where")
        branch = where.child("args", 1)     # ("query", "where", "args[1]")

        str(branch)   # "query → where → args[1]"
        branch.depth  # 2
    """

    __slots__ = ("_segments", "_sort_key")

    def __init__(self, segments: tuple[str, ...] | None = None) -> None:
        self._segments: tuple[str, ...] = segments or ("query",)
        self._sort_key = tuple(_segment_key(s) for s in self._segments)

    @classmethod
    def root(cls) -> "ClausePath":
        return cls(("query",))

    @property
    def segments(self) -> tuple[str, ...]:
        return self._segments

    @property
    def sort_key(self) -> tuple[tuple[int, int], ...]:
        """Key ordering paths by their position in the statement text."""
        return self._sort_key

    def child(self, name: str, index: int | None = None) -> "ClausePath":
        """
        Navigate to a named child clause, optionally at a list index.

        Args:
            name: Clause name (e.g. "where", "joins", "args")
            index: Zero-based position when the clause is a list
        """
        segment = name if index is None else f"{name}[{index}]"
        return ClausePath(self._segments + (segment,))

    def parent(self) -> "ClausePath | None":
        if len(self._segments) <= 1:
            return None
        return ClausePath(self._segments[:-1])

    @property
    def depth(self) -> int:
        return len(self._segments) - 1

    @property
    def is_root(self) -> bool:
        return len(self._segments) == 1

    def __str__(self) -> str:
        return " → ".join(self._segments)

    def __repr__(self) -> str:
        return f"ClausePath({'.'.join(self._segments)})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ClausePath):
            return self._segments == other._segments
        return False

    def __hash__(self) -> int:
        return hash(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __lt__(self, other: "ClausePath") -> bool:
        return (self._sort_key, self._segments) < (other._sort_key, other._segments)

    # Pydantic v2 serialization support
    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls._validate,
            core_schema.union_schema([
                core_schema.is_instance_schema(cls),
                core_schema.list_schema(core_schema.str_schema()),
            ]),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda x: list(x.segments),
                info_arg=False,
            ),
        )

    @classmethod
    def _validate(cls, value: Any) -> "ClausePath":
        if isinstance(value, cls):
            return value
        if isinstance(value, (list, tuple)):
            return cls(tuple(value))
        raise ValueError(f"Cannot convert {type(value)} to ClausePath")

    @classmethod
    def __get_pydantic_json_schema__(
        cls, core_schema: CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {
            "type": "array",
            "items": {"type": "string"},
            "description": "Path segments from the statement root to the clause",
            "example": ["query", "where", "args[1]"],
        }

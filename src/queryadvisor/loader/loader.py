"""
Loaders for schema catalogs and query models.

The advisor never parses SQL; it receives the output of an external parser
and an external schema loader. This module accepts that output in its
document form (JSON or YAML) and validates it into typed models:

- load_catalog(): tables/columns/indexes document -> SchemaCatalog
- parse_query(): query-model document -> Select / Update / Delete / Union

Sources can be a file path, a JSON/YAML string, or an already-decoded
dict. Error handling philosophy: fail fast with clear messages, wrapped in
LoadError with a ``source`` tag saying which stage failed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from queryadvisor.catalog.models import SchemaCatalog
from queryadvisor.exceptions import LoadError
from queryadvisor.loader.config import DEFAULT_CONFIG, LoaderConfig
from queryadvisor.query.models import QueryModel, Statement

_QUERY_ADAPTER: TypeAdapter[Any] = TypeAdapter(QueryModel)

_YAML_SUFFIXES = {".yaml", ".yml"}
_FILE_SUFFIXES = _YAML_SUFFIXES | {".json"}


def load_catalog(
    source: str | Path | dict[str, Any] | list[Any],
    config: LoaderConfig | None = None,
) -> SchemaCatalog:
    """
    Load a schema catalog document.

    Accepted shapes::

        tables:
          orders:
            columns:
              - {name: id, type: bigint, nullable: false}
              - user_id                 # bare name: type unknown, nullable
            primary_key: [id]
            indexes:
              - {name: orders_created_idx, columns: [created_at]}

    ``tables`` may also be a list of table documents carrying ``name``,
    and a bare list is taken as that list.

    Raises:
        LoadError: If the document cannot be read, decoded or validated
    """
    config = config or DEFAULT_CONFIG
    data = _load_document(source, config)
    _check_depth(data, config)

    if isinstance(data, list):
        data = {"tables": data}
    if not isinstance(data, dict) or "tables" not in data:
        raise LoadError(
            "Catalog document must be a mapping with a 'tables' key",
            source="structure",
        )

    tables = data["tables"]
    if isinstance(tables, dict):
        normalized = {
            name: _normalize_table(name, body) for name, body in tables.items()
        }
    elif isinstance(tables, list):
        normalized = {}
        for body in tables:
            if not isinstance(body, dict) or "name" not in body:
                raise LoadError(
                    "Each table in a 'tables' list needs a 'name'",
                    source="structure",
                )
            normalized[body["name"]] = _normalize_table(body["name"], body)
    else:
        raise LoadError(
            f"'tables' must be a mapping or a list, got {type(tables).__name__}",
            source="structure",
        )

    try:
        return SchemaCatalog(tables=normalized)
    except ValidationError as e:
        raise LoadError(
            "Invalid catalog document",
            source="validation",
            detail=str(e),
        ) from e


def parse_query(
    source: str | Path | dict[str, Any],
    config: LoaderConfig | None = None,
) -> Statement:
    """
    Load a query-model document.

    Every statement and predicate node carries a ``kind`` tag::

        kind: select
        table: orders o
        projection: [o.id, o.status]
        where:
          kind: or
          args:
            - {kind: comparison, column: o.status, operator: "=", value: shipped}
            - {kind: comparison, column: o.status, operator: "=", value: delivered}

    Raises:
        LoadError: If the document cannot be read, decoded or validated
    """
    config = config or DEFAULT_CONFIG
    data = _load_document(source, config)
    _check_depth(data, config)

    if not isinstance(data, dict):
        raise LoadError(
            f"Query document must be a mapping, got {type(data).__name__}",
            source="structure",
        )

    try:
        return _QUERY_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise LoadError(
            "Invalid query document",
            source="validation",
            detail=str(e),
        ) from e


def _normalize_table(name: str, body: Any) -> dict[str, Any]:
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise LoadError(
            f"Table {name!r} must be a mapping, got {type(body).__name__}",
            source="structure",
        )
    table = dict(body)
    table.setdefault("name", name)
    table["columns"] = [
        {"name": column} if isinstance(column, str) else column
        for column in table.get("columns") or []
    ]
    table["indexes"] = [
        {"columns": index} if isinstance(index, list) else index
        for index in table.get("indexes") or []
    ]
    if isinstance(table.get("primary_key"), str):
        table["primary_key"] = [table["primary_key"]]
    return table


def _load_document(source: Any, config: LoaderConfig) -> Any:
    if isinstance(source, (dict, list)):
        return source

    if isinstance(source, Path) or (
        isinstance(source, str) and _looks_like_path(source)
    ):
        path = Path(source)
        if not path.exists():
            raise LoadError(f"File not found: {path}", source="file_read")
        if not path.is_file():
            raise LoadError(f"Path is not a file: {path}", source="file_read")

        size_mb = path.stat().st_size / (1024 * 1024)
        if size_mb > config.max_file_size_mb:
            raise LoadError(
                f"File too large: {size_mb:.1f}MB exceeds limit of "
                f"{config.max_file_size_mb}MB",
                source="resource_limit",
            )

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LoadError(f"Cannot read {path}", source="file_read", detail=str(e)) from e

        if path.suffix.lower() in _YAML_SUFFIXES:
            return _decode_yaml(text)
        return _decode_json(text)

    if isinstance(source, str):
        stripped = source.lstrip()
        if stripped.startswith(("{", "[")):
            return _decode_json(source)
        return _decode_yaml(source)

    raise LoadError(
        f"Unsupported source type: {type(source).__name__}",
        source="input",
    )


def _looks_like_path(text: str) -> bool:
    if "\n" in text or text.lstrip().startswith(("{", "[")):
        return False
    return Path(text).suffix.lower() in _FILE_SUFFIXES


def _decode_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError("Invalid JSON", source="json_decode", detail=str(e)) from e


def _decode_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise LoadError("Invalid YAML", source="yaml_decode", detail=str(e)) from e


def _check_depth(data: Any, config: LoaderConfig) -> None:
    """Reject documents nested beyond max_depth, without recursing."""
    stack: list[tuple[Any, int]] = [(data, 1)]
    while stack:
        node, depth = stack.pop()
        if depth > config.max_depth:
            raise LoadError(
                f"Document too deeply nested (>{config.max_depth} levels)",
                source="resource_limit",
            )
        if isinstance(node, dict):
            stack.extend((value, depth + 1) for value in node.values())
        elif isinstance(node, list):
            stack.extend((value, depth + 1) for value in node)

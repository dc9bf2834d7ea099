"""Loader module - catalog and query-model documents to typed models."""

from queryadvisor.exceptions import LoadError
from queryadvisor.loader.config import DEFAULT_CONFIG, STRICT_CONFIG, LoaderConfig
from queryadvisor.loader.loader import load_catalog, parse_query

__all__ = [
    "load_catalog",
    "parse_query",
    "LoadError",
    "LoaderConfig",
    "DEFAULT_CONFIG",
    "STRICT_CONFIG",
]

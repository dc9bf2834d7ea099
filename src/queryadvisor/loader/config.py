"""
Loader configuration with resource limits.

These limits stop pathological documents from exhausting memory or the
stack before pydantic ever sees them. The defaults are generous for normal
catalogs and queries.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoaderConfig(BaseModel):
    """
    Configuration for catalog/query document loading.

    Attributes:
        max_file_size_mb: Maximum file size to read.
        max_depth: Maximum nesting of the raw document (dicts and lists).

    Example:
        # Stricter limits for untrusted input
        config = LoaderConfig(max_file_size_mb=1, max_depth=50)
    """

    max_file_size_mb: float = Field(
        default=50.0,
        gt=0,
        description="Maximum file size in megabytes",
    )

    max_depth: int = Field(
        default=200,
        gt=0,
        description="Maximum document nesting depth",
    )


DEFAULT_CONFIG = LoaderConfig()

STRICT_CONFIG = LoaderConfig(
    max_file_size_mb=5.0,
    max_depth=100,
)

"""
Configuration system for queryadvisor.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional config file (JSON or YAML) for local development
- Per-rule enable flags and thresholds

Usage:
    from queryadvisor.config import get_config, AdvisorConfig

    # Load from environment (default)
    config = get_config()

    # Explicit configuration
    config = AdvisorConfig(
        row_count_threshold_for_limit_warning=50_000,
        enabled_rules={"WILDCARD_PROJECTION", "UNINDEXED_JOIN"},
    )

    # Check if rule is enabled
    if config.is_rule_enabled("MISSING_LIMIT"):
        ...
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from queryadvisor.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "QUERYADVISOR_"

_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_rule_id(name: str) -> str:
    """
    Map a rule name to its ID.

    Accepts the ID itself in any case ("missing_limit") or the rule class
    name ("MissingLimit"); both give "MISSING_LIMIT".
    """
    name = name.strip()
    if name != name.upper():
        name = _CASE_BOUNDARY.sub("_", name)
    return name.upper()


class RuleSettings(BaseModel):
    """Configuration for a single rule."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Whether the rule is enabled")
    thresholds: dict[str, int | float] = Field(
        default_factory=dict,
        description="Rule-specific thresholds",
    )


class AdvisorConfig(BaseModel):
    """
    queryadvisor configuration.

    Rule selection: a rule runs when it is in ``enabled_rules`` (or
    ``enabled_rules`` is None, meaning all), is not in ``disabled_rules``,
    and its entry in ``rules`` (if any) is enabled.
    """

    model_config = ConfigDict(frozen=True)

    # Thresholds
    row_count_threshold_for_limit_warning: int = Field(
        default=10_000,
        ge=0,
        description="Estimated row count above which an unbounded SELECT is flagged",
    )
    offset_threshold: int = Field(
        default=1_000,
        ge=0,
        description="OFFSET at or above which keyset pagination is suggested",
    )

    # Rule selection
    enabled_rules: frozenset[str] | None = Field(
        default=None,
        description="Rule IDs to run (None = all registered rules)",
    )
    disabled_rules: frozenset[str] = Field(
        default_factory=frozenset,
        description="Rule IDs to skip",
    )
    rules: dict[str, RuleSettings] = Field(
        default_factory=dict,
        description="Per-rule configurations",
    )

    # Execution
    parallel: bool = Field(
        default=True,
        description="Evaluate rules on a thread pool",
    )
    max_workers: int = Field(
        default=4,
        gt=0,
        description="Thread pool size for parallel rule evaluation",
    )
    max_findings_per_rule: int = Field(
        default=100,
        gt=0,
        description="Cap on findings kept from a single rule",
    )

    # Query model limits
    max_predicate_depth: int = Field(
        default=100,
        gt=0,
        description="Maximum nesting depth accepted by query validation",
    )
    max_predicate_nodes: int = Field(
        default=10_000,
        gt=0,
        description="Maximum node count accepted by query validation",
    )

    @field_validator("enabled_rules", "disabled_rules", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Any:
        if value is None:
            return value
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(normalize_rule_id(str(v)) for v in value if str(v).strip())

    @field_validator("rules", mode="before")
    @classmethod
    def _normalize_rule_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {normalize_rule_id(str(k)): v for k, v in value.items()}
        return value

    def is_rule_enabled(self, rule_id: str) -> bool:
        """Check if a rule is enabled."""
        if self.enabled_rules is not None and rule_id not in self.enabled_rules:
            return False
        if rule_id in self.disabled_rules:
            return False
        if rule_id in self.rules:
            return self.rules[rule_id].enabled
        return True

    def get_rule_threshold(
        self,
        rule_id: str,
        threshold_name: str,
        default: int | float | None = None,
    ) -> int | float | None:
        """
        Get a threshold value for a rule.

        Lookup order:
        1. Rule-specific threshold in ``rules``
        2. Global field of the same name
        3. Provided default value
        """
        if rule_id in self.rules:
            settings = self.rules[rule_id]
            if threshold_name in settings.thresholds:
                return settings.thresholds[threshold_name]

        if threshold_name in type(self).model_fields:
            return getattr(self, threshold_name)

        return default

    def config_hash(self) -> str:
        """Hash of the configuration, stable across runs."""
        config_dict = self.model_dump()
        config_json = json.dumps(config_dict, sort_keys=True, default=sorted)
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer config value %r", value)
        return default


def load_config_from_env(environ: dict[str, str] | None = None) -> AdvisorConfig:
    """
    Load configuration from environment variables.

    Environment variable naming convention:
    - QUERYADVISOR_<SETTING> for global settings
    - QUERYADVISOR_RULE_<RULE_ID>_ENABLED for per-rule switches
    - QUERYADVISOR_RULE_<RULE_ID>__<THRESHOLD> for per-rule thresholds

    Examples:
    - QUERYADVISOR_ROW_COUNT_THRESHOLD_FOR_LIMIT_WARNING=50000
    - QUERYADVISOR_ENABLED_RULES=WILDCARD_PROJECTION,UNINDEXED_JOIN
    - QUERYADVISOR_DISABLED_RULES=UNNECESSARY_DISTINCT
    - QUERYADVISOR_RULE_MISSING_LIMIT_ENABLED=false
    - QUERYADVISOR_RULE_UNINDEXED_JOIN__CRITICAL_MULTIPLIER=50
    """
    env = os.environ if environ is None else environ
    defaults = AdvisorConfig()

    def _get(name: str) -> str | None:
        return env.get(f"{ENV_PREFIX}{name}")

    config_kwargs: dict[str, Any] = {
        "row_count_threshold_for_limit_warning": _parse_env_int(
            _get("ROW_COUNT_THRESHOLD_FOR_LIMIT_WARNING"),
            defaults.row_count_threshold_for_limit_warning,
        ),
        "offset_threshold": _parse_env_int(
            _get("OFFSET_THRESHOLD"), defaults.offset_threshold
        ),
        "parallel": _parse_env_bool(_get("PARALLEL"), defaults.parallel),
        "max_workers": _parse_env_int(_get("MAX_WORKERS"), defaults.max_workers),
        "max_findings_per_rule": _parse_env_int(
            _get("MAX_FINDINGS_PER_RULE"), defaults.max_findings_per_rule
        ),
    }

    enabled = _get("ENABLED_RULES")
    if enabled:
        config_kwargs["enabled_rules"] = enabled
    disabled = _get("DISABLED_RULES")
    if disabled:
        config_kwargs["disabled_rules"] = disabled

    # Per-rule settings
    rules: dict[str, dict[str, Any]] = {}
    rule_prefix = f"{ENV_PREFIX}RULE_"

    for key, value in env.items():
        if not key.startswith(rule_prefix):
            continue
        rest = key[len(rule_prefix):]
        if "__" in rest:
            rule_id, threshold = rest.split("__", 1)
            entry = rules.setdefault(rule_id.upper(), {"thresholds": {}})
            try:
                entry["thresholds"][threshold.lower()] = (
                    float(value) if "." in value else int(value)
                )
            except ValueError:
                logger.warning("Could not parse threshold %s=%s", key, value)
        elif rest.endswith("_ENABLED"):
            rule_id = rest[: -len("_ENABLED")]
            entry = rules.setdefault(rule_id.upper(), {"thresholds": {}})
            entry["enabled"] = _parse_env_bool(value, True)

    config_kwargs["rules"] = {
        rule_id: RuleSettings(**entry) for rule_id, entry in rules.items()
    }

    try:
        return AdvisorConfig(**config_kwargs)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration from environment: {e}") from e


def load_config_from_file(path: Path) -> AdvisorConfig:
    """
    Load configuration from a JSON or YAML file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}", config_key=str(path))

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config from {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    try:
        return AdvisorConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e


@lru_cache(maxsize=1)
def get_config() -> AdvisorConfig:
    """
    Get the global configuration instance.

    Loads from:
    1. QUERYADVISOR_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()

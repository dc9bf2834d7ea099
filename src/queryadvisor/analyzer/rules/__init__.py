"""Analyzer rules module - individual detection rules."""

from queryadvisor.analyzer.rules.base import Rule, RuleConfig, RuleContext
from queryadvisor.analyzer.rules.function_on_indexed_column import FunctionOnIndexedColumn
from queryadvisor.analyzer.rules.in_vs_exists import InVsExists
from queryadvisor.analyzer.rules.large_offset_pagination import LargeOffsetPagination
from queryadvisor.analyzer.rules.leading_wildcard_like import LeadingWildcardLike
from queryadvisor.analyzer.rules.missing_index_on_group_or_order import (
    MissingIndexOnGroupOrOrderColumn,
)
from queryadvisor.analyzer.rules.missing_limit import MissingLimit
from queryadvisor.analyzer.rules.or_on_unindexed import OrOnUnindexed
from queryadvisor.analyzer.rules.outer_join_preference import OuterJoinPreference
from queryadvisor.analyzer.rules.unfiltered_mutation import UnfilteredMutation
from queryadvisor.analyzer.rules.unindexed_join import UnindexedJoin, UnindexedJoinConfig
from queryadvisor.analyzer.rules.unnecessary_distinct import UnnecessaryDistinct
from queryadvisor.analyzer.rules.wildcard_projection import WildcardProjection

# Default evaluation order. Findings are re-sorted afterwards, so this only
# fixes the order of rule runs in a result.
DEFAULT_RULE_CLASSES: tuple[type[Rule], ...] = (
    WildcardProjection,
    UnindexedJoin,
    OuterJoinPreference,
    MissingLimit,
    FunctionOnIndexedColumn,
    InVsExists,
    OrOnUnindexed,
    UnnecessaryDistinct,
    MissingIndexOnGroupOrOrderColumn,
    LeadingWildcardLike,
    LargeOffsetPagination,
    UnfilteredMutation,
)

__all__ = [
    "Rule",
    "RuleConfig",
    "RuleContext",
    "DEFAULT_RULE_CLASSES",
    # Individual rules
    "FunctionOnIndexedColumn",
    "InVsExists",
    "LargeOffsetPagination",
    "LeadingWildcardLike",
    "MissingIndexOnGroupOrOrderColumn",
    "MissingLimit",
    "OrOnUnindexed",
    "OuterJoinPreference",
    "UnfilteredMutation",
    "UnindexedJoin",
    "UnindexedJoinConfig",
    "UnnecessaryDistinct",
    "WildcardProjection",
]

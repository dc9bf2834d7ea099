"""
Immutable rule sets.

A RuleSet is an ordered, read-only collection of rule instances built once
at startup and handed to the Advisor. There is no global registry: which
rules run is decided by whoever constructs the RuleSet (and, per analysis,
by the advisor configuration).

The RuleSet provides:
- A fixed evaluation order (order of construction)
- Unique rule IDs, checked at construction
- Filtering (include / exclude by rule ID) returning a new RuleSet
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from queryadvisor.analyzer.rules import DEFAULT_RULE_CLASSES
from queryadvisor.analyzer.rules.base import Rule, RuleConfig


class RuleSet:
    """
    Ordered, immutable collection of rules.

    Example:
        rules = default_rules()
        fast = rules.filter(exclude={"OUTER_JOIN_PREFERENCE"})
        advisor = Advisor(rules=fast)
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        rules = tuple(rules)
        seen: dict[str, Rule] = {}
        for rule in rules:
            if not isinstance(rule, Rule):
                raise TypeError(f"Expected a Rule instance, got {type(rule).__name__}")
            if rule.rule_id in seen:
                existing = seen[rule.rule_id]
                raise ValueError(
                    f"Rule '{rule.rule_id}' appears twice: "
                    f"{type(existing).__name__} and {type(rule).__name__}"
                )
            seen[rule.rule_id] = rule
        self._rules: tuple[Rule, ...] = rules

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def ids(self) -> tuple[str, ...]:
        """Rule IDs in evaluation order."""
        return tuple(rule.rule_id for rule in self._rules)

    def get(self, rule_id: str) -> Rule | None:
        for rule in self._rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def filter(
        self,
        include: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> "RuleSet":
        """
        Get a new RuleSet restricted by rule ID, keeping the order.

        Args:
            include: If provided, only keep these rule IDs
            exclude: If provided, drop these rule IDs
        """
        rules = list(self._rules)

        if include is not None:
            wanted = set(include)
            rules = [r for r in rules if r.rule_id in wanted]

        if exclude is not None:
            unwanted = set(exclude)
            rules = [r for r in rules if r.rule_id not in unwanted]

        return RuleSet(rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(rule.rule_id == rule_id for rule in self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({', '.join(self.ids())})"


def default_rules(
    rule_configs: dict[str, RuleConfig | dict[str, Any]] | None = None,
) -> RuleSet:
    """
    Build the standard RuleSet with every built-in rule.

    Args:
        rule_configs: Optional per-rule configuration keyed by rule ID,
            validated against each rule's config_schema.
    """
    rule_configs = rule_configs or {}
    unknown = set(rule_configs) - {cls.rule_id for cls in DEFAULT_RULE_CLASSES}
    if unknown:
        raise ValueError(f"Configuration for unknown rules: {', '.join(sorted(unknown))}")
    return RuleSet(cls(rule_configs.get(cls.rule_id)) for cls in DEFAULT_RULE_CLASSES)

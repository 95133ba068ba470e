"""RuleSet — an immutable, validated collection of rules."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from surveyor.models.errors import RuleSetError
from surveyor.rules.rule import Rule

logger = logging.getLogger(__name__)


class RuleSet:
    """Read-only rule collection, validated once on construction.

    Validation rejects duplicate ids, references to unknown rules, rules that
    both depend on and exclude the same rule, and dependency cycles.
    Exclusion is symmetric: ``a excludes b`` also means ``b excludes a``.
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        rules = tuple(rules)
        index: dict[str, Rule] = {}
        for rule in rules:
            if rule.id in index:
                msg = f"Duplicate rule id: {rule.id}"
                raise RuleSetError(msg)
            index[rule.id] = rule

        self._rules = rules
        self._index = MappingProxyType(index)
        self._validate_references()
        self._exclusions = self._build_exclusions()
        self._order = self._dependency_order()
        logger.debug("Loaded rule set with %d rules", len(rules))

    # -- Validation ------------------------------------------------------------

    def _validate_references(self) -> None:
        problems: list[str] = []
        for rule in self._rules:
            for dep in sorted(rule.depends_on):
                if dep == rule.id:
                    problems.append(f"rule {rule.id} depends on itself")
                elif dep not in self._index:
                    problems.append(f"rule {rule.id} depends on unknown rule {dep}")
            for ex in sorted(rule.excludes):
                if ex == rule.id:
                    problems.append(f"rule {rule.id} excludes itself")
                elif ex not in self._index:
                    problems.append(f"rule {rule.id} excludes unknown rule {ex}")
            both = rule.depends_on & rule.excludes
            if both:
                problems.append(
                    f"rule {rule.id} both depends on and excludes {', '.join(sorted(both))}"
                )
            if rule.per_feature and not rule.templated:
                problems.append(
                    f"rule {rule.id} is per-feature but its action id has no "
                    "{feature} or {slug} placeholder"
                )
        if problems:
            raise RuleSetError("Invalid rule set: " + "; ".join(problems))

    def _build_exclusions(self) -> MappingProxyType[str, frozenset[str]]:
        pairs: dict[str, set[str]] = {rule.id: set() for rule in self._rules}
        for rule in self._rules:
            for other in rule.excludes:
                pairs[rule.id].add(other)
                pairs[other].add(rule.id)
        return MappingProxyType({k: frozenset(v) for k, v in pairs.items()})

    def _dependency_order(self) -> tuple[str, ...]:
        """Rule ids with dependencies first. Raises RuleSetError on a cycle."""
        visiting: list[str] = []
        done: set[str] = set()
        order: list[str] = []

        def visit(rule_id: str) -> None:
            if rule_id in done:
                return
            if rule_id in visiting:
                cycle = visiting[visiting.index(rule_id):] + [rule_id]
                msg = f"Dependency cycle in rule set: {' -> '.join(cycle)}"
                raise RuleSetError(msg)
            visiting.append(rule_id)
            for dep in sorted(self._index[rule_id].depends_on):
                visit(dep)
            visiting.pop()
            done.add(rule_id)
            order.append(rule_id)

        for rule_id in sorted(self._index):
            visit(rule_id)
        return tuple(order)

    # -- Queries ---------------------------------------------------------------

    def get(self, rule_id: str) -> Rule | None:
        return self._index.get(rule_id)

    def __getitem__(self, rule_id: str) -> Rule:
        return self._index[rule_id]

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self._rules]

    @property
    def dependency_order(self) -> tuple[str, ...]:
        return self._order

    def excluded_by(self, rule_id: str) -> frozenset[str]:
        return self._exclusions.get(rule_id, frozenset())

    def conflicts(self, a: str, b: str) -> bool:
        return b in self.excluded_by(a)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._index

    def __repr__(self) -> str:
        return f"<RuleSet {len(self._rules)} rules>"

"""Onboarding rules — predicates, rules, validated rule sets."""

from __future__ import annotations

from surveyor.rules.loader import (
    default_ruleset,
    load_ruleset,
    ruleset_from_mapping,
    ruleset_from_yaml,
)
from surveyor.rules.predicates import absent, all_of, any_of, each, in_category, present
from surveyor.rules.rule import Rule
from surveyor.rules.ruleset import RuleSet

__all__ = [
    "Rule",
    "RuleSet",
    "absent",
    "all_of",
    "any_of",
    "default_ruleset",
    "each",
    "in_category",
    "load_ruleset",
    "present",
    "ruleset_from_mapping",
    "ruleset_from_yaml",
]

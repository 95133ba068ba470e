"""Declarative rule loading — YAML documents into a validated RuleSet."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from surveyor.models.action import ActionTemplate
from surveyor.models.errors import RuleSetError
from surveyor.rules.naming import slugify
from surveyor.rules.predicates import (
    Predicate,
    absent,
    all_of,
    any_of,
    each,
    in_category,
    present,
)
from surveyor.rules.rule import Rule
from surveyor.rules.ruleset import RuleSet

DEFAULT_RULES_PATH = Path(__file__).parent / "default.yaml"

_RULE_KEYS = {
    "id", "when", "action", "priority", "depends_on", "excludes",
    "per_feature", "description",
}


def _target(value: Any, key: str) -> tuple[str, float]:
    """``"channel.sms"`` or ``{id|prefix: ..., min_confidence: ...}``."""
    if isinstance(value, str):
        return value, 0.0
    if isinstance(value, dict) and isinstance(value.get(key), str):
        return value[key], float(value.get("min_confidence", 0.0))
    msg = f"expected a string or a mapping with {key!r}, got {value!r}"
    raise RuleSetError(msg)


def parse_predicate(node: Any) -> Predicate:
    """Build a predicate from its declarative form.

    Forms: ``"channel.sms"``, ``{present: ...}``, ``{absent: ...}``,
    ``{each: ...}``, ``{category: ...}``, ``{all: [...]}``, ``{any: [...]}``.
    """
    if isinstance(node, str):
        return present(node)
    if not isinstance(node, dict) or len(node) != 1:
        msg = f"predicate must be a string or a single-key mapping, got {node!r}"
        raise RuleSetError(msg)

    (op, arg), = node.items()
    if op == "present":
        return present(*_target(arg, "id"))
    if op == "absent":
        return absent(_target(arg, "id")[0])
    if op == "each":
        return each(*_target(arg, "prefix"))
    if op == "category":
        return in_category(*_target(arg, "category"))
    if op in ("all", "any"):
        if not isinstance(arg, list) or not arg:
            msg = f"'{op}' needs a non-empty list of predicates"
            raise RuleSetError(msg)
        children = [parse_predicate(child) for child in arg]
        return all_of(*children) if op == "all" else any_of(*children)

    msg = f"unknown predicate operator {op!r}"
    raise RuleSetError(msg)


def _rule_ids(value: Any, key: str, rule_id: str) -> frozenset[str]:
    """A list of rule ids; a single id may be written as a plain string."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value})
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    msg = f"rule {rule_id}: {key!r} must be a list of rule ids, got {value!r}"
    raise RuleSetError(msg)


def rule_from_mapping(data: dict[str, Any]) -> Rule:
    if not isinstance(data, dict):
        msg = f"rule must be a mapping, got {data!r}"
        raise RuleSetError(msg)
    unknown = set(data) - _RULE_KEYS
    if unknown:
        msg = f"rule {data.get('id')!r} has unknown keys: {', '.join(sorted(unknown))}"
        raise RuleSetError(msg)
    rule_id = data.get("id")
    if not isinstance(rule_id, str) or not rule_id:
        msg = f"rule is missing an id: {data!r}"
        raise RuleSetError(msg)
    if "when" not in data or "action" not in data:
        msg = f"rule {rule_id} needs both 'when' and 'action'"
        raise RuleSetError(msg)

    action = dict(data["action"] or {})
    action.setdefault("id", slugify(action.get("name", "")) or rule_id)
    action.setdefault("type", "configure")
    try:
        template = ActionTemplate.model_validate(action)
    except ValidationError as e:
        msg = f"rule {rule_id} has an invalid action: {e}"
        raise RuleSetError(msg) from e

    try:
        priority = int(data.get("priority", 0))
    except (TypeError, ValueError) as e:
        msg = f"rule {rule_id} has a non-integer priority"
        raise RuleSetError(msg) from e

    return Rule(
        id=rule_id,
        predicate=parse_predicate(data["when"]),
        produces=template,
        priority=priority,
        depends_on=_rule_ids(data.get("depends_on"), "depends_on", rule_id),
        excludes=_rule_ids(data.get("excludes"), "excludes", rule_id),
        per_feature=bool(data.get("per_feature", False)),
        description=str(data.get("description", "")),
    )


def ruleset_from_mapping(data: Any) -> RuleSet:
    """Accepts a list of rules or a ``{rules: [...]}`` document."""
    if isinstance(data, dict):
        data = data.get("rules")
    if not isinstance(data, list):
        msg = "rule document must be a list of rules or a mapping with 'rules'"
        raise RuleSetError(msg)
    return RuleSet(rule_from_mapping(item) for item in data)


def ruleset_from_yaml(text: str) -> RuleSet:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"rule file is not valid YAML: {e}"
        raise RuleSetError(msg) from e
    return ruleset_from_mapping(data)


def load_ruleset(path: Path | str) -> RuleSet:
    with open(path, encoding="utf-8") as f:
        return ruleset_from_yaml(f.read())


@lru_cache(maxsize=1)
def default_ruleset() -> RuleSet:
    """The packaged onboarding rule set, loaded and validated once per process."""
    return load_ruleset(DEFAULT_RULES_PATH)

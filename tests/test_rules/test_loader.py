"""Tests for declarative rule loading."""

import pytest

from surveyor.models.errors import RuleSetError
from surveyor.models.feature import FeatureSet
from surveyor.rules.loader import (
    default_ruleset,
    load_ruleset,
    parse_predicate,
    rule_from_mapping,
    ruleset_from_mapping,
    ruleset_from_yaml,
)
from surveyor.rules.predicates import AllOf, Present

CYCLE_YAML = """
rules:
  - id: A
    when: channel.sms
    depends_on: [B]
    action: {type: configure}
  - id: B
    when: channel.sms
    depends_on: [A]
    action: {type: configure}
"""


class TestParsePredicate:
    def test_string_is_present(self):
        assert parse_predicate("channel.sms") == Present("channel.sms")

    def test_present_with_threshold(self):
        pred = parse_predicate({"present": {"id": "channel.sms", "min_confidence": 0.7}})
        assert pred == Present("channel.sms", 0.7)

    def test_nested(self):
        pred = parse_predicate({"all": ["portal.otp", {"any": ["channel.sms", "channel.email"]}]})
        assert isinstance(pred, AllOf)
        fs = FeatureSet.from_payload({"portal.otp": 1, "channel.email": 1})
        assert pred(fs)

    @pytest.mark.parametrize("node", [
        {"present": "a.b", "absent": "c.d"},
        {"maybe": "channel.sms"},
        {"all": []},
        {"present": {"prefix": "channel"}},
        42,
    ])
    def test_invalid(self, node):
        with pytest.raises(RuleSetError):
            parse_predicate(node)


class TestRuleFromMapping:
    def test_action_id_from_name(self):
        rule = rule_from_mapping({
            "id": "r1", "when": "channel.sms",
            "action": {"name": "Enable SMS Routing!", "type": "routing"},
        })
        assert rule.produces.id == "enable_sms_routing"

    def test_action_id_defaults_to_rule_id(self):
        rule = rule_from_mapping({"id": "r1", "when": "channel.sms", "action": {}})
        assert rule.produces.id == "r1"
        assert rule.produces.type == "configure"

    def test_unknown_key(self):
        with pytest.raises(RuleSetError, match="unknown keys: colour"):
            rule_from_mapping({"id": "r1", "when": "channel.sms", "action": {}, "colour": "red"})

    def test_missing_when(self):
        with pytest.raises(RuleSetError, match="needs both"):
            rule_from_mapping({"id": "r1", "action": {}})

    def test_bad_priority(self):
        with pytest.raises(RuleSetError, match="priority"):
            rule_from_mapping({"id": "r1", "when": "channel.sms", "action": {}, "priority": "high"})

    def test_single_rule_id_string(self):
        rule = rule_from_mapping({
            "id": "r1", "when": "channel.sms", "action": {},
            "depends_on": "connect", "excludes": "other",
        })
        assert rule.depends_on == frozenset({"connect"})
        assert rule.excludes == frozenset({"other"})

    def test_single_id_document_loads(self):
        ruleset = ruleset_from_yaml("""
rules:
  - id: connect
    when: channel.sms
    action: {type: configure}
  - id: templates
    when: channel.sms
    depends_on: connect
    action: {type: configure}
""")
        assert ruleset["templates"].depends_on == frozenset({"connect"})

    @pytest.mark.parametrize("key", ["depends_on", "excludes"])
    @pytest.mark.parametrize("value", [{"connect": True}, 3, ["connect", 4]])
    def test_rule_id_list_shape(self, key, value):
        with pytest.raises(RuleSetError, match=f"'{key}' must be a list of rule ids"):
            rule_from_mapping({"id": "r1", "when": "channel.sms", "action": {}, key: value})


class TestRuleSetLoading:
    def test_cycle_fails_on_load(self):
        with pytest.raises(RuleSetError, match="cycle"):
            ruleset_from_yaml(CYCLE_YAML)

    def test_invalid_yaml(self):
        with pytest.raises(RuleSetError, match="not valid YAML"):
            ruleset_from_yaml("rules: [unclosed")

    def test_wrong_document_shape(self):
        with pytest.raises(RuleSetError):
            ruleset_from_mapping({"not_rules": []})

    def test_list_document(self):
        rs = ruleset_from_mapping([{"id": "a", "when": "channel.sms", "action": {}}])
        assert rs.ids == ["a"]

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "- id: a\n  when: channel.sms\n  action: {type: routing}\n", encoding="utf-8",
        )
        assert load_ruleset(path).ids == ["a"]

    def test_default_ruleset_cached(self):
        assert default_ruleset() is default_ruleset()
        assert len(default_ruleset()) > 10

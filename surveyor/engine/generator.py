"""ActionGenerator — resolves a rule set over a FeatureSet into an ActionPlan."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from surveyor.models.action import Action, ActionPlan, DroppedAction
from surveyor.models.errors import RuleSetError
from surveyor.models.feature import FeatureSet
from surveyor.rules.loader import default_ruleset, load_ruleset
from surveyor.rules.ruleset import RuleSet

if TYPE_CHECKING:
    from surveyor.config import Settings

logger = logging.getLogger(__name__)


def _precedence(action: Action) -> tuple[int, str, str]:
    """Higher priority first, then rule id, then action id."""
    return (-action.priority, action.rule_id, action.id)


class ActionGenerator:
    """Turns detected features into an ordered onboarding plan.

    Pure and synchronous: the rule set is read-only and every call works on
    its own FeatureSet, so one generator can serve concurrent callers.

    ``ActionGenerator()`` uses the packaged default rule set;
    ``ActionGenerator.from_settings`` honours ``Settings.rules.path``.

    Resolution steps:
      1. instantiate candidate actions from matching rules;
      2. drop candidates whose dependency rules produced nothing;
      3. resolve exclusions greedily in precedence order (a conflict drops
         the lower-precedence action, it is not an error);
      4. drop candidates that lost a dependency in step 3;
      5. link each action to the dependency actions it needs and order the
         plan by dependency rank, then precedence.

    An action id produced by several rules is one action whose ``rule_ids``
    lists all of them; each of those rules counts as produced.
    """

    def __init__(self, ruleset: RuleSet | None = None):
        self.ruleset = ruleset if ruleset is not None else default_ruleset()
        self._rule_order = {rule_id: i for i, rule_id in enumerate(self.ruleset.ids)}

    @classmethod
    def from_settings(cls, settings: Settings) -> ActionGenerator:
        """Generator over the rule file named in settings, or the default set."""
        path = settings.rules.path
        if path is None:
            return cls()
        try:
            ruleset = load_ruleset(path)
        except OSError as e:
            msg = f"cannot read rule file {path}: {e.strerror or e}"
            raise RuleSetError(msg) from e
        logger.info("Loaded %d rules from %s", len(ruleset), path)
        return cls(ruleset)

    def candidates(self, features: FeatureSet) -> list[Action]:
        """Actions of every matching rule, deduplicated by action id."""
        seen: dict[str, Action] = {}
        for rule in self.ruleset:
            for action in rule.instantiate(features):
                existing = seen.get(action.id)
                if existing is None:
                    seen[action.id] = action
                    continue
                logger.debug(
                    "Action %s produced by %s and %s, merging",
                    action.id, existing.rule_id, action.rule_id,
                )
                seen[action.id] = existing.model_copy(update={
                    "target_feature_ids": existing.target_feature_ids | action.target_feature_ids,
                    "rule_ids": existing.rule_ids | action.rule_ids,
                })
        return list(seen.values())

    def generate_actions(
        self,
        features: FeatureSet | Mapping[str, Any] | Sequence[Any],
    ) -> ActionPlan:
        fs = FeatureSet.from_payload(features)
        if not len(fs):
            return ActionPlan()

        dropped: list[DroppedAction] = []
        actions = self.candidates(fs)
        actions = self._drop_unsatisfied(actions, dropped)
        actions = self._resolve_exclusions(actions, dropped)
        actions = self._drop_unsatisfied(actions, dropped)
        ordered = self._order(self._link_dependencies(actions))

        logger.debug(
            "Generated %d action(s) from %d feature(s), %d dropped",
            len(ordered), len(fs), len(dropped),
        )
        return ActionPlan(actions=ordered, dropped=dropped)

    # -- Resolution steps ------------------------------------------------------

    def _depends_on(self, action: Action) -> frozenset[str]:
        return frozenset().union(*(self.ruleset[r].depends_on for r in action.rule_ids))

    def _drop_unsatisfied(
        self, actions: list[Action], dropped: list[DroppedAction],
    ) -> list[Action]:
        """Remove actions whose dependency rules have no surviving action, to a fixpoint.

        A merged action survives while at least one of its rules is satisfied;
        the unsatisfied rules are removed from its ``rule_ids``.
        """
        current = list(actions)
        while True:
            produced = frozenset().union(*(a.rule_ids for a in current))
            keep: list[Action] = []
            changed = False
            for action in current:
                live = {
                    r for r in action.rule_ids
                    if self.ruleset[r].depends_on <= produced
                }
                if not live:
                    missing = sorted(self._depends_on(action) - produced)
                    dropped.append(DroppedAction(
                        action_id=action.id,
                        rule_id=action.rule_id,
                        reason=f"missing dependency: {', '.join(missing)}",
                    ))
                    changed = True
                    continue
                if live != action.rule_ids:
                    primary = action.rule_id if action.rule_id in live else min(
                        live, key=self._rule_order.__getitem__,
                    )
                    action = action.model_copy(update={
                        "rule_id": primary, "rule_ids": frozenset(live),
                    })
                    changed = True
                keep.append(action)
            if not changed:
                return keep
            current = keep

    def _conflicts(self, a: Action, b: Action) -> bool:
        return any(self.ruleset.conflicts(x, y) for x in a.rule_ids for y in b.rule_ids)

    def _resolve_exclusions(
        self, actions: list[Action], dropped: list[DroppedAction],
    ) -> list[Action]:
        kept: list[Action] = []
        for action in sorted(actions, key=_precedence):
            winner = next((k for k in kept if self._conflicts(k, action)), None)
            if winner is None:
                kept.append(action)
                continue
            logger.debug("Action %s excluded by %s", action.id, winner.id)
            dropped.append(DroppedAction(
                action_id=action.id,
                rule_id=action.rule_id,
                reason="excluded",
                conflicting_with=winner.id,
            ))
        return kept

    def _link_dependencies(self, actions: list[Action]) -> list[Action]:
        """Bind each action to the dependency actions covering the same features.

        When no dependency action shares a feature with the dependent, it
        depends on every action of that dependency rule.
        """
        by_rule: dict[str, list[Action]] = {}
        for action in actions:
            for rule_id in action.rule_ids:
                by_rule.setdefault(rule_id, []).append(action)

        linked: list[Action] = []
        for action in actions:
            deps: set[str] = set()
            for dep_rule in self._depends_on(action):
                pool = [d for d in by_rule.get(dep_rule, []) if d.id != action.id]
                sharing = [d for d in pool if d.target_feature_ids & action.target_feature_ids]
                deps.update(d.id for d in (sharing or pool))
            linked.append(action.model_copy(update={"depends_on_action_ids": frozenset(deps)}))
        return linked

    @staticmethod
    def _order(actions: list[Action]) -> list[Action]:
        """Order by dependency rank (longest dependency chain), then precedence."""
        rank: dict[str, int] = {}
        remaining = {a.id: set(a.depends_on_action_ids) for a in actions}

        while remaining:
            ready = sorted(i for i, deps in remaining.items() if deps.issubset(rank))
            if not ready:
                cycle = ", ".join(sorted(remaining))
                msg = f"Action dependencies form a cycle: {cycle}"
                raise RuleSetError(msg)
            for action_id in ready:
                deps = remaining.pop(action_id)
                rank[action_id] = 1 + max((rank[d] for d in deps), default=-1)

        return sorted(actions, key=lambda a: (rank[a.id], *_precedence(a)))

"""Rule — a static mapping from a feature predicate to an action template."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from surveyor.models.action import Action, ActionTemplate
from surveyor.rules.forms import form_params
from surveyor.rules.naming import categorize

if TYPE_CHECKING:
    from surveyor.models.feature import Feature, FeatureSet
    from surveyor.rules.predicates import Predicate

logger = logging.getLogger(__name__)

PLACEHOLDERS = ("{feature}", "{slug}")


def _fill(text: str, subject: str | None) -> str:
    if subject is None:
        return text
    return (
        text.replace("{feature}", subject.replace(".", "_"))
        .replace("{slug}", subject.rsplit(".", 1)[-1])
    )


@dataclass(frozen=True)
class Rule:
    id: str
    predicate: Predicate
    produces: ActionTemplate
    priority: int = 0
    depends_on: frozenset[str] = frozenset()
    excludes: frozenset[str] = frozenset()
    per_feature: bool = False
    description: str = ""

    @property
    def templated(self) -> bool:
        return any(p in self.produces.id for p in PLACEHOLDERS)

    def instantiate(self, features: FeatureSet) -> list[Action]:
        """Evaluate the predicate and build this rule's actions (possibly none)."""
        bindings = self.predicate(features)
        if not bindings:
            return []

        if not self.per_feature:
            ids = frozenset().union(*(b.ids for b in bindings))
            return [self._build(self.produces.id, ids, None)]

        actions: list[Action] = []
        for binding in bindings:
            subject = binding.key or (min(binding.ids) if binding.ids else None)
            if subject is None:
                logger.debug("Rule %s matched without a feature to fan out on", self.id)
                continue
            actions.append(self._build(
                _fill(self.produces.id, subject), binding.ids, subject, features.get(subject),
            ))
        return actions

    def _build(
        self,
        action_id: str,
        ids: frozenset[str],
        subject: str | None,
        feature: Feature | None = None,
    ) -> Action:
        tpl = self.produces
        name = _fill(tpl.name, subject) if tpl.name else action_id.replace("_", " ").capitalize()
        params: dict[str, Any] = {
            k: _fill(v, subject) if isinstance(v, str) else v
            for k, v in tpl.params.items()
        }
        if tpl.form_fields and feature is not None:
            params.update(form_params(feature.evidence, tpl.form_fields))
        return Action(
            id=action_id,
            type=tpl.type,
            rule_id=self.id,
            name=name,
            description=_fill(tpl.description, subject),
            category=tpl.category or categorize(f"{name} {tpl.type}"),
            target_feature_ids=ids,
            subject=subject,
            params=params,
            priority=self.priority,
        )

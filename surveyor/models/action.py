"""Action models — templates, instantiated actions, ordered plans."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


class ActionTemplate(BaseModel):
    """What a rule produces when it matches.

    ``id`` may carry ``{feature}`` and ``{slug}`` placeholders, filled in for
    rules that produce one action per matching feature. ``form_fields`` names
    the evidence key holding a form's field descriptors; per-feature actions
    then get typed ``parameters`` and fill ``steps`` in their params.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    name: str = ""
    description: str = ""
    category: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    form_fields: str | None = None


class Action(BaseModel):
    """A recommended onboarding entry. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    rule_id: str
    name: str = ""
    description: str = ""
    category: str = "general"
    target_feature_ids: frozenset[str] = frozenset()
    subject: str | None = None   # feature a per-feature action was made for
    params: dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    depends_on_action_ids: frozenset[str] = frozenset()
    rule_ids: frozenset[str] = frozenset()   # every rule that produced this action id

    @model_validator(mode="before")
    @classmethod
    def _include_rule_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("rule_id"), str):
            data = {**data, "rule_ids": frozenset(data.get("rule_ids") or ()) | {data["rule_id"]}}
        return data

    @field_serializer("target_feature_ids", "depends_on_action_ids", "rule_ids")
    def _sorted(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class DroppedAction(BaseModel):
    """A candidate that did not make it into the plan, and why."""

    action_id: str
    rule_id: str
    reason: str
    conflicting_with: str | None = None


class ActionPlan(BaseModel):
    """Dependency-respecting, conflict-free ordered list of actions."""

    actions: list[Action] = Field(default_factory=list)
    dropped: list[DroppedAction] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.actions)

    def ids(self) -> list[str]:
        return [a.id for a in self.actions]

    def get(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def index(self, action_id: str) -> int:
        return self.ids().index(action_id)

    def to_payload(self) -> dict[str, Any]:
        return {
            "actions": [a.model_dump(mode="json") for a in self.actions],
            "count": self.count,
        }

    def __len__(self) -> int:
        return len(self.actions)

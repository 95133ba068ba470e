"""Feature models — detections, probe diagnostics, merged feature sets."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FEATURE_ID_RE = re.compile(r"^[a-z0-9_]+(\.[a-z0-9_]+)+$")


class FeatureCategory(StrEnum):
    CHANNEL = "channel"
    INTEGRATION = "integration"
    PORTAL = "portal"
    DATA = "data"


class Feature(BaseModel):
    """A normalized, confidence-scored detection in a tenant's environment."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: FeatureCategory
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    evidence: dict[str, Any] = Field(default_factory=dict)
    source_probe: str = "external"

    @model_validator(mode="before")
    @classmethod
    def _infer_category(cls, data: Any) -> Any:
        # Payloads coming from outside often omit the category: use the namespace
        if isinstance(data, dict) and "category" not in data and isinstance(data.get("id"), str):
            namespace = data["id"].split(".", 1)[0]
            if namespace in {c.value for c in FeatureCategory}:
                data = {**data, "category": namespace}
        return data

    @field_validator("id")
    @classmethod
    def _check_id(cls, v: str) -> str:
        v = v.strip().lower()
        if not FEATURE_ID_RE.match(v):
            msg = f"feature id must be namespaced like 'channel.sms', got {v!r}"
            raise ValueError(msg)
        return v

    @property
    def namespace(self) -> str:
        return self.id.split(".", 1)[0]

    @property
    def slug(self) -> str:
        """Last segment of the id (``channel.sms`` -> ``sms``)."""
        return self.id.rsplit(".", 1)[-1]


DiagnosticStatus = Literal["ok", "failed", "skipped"]


class ProbeDiagnostic(BaseModel):
    """Outcome of a single probe run, kept for observability."""

    probe_id: str
    status: DiagnosticStatus = "ok"
    error: str | None = None
    duration_ms: float = 0.0
    feature_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def succeeded(cls, probe_id: str, duration_ms: float, feature_count: int) -> ProbeDiagnostic:
        return cls(
            probe_id=probe_id, status="ok",
            duration_ms=duration_ms, feature_count=feature_count,
        )

    @classmethod
    def failed(cls, probe_id: str, error: str, duration_ms: float = 0.0) -> ProbeDiagnostic:
        return cls(probe_id=probe_id, status="failed", error=error, duration_ms=duration_ms)

    @classmethod
    def skipped(cls, probe_id: str, reason: str) -> ProbeDiagnostic:
        return cls(probe_id=probe_id, status="skipped", error=reason)


class FeatureSet(BaseModel):
    """Features keyed by id (each id at most once) plus per-probe diagnostics.

    A merged feature keeps the strongest detection: the highest confidence wins,
    and on a tie the earlier detection (lower probe registration index) is kept.
    """

    features: dict[str, Feature] = Field(default_factory=dict)
    diagnostics: list[ProbeDiagnostic] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_keys(self) -> FeatureSet:
        for key, feature in self.features.items():
            if key != feature.id:
                msg = f"feature key {key!r} does not match feature id {feature.id!r}"
                raise ValueError(msg)
        return self

    @classmethod
    def merge(
        cls,
        detections: Iterable[Feature],
        diagnostics: Iterable[ProbeDiagnostic] = (),
    ) -> FeatureSet:
        """Merge an ordered sequence of detections by feature id."""
        merged: dict[str, Feature] = {}
        for feature in detections:
            current = merged.get(feature.id)
            if current is None or feature.confidence > current.confidence:
                merged[feature.id] = feature
        return cls(
            features=dict(sorted(merged.items())),
            diagnostics=list(diagnostics),
        )

    def union(self, other: FeatureSet) -> FeatureSet:
        """Merge another set into a new one; this set wins confidence ties."""
        return FeatureSet.merge(
            [*self.features.values(), *other.features.values()],
            [*self.diagnostics, *other.diagnostics],
        )

    @classmethod
    def from_payload(cls, payload: Any) -> FeatureSet:
        """Build a set from loosely-shaped input.

        Accepts a ``{"features": ...}`` envelope, a mapping of id to feature
        (or to a bare confidence number), or a list of features.
        """
        diagnostics: list[Any] = []
        if isinstance(payload, FeatureSet):
            return payload
        if isinstance(payload, Mapping) and "features" in payload:
            diagnostics = list(payload.get("diagnostics") or [])
            payload = payload["features"]
        if payload is None:
            payload = []

        items: list[Any]
        if isinstance(payload, Mapping):
            items = []
            for key, value in payload.items():
                if isinstance(value, bool) or not isinstance(value, (int, float, Mapping, Feature)):
                    msg = f"feature {key!r} must be an object or a confidence number"
                    raise TypeError(msg)
                if isinstance(value, (int, float)):
                    items.append({"id": key, "confidence": value})
                elif isinstance(value, Feature):
                    items.append(value)
                else:
                    items.append({"id": key, **value})
        elif isinstance(payload, list):
            items = payload
        else:
            msg = f"features must be a mapping or a list, got {type(payload).__name__}"
            raise TypeError(msg)

        detections = [
            item if isinstance(item, Feature) else Feature.model_validate(item)
            for item in items
        ]
        return cls.merge(
            detections,
            [ProbeDiagnostic.model_validate(d) for d in diagnostics],
        )

    # -- Queries --------------------------------------------------------------

    def has(self, feature_id: str, min_confidence: float = 0.0) -> bool:
        feature = self.features.get(feature_id)
        return feature is not None and feature.confidence >= min_confidence

    def get(self, feature_id: str) -> Feature | None:
        return self.features.get(feature_id)

    @property
    def ids(self) -> list[str]:
        return sorted(self.features)

    def by_prefix(self, prefix: str) -> list[Feature]:
        """Features whose id lives under ``prefix`` (``channel`` matches ``channel.sms``)."""
        stem = prefix.rstrip(".") + "."
        return [self.features[k] for k in sorted(self.features) if k.startswith(stem)]

    def by_category(self, category: FeatureCategory | str) -> list[Feature]:
        return [self.features[k] for k in sorted(self.features)
                if self.features[k].category == category]

    def __len__(self) -> int:
        return len(self.features)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self.features

    def __iter__(self) -> Iterator[Feature]:  # type: ignore[override]
        """Features in id order (not pydantic's field/value pairs)."""
        return self.values()

    def values(self) -> Iterator[Feature]:
        """Features in id order."""
        return iter([self.features[k] for k in sorted(self.features)])

"""Rule predicates — pure functions from a FeatureSet to the feature bindings they match.

A predicate returns a list of :class:`Binding`. An empty list means "no match".
Each binding is one way the predicate matched; rules that fan out per feature
produce one action per binding, other rules fold all bindings into one action.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from surveyor.models.feature import FeatureSet


@dataclass(frozen=True)
class Binding:
    """Feature ids a match relied on, plus the fanned-out feature if any."""

    ids: frozenset[str] = frozenset()
    key: str | None = None

    def join(self, other: Binding) -> Binding:
        return Binding(self.ids | other.ids, self.key if self.key is not None else other.key)


class Predicate(Protocol):
    def __call__(self, features: FeatureSet) -> list[Binding]: ...

    def describe(self) -> Any: ...


def _dedupe(bindings: list[Binding]) -> list[Binding]:
    seen: set[Binding] = set()
    out: list[Binding] = []
    for b in bindings:
        if b not in seen:
            seen.add(b)
            out.append(b)
    return out


@dataclass(frozen=True)
class Present:
    feature_id: str
    min_confidence: float = 0.0

    def __call__(self, features: FeatureSet) -> list[Binding]:
        if features.has(self.feature_id, self.min_confidence):
            return [Binding(frozenset({self.feature_id}))]
        return []

    def describe(self) -> Any:
        if self.min_confidence:
            return {"present": {"id": self.feature_id, "min_confidence": self.min_confidence}}
        return {"present": self.feature_id}


@dataclass(frozen=True)
class Absent:
    feature_id: str

    def __call__(self, features: FeatureSet) -> list[Binding]:
        return [] if self.feature_id in features else [Binding()]

    def describe(self) -> Any:
        return {"absent": self.feature_id}


@dataclass(frozen=True)
class Each:
    """Fans out: one binding per feature directly under ``prefix``."""

    prefix: str
    min_confidence: float = 0.0

    def __call__(self, features: FeatureSet) -> list[Binding]:
        depth = self.prefix.rstrip(".").count(".") + 2
        return [
            Binding(frozenset({f.id}), key=f.id)
            for f in features.by_prefix(self.prefix)
            if f.confidence >= self.min_confidence and f.id.count(".") + 1 == depth
        ]

    def describe(self) -> Any:
        if self.min_confidence:
            return {"each": {"prefix": self.prefix, "min_confidence": self.min_confidence}}
        return {"each": self.prefix}


@dataclass(frozen=True)
class InCategory:
    """Matches once if any feature of the category is present."""

    category: str
    min_confidence: float = 0.0

    def __call__(self, features: FeatureSet) -> list[Binding]:
        ids = frozenset(
            f.id for f in features.by_category(self.category)
            if f.confidence >= self.min_confidence
        )
        return [Binding(ids)] if ids else []

    def describe(self) -> Any:
        return {"category": self.category}


@dataclass(frozen=True)
class AllOf:
    """Every child must match; bindings combine as a cross product."""

    children: tuple[Predicate, ...]

    def __call__(self, features: FeatureSet) -> list[Binding]:
        results = []
        for child in self.children:
            bindings = child(features)
            if not bindings:
                return []
            results.append(bindings)
        combined = []
        for combo in itertools.product(*results):
            joined = Binding()
            for b in combo:
                joined = joined.join(b)
            combined.append(joined)
        return _dedupe(combined)

    def describe(self) -> Any:
        return {"all": [c.describe() for c in self.children]}


@dataclass(frozen=True)
class AnyOf:
    """At least one child must match; bindings of matching children are concatenated."""

    children: tuple[Predicate, ...]

    def __call__(self, features: FeatureSet) -> list[Binding]:
        out: list[Binding] = []
        for child in self.children:
            out.extend(child(features))
        return _dedupe(out)

    def describe(self) -> Any:
        return {"any": [c.describe() for c in self.children]}


def present(feature_id: str, min_confidence: float = 0.0) -> Present:
    return Present(feature_id, min_confidence)


def absent(feature_id: str) -> Absent:
    return Absent(feature_id)


def each(prefix: str, min_confidence: float = 0.0) -> Each:
    return Each(prefix, min_confidence)


def in_category(category: str, min_confidence: float = 0.0) -> InCategory:
    return InCategory(category, min_confidence)


def all_of(*children: Predicate) -> AllOf:
    return AllOf(tuple(children))


def any_of(*children: Predicate) -> AnyOf:
    return AnyOf(tuple(children))

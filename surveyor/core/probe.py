"""Probe system — BaseProbe ABC, ProbeMeta, ProbeContext, the never-raising run boundary."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, Field

from surveyor.models.errors import ProbeFailure, TimeoutExceeded
from surveyor.models.feature import Feature, FeatureCategory, ProbeDiagnostic

if TYPE_CHECKING:
    from surveyor.config import Settings
    from surveyor.models.scan import ScanConfig
    from surveyor.utils.http import AsyncHttpClient

logger = logging.getLogger(__name__)


class ProbeMeta(BaseModel):
    """Metadata declaring what a probe inspects and where it applies."""

    name: str
    display_name: str
    category: FeatureCategory
    description: str = ""
    channels: frozenset[str] = frozenset()       # channel tags that select this probe
    integrations: frozenset[str] = frozenset()   # integration tags that select this probe
    industries: frozenset[str] = frozenset()     # empty = every industry
    requires: list[str] = Field(default_factory=list)  # dotted ScanConfig paths
    requires_http: bool = False
    timeout: float | None = None                 # None = settings.scan.default_probe_timeout

    @property
    def tenant_wide(self) -> bool:
        return not self.channels and not self.integrations


@dataclass
class ProbeContext:
    """Dependency container handed to every probe run. No globals."""

    settings: Settings
    http: AsyncHttpClient | None = None
    params: dict[str, Any] = field(default_factory=dict)
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("surveyor"))


@dataclass(frozen=True)
class ProbeOutcome:
    features: list[Feature]
    diagnostic: ProbeDiagnostic


class BaseProbe(ABC):
    """Base class for all probes.

    Convention: one class with `meta` and one `detect` coroutine. `detect` may
    raise; `run` is the boundary that turns every fault into a diagnostic.
    """

    meta: ClassVar[ProbeMeta]

    @abstractmethod
    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        """Inspect one aspect of the tenant configuration."""

    def applies_to(self, config: ScanConfig) -> bool:
        """True if the probe's declared scope intersects the requested scope."""
        meta = self.meta
        if meta.industries and config.industry.value not in meta.industries:
            return False
        if meta.tenant_wide:
            return True
        return bool(
            meta.channels.intersection(config.channels)
            or meta.integrations.intersection(config.integrations)
        )

    def missing_requirements(self, config: ScanConfig) -> list[str]:
        return [path for path in self.meta.requires if config.lookup(path) in (None, "", {}, [])]

    def feature(
        self,
        feature_id: str,
        confidence: float,
        *,
        category: FeatureCategory | None = None,
        **evidence: Any,
    ) -> Feature:
        """Factory for a detection stamped with this probe's name."""
        return Feature(
            id=feature_id,
            category=category or self.meta.category,
            confidence=min(1.0, max(0.0, confidence)),
            evidence=evidence,
            source_probe=self.meta.name,
        )

    async def run(
        self,
        config: ScanConfig,
        ctx: ProbeContext,
        timeout: float | None = None,
    ) -> ProbeOutcome:
        """Run the probe. Never raises: faults become a ``failed`` diagnostic."""
        name = self.meta.name
        missing = self.missing_requirements(config)
        if missing:
            reason = f"missing config: {', '.join(missing)}"
            logger.debug("Probe %s skipped (%s)", name, reason)
            return ProbeOutcome([], ProbeDiagnostic.skipped(name, reason))

        own = self.meta.timeout
        if own is None:
            own = ctx.settings.scan.default_probe_timeout
        limit = own if timeout is None else min(own, timeout)
        start = time.monotonic()
        try:
            detected = await asyncio.wait_for(self.detect(config, ctx), timeout=limit)
            features = self._stamp(detected)
        except TimeoutError:
            return self._timed_out(TimeoutExceeded(f"timed out after {limit:g}s"), start)
        except TimeoutExceeded as e:
            return self._timed_out(e, start)
        except ProbeFailure as e:
            elapsed = (time.monotonic() - start) * 1000
            logger.warning("Probe %s failed: %s", name, e)
            return ProbeOutcome([], ProbeDiagnostic.failed(name, f"ProbeFailure: {e}", elapsed))
        except Exception as e:
            elapsed = (time.monotonic() - start) * 1000
            logger.exception("Probe %s failed", name)
            return ProbeOutcome(
                [], ProbeDiagnostic.failed(name, f"{type(e).__name__}: {e}", elapsed),
            )

        elapsed = (time.monotonic() - start) * 1000
        return ProbeOutcome(
            features, ProbeDiagnostic.succeeded(name, elapsed, len(features)),
        )

    def _stamp(self, detected: Any) -> list[Feature]:
        """Check what ``detect`` returned and stamp every feature with this probe's name."""
        if not isinstance(detected, (list, tuple)):
            msg = f"detect returned {type(detected).__name__}, expected a list of features"
            raise ProbeFailure(msg)
        name = self.meta.name
        features: list[Feature] = []
        for item in detected:
            if not isinstance(item, Feature):
                msg = f"detect returned a {type(item).__name__} item, expected Feature"
                raise ProbeFailure(msg)
            features.append(
                item if item.source_probe == name else item.model_copy(update={"source_probe": name})
            )
        return features

    def _timed_out(self, err: TimeoutExceeded, start: float) -> ProbeOutcome:
        elapsed = (time.monotonic() - start) * 1000
        logger.warning("Probe %s %s", self.meta.name, err)
        return ProbeOutcome([], ProbeDiagnostic.failed(self.meta.name, str(err), elapsed))

    def __repr__(self) -> str:
        return f"<Probe {self.meta.name}>"

"""Scan models — what we scan and what comes back."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from surveyor.models.errors import ConfigError
from surveyor.models.feature import FeatureSet, ProbeDiagnostic


class Industry(StrEnum):
    BANKING = "banking"
    INSURANCE = "insurance"
    MICROFINANCE = "microfinance"
    MOBILE = "mobile"
    TELEVISION = "television"


CHANNELS = frozenset({"sms", "whatsapp", "ivr", "ussd", "email", "web"})
INTEGRATIONS = frozenset({
    "crm", "mobile_money", "kyc", "payments", "core_banking", "billing",
})


def _normalize_tags(values: list[str], known: frozenset[str], kind: str) -> list[str]:
    seen: list[str] = []
    for raw in values:
        tag = raw.strip().lower()
        if tag not in known:
            msg = f"unknown {kind} {raw!r} (expected one of: {', '.join(sorted(known))})"
            raise ValueError(msg)
        if tag not in seen:
            seen.append(tag)
    return seen


class ScanConfig(BaseModel):
    """Input of one scan. Frozen for the duration of the scan."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tenant_id: str
    industry: Industry
    channels: list[str]
    integrations: list[str] = Field(default_factory=list)
    environment: dict[str, Any] = Field(default_factory=dict)
    base_url: str | None = None
    probe_params: dict[str, dict[str, Any]] = Field(default_factory=dict)
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("tenant_id")
    @classmethod
    def _check_tenant(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "tenant_id must not be blank"
            raise ValueError(msg)
        return v

    @field_validator("industry", mode="before")
    @classmethod
    def _lower_industry(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("channels")
    @classmethod
    def _check_channels(cls, v: list[str]) -> list[str]:
        if not v:
            msg = "at least one channel is required"
            raise ValueError(msg)
        return _normalize_tags(v, CHANNELS, "channel")

    @field_validator("integrations")
    @classmethod
    def _check_integrations(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v, INTEGRATIONS, "integration")

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            msg = "base_url must be an http(s) URL"
            raise ValueError(msg)
        return v

    @classmethod
    def parse(cls, payload: ScanConfig | Mapping[str, Any]) -> ScanConfig:
        """Validate raw input, converting validation failures into ConfigError."""
        if isinstance(payload, ScanConfig):
            return payload
        if not isinstance(payload, Mapping):
            msg = f"scan config must be an object, got {type(payload).__name__}"
            raise ConfigError(msg)
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigError("Invalid scan config: " + "; ".join(errors), errors) from e

    def lookup(self, path: str) -> Any:
        """Resolve a dotted path (``base_url``, ``environment.sms.provider``).

        Returns None when any segment is missing.
        """
        head, _, rest = path.partition(".")
        value: Any = getattr(self, head, None)
        for part in rest.split(".") if rest else []:
            if not isinstance(value, Mapping):
                return None
            value = value.get(part)
        return value

    def params_for(self, probe_name: str) -> dict[str, Any]:
        return dict(self.probe_params.get(probe_name, {}))


class ScanResult(BaseModel):
    """Merged features plus per-probe diagnostics for one scan."""

    tenant_id: str
    industry: Industry
    features: FeatureSet = Field(default_factory=FeatureSet)
    duration_ms: float = 0.0
    timed_out: bool = False
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def diagnostics(self) -> list[ProbeDiagnostic]:
        return self.features.diagnostics

    @property
    def failed(self) -> list[ProbeDiagnostic]:
        return [d for d in self.diagnostics if d.status == "failed"]

    @property
    def skipped(self) -> list[ProbeDiagnostic]:
        return [d for d in self.diagnostics if d.status == "skipped"]

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total_features(self) -> int:
        return len(self.features)

    def to_payload(self) -> dict[str, Any]:
        """JSON body with the feature map and diagnostics side by side.

        The body is itself a valid ``FeatureSet.from_payload`` envelope.
        """
        payload = self.model_dump(mode="json", exclude={"features"})
        features = self.features.model_dump(mode="json")
        payload["features"] = features["features"]
        payload["diagnostics"] = features["diagnostics"]
        payload["total_features"] = self.total_features
        return payload

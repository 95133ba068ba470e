"""Back-office integrations declared in the tenant configuration."""

from __future__ import annotations

from typing import Any, ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import INTEGRATIONS, ScanConfig
from surveyor.probes._common import section, text_of

ENDPOINT_KEYS = ("base_url", "endpoint", "url", "host")
CREDENTIAL_KEYS = ("api_key", "token", "client_id", "client_secret", "username")


def _first(entry: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = text_of(entry.get(key))
        if value:
            return value
    return ""


class ConfiguredIntegrationsProbe(BaseProbe):
    """One ``integration.<name>`` feature per requested integration that is configured.

    Confidence reflects how complete the entry is: endpoint plus credentials
    is a working integration, either alone is only a partial setup.
    """

    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="integrations",
        display_name="Configured Integrations",
        category=FeatureCategory.INTEGRATION,
        description="Detects CRM, payment, KYC and billing integrations",
        integrations=INTEGRATIONS,
        requires=["environment.integrations"],
        timeout=5.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        declared = section(config, "environment.integrations")
        min_confidence = float(ctx.params.get("min_confidence", 0.0))

        features: list[Feature] = []
        for name in config.integrations:
            entry = declared.get(name)
            if not isinstance(entry, dict):
                continue
            endpoint = _first(entry, ENDPOINT_KEYS)
            has_credentials = bool(_first(entry, CREDENTIAL_KEYS))
            if endpoint and has_credentials:
                confidence = 0.9
            elif endpoint:
                confidence = 0.6
            elif has_credentials:
                confidence = 0.5
            else:
                continue
            if confidence < min_confidence:
                ctx.log.debug("Integration %s below min confidence, skipped", name)
                continue
            features.append(self.feature(
                f"integration.{name}", confidence,
                vendor=text_of(entry.get("vendor") or entry.get("type")) or None,
                endpoint=endpoint or None,
                has_credentials=has_credentials,
            ))
        return features

"""SMS gateway configuration."""

from __future__ import annotations

import re
from typing import ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig
from surveyor.probes._common import section, text_of

SHORTCODE_RE = re.compile(r"^\d{3,6}$")


class SmsGatewayProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="sms_gateway",
        display_name="SMS Gateway",
        category=FeatureCategory.CHANNEL,
        description="Detects a configured SMS provider, sender id and shortcode",
        channels=frozenset({"sms"}),
        requires=["environment.sms"],
        timeout=5.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        sms = section(config, "environment.sms")
        provider = text_of(sms.get("provider"))
        if not provider:
            return []

        sender_id = text_of(sms.get("sender_id"))
        features = [
            self.feature(
                "channel.sms", 0.9 if sender_id else 0.6,
                provider=provider, sender_id=sender_id or None,
            )
        ]

        shortcode = text_of(sms.get("shortcode"))
        if shortcode:
            if SHORTCODE_RE.match(shortcode):
                features.append(self.feature("channel.sms.shortcode", 0.9, shortcode=shortcode))
            else:
                ctx.log.warning("Ignoring malformed SMS shortcode %r", shortcode)
        return features

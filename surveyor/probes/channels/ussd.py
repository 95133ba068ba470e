"""USSD service code configuration."""

from __future__ import annotations

import re
from typing import ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.errors import ProbeFailure
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig
from surveyor.probes._common import section, text_of

SERVICE_CODE_RE = re.compile(r"^\*\d{2,4}(\*\d+)*#$")


class UssdGatewayProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="ussd_gateway",
        display_name="USSD Gateway",
        category=FeatureCategory.CHANNEL,
        description="Validates the tenant's USSD service code",
        channels=frozenset({"ussd"}),
        industries=frozenset({"banking", "microfinance", "mobile", "insurance"}),
        requires=["environment.ussd"],
        timeout=5.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        ussd = section(config, "environment.ussd")
        code = text_of(ussd.get("service_code"))
        if not code:
            return []
        if not SERVICE_CODE_RE.match(code):
            msg = f"USSD service code {code!r} is not of the form *123#"
            raise ProbeFailure(msg)
        return [
            self.feature(
                "channel.ussd", 0.9,
                service_code=code, provider=text_of(ussd.get("provider")) or None,
            )
        ]

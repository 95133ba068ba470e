"""Email channel configuration."""

from __future__ import annotations

import re
from typing import ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig
from surveyor.probes._common import section, text_of

ADDRESS_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$", re.IGNORECASE)


class EmailChannelProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="email_channel",
        display_name="Email Channel",
        category=FeatureCategory.CHANNEL,
        description="Detects outbound SMTP and an inbound support address",
        channels=frozenset({"email"}),
        requires=["environment.email"],
        timeout=5.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        email = section(config, "environment.email")
        smtp_host = text_of(email.get("smtp_host"))
        inbound = text_of(email.get("inbound_address"))
        if inbound and not ADDRESS_RE.match(inbound):
            ctx.log.warning("Ignoring malformed inbound address %r", inbound)
            inbound = ""
        if not smtp_host and not inbound:
            return []
        return [
            self.feature(
                "channel.email", 0.9 if smtp_host and inbound else 0.7,
                smtp_host=smtp_host or None, inbound_address=inbound or None,
            )
        ]

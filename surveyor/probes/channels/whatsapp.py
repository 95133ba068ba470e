"""WhatsApp Business API configuration."""

from __future__ import annotations

from typing import ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig
from surveyor.probes._common import section, text_of


class WhatsAppBusinessProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="whatsapp_business",
        display_name="WhatsApp Business",
        category=FeatureCategory.CHANNEL,
        description="Detects WhatsApp Business API credentials and webhook",
        channels=frozenset({"whatsapp"}),
        requires=["environment.whatsapp"],
        timeout=5.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        wa = section(config, "environment.whatsapp")
        phone_number_id = text_of(wa.get("phone_number_id"))
        if not phone_number_id:
            return []

        has_token = bool(text_of(wa.get("access_token")))
        features = [
            self.feature(
                "channel.whatsapp", 0.95 if has_token else 0.5,
                phone_number_id=phone_number_id,
                business_account_id=text_of(wa.get("business_account_id")) or None,
                has_access_token=has_token,
            )
        ]

        webhook = text_of(wa.get("webhook_url"))
        if webhook.startswith("https://"):
            features.append(self.feature(
                "channel.whatsapp.webhook", 0.9 if wa.get("verify_token") else 0.7,
                webhook_url=webhook,
            ))
        elif webhook:
            ctx.log.warning("WhatsApp webhook %s is not HTTPS, ignoring", webhook)
        return features

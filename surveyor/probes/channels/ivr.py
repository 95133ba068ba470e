"""Voice / IVR configuration."""

from __future__ import annotations

from typing import Any, ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig
from surveyor.probes._common import section, text_of


def menu_depth(menu: Any) -> int:
    """Depth of a nested IVR menu (list of options, each may carry ``options``)."""
    if not isinstance(menu, list) or not menu:
        return 0
    return 1 + max(
        (menu_depth(o.get("options")) for o in menu if isinstance(o, dict)),
        default=0,
    )


class VoiceIvrProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="voice_ivr",
        display_name="Voice IVR",
        category=FeatureCategory.CHANNEL,
        description="Detects an IVR provider, inbound number and menu tree",
        channels=frozenset({"ivr"}),
        requires=["environment.ivr"],
        timeout=5.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        ivr = section(config, "environment.ivr")
        provider = text_of(ivr.get("provider"))
        number = text_of(ivr.get("phone_number"))
        if not provider and not number:
            return []

        menu = ivr.get("menu") or []
        confidence = 0.85 if provider and number else 0.5
        return [
            self.feature(
                "channel.ivr", confidence,
                provider=provider or None,
                phone_number=number or None,
                menu_options=len(menu) if isinstance(menu, list) else 0,
                menu_depth=menu_depth(menu),
            )
        ]

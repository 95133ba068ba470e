"""Product catalog — products, pricing and catalog categories per industry."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.errors import ProbeFailure
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig

# Catalog category -> keywords, per industry. First match wins.
INDUSTRY_CATEGORIES: dict[str, dict[str, tuple[str, ...]]] = {
    "mobile": {
        "data_bundle": ("data", "bundle", "mb", "gb"),
        "voice_package": ("minutes", "voice", "call"),
        "sms_bundle": ("sms",),
        "airtime": ("airtime", "top-up", "topup", "recharge"),
        "device": ("device", "phone", "handset", "router"),
    },
    "banking": {
        "savings_account": ("savings",),
        "current_account": ("current account", "checking"),
        "loan": ("loan", "mortgage", "overdraft"),
        "credit_card": ("credit card", "debit card", "card"),
        "fixed_deposit": ("fixed deposit", "deposit", "interest"),
    },
    "insurance": {
        "life_insurance": ("life",),
        "health_insurance": ("health", "medical"),
        "motor_insurance": ("motor", "vehicle", "car"),
        "home_insurance": ("home", "property"),
        "travel_insurance": ("travel",),
    },
    "microfinance": {
        "group_loan": ("group", "chama"),
        "business_loan": ("business",),
        "emergency_loan": ("emergency",),
        "personal_loan": ("loan", "credit", "collateral"),
        "savings_account": ("savings",),
    },
    "television": {
        "premium_channel": ("premium", "sports", "movies"),
        "streaming": ("streaming", "online", "app"),
        "decoder": ("decoder",),
        "add_on": ("add-on", "addon", "hd"),
        "tv_package": ("package", "channel", "subscription", "bouquet"),
    },
}

PRICE_PATTERNS = [
    re.compile(r"(?:KES|KSH|Ksh\.?)\s*[\d,]+(?:\.\d{2})?", re.IGNORECASE),
    re.compile(r"(?:USD|\$)\s*[\d,]+(?:\.\d{2})?", re.IGNORECASE),
    re.compile(r"(?:EUR|€)\s*[\d,]+(?:\.\d{2})?", re.IGNORECASE),
    re.compile(r"(?:GBP|£)\s*[\d,]+(?:\.\d{2})?", re.IGNORECASE),
    re.compile(r"[\d,]+(?:\.\d{2})?\s*(?:per|/)\s*(?:day|week|month|year)", re.IGNORECASE),
]

DURATION_RE = re.compile(
    r"\b(\d+\s*(?:day|week|month|year)s?|daily|weekly|monthly|yearly|annual)\b",
    re.IGNORECASE,
)


def item_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        parts = [item.get("name"), item.get("description"), item.get("category")]
        return " ".join(str(p) for p in parts if p)
    msg = f"catalog items must be strings or mappings, got {type(item).__name__}"
    raise ProbeFailure(msg)


def classify(text: str, industry: str) -> str | None:
    lower = text.lower()
    for category, keywords in INDUSTRY_CATEGORIES.get(industry, {}).items():
        if any(re.search(rf"\b{re.escape(k)}\b", lower) for k in keywords):
            return category
    return None


def has_price(item: Any, text: str) -> bool:
    if isinstance(item, dict) and isinstance(item.get("price"), (int, float)):
        return True
    return any(p.search(text) for p in PRICE_PATTERNS)


class ProductCatalogProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="product_catalog",
        display_name="Product Catalog",
        category=FeatureCategory.DATA,
        description="Classifies catalog entries into industry product categories",
        requires=["environment.catalog"],
        timeout=10.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        catalog = config.environment["catalog"]
        if not isinstance(catalog, list):
            msg = "environment.catalog must be a list"
            raise ProbeFailure(msg)

        industry = config.industry.value
        categories: dict[str, list[str]] = {}
        priced = 0
        durations: set[str] = set()
        recognized = 0

        for item in catalog:
            text = item_text(item)
            if not text.strip():
                continue
            category = None
            if isinstance(item, dict) and item.get("category") in INDUSTRY_CATEGORIES.get(industry, {}):
                category = item["category"]
            else:
                category = classify(text, industry)
            if category is None:
                continue
            recognized += 1
            categories.setdefault(category, []).append(text[:80])
            if has_price(item, text):
                priced += 1
            durations.update(d.lower() for d in DURATION_RE.findall(text))

        if not recognized:
            ctx.log.debug("No %s products recognized in %d catalog items", industry, len(catalog))
            return []

        share = recognized / len(catalog)
        features = [
            self.feature(
                "data.products", round(min(0.95, 0.5 + 0.45 * share), 3),
                total=len(catalog), recognized=recognized, industry=industry,
            )
        ]
        if priced:
            features.append(self.feature(
                "data.pricing", round(min(0.9, 0.5 + 0.4 * priced / recognized), 3),
                priced=priced, durations=sorted(durations),
            ))
        for category in sorted(categories):
            features.append(self.feature(
                f"data.catalog.{category}", 0.8,
                count=len(categories[category]), examples=categories[category][:3],
            ))
        return features

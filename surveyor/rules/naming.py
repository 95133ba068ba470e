"""Action naming helpers — slugs and keyword categories."""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9\s_]")
_SPACES = re.compile(r"[\s_]+")

# First match wins
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("account", ("balance", "account")),
    ("user_management", ("user", "profile")),
    ("support", ("ticket", "support", "escalat")),
    ("transactions", ("payment", "transaction", "money")),
    ("security", ("reset", "password", "otp", "kyc", "verify")),
    ("creation", ("create", "add")),
    ("viewing", ("view", "list")),
    ("editing", ("update", "edit")),
    ("routing", ("route", "routing")),
]


def slugify(text: str) -> str:
    """``"Enable SMS Routing!"`` -> ``"enable_sms_routing"``."""
    lowered = _NON_ALNUM.sub("", text.lower()).strip()
    return _SPACES.sub("_", lowered).strip("_")


def categorize(name: str) -> str:
    lower = name.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in lower for k in keywords):
            return category
    return "general"

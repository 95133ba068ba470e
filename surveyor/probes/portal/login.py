"""Portal login page — login form, OTP step, other forms."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from surveyor.core.probe import BaseProbe, ProbeContext, ProbeMeta
from surveyor.models.errors import ProbeFailure
from surveyor.models.feature import Feature, FeatureCategory
from surveyor.models.scan import ScanConfig

FORM_RE = re.compile(r"<form\b([^>]*)>(.*?)</form>", re.IGNORECASE | re.DOTALL)
FIELD_RE = re.compile(r"<(input|select|textarea)\b([^>]*)>", re.IGNORECASE)
ATTR_RE = re.compile(r"""([a-zA-Z_:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""")
OTP_NAME_RE = re.compile(r"otp|2fa|mfa|one.?time|verification.?code|totp", re.IGNORECASE)
USERNAME_RE = re.compile(r"user|email|login|phone|account", re.IGNORECASE)
LOGIN_TEXT_RE = re.compile(r"\b(sign|log)\s?in\b", re.IGNORECASE)
BARE_ATTR_RE = re.compile(r"[a-zA-Z_:-]+")
FORM_SLUG_RE = re.compile(r"[^a-z0-9]+")
NON_FIELD_TYPES = {"hidden", "submit", "button", "reset", "image"}


def parse_attrs(raw: str) -> dict[str, str]:
    """Tag attributes; bare boolean attributes (``required``) map to ``""``."""
    attrs: dict[str, str] = {}
    for m in ATTR_RE.finditer(raw):
        attrs[m.group(1).lower()] = next(g for g in m.groups()[1:] if g is not None)
    for name in BARE_ATTR_RE.findall(ATTR_RE.sub(" ", raw)):
        attrs.setdefault(name.lower(), "")
    return attrs


def selector_for(attrs: dict[str, str], tag: str = "input") -> str:
    """CSS selector for a field, preferring id over name."""
    if attrs.get("id"):
        return f"#{attrs['id']}"
    if attrs.get("name"):
        return f"{tag}[name=\"{attrs['name']}\"]"
    if tag != "input":
        return tag
    return f"input[type=\"{attrs.get('type', 'text')}\"]"


def form_selector(attrs: dict[str, str], position: int) -> str:
    if attrs.get("id"):
        return f"#{attrs['id']}"
    if attrs.get("name"):
        return f"form[name=\"{attrs['name']}\"]"
    if attrs.get("action"):
        return f"form[action=\"{attrs['action']}\"]"
    return f"form:nth-of-type({position})"


def form_slug(attrs: dict[str, str], position: int) -> str:
    """Feature id segment for a form: its id, name, or the last path segment of its action."""
    action = (attrs.get("action") or "").split("?", 1)[0].rstrip("/")
    for candidate in (attrs.get("id"), attrs.get("name"), action.rsplit("/", 1)[-1]):
        slug = FORM_SLUG_RE.sub("_", (candidate or "").lower()).strip("_")
        if slug:
            return slug
    return f"form_{position}"


def describe_field(attrs: dict[str, str]) -> dict[str, Any]:
    tag = attrs["tag"]
    return {
        "name": attrs.get("name") or attrs.get("id") or "",
        "type": attrs.get("type", "text").lower() if tag == "input" else tag,
        "required": "required" in attrs,
        "selector": selector_for(attrs, tag),
        "placeholder": attrs.get("placeholder") or None,
    }


def analyze_forms(html: str) -> list[dict[str, Any]]:
    forms = []
    for position, m in enumerate(FORM_RE.finditer(html), start=1):
        form_attrs = parse_attrs(m.group(1))
        inputs = [
            {**parse_attrs(f.group(2)), "tag": f.group(1).lower()}
            for f in FIELD_RE.finditer(m.group(2))
        ]
        visible = [i for i in inputs if i.get("type", "text").lower() not in NON_FIELD_TYPES]
        password = [i for i in visible if i.get("type", "").lower() == "password"]
        otp = [
            i for i in visible
            if i.get("autocomplete", "").lower() == "one-time-code"
            or OTP_NAME_RE.search(i.get("name", "") + " " + i.get("id", ""))
        ]
        username = [
            i for i in visible
            if i not in password and i not in otp
            and USERNAME_RE.search(i.get("name", "") + " " + i.get("id", "") + " " + i.get("type", ""))
        ]
        selector = form_selector(form_attrs, position)
        forms.append({
            "action": form_attrs.get("action"),
            "selector": selector,
            "slug": form_slug(form_attrs, position),
            "submit_selector": f'{selector} button[type="submit"], {selector} input[type="submit"]',
            "fields": [describe_field(i) for i in visible],
            "password": password,
            "otp": otp,
            "username": username,
        })
    return forms


class PortalLoginProbe(BaseProbe):
    meta: ClassVar[ProbeMeta] = ProbeMeta(
        name="portal_login",
        display_name="Portal Login",
        category=FeatureCategory.PORTAL,
        description="Fetches the tenant portal and detects login, OTP and other forms",
        channels=frozenset({"web"}),
        requires=["base_url"],
        requires_http=True,
        timeout=15.0,
    )

    async def detect(self, config: ScanConfig, ctx: ProbeContext) -> list[Feature]:
        if ctx.http is None:
            msg = "HTTP client not available"
            raise ProbeFailure(msg)

        url = f"{config.base_url}{ctx.params.get('login_path', '')}"
        page = await ctx.http.fetch_page(url, timeout=float(ctx.params.get("timeout", 10.0)))
        if page["status"] >= 400:
            msg = f"portal returned HTTP {page['status']} for {url}"
            raise ProbeFailure(msg)

        forms = analyze_forms(page["text"])
        features: list[Feature] = []

        login = next((f for f in forms if f["password"]), None)
        if login is not None:
            features.append(self.feature(
                "portal.login", 0.9,
                url=page["url"],
                form_action=login["action"],
                username_field=selector_for(login["username"][0]) if login["username"] else None,
                password_field=selector_for(login["password"][0]),
            ))
        elif LOGIN_TEXT_RE.search(page["text"]):
            # Login text without a password field: likely a script-rendered form
            features.append(self.feature("portal.login", 0.4, url=page["url"], rendered=False))

        otp_fields = [i for f in forms for i in f["otp"]]
        if otp_fields:
            features.append(self.feature(
                "portal.otp", 0.8, otp_field=selector_for(otp_fields[0]),
            ))

        other = [f for f in forms if f is not login and f["fields"] and not f["otp"]]
        if other:
            features.append(self.feature(
                "portal.forms", 0.7,
                count=len(other),
                actions=sorted({f["action"] for f in other if f["action"]}),
            ))
            features.extend(self._form_features(other, page["url"]))
        return features

    def _form_features(self, forms: list[dict[str, Any]], url: str) -> list[Feature]:
        """One ``portal.forms.<slug>`` feature per form, carrying its field descriptors."""
        features = []
        seen: set[str] = set()
        for position, form in enumerate(forms, start=1):
            slug = form["slug"]
            if slug in seen:
                slug = f"{slug}_{position}"
            seen.add(slug)
            features.append(self.feature(
                f"portal.forms.{slug}", 0.7,
                url=url,
                action=form["action"],
                selector=form["selector"],
                submit_selector=form["submit_selector"],
                fields=form["fields"],
            ))
        return features

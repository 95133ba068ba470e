"""Tests for the portal login probe."""

from dataclasses import replace
from unittest.mock import AsyncMock

from surveyor.models.scan import ScanConfig
from surveyor.probes.portal.login import (
    PortalLoginProbe,
    analyze_forms,
    parse_attrs,
    selector_for,
)

LOGIN_PAGE = """
<html><body>
  <form action="/login" method="post">
    <input type="hidden" name="csrf" value="x">
    <input type="email" id="email" name="email">
    <input type="password" name="password">
  </form>
  <form action="/verify">
    <input name="otp_code" autocomplete="one-time-code">
  </form>
  <form action='/contact'>
    <input type=text name=subject>
    <input type="text" name="message">
  </form>
</body></html>
"""


FORMS_PAGE = """
<form id="signup" action="/account/signup?ref=home">
  <input type="email" name="email" placeholder="Work email" required>
  <input type="number" name="seats">
  <input type="checkbox" name="terms" required />
  <select name="plan" required><option>basic</option></select>
  <textarea id="notes" placeholder="Anything else?"></textarea>
  <input type="hidden" name="csrf" value="x">
  <button type="submit">Go</button>
</form>
<form action="/contact"><input name="topic"></form>
<form action="/contact"><input name="question"></form>
<form><input name="q"></form>
"""


def _page(text, status=200):
    return {
        "url": "https://portal.acme.test/", "status": status,
        "content_type": "text/html", "headers": {}, "text": text,
    }


def _config(**params):
    return ScanConfig(
        tenant_id="acme", industry="banking", channels=["web"],
        base_url="https://portal.acme.test/",
        probe_params={"portal_login": params} if params else {},
    )


def _http(page):
    http = AsyncMock()
    http.fetch_page.return_value = page
    return http


class TestFormParsing:
    def test_parse_attrs_quoting_styles(self):
        attrs = parse_attrs(""" type="text" NAME='user' id=login """)
        assert attrs == {"type": "text", "name": "user", "id": "login"}

    def test_parse_attrs_bare_boolean(self):
        attrs = parse_attrs(' name="email" required disabled placeholder="Your email"')
        assert attrs == {"name": "email", "placeholder": "Your email", "required": "", "disabled": ""}

    def test_selector_prefers_id(self):
        assert selector_for({"id": "email", "name": "email"}) == "#email"
        assert selector_for({"name": "user"}) == 'input[name="user"]'
        assert selector_for({"type": "password"}) == 'input[type="password"]'
        assert selector_for({"name": "plan"}, "select") == 'select[name="plan"]'

    def test_analyze_forms(self):
        forms = analyze_forms(LOGIN_PAGE)
        assert [f["action"] for f in forms] == ["/login", "/verify", "/contact"]
        login = forms[0]
        assert len(login["fields"]) == 2
        assert login["selector"] == 'form[action="/login"]'
        assert len(login["password"]) == 1
        assert login["username"][0]["id"] == "email"
        assert len(forms[1]["otp"]) == 1

    def test_field_descriptors(self):
        signup = analyze_forms(FORMS_PAGE)[0]
        assert signup["selector"] == "#signup"
        assert signup["slug"] == "signup"
        assert signup["submit_selector"] == (
            '#signup button[type="submit"], #signup input[type="submit"]'
        )
        assert signup["fields"] == [
            {"name": "email", "type": "email", "required": True,
             "selector": 'input[name="email"]', "placeholder": "Work email"},
            {"name": "seats", "type": "number", "required": False,
             "selector": 'input[name="seats"]', "placeholder": None},
            {"name": "terms", "type": "checkbox", "required": True,
             "selector": 'input[name="terms"]', "placeholder": None},
            {"name": "plan", "type": "select", "required": True,
             "selector": 'select[name="plan"]', "placeholder": None},
            {"name": "notes", "type": "textarea", "required": False,
             "selector": "#notes", "placeholder": "Anything else?"},
        ]

    def test_form_selectors_and_slugs(self):
        forms = analyze_forms(FORMS_PAGE)
        assert [f["selector"] for f in forms[1:]] == [
            'form[action="/contact"]', 'form[action="/contact"]', "form:nth-of-type(4)",
        ]
        assert [f["slug"] for f in forms] == ["signup", "contact", "contact", "form_4"]


class TestPortalLoginProbe:
    async def test_detects_login_otp_and_forms(self, ctx):
        http = _http(_page(LOGIN_PAGE))
        features = await PortalLoginProbe().detect(_config(), replace(ctx, http=http))
        by_id = {f.id: f for f in features}
        assert set(by_id) == {"portal.login", "portal.otp", "portal.forms", "portal.forms.contact"}
        assert by_id["portal.login"].confidence == 0.9
        assert by_id["portal.login"].evidence["username_field"] == "#email"
        assert by_id["portal.login"].evidence["password_field"] == 'input[name="password"]'
        assert by_id["portal.otp"].evidence["otp_field"] == 'input[name="otp_code"]'
        assert by_id["portal.forms"].evidence == {"count": 1, "actions": ["/contact"]}
        http.fetch_page.assert_awaited_once_with("https://portal.acme.test", timeout=10.0)

    async def test_feature_per_form_with_fields(self, ctx):
        http = _http(_page(FORMS_PAGE))
        features = await PortalLoginProbe().detect(_config(), replace(ctx, http=http))
        by_id = {f.id: f for f in features}
        assert set(by_id) == {
            "portal.forms", "portal.forms.signup", "portal.forms.contact",
            "portal.forms.contact_3", "portal.forms.form_4",
        }
        assert by_id["portal.forms"].evidence["count"] == 4
        signup = by_id["portal.forms.signup"].evidence
        assert signup["url"] == "https://portal.acme.test/"
        assert signup["action"] == "/account/signup?ref=home"
        assert signup["submit_selector"].startswith("#signup button")
        assert [f["name"] for f in signup["fields"]] == ["email", "seats", "terms", "plan", "notes"]
        assert by_id["portal.forms.contact_3"].evidence["fields"][0]["name"] == "question"

    async def test_login_path_param(self, ctx):
        http = _http(_page("<p>nothing</p>"))
        probe_ctx = replace(ctx, http=http, params={"login_path": "/signin", "timeout": 3})
        assert await PortalLoginProbe().detect(_config(), probe_ctx) == []
        http.fetch_page.assert_awaited_once_with("https://portal.acme.test/signin", timeout=3.0)

    async def test_login_text_without_form(self, ctx):
        http = _http(_page("<div id='app'>Please sign in to continue</div>"))
        features = await PortalLoginProbe().detect(_config(), replace(ctx, http=http))
        assert [(f.id, f.confidence) for f in features] == [("portal.login", 0.4)]

    async def test_http_error_status_fails(self, ctx):
        http = _http(_page("oops", status=500))
        outcome = await PortalLoginProbe().run(_config(), replace(ctx, http=http))
        assert outcome.diagnostic.status == "failed"
        assert "HTTP 500" in outcome.diagnostic.error

    async def test_network_error_fails(self, ctx):
        http = AsyncMock()
        http.fetch_page.side_effect = ConnectionError("refused")
        outcome = await PortalLoginProbe().run(_config(), replace(ctx, http=http))
        assert outcome.diagnostic.error == "ConnectionError: refused"

    async def test_without_http_client(self, ctx):
        outcome = await PortalLoginProbe().run(_config(), ctx)
        assert outcome.diagnostic.status == "failed"
        assert "HTTP client not available" in outcome.diagnostic.error

    async def test_skipped_without_base_url(self, ctx):
        config = ScanConfig(tenant_id="acme", industry="banking", channels=["web"])
        outcome = await PortalLoginProbe().run(config, ctx)
        assert outcome.diagnostic.status == "skipped"

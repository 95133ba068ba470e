"""Tests for the packaged onboarding rules."""

from surveyor.engine.generator import ActionGenerator
from surveyor.rules.loader import default_ruleset


def _plan(features):
    return ActionGenerator(default_ruleset()).generate_actions(features)


class TestDefaultRules:
    def test_every_reference_resolves(self):
        rs = default_ruleset()
        for rule in rs:
            assert rule.depends_on <= set(rs.ids)
            assert rule.excludes <= set(rs.ids)

    def test_sms_tenant(self):
        plan = _plan({"channel.sms": 0.9})
        assert plan.ids() == ["connect_sms_channel", "escalate_manually", "route_via_sms"]

    def test_whatsapp_beats_sms_route(self):
        plan = _plan({"channel.sms": 0.9, "channel.whatsapp": 0.95})
        assert "route_via_whatsapp" in plan.ids()
        assert "route_via_sms" not in plan.ids()
        dropped = {d.action_id: d for d in plan.dropped}
        assert dropped["route_via_sms"].conflicting_with == "route_via_whatsapp"

    def test_low_confidence_channel_not_connected(self):
        plan = _plan({"channel.ivr": 0.3})
        # route_via_ivr needs connect_channel, which needs 0.5 confidence
        assert "route_via_ivr" not in plan.ids()
        assert plan.ids() == ["escalate_manually"]

    def test_crm_escalation_replaces_manual(self):
        plan = _plan({"channel.sms": 0.9, "integration.crm": 0.9})
        ids = plan.ids()
        assert "escalate_to_crm" in ids
        assert "escalate_manually" not in ids
        assert ids.index("sync_crm_contacts") < ids.index("escalate_to_crm")

    def test_otp_prefers_sms(self):
        plan = _plan({"portal.otp": 0.8, "channel.sms": 0.9, "channel.email": 0.9})
        assert "otp_via_sms" in plan.ids()
        assert "otp_via_email" not in plan.ids()
        otp = plan.get("otp_via_sms")
        assert otp.depends_on_action_ids == {"connect_sms_channel"}

    def test_catalog_categories_fan_out(self):
        plan = _plan({
            "data.products": 0.9, "data.pricing": 0.8,
            "data.catalog.loan": 0.8, "data.catalog.savings_account": 0.8,
        })
        ids = plan.ids()
        assert ids[0] == "import_product_catalog"
        assert {"expose_loan_enquiries", "expose_savings_account_enquiries",
                "publish_pricing_answers"} <= set(ids)

    def test_core_banking_after_kyc(self):
        plan = _plan({"integration.core_banking": 0.9, "integration.kyc": 0.9})
        assert plan.ids() == ["configure_kyc_verification", "sync_core_banking_accounts"]

    def test_core_banking_without_kyc_dropped(self):
        plan = _plan({"integration.core_banking": 0.9})
        assert plan.ids() == []
        assert plan.dropped[0].reason == "missing dependency: configure_kyc_verification"

    def test_form_actions_per_portal_form(self):
        contact = {
            "confidence": 0.7,
            "evidence": {
                "url": "https://portal.acme.test/",
                "submit_selector": 'form[action="/contact"] button[type="submit"]',
                "fields": [
                    {"name": "subject", "type": "text", "required": True,
                     "selector": 'input[name="subject"]', "placeholder": "What is it about?"},
                    {"name": "amount", "type": "number", "required": False,
                     "selector": "#amount", "placeholder": None},
                ],
            },
        }
        plan = _plan({"portal.login": 0.9, "portal.forms": 0.7, "portal.forms.contact": contact})
        ids = plan.ids()
        assert ids.index("map_portal_workflows") < ids.index("submit_contact_form")

        action = plan.get("submit_contact_form")
        assert action.name == "Submit contact form"
        assert action.subject == "portal.forms.contact"
        assert action.depends_on_action_ids == {"map_portal_workflows"}
        assert action.params["parameters"] == [
            {"name": "subject", "type": "string", "required": True, "description": "What is it about?"},
            {"name": "amount", "type": "number", "required": False, "description": "Enter amount"},
        ]
        assert [s["type"] for s in action.params["steps"]] == [
            "navigate", "wait", "type", "type", "click", "wait",
        ]

    def test_no_form_actions_without_login(self):
        plan = _plan({"portal.forms": 0.7, "portal.forms.contact": 0.7})
        assert not [i for i in plan.ids() if i.startswith("submit_")]

"""
Billing: disabled mode, checkout and webhook handling.

The Stripe provider is replaced by a fake; the parser and the signature
check run against stripe's own helpers.
"""
import json
import time
from unittest.mock import patch

import pytest
import stripe

from promofye.core.config import settings
from promofye.core.errors import BillingDisabledError, NotFoundError
from promofye.features.billing.provider import BillingWebhookError, BillingWebhookResult
from promofye.features.billing.service import billing_enabled, create_checkout, get_provider, handle_webhook
from promofye.features.billing.stripe_provider import StripeProvider, parse_event
from promofye.features.plans.service import assign_plan, get_active_subscription, seed_plans


class FakeProvider:
    def __init__(self, webhook_result=None):
        self.webhook_result = webhook_result
        self.customers = []
        self.sessions = []

    def ensure_customer(self, user_id, email=None, name=None):
        self.customers.append(user_id)
        return f"cus_{user_id[:8]}"

    def create_checkout_session(self, customer_id, price_id, success_url, cancel_url, metadata=None):
        self.sessions.append({
            "customer_id": customer_id,
            "price_id": price_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        })
        return "https://checkout.stripe.test/session"

    def handle_webhook(self, headers, body):
        return self.webhook_result


def test_billing_disabled_without_key(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    assert billing_enabled() is False
    with pytest.raises(BillingDisabledError):
        get_provider()


def test_checkout_disabled_returns_503(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    seed_plans({"pro": "price_pro"})

    resp = client.post("/api/subscription/checkout", headers=auth_headers, json={"plan_id": "pro"})
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "billing_disabled"


def test_checkout_creates_session_with_metadata(user):
    seed_plans({"pro": "price_pro"})
    provider = FakeProvider()

    url = create_checkout(user, "pro", provider=provider)

    assert url == "https://checkout.stripe.test/session"
    session = provider.sessions[0]
    assert session["price_id"] == "price_pro"
    assert session["metadata"] == {"user_id": user.id, "plan_id": "pro"}
    assert session["success_url"].endswith("/subscription?checkout=success")
    assert provider.customers == [user.id]


def test_checkout_reuses_known_customer(user):
    seed_plans({"business": "price_biz"})
    assign_plan(user.id, "free", stripe_customer_id="cus_existing")
    provider = FakeProvider()

    create_checkout(user, "business", provider=provider)

    assert provider.customers == []
    assert provider.sessions[0]["customer_id"] == "cus_existing"


def test_checkout_unknown_plan(user):
    with pytest.raises(NotFoundError):
        create_checkout(user, "platinum", provider=FakeProvider())


def test_webhook_checkout_completed_assigns_plan(user):
    result = BillingWebhookResult(
        event_id="evt_1",
        event_type="checkout.session.completed",
        user_id=user.id,
        plan_id="pro",
        subscription_id="sub_1",
        customer_id="cus_1",
        status="active",
    )
    handle_webhook({}, b"{}", provider=FakeProvider(result))

    active = get_active_subscription(user.id)
    assert active.plan_id == "pro"
    assert active.stripe_subscription_id == "sub_1"
    assert active.stripe_customer_id == "cus_1"


def test_redelivered_checkout_event_is_acknowledged(user):
    result = BillingWebhookResult(
        event_id="evt_4",
        event_type="checkout.session.completed",
        user_id=user.id,
        plan_id="pro",
        subscription_id="sub_4",
        customer_id="cus_4",
        status="active",
    )
    provider = FakeProvider(result)
    handle_webhook({}, b"{}", provider=provider)
    first = get_active_subscription(user.id)

    handle_webhook({}, b"{}", provider=provider)

    again = get_active_subscription(user.id)
    assert again.id == first.id
    assert again.plan_id == "pro"
    assert again.stripe_subscription_id == "sub_4"


def test_webhook_subscription_deleted_cancels(user):
    assign_plan(user.id, "pro", stripe_subscription_id="sub_2")
    result = BillingWebhookResult(
        event_id="evt_2",
        event_type="customer.subscription.deleted",
        subscription_id="sub_2",
    )
    handle_webhook({}, b"{}", provider=FakeProvider(result))

    assert get_active_subscription(user.id) is None


def test_webhook_without_metadata_is_ignored(user):
    result = BillingWebhookResult(event_id="evt_3", event_type="checkout.session.completed")
    handle_webhook({}, b"{}", provider=FakeProvider(result))
    assert get_active_subscription(user.id).plan_id == "free"


def test_parse_checkout_event():
    parsed = parse_event({
        "id": "evt_9",
        "type": "checkout.session.completed",
        "data": {"object": {
            "subscription": "sub_9",
            "customer": "cus_9",
            "metadata": {"user_id": "u-1", "plan_id": "business"},
        }},
    })
    assert (parsed.user_id, parsed.plan_id, parsed.subscription_id, parsed.customer_id) == (
        "u-1", "business", "sub_9", "cus_9"
    )
    assert parsed.status == "active"


def test_parse_subscription_deleted_event():
    parsed = parse_event({
        "id": "evt_10",
        "type": "customer.subscription.deleted",
        "data": {"object": {"id": "sub_10", "status": "canceled", "customer": "cus_10"}},
    })
    assert parsed.subscription_id == "sub_10"
    assert parsed.status == "canceled"


def _signed_header(payload: str, secret: str) -> str:
    timestamp = int(time.time())
    signature = stripe.WebhookSignature._compute_signature(f"{timestamp}.{payload}", secret)
    return f"t={timestamp},v1={signature}"


def test_stripe_provider_verifies_signature():
    provider = StripeProvider(secret_key="sk_test_123", webhook_secret="whsec_test")
    payload = json.dumps({
        "id": "evt_11",
        "object": "event",
        "type": "customer.subscription.deleted",
        "data": {"object": {"id": "sub_11", "status": "canceled"}},
    })

    result = provider.handle_webhook({"stripe-signature": _signed_header(payload, "whsec_test")}, payload.encode())
    assert result.subscription_id == "sub_11"

    with pytest.raises(BillingWebhookError):
        provider.handle_webhook({"stripe-signature": _signed_header(payload, "whsec_other")}, payload.encode())
    with pytest.raises(BillingWebhookError):
        provider.handle_webhook({}, payload.encode())


def test_webhook_route_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")

    resp = client.post("/api/billing/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "billing_webhook_invalid"


def test_webhook_route_applies_event(client, user):
    result = BillingWebhookResult(
        event_id="evt_12",
        event_type="checkout.session.completed",
        user_id=user.id,
        plan_id="business",
    )
    with patch("promofye.features.billing.service.get_provider", return_value=FakeProvider(result)):
        resp = client.post("/api/billing/webhook", content=b"{}")
    assert resp.status_code == 200
    assert resp.json() == {"received": True, "event_type": "checkout.session.completed"}
    assert get_active_subscription(user.id).plan_id == "business"

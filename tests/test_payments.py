"""
Payment bridge tests. Stripe is never called: PaymentIntent.create is
monkeypatched per test.
"""

from types import SimpleNamespace

import pytest
import stripe

from storefront.config import StorefrontConfig, get_config, set_config


@pytest.fixture
def stripe_calls(monkeypatch, config):
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="pi_test_1", client_secret="pi_test_1_secret_abc")

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    return calls


def _raise(exc):
    def fake_create(**kwargs):
        raise exc
    return fake_create


def test_create_intent(client, stripe_calls):
    response = client.post(
        "/api/payments/create-intent",
        json={"amount": "180.00", "metadata": {"orderId": 7, "customerEmail": "buyer@example.com"}},
    )
    assert response.status_code == 200, response.text
    assert response.json() == {"clientSecret": "pi_test_1_secret_abc", "paymentIntentId": "pi_test_1"}

    call = stripe_calls[0]
    assert call["amount"] == 18000
    assert call["currency"] == "cad"
    assert call["metadata"] == {
        "source": "trovesandcoves",
        "orderId": "7",
        "customerEmail": "buyer@example.com",
    }
    assert call["receipt_email"] == "buyer@example.com"
    assert call["automatic_payment_methods"] == {"enabled": True}
    assert call["api_key"] == "sk_test_123"


def test_amount_rounds_half_up(client, stripe_calls):
    client.post("/api/payments/create-intent", json={"amount": "10.005", "currency": "USD"})
    assert stripe_calls[0]["amount"] == 1001
    assert stripe_calls[0]["currency"] == "usd"
    assert "receipt_email" not in stripe_calls[0]


@pytest.mark.parametrize("amount", [0, -5, None])
def test_invalid_amount_never_reaches_processor(client, stripe_calls, amount):
    response = client.post("/api/payments/create-intent", json={"amount": amount})
    assert response.status_code == 400
    assert response.json()["error"] == "Valid amount is required"
    assert stripe_calls == []


def test_card_error_is_payment_declined(client, config, monkeypatch):
    monkeypatch.setattr(
        stripe.PaymentIntent, "create",
        _raise(stripe.CardError("Your card was declined.", None, "card_declined")),
    )
    response = client.post("/api/payments/create-intent", json={"amount": 50})
    assert response.status_code == 402
    body = response.json()
    assert body["code"] == "PAYMENT_DECLINED"
    assert body["error"] == "Your card was declined."
    assert body["retryable"] is False


def test_rate_limit_is_retryable(client, config, monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "create", _raise(stripe.RateLimitError("slow down")))
    response = client.post("/api/payments/create-intent", json={"amount": 50})
    assert response.status_code == 429
    assert response.json() == {
        "error": "Service temporarily unavailable",
        "code": "UPSTREAM_FAILURE",
        "retryable": True,
        "details": None,
    }


def test_invalid_request(client, config, monkeypatch):
    monkeypatch.setattr(
        stripe.PaymentIntent, "create", _raise(stripe.InvalidRequestError("bad currency", "currency"))
    )
    response = client.post("/api/payments/create-intent", json={"amount": 50})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert response.json()["code"] == "UPSTREAM_FAILURE"


def test_connection_error_is_unavailable(client, config, monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "create", _raise(stripe.APIConnectionError("no route")))
    response = client.post("/api/payments/create-intent", json={"amount": 50})
    assert response.status_code == 503
    assert response.json()["retryable"] is True


def test_not_configured(client, monkeypatch):
    original = get_config()
    set_config(StorefrontConfig(stripe_secret_key=None))
    try:
        called = []
        monkeypatch.setattr(stripe.PaymentIntent, "create", lambda **kw: called.append(kw))
        response = client.post("/api/payments/create-intent", json={"amount": 50})
    finally:
        set_config(original)
    assert response.status_code == 503
    assert response.json()["error"] == "Payment service unavailable"
    assert called == []


def test_invalid_currency(client, stripe_calls):
    response = client.post("/api/payments/create-intent", json={"amount": 50, "currency": "dollars"})
    assert response.status_code == 400
    assert stripe_calls == []

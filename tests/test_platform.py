"""
Cross-cutting behaviour: session identity, CORS, request ids, health,
metrics, configuration, money conversion and log redaction.
"""

import re
from decimal import Decimal

import pytest

from storefront.config import StorefrontConfig
from storefront.errors import UpstreamFailure, ValidationFailed
from storefront.metrics import MetricsCollector
from storefront.money import cents_to_decimal, to_cents
from storefront.session import mint_session_id, resolve_session_id
from storefront.structured_logger import redact


SESSION_PATTERN = re.compile(r"^session_\d{13}_[0-9a-z]{9}$")


#
# Session identity
#

def test_minted_session_format():
    assert SESSION_PATTERN.match(mint_session_id())
    assert mint_session_id() != mint_session_id()


def test_session_precedence():
    assert resolve_session_id("from-header", "Bearer from-bearer") == "from-header"
    assert resolve_session_id(None, "Bearer from-bearer") == "from-bearer"
    assert resolve_session_id("  ", "Basic abc").startswith("session_")


def test_missing_session_mints_and_echoes(client):
    response = client.get("/api/cart")
    assert SESSION_PATTERN.match(response.headers["X-Session-ID"])
    assert response.json()["sessionId"] == response.headers["X-Session-ID"]


#
# HTTP plumbing
#

def test_cors_preflight(client):
    response = client.options(
        "/api/cart",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Session-ID, Content-Type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_rejects_unknown_origin(client):
    response = client.get("/api/categories", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in response.headers


def test_request_id_is_stamped_and_propagated(client):
    assert client.get("/").headers["X-Request-ID"]
    response = client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_health(client):
    body = client.get("/health").json()
    assert body["database"] == "healthy"
    assert body["service"] == "healthy"


def test_metrics_count_operations(client):
    for _ in range(3):
        client.get("/api/products")
    client.get("/api/products/999999")

    summary = client.get("/metrics").json()
    assert summary["operations"]["list_products"]["total_requests"] == 3
    # Not found is a client error, not a service error
    assert summary["operations"]["get_product"]["total_errors"] == 0


def test_percentiles_need_enough_samples():
    collector = MetricsCollector()
    for i in range(5):
        collector.record_latency("op", float(i))
    assert collector.get_percentile("op", 50) is None
    for i in range(5, 20):
        collector.record_latency("op", float(i))
    assert collector.get_percentile("op", 50) is not None


#
# Config, errors, money, logging
#

def test_config_validation():
    assert StorefrontConfig().validate() == []

    problems = StorefrontConfig(
        stripe_secret_key="sk_live_x",
        env="production",
        allowed_origins=["*"],
    ).validate()
    assert len(problems) == 3


def test_error_envelope():
    assert ValidationFailed("bad").to_dict() == {
        "error": "bad",
        "code": "VALIDATION_ERROR",
        "retryable": False,
        "details": None,
    }
    assert UpstreamFailure("down").retryable is True
    assert UpstreamFailure("slow", status_code=429).retryable is True
    assert UpstreamFailure("bad", status_code=400).retryable is False


@pytest.mark.parametrize("amount, cents", [
    ("90", 9000),
    ("90.00", 9000),
    (Decimal("0.015"), 2),
    ("0.014", 1),
    (45.5, 4550),
])
def test_to_cents(amount, cents):
    assert to_cents(amount) == cents


@pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity", "1e30"])
def test_to_cents_rejects_non_numbers(amount):
    with pytest.raises(ValueError):
        to_cents(amount)


def test_cents_to_decimal():
    assert str(cents_to_decimal(18000)) == "180.00"
    assert str(cents_to_decimal(5)) == "0.05"


def test_redact_masks_pii():
    redacted = redact({
        "customer_email": "a@b.c",
        "shippingAddress": {"line1": "1 Main"},
        "items": [{"phone": "555"}],
        "quantity": 2,
    })
    assert redacted["customer_email"] != "a@b.c"
    assert redacted["shippingAddress"] != {"line1": "1 Main"}
    assert redacted["items"][0]["phone"] != "555"
    assert redacted["quantity"] == 2

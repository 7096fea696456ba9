"""
Payment bridge: creates a Stripe PaymentIntent and hands the client secret
to the browser. The order record is never touched here; the client later
attaches the intent id to its order as the payment handle.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

import stripe

from storefront.config import get_config
from storefront.errors import PaymentDeclined, UpstreamFailure, ValidationFailed
from storefront.money import to_cents
from storefront.operations import track_operation
from storefront.schemas import PaymentIntentOut, PaymentIntentRequest
from storefront.structured_logger import log_error

PAYMENT_SOURCE = "trovesandcoves"


def _stripe_metadata(metadata: Dict[str, Any]) -> Dict[str, str]:
    # Stripe metadata values must be strings
    merged = {"source": PAYMENT_SOURCE}
    for key, value in (metadata or {}).items():
        if value is not None:
            merged[str(key)] = str(value)
    return merged


def create_payment_authorization(
    amount_minor_units: int,
    currency: str,
    metadata: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> PaymentIntentOut:
    """
    Ask Stripe for a PaymentIntent of amount_minor_units (e.g. cents).

    Raises:
        ValidationFailed: non-positive amount, rejected before any processor call
        PaymentDeclined: card error; the processor's message is passed through
        UpstreamFailure: processor not configured, rate limited, unreachable
    """
    if isinstance(amount_minor_units, bool) or not isinstance(amount_minor_units, int) or amount_minor_units <= 0:
        raise ValidationFailed("Valid amount is required")

    config = get_config()
    if not config.stripe_enabled:
        raise UpstreamFailure("Payment service unavailable", status_code=503)

    metadata = metadata or {}
    params: Dict[str, Any] = {
        "amount": amount_minor_units,
        "currency": currency.lower(),
        "metadata": _stripe_metadata(metadata),
        "automatic_payment_methods": {"enabled": True},
    }
    receipt_email = metadata.get("customerEmail")
    if receipt_email:
        params["receipt_email"] = receipt_email

    try:
        intent = stripe.PaymentIntent.create(api_key=config.stripe_secret_key, **params)
    except stripe.CardError as e:
        raise PaymentDeclined(
            e.user_message or str(e) or "Your card was declined",
            details={"decline_code": getattr(e, "code", None)},
        )
    except stripe.RateLimitError as e:
        log_error("StripeRateLimitError", str(e), request_id=request_id)
        raise UpstreamFailure("Service temporarily unavailable", status_code=429)
    except stripe.InvalidRequestError as e:
        log_error("StripeInvalidRequestError", str(e), request_id=request_id)
        raise UpstreamFailure("Invalid request", status_code=400)
    except (stripe.AuthenticationError, stripe.APIConnectionError) as e:
        log_error(type(e).__name__, str(e), request_id=request_id)
        raise UpstreamFailure("Payment service unavailable", status_code=503)
    except stripe.StripeError as e:
        log_error(type(e).__name__, str(e), request_id=request_id)
        raise UpstreamFailure("Payment processing failed", status_code=502)

    return PaymentIntentOut(client_secret=intent.client_secret, payment_intent_id=intent.id)


def create_payment_intent(request: PaymentIntentRequest) -> PaymentIntentOut:
    """Amount arrives in major units (180.00); converted half-up to minor units."""
    currency = (request.currency or get_config().currency).strip()
    params = {"amount": str(request.amount), "currency": currency}
    with track_operation("create_payment_intent", params=params) as request_id:
        if request.amount is None:
            raise ValidationFailed("Valid amount is required")
        try:
            cents = to_cents(request.amount)
        except ValueError:
            raise ValidationFailed("Valid amount is required", details={"amount": str(request.amount)})
        if cents <= 0 or request.amount <= Decimal("0"):
            raise ValidationFailed("Valid amount is required", details={"amount": str(request.amount)})
        if not currency or len(currency) != 3 or not currency.isalpha():
            raise ValidationFailed("Invalid currency", details={"currency": currency})

        return create_payment_authorization(cents, currency, request.metadata, request_id=request_id)

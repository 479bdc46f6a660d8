"""Thin wrapper over the Stripe SDK used by the reconciler and webhook route."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from ..core.config import settings
from ..utils.errors import BookingValidationError, PaymentProviderError
from ..utils.json import loads

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntentHandle:
    id: str
    client_secret: Optional[str]
    amount_cents: int
    currency: str


def _to_handle(intent: Any, amount_cents: int, currency: str) -> PaymentIntentHandle:
    return PaymentIntentHandle(
        id=intent["id"],
        client_secret=intent.get("client_secret"),
        amount_cents=int(intent.get("amount") or amount_cents),
        currency=str(intent.get("currency") or currency),
    )


def create_payment_intent(
    *,
    amount_cents: int,
    currency: str,
    metadata: Dict[str, str],
    idempotency_key: str,
) -> PaymentIntentHandle:
    """Create a PaymentIntent; provider failures surface as :class:`PaymentProviderError`."""
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=currency,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            idempotency_key=idempotency_key,
            api_key=settings.STRIPE_SECRET_KEY or None,
        )
    except stripe.StripeError as exc:
        logger.error("Stripe error creating payment intent (%s): %s", idempotency_key, exc)
        raise PaymentProviderError("Payment provider unavailable, please retry") from exc
    return _to_handle(intent, amount_cents, currency)


def retrieve_payment_intent(intent_id: str, *, amount_cents: int, currency: str) -> PaymentIntentHandle:
    """Fetch an existing PaymentIntent, e.g. to hand its secret to a retrying client."""
    try:
        intent = stripe.PaymentIntent.retrieve(intent_id, api_key=settings.STRIPE_SECRET_KEY or None)
    except stripe.StripeError as exc:
        logger.error("Stripe error retrieving payment intent %s: %s", intent_id, exc)
        raise PaymentProviderError("Payment provider unavailable, please retry") from exc
    return _to_handle(intent, amount_cents, currency)


def parse_webhook(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """Decode a webhook body, verifying its signature when a secret is configured."""
    secret = settings.STRIPE_WEBHOOK_SECRET
    if secret:
        if not signature:
            raise BookingValidationError("Missing Stripe-Signature header", code="invalid_signature")
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise BookingValidationError("Invalid webhook signature", code="invalid_signature") from exc
        except ValueError as exc:
            raise BookingValidationError("Malformed webhook payload", code="invalid_payload") from exc
    try:
        event = loads(payload)
    except ValueError as exc:
        raise BookingValidationError("Malformed webhook payload", code="invalid_payload") from exc
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise BookingValidationError("Webhook event needs id and type", code="invalid_payload")
    return event

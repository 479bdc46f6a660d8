"""Payment intents for deposits and final balances, and idempotent webhook handling.

Webhook deliveries are keyed by the provider's event id in ``webhook_events``.
The row is committed before any side effect, claimed with a conditional
UPDATE, and flipped to ``processed`` in the same commit as the billing and
booking mutations. A failed attempt leaves the row unprocessed so the
provider's redelivery can retry it.

Each booking has at most one open (pending) intent per billing type. Asking
again returns that intent instead of opening a second charge.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud import booking as crud_booking
from ..crud import crud_billing, crud_webhook_event
from ..models import BillingRecord, BillingStatus, BillingType, Booking, BookingStatus
from ..models.booking_status import ACTIVE_STATUSES
from ..utils.errors import NotAuthorizedError, NotFoundError, PaymentStateError
from ..utils.metrics import Timer, incr
from ..utils.redis_cache import invalidate_availability_cache
from . import payment_gateway
from .booking_state_machine import (
    CLIENT,
    resolve_now,
    require_active,
    actor_role,
    apply_deposit_payment,
    apply_final_payment,
)

logger = logging.getLogger(__name__)

SUCCESS_EVENT_TYPES = frozenset({"payment_intent.succeeded", "checkout.session.completed"})
ALREADY_PROCESSED = "Event already processed"
# A final payment may still settle after the appointment was completed.
FINAL_PAYMENT_CLOSED_STATUSES = (BookingStatus.CANCELLED, BookingStatus.NO_SHOW)


def _load_for_client(db: Session, booking_id: int, actor_id: str) -> Booking:
    # Row lock serializes concurrent intent requests for one booking.
    booking = crud_booking.get_booking_for_update(db, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found", code="booking_not_found")
    if actor_role(booking, actor_id) != CLIENT:
        raise NotAuthorizedError("Only the booking's client can pay for it")
    require_active(booking)
    return booking


def _find_open_billing(db: Session, booking: Booking, billing_type: BillingType) -> Optional[BillingRecord]:
    for billing in crud_billing.get_billing_for_booking(db, booking.id):
        if billing.type == billing_type and billing.status == BillingStatus.PENDING and billing.external_ref:
            return billing
    return None


def _reuse_intent(
    db: Session, billing: BillingRecord, amount_cents: int
) -> Tuple[BillingRecord, payment_gateway.PaymentIntentHandle]:
    if int(billing.amount_cents) != int(amount_cents):
        raise PaymentStateError(
            "Another payment for this booking is still in progress",
            code="payment_in_progress",
            details={"billing_id": billing.id},
        )
    intent = payment_gateway.retrieve_payment_intent(
        billing.external_ref,
        amount_cents=billing.amount_cents,
        currency=billing.currency,
    )
    # Nothing changed; end the transaction so the booking row lock is released.
    db.commit()
    logger.info("Billing id=%s reused for booking=%s", billing.id, billing.booking_id)
    return billing, intent


def _open_intent(
    db: Session,
    booking: Booking,
    billing_type: BillingType,
    amount_cents: int,
    deposit_applied_cents: int = 0,
) -> Tuple[BillingRecord, payment_gateway.PaymentIntentHandle]:
    open_billing = _find_open_billing(db, booking, billing_type)
    if open_billing is not None:
        return _reuse_intent(db, open_billing, amount_cents)

    currency = settings.DEFAULT_CURRENCY
    billing = BillingRecord(
        booking_id=booking.id,
        provider_id=booking.provider_id,
        client_id=booking.client_id,
        type=billing_type,
        amount_cents=amount_cents,
        currency=currency,
        status=BillingStatus.PENDING,
        deposit_applied_cents=deposit_applied_cents,
    )
    db.add(billing)
    db.flush()
    metadata = {
        "billing_id": str(billing.id),
        "booking_id": str(booking.id),
        "type": billing_type.value,
    }
    if billing_type == BillingType.FINAL_PAYMENT:
        metadata["deposit_applied"] = str(deposit_applied_cents)
    try:
        intent = payment_gateway.create_payment_intent(
            amount_cents=amount_cents,
            currency=currency,
            metadata=metadata,
            idempotency_key=f"billing-{billing.id}",
        )
    except Exception:
        db.rollback()
        raise
    billing.external_ref = intent.id
    billing.meta = metadata
    db.commit()
    db.refresh(billing)
    logger.info(
        "Billing id=%s %s intent=%s amount=%s booking=%s",
        billing.id,
        billing_type.value,
        intent.id,
        amount_cents,
        booking.id,
    )
    return billing, intent


def request_deposit_intent(db: Session, booking_id: int, actor_id: str) -> Dict[str, Any]:
    booking = _load_for_client(db, booking_id, actor_id)
    required = int(booking.deposit_required_cents or 0)
    paid = int(booking.deposit_paid_cents or 0)
    if required <= 0:
        raise PaymentStateError("This booking does not require a deposit", code="no_deposit_required")
    if paid >= required:
        raise PaymentStateError("Deposit already paid", code="deposit_already_paid")
    billing, intent = _open_intent(db, booking, BillingType.DEPOSIT, required - paid)
    return {
        "billing_id": billing.id,
        "payment_intent_id": intent.id,
        "client_secret": intent.client_secret,
        "amount_cents": billing.amount_cents,
        "currency": billing.currency,
    }


def request_final_payment_intent(db: Session, booking_id: int, actor_id: str) -> Dict[str, Any]:
    booking = _load_for_client(db, booking_id, actor_id)
    required = int(booking.deposit_required_cents or 0)
    paid = int(booking.deposit_paid_cents or 0)
    if paid < required:
        raise PaymentStateError("Deposit must be paid first", code="deposit_not_paid")
    total = int(booking.price_cents or 0)
    remaining = total - paid - int(booking.balance_paid_cents or 0)
    if remaining <= 0:
        raise PaymentStateError("Nothing left to pay", code="no_payment_required")
    billing, intent = _open_intent(db, booking, BillingType.FINAL_PAYMENT, remaining, deposit_applied_cents=paid)
    return {
        "billing_id": billing.id,
        "payment_intent_id": intent.id,
        "client_secret": intent.client_secret,
        "amount_cents": billing.amount_cents,
        "currency": billing.currency,
        "deposit_applied_cents": int(billing.deposit_applied_cents or 0),
        "total_amount_cents": total,
    }


def _locate_billing(db: Session, obj: Dict[str, Any]) -> Optional[BillingRecord]:
    metadata = obj.get("metadata") or {}
    raw_id = metadata.get("billing_id") or metadata.get("billingId")
    if raw_id is not None:
        try:
            billing = crud_billing.get_billing(db, int(raw_id))
        except (TypeError, ValueError):
            billing = None
        if billing is not None:
            return billing
    intent_id = obj.get("payment_intent") if obj.get("object") == "checkout.session" else obj.get("id")
    if intent_id:
        return crud_billing.get_billing_by_external_ref(db, str(intent_id))
    return None


def _credit_booking(billing: BillingRecord, booking: Booking, now: datetime) -> str:
    if billing.type == BillingType.DEPOSIT:
        if booking.status not in ACTIVE_STATUSES:
            return "booking_not_active"
        credited = apply_deposit_payment(booking, billing.amount_cents, now)
        outcome = "deposit_applied"
    else:
        if booking.status in FINAL_PAYMENT_CLOSED_STATUSES:
            return "booking_not_active"
        credited = apply_final_payment(booking, billing.amount_cents)
        outcome = "final_payment_applied"
    if credited < int(billing.amount_cents):
        incr("billing.overpaid", tags={"type": billing.type.value})
        logger.warning(
            "Billing id=%s settled %s cents but only %s were owed on booking=%s",
            billing.id,
            billing.amount_cents,
            credited,
            booking.id,
        )
    return outcome


def _apply_event(db: Session, event_type: str, obj: Dict[str, Any], now: datetime) -> Tuple[str, Optional[str]]:
    """Mutate billing and booking for one event. Returns (outcome, provider_id)."""
    if event_type not in SUCCESS_EVENT_TYPES:
        return "ignored", None

    billing = _locate_billing(db, obj)
    if billing is None:
        logger.warning("Webhook %s references no known billing record: %s", event_type, obj.get("id"))
        return "billing_not_found", None
    if billing.status == BillingStatus.PAID:
        return "billing_already_paid", None

    booking = crud_booking.get_booking_for_update(db, billing.booking_id)
    if booking is None:
        return "booking_not_found", None

    reported = obj.get("amount_received") or obj.get("amount_total")
    if reported is not None and int(reported) != int(billing.amount_cents):
        logger.warning(
            "Billing id=%s amount mismatch: ledger=%s provider=%s", billing.id, billing.amount_cents, reported
        )

    # The money was taken either way, so the ledger records it as paid.
    billing.status = BillingStatus.PAID
    billing.paid_at = now
    if not billing.external_ref:
        billing.external_ref = obj.get("payment_intent") or obj.get("id")

    outcome = _credit_booking(billing, booking, now)
    if outcome == "booking_not_active":
        incr("billing.settled_on_inactive_booking", tags={"type": billing.type.value})
        logger.warning(
            "Billing id=%s settled on booking=%s in status %s; not credited, needs a refund",
            billing.id,
            booking.id,
            BookingStatus(booking.status).value,
        )
    return outcome, booking.provider_id


def handle_webhook_event(db: Session, event: Dict[str, Any], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Apply a payment-provider event at most once per event id."""
    now = resolve_now(now)
    event_id = str(event["id"])
    event_type = str(event.get("type") or "unknown")
    obj = (event.get("data") or {}).get("object") or {}

    crud_webhook_event.record_received(db, event_id, event_type, event, now)
    db.commit()

    if not crud_webhook_event.claim(db, event_id):
        db.rollback()
        incr("webhook.duplicate", tags={"type": event_type})
        logger.info("Webhook %s (%s) already processed", event_id, event_type)
        return {"message": ALREADY_PROCESSED, "outcome": "duplicate"}

    try:
        with Timer("webhook.process.ms", tags={"type": event_type}):
            outcome, provider_id = _apply_event(db, event_type, obj, now)
            crud_webhook_event.mark_processed(db, event_id, outcome, now)
            db.commit()
    except Exception as exc:
        # The claim's attempts bump is rolled back too; record_failure counts the attempt.
        db.rollback()
        crud_webhook_event.record_failure(db, event_id, f"{type(exc).__name__}: {exc}", now)
        db.commit()
        incr("webhook.failed", tags={"type": event_type})
        logger.exception("Webhook %s (%s) failed; left unprocessed for redelivery", event_id, event_type)
        raise

    if provider_id:
        invalidate_availability_cache(provider_id)
    incr("webhook.processed", tags={"type": event_type, "outcome": outcome})
    logger.info("Webhook %s (%s) processed: %s", event_id, event_type, outcome)
    return {"message": "Event processed", "outcome": outcome}

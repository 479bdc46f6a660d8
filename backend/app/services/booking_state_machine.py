"""Booking lifecycle transitions.

States: ``pending -> confirmed -> completed``; ``pending|confirmed ->
cancelled``; ``confirmed -> no-show``. Cancelled, no-show and completed
are terminal.

Every transition reads the clock once (``now``) and uses that instant for
all of its decisions. Late changes forfeit the paid deposit when fewer than
the provider's ``cutoff_hours`` remain before the start that is being
given up.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud import booking as crud_booking
from ..crud import crud_policy
from ..models import Booking, BookingStatus
from ..models.booking_status import ACTIVE_STATUSES, AppointmentType
from ..utils.errors import (
    BookingValidationError,
    CooldownActiveError,
    NotAuthorizedError,
    NotFoundError,
)
from ..utils.metrics import incr
from ..utils.redis_cache import invalidate_availability_cache
from . import conflict_guard
from .availability_engine import resolve_template
from .deposit_policy import PolicyTerms, compute_deposit, hours_until, should_forfeit

logger = logging.getLogger(__name__)

PROVIDER = "provider"
CLIENT = "client"

CONSULTATION_MIN_MINUTES = 15
CONSULTATION_MAX_MINUTES = 60
SESSION_MIN_MINUTES = 30
SESSION_MAX_MINUTES = 480


def resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def actor_role(booking: Booking, actor_id: Optional[str]) -> Optional[str]:
    if not actor_id:
        return None
    if actor_id == booking.provider_id:
        return PROVIDER
    if actor_id == booking.client_id:
        return CLIENT
    return None


def get_booking_or_404(db: Session, booking_id: int) -> Booking:
    booking = crud_booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found", code="booking_not_found")
    return booking


def _require_participant(booking: Booking, actor_id: str) -> str:
    role = actor_role(booking, actor_id)
    if role is None:
        raise NotAuthorizedError("Only the booking's provider or client may do this")
    return role


def require_active(booking: Booking) -> None:
    if booking.status not in ACTIVE_STATUSES:
        raise BookingValidationError(
            f"Booking is {BookingStatus(booking.status).value}",
            code="booking_not_active",
            details={"status": BookingStatus(booking.status).value},
        )


def require_confirmed(booking: Booking) -> None:
    if booking.status != BookingStatus.CONFIRMED:
        raise BookingValidationError(
            f"Booking is {BookingStatus(booking.status).value}, not confirmed",
            code="booking_not_confirmed",
            details={"status": BookingStatus(booking.status).value},
        )


def policy_terms(db: Session, provider_id: str) -> PolicyTerms:
    return PolicyTerms.from_model(crud_policy.get_policy(db, provider_id))


def _forfeit_deposit(booking: Booking, why: str) -> None:
    paid = int(booking.deposit_paid_cents or 0)
    booking.deposit_forfeited_cents = int(booking.deposit_forfeited_cents or 0) + paid
    booking.deposit_paid_cents = 0
    if paid:
        incr("booking.deposit_forfeited", tags={"reason": why})
        logger.info("Booking id=%s forfeited deposit of %s cents (%s)", booking.id, paid, why)


def _resolve_window(
    db: Session,
    provider_id: str,
    appointment_type: AppointmentType,
    start_at: datetime,
    duration_minutes: Optional[int],
    end_at: Optional[datetime],
) -> datetime:
    if end_at is not None and duration_minutes is None:
        if end_at <= start_at:
            raise BookingValidationError("end_at must be after start_at", code="invalid_window")
        duration_minutes = int((end_at - start_at) / timedelta(minutes=1))

    if appointment_type == AppointmentType.CONSULTATION:
        minutes = duration_minutes or settings.CONSULTATION_DEFAULT_MINUTES
        minutes = max(CONSULTATION_MIN_MINUTES, min(CONSULTATION_MAX_MINUTES, minutes))
    else:
        minutes = duration_minutes or resolve_template(db, provider_id).slot_minutes
        minutes = max(SESSION_MIN_MINUTES, min(SESSION_MAX_MINUTES, minutes))
    return start_at + timedelta(minutes=minutes)


def create_booking(
    db: Session,
    *,
    provider_id: str,
    client_id: str,
    appointment_type: AppointmentType,
    start_at: datetime,
    duration_minutes: Optional[int] = None,
    end_at: Optional[datetime] = None,
    price_cents: Optional[int] = None,
    note: Optional[str] = None,
    project_id: Optional[str] = None,
    session_number: int = 1,
    now: Optional[datetime] = None,
) -> Booking:
    """Reserve a window for *client_id* with *provider_id* as a pending booking."""
    now = resolve_now(now)
    appointment_type = AppointmentType(appointment_type)

    if appointment_type == AppointmentType.CONSULTATION:
        cooldown = crud_policy.get_active_cooldown(db, client_id, provider_id, now)
        if cooldown is not None:
            remaining = max(0, math.ceil(hours_until(cooldown.expires_at, now)))
            raise CooldownActiveError(
                f"You must wait {remaining} hours before booking with this provider again after cancelling.",
                details={"expires_at": cooldown.expires_at.isoformat()},
            )
        session_number = 1
        project_id = None

    if settings.REQUIRE_BOOKING_PERMISSION:
        permission = crud_policy.get_permission(db, provider_id, client_id)
        if permission is None or not permission.enabled:
            raise NotAuthorizedError(
                "This provider has not enabled bookings for you", code="booking_not_permitted"
            )

    end = _resolve_window(db, provider_id, appointment_type, start_at, duration_minutes, end_at)
    terms = policy_terms(db, provider_id)
    booking = Booking(
        provider_id=provider_id,
        client_id=client_id,
        appointment_type=appointment_type,
        start_at=start_at,
        end_at=end,
        status=BookingStatus.PENDING,
        note=note,
        price_cents=price_cents,
        deposit_required_cents=compute_deposit(terms, price_cents),
        deposit_paid_cents=0,
        deposit_forfeited_cents=0,
        balance_paid_cents=0,
        project_id=project_id,
        session_number=max(1, int(session_number or 1)),
    )
    conflict_guard.reserve(db, booking)
    db.commit()
    db.refresh(booking)
    invalidate_availability_cache(provider_id)
    incr("booking.created", tags={"type": appointment_type.value})
    logger.info(
        "Booking id=%s created provider=%s client=%s %s..%s deposit_required=%s",
        booking.id,
        provider_id,
        client_id,
        booking.start_at,
        booking.end_at,
        booking.deposit_required_cents,
    )
    return booking


def reschedule(
    db: Session,
    booking_id: int,
    actor_id: str,
    new_start: datetime,
    new_end: Optional[datetime] = None,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    """Move a booking, forfeiting the deposit when the old start is inside the cutoff."""
    now = resolve_now(now)
    booking = get_booking_or_404(db, booking_id)
    role = _require_participant(booking, actor_id)
    require_active(booking)

    old_start = booking.start_at
    if new_end is None:
        new_end = new_start + (booking.end_at - booking.start_at)
    if new_end <= new_start:
        raise BookingValidationError("end_at must be after start_at", code="invalid_window")

    min_notice = settings.MIN_RESCHEDULE_NOTICE_HOURS
    if min_notice > 0 and new_start - now < timedelta(hours=min_notice):
        raise BookingValidationError(
            f"Reschedules need at least {min_notice} hours notice",
            code="insufficient_notice",
            details={"min_notice_hours": min_notice},
        )

    terms = policy_terms(db, booking.provider_id)
    forfeit = should_forfeit(old_start, now, terms.cutoff_hours)

    booking.start_at = new_start
    booking.end_at = new_end
    conflict_guard.reserve(db, booking, exclude_booking_id=booking.id)

    if forfeit:
        _forfeit_deposit(booking, "late_reschedule")
    booking.rescheduled_from = old_start
    booking.rescheduled_at = now
    booking.rescheduled_by = role
    booking.reschedule_notice_hours = round(hours_until(old_start, now), 2)
    db.commit()
    db.refresh(booking)
    invalidate_availability_cache(booking.provider_id)
    logger.info(
        "Booking id=%s rescheduled by %s from %s to %s forfeit=%s",
        booking.id,
        role,
        old_start,
        new_start,
        forfeit,
    )
    return booking


def cancel(
    db: Session,
    booking_id: int,
    actor_id: str,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    """Cancel a booking. Cancelling twice is a no-op."""
    now = resolve_now(now)
    booking = get_booking_or_404(db, booking_id)
    role = _require_participant(booking, actor_id)
    if booking.status == BookingStatus.CANCELLED:
        return booking
    require_active(booking)

    terms = policy_terms(db, booking.provider_id)
    forfeit = should_forfeit(booking.start_at, now, terms.cutoff_hours)
    if forfeit:
        _forfeit_deposit(booking, "late_cancel")
    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = now
    booking.cancelled_by = role
    booking.cancellation_reason = reason

    if role == CLIENT and settings.BOOKING_COOLDOWN_HOURS > 0:
        crud_policy.start_cooldown(
            db,
            booking.client_id,
            booking.provider_id,
            now + timedelta(hours=settings.BOOKING_COOLDOWN_HOURS),
            "client_cancelled",
        )
    db.commit()
    db.refresh(booking)
    invalidate_availability_cache(booking.provider_id)
    logger.info("Booking id=%s cancelled by %s forfeit=%s", booking.id, role, forfeit)
    return booking


def mark_no_show(
    db: Session,
    booking_id: int,
    actor_id: str,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    """Provider records that the client did not attend. Always forfeits."""
    now = resolve_now(now)
    booking = get_booking_or_404(db, booking_id)
    if actor_role(booking, actor_id) != PROVIDER:
        raise NotAuthorizedError("Only the provider can mark a no-show")
    if now < booking.start_at:
        raise BookingValidationError(
            "Cannot mark a future appointment as no-show", code="no_show_before_start"
        )
    if booking.status == BookingStatus.NO_SHOW:
        return booking
    require_confirmed(booking)

    _forfeit_deposit(booking, "no_show")
    booking.status = BookingStatus.NO_SHOW
    booking.no_show_marked_at = now
    booking.no_show_marked_by = PROVIDER
    booking.no_show_reason = reason
    db.commit()
    db.refresh(booking)
    invalidate_availability_cache(booking.provider_id)
    return booking


def complete(
    db: Session,
    booking_id: int,
    actor_id: str,
    *,
    now: Optional[datetime] = None,
) -> Booking:
    """Provider marks the appointment done. Completing twice is a no-op."""
    now = resolve_now(now)
    booking = get_booking_or_404(db, booking_id)
    if actor_role(booking, actor_id) != PROVIDER:
        raise NotAuthorizedError("Only the provider can complete a booking")
    if booking.status == BookingStatus.COMPLETED:
        return booking
    require_confirmed(booking)

    booking.status = BookingStatus.COMPLETED
    booking.completed_at = now
    db.commit()
    db.refresh(booking)
    invalidate_availability_cache(booking.provider_id)
    return booking


def apply_deposit_payment(booking: Booking, amount_cents: int, now: datetime) -> int:
    """Credit a settled deposit, up to what is still owed; a pending booking becomes confirmed.

    Returns the cents credited. Mutates only. The caller owns the transaction.
    """
    paid = int(booking.deposit_paid_cents or 0)
    owed = max(0, int(booking.deposit_required_cents or 0) - paid)
    credited = min(max(0, int(amount_cents)), owed)
    booking.deposit_paid_cents = paid + credited
    if booking.status == BookingStatus.PENDING:
        booking.status = BookingStatus.CONFIRMED
        booking.confirmed_at = now
    return credited


def apply_final_payment(booking: Booking, amount_cents: int) -> int:
    """Add a settled final payment to the balance, capped at the price still owed."""
    balance = int(booking.balance_paid_cents or 0)
    owed = max(0, int(booking.price_cents or 0) - int(booking.deposit_paid_cents or 0) - balance)
    credited = min(max(0, int(amount_cents)), owed)
    booking.balance_paid_cents = balance + credited
    return credited

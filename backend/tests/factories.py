"""Row builders shared by the test modules."""

from datetime import datetime, timedelta, timezone

from app.models import Booking, BookingStatus, DepositMode, DepositPolicy
from app.models.booking_status import AppointmentType

# Monday, 12:00 UTC
NOW = datetime(2030, 1, 7, 12, 0, tzinfo=timezone.utc)


def add_booking(
    db,
    *,
    provider_id="prov-1",
    client_id="client-1",
    start=None,
    minutes=60,
    status=BookingStatus.PENDING,
    deposit_required=0,
    deposit_paid=0,
    price_cents=None,
    appointment_type=AppointmentType.SESSION,
):
    """Insert a booking directly, bypassing the state machine."""
    start = start or NOW + timedelta(days=7)
    booking = Booking(
        provider_id=provider_id,
        client_id=client_id,
        start_at=start,
        end_at=start + timedelta(minutes=minutes),
        appointment_type=appointment_type,
        status=status,
        price_cents=price_cents,
        deposit_required_cents=deposit_required,
        deposit_paid_cents=deposit_paid,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def add_policy(db, provider_id="prov-1", **overrides):
    values = dict(
        mode=DepositMode.PERCENT,
        amount_cents=0,
        percent=0.2,
        min_cents=1000,
        max_cents=None,
        non_refundable=True,
        cutoff_hours=48,
    )
    values.update(overrides)
    policy = DepositPolicy(provider_id=provider_id, **values)
    db.add(policy)
    db.commit()
    db.refresh(policy)
    return policy

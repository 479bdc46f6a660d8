"""Double-booking protection.

``reserve`` is the only way a booking window is written. It serializes on a
per-provider lock row before checking for overlaps, and on PostgreSQL the
``bookings_no_overlap_per_provider`` exclusion constraint backs it up.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..crud import booking as crud_booking
from ..db_utils import insert_ignore, is_overlap_violation
from ..models import Booking, ProviderCalendarLock
from ..models.booking_status import ACTIVE_STATUSES
from ..utils.errors import BookingConflictError
from ..utils.metrics import incr

logger = logging.getLogger(__name__)


def find_overlapping(
    db: Session,
    provider_id: str,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    """Pending/confirmed bookings of *provider_id* that overlap ``[start, end)``."""
    with db.no_autoflush:
        return crud_booking.get_overlapping(
            db,
            provider_id,
            start,
            end,
            statuses=ACTIVE_STATUSES,
            exclude_booking_id=exclude_booking_id,
        )


def acquire_calendar_lock(db: Session, provider_id: str) -> None:
    """Take the provider's calendar lock for the rest of the transaction.

    The UPDATE row-locks on PostgreSQL and takes the database write lock on
    SQLite, so concurrent reservations for one provider run one at a time.
    """
    insert_ignore(db, ProviderCalendarLock, {"provider_id": provider_id, "version": 0}, ("provider_id",))
    db.query(ProviderCalendarLock).filter(ProviderCalendarLock.provider_id == provider_id).update(
        {"version": ProviderCalendarLock.version + 1}, synchronize_session=False
    )


def reserve(db: Session, booking: Booking, *, exclude_booking_id: Optional[int] = None) -> Booking:
    """Write *booking*'s window if it is free, else raise :class:`BookingConflictError`.

    Works for new (transient) and moved (persistent) bookings. Flushes but
    does not commit; on conflict the transaction is rolled back.
    """
    with db.no_autoflush:
        acquire_calendar_lock(db, booking.provider_id)
        conflicts = find_overlapping(
            db, booking.provider_id, booking.start_at, booking.end_at, exclude_booking_id=exclude_booking_id
        )
    if conflicts:
        incr("booking.conflict", tags={"source": "check"})
        logger.info(
            "Reservation rejected provider=%s window=%s..%s conflicts=%s",
            booking.provider_id,
            booking.start_at,
            booking.end_at,
            [b.id for b in conflicts],
        )
        db.rollback()
        raise BookingConflictError("Slot already booked")
    db.add(booking)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        if is_overlap_violation(exc):
            incr("booking.conflict", tags={"source": "constraint"})
            raise BookingConflictError("Slot already booked") from exc
        raise
    return booking

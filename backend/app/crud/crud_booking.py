from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..models.booking_status import ACTIVE_STATUSES, BookingStatus


class CRUDBooking:
    def get_booking(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        return db.query(models.Booking).filter(models.Booking.id == booking_id).first()

    def get_booking_for_update(self, db: Session, booking_id: int) -> Optional[models.Booking]:
        """Load a booking with a row lock where the dialect supports one."""
        return (
            db.query(models.Booking)
            .filter(models.Booking.id == booking_id)
            .with_for_update()
            .first()
        )

    def get_bookings_by_client(
        self, db: Session, client_id: str, skip: int = 0, limit: int = 100
    ) -> List[models.Booking]:
        return (
            db.query(models.Booking)
            .filter(models.Booking.client_id == client_id)
            .order_by(models.Booking.start_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_bookings_by_provider(
        self, db: Session, provider_id: str, skip: int = 0, limit: int = 100
    ) -> List[models.Booking]:
        return (
            db.query(models.Booking)
            .filter(models.Booking.provider_id == provider_id)
            .order_by(models.Booking.start_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_overlapping(
        self,
        db: Session,
        provider_id: str,
        start: datetime,
        end: datetime,
        *,
        statuses: Iterable[BookingStatus] = ACTIVE_STATUSES,
        exclude_booking_id: Optional[int] = None,
    ) -> List[models.Booking]:
        """Bookings of *provider_id* in *statuses* whose window meets ``[start, end)``."""
        query = db.query(models.Booking).filter(
            models.Booking.provider_id == provider_id,
            models.Booking.status.in_(list(statuses)),
            models.Booking.start_at < end,
            models.Booking.end_at > start,
        )
        if exclude_booking_id is not None:
            query = query.filter(models.Booking.id != exclude_booking_id)
        return query.order_by(models.Booking.start_at.asc()).all()


booking = CRUDBooking()

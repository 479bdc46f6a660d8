# backend/app/models/booking.py

from sqlalchemy import CheckConstraint, Column, Float, Index, Integer, String, Text

from .base import BaseModel
from .booking_status import AppointmentType, BookingStatus
from .types import CaseInsensitiveEnum, UTCDateTime


class Booking(BaseModel):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_bookings_window"),
        Index("ix_bookings_provider_start", "provider_id", "start_at"),
    )

    id          = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String(64), nullable=False, index=True)
    client_id   = Column(String(64), nullable=False, index=True)
    start_at    = Column(UTCDateTime, nullable=False)
    end_at      = Column(UTCDateTime, nullable=False)
    appointment_type = Column(
        CaseInsensitiveEnum(AppointmentType, name="appointmenttype"),
        nullable=False,
        default=AppointmentType.SESSION,
    )
    status = Column(
        CaseInsensitiveEnum(BookingStatus, name="bookingstatus"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    note = Column(Text, nullable=True)

    # Money, in integer cents
    price_cents             = Column(Integer, nullable=True)
    deposit_required_cents  = Column(Integer, nullable=False, default=0)
    deposit_paid_cents      = Column(Integer, nullable=False, default=0)
    deposit_forfeited_cents = Column(Integer, nullable=False, default=0)
    balance_paid_cents      = Column(Integer, nullable=False, default=0)

    # Multi-session work
    project_id     = Column(String(64), nullable=True, index=True)
    session_number = Column(Integer, nullable=False, default=1)

    # Audit trail
    confirmed_at            = Column(UTCDateTime, nullable=True)
    rescheduled_from        = Column(UTCDateTime, nullable=True)
    rescheduled_at          = Column(UTCDateTime, nullable=True)
    rescheduled_by          = Column(String(16), nullable=True)
    reschedule_notice_hours = Column(Float, nullable=True)
    cancelled_at            = Column(UTCDateTime, nullable=True)
    cancelled_by            = Column(String(16), nullable=True)
    cancellation_reason     = Column(Text, nullable=True)
    no_show_marked_at       = Column(UTCDateTime, nullable=True)
    no_show_marked_by       = Column(String(16), nullable=True)
    no_show_reason          = Column(Text, nullable=True)
    completed_at            = Column(UTCDateTime, nullable=True)

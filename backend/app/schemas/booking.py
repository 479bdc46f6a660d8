from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.booking_status import AppointmentType, BookingStatus


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BookingCreate(BaseModel):
    provider_id: str = Field(min_length=1, max_length=64)
    start_at: datetime
    # Either a duration or an explicit end; duration wins when both are sent.
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    end_at: Optional[datetime] = None
    price_cents: Optional[int] = Field(default=None, ge=0)
    note: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("start_at", "end_at")
    def normalize_utc(cls, v):
        return _as_utc(v)


class SessionBookingCreate(BookingCreate):
    project_id: Optional[str] = Field(default=None, max_length=64)
    session_number: int = Field(default=1, ge=1)


class RescheduleRequest(BaseModel):
    start_at: datetime
    # Defaults to keeping the booking's current length.
    end_at: Optional[datetime] = None

    @field_validator("start_at", "end_at")
    def normalize_utc(cls, v):
        return _as_utc(v)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class NoShowRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    provider_id: str
    client_id: str
    start_at: datetime
    end_at: datetime
    appointment_type: AppointmentType
    status: BookingStatus
    note: Optional[str] = None
    price_cents: Optional[int] = None
    deposit_required_cents: int
    deposit_paid_cents: int
    deposit_forfeited_cents: int = 0
    balance_paid_cents: int = 0
    project_id: Optional[str] = None
    session_number: int = 1
    confirmed_at: Optional[datetime] = None
    rescheduled_from: Optional[datetime] = None
    rescheduled_at: Optional[datetime] = None
    rescheduled_by: Optional[str] = None
    reschedule_notice_hours: Optional[float] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    no_show_marked_at: Optional[datetime] = None
    no_show_marked_by: Optional[str] = None
    no_show_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

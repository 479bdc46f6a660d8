# backend/app/api/api_booking.py

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from ..crud import booking as crud_booking
from ..database import get_db
from ..models.booking_status import ACTIVE_STATUSES, AppointmentType
from ..schemas.booking import (
    BookingCreate,
    BookingResponse,
    CancelRequest,
    NoShowRequest,
    RescheduleRequest,
    SessionBookingCreate,
)
from ..services import booking_state_machine as machine
from ..services.availability_engine import parse_day
from ..utils.errors import NotAuthorizedError
from .dependencies import get_current_actor_id

router = APIRouter(tags=["bookings"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


@router.post("/consultation", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_consultation(
    *,
    db: Session = Depends(get_db),
    booking_in: BookingCreate,
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    """Book a short consultation (15-60 minutes, 30 by default)."""
    return machine.create_booking(
        db,
        provider_id=booking_in.provider_id,
        client_id=actor_id,
        appointment_type=AppointmentType.CONSULTATION,
        start_at=booking_in.start_at,
        duration_minutes=booking_in.duration_minutes,
        end_at=booking_in.end_at,
        price_cents=booking_in.price_cents,
        note=booking_in.note,
    )


@router.post("/session", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    *,
    db: Session = Depends(get_db),
    booking_in: SessionBookingCreate,
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    """Book a working session (30-480 minutes, provider slot length by default)."""
    return machine.create_booking(
        db,
        provider_id=booking_in.provider_id,
        client_id=actor_id,
        appointment_type=AppointmentType.SESSION,
        start_at=booking_in.start_at,
        duration_minutes=booking_in.duration_minutes,
        end_at=booking_in.end_at,
        price_cents=booking_in.price_cents,
        note=booking_in.note,
        project_id=booking_in.project_id,
        session_number=booking_in.session_number,
    )


@router.get("", response_model=List[BookingResponse])
def read_my_bookings(
    *,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
    role: Literal["client", "provider"] = Query("client"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
) -> Any:
    """Bookings where the caller is the client (default) or the provider, newest first."""
    if role == "provider":
        return crud_booking.get_bookings_by_provider(db, actor_id, skip=skip, limit=limit)
    return crud_booking.get_bookings_by_client(db, actor_id, skip=skip, limit=limit)


@router.get("/day", response_model=List[BookingResponse])
def read_provider_day(
    *,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
    provider_id: str = Query(...),
    date: str = Query(..., description="UTC calendar date, YYYY-MM-DD"),
) -> Any:
    """Active bookings of a provider that touch the given UTC day."""
    if actor_id != provider_id:
        raise NotAuthorizedError("Only the provider can list their day")
    day = parse_day(date)
    start = datetime.combine(day, time(0), tzinfo=timezone.utc)
    return crud_booking.get_overlapping(
        db, provider_id, start, start + timedelta(days=1), statuses=ACTIVE_STATUSES
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    booking = machine.get_booking_or_404(db, booking_id)
    if machine.actor_role(booking, actor_id) is None:
        raise NotAuthorizedError("Not a participant of this booking")
    return booking


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
def reschedule_booking(
    booking_id: int,
    payload: RescheduleRequest,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    return machine.reschedule(db, booking_id, actor_id, payload.start_at, payload.end_at)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    payload: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    return machine.cancel(db, booking_id, actor_id, payload.reason if payload else None)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
def mark_no_show(
    booking_id: int,
    payload: Optional[NoShowRequest] = None,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    return machine.mark_no_show(db, booking_id, actor_id, payload.reason if payload else None)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    return machine.complete(db, booking_id, actor_id)

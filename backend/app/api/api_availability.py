# backend/app/api/api_availability.py

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from ..crud import crud_availability
from ..database import get_db
from ..schemas.availability import AvailabilityTemplateIn, AvailabilityTemplateResponse, SlotWindow
from ..services import availability_engine
from ..utils.errors import NotAuthorizedError
from ..utils.redis_cache import invalidate_availability_cache
from .dependencies import get_current_actor_id

router = APIRouter(tags=["availability"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


@router.get("/{provider_id}", response_model=AvailabilityTemplateResponse)
def read_availability(provider_id: str, db: Session = Depends(get_db)) -> Any:
    """Return the provider's template, or the default one if none is saved."""
    template = availability_engine.resolve_template(db, provider_id)
    return {
        "provider_id": provider_id,
        "timezone": template.timezone,
        "slot_minutes": template.slot_minutes,
        "weekly": template.weekly,
        "exceptions": template.exceptions,
        "is_default": template.is_default,
    }


@router.get("/{provider_id}/slots", response_model=List[SlotWindow])
def read_open_slots(
    provider_id: str,
    date: str = Query(..., description="Calendar date, YYYY-MM-DD"),
    db: Session = Depends(get_db),
) -> Any:
    """List bookable slots for *date* in chronological order."""
    day = availability_engine.parse_day(date)
    return availability_engine.list_open_slots(db, provider_id, day)


@router.put("/{provider_id}", response_model=AvailabilityTemplateResponse)
def upsert_availability(
    provider_id: str,
    template_in: AvailabilityTemplateIn,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> Any:
    if actor_id != provider_id:
        raise NotAuthorizedError("Only the provider can modify availability")
    data = template_in.model_dump(mode="json")
    template = crud_availability.upsert_template(db, provider_id, data)
    invalidate_availability_cache(provider_id)
    logger.info("Availability template saved for provider=%s", provider_id)
    return {
        "provider_id": provider_id,
        "timezone": template.timezone,
        "slot_minutes": template.slot_minutes,
        "weekly": template.weekly,
        "exceptions": template.exceptions,
        "is_default": False,
    }

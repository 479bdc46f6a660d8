"""Turn a provider's availability template into bookable slots for one date."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud import booking as crud_booking
from ..crud import crud_availability
from ..models import AvailabilityTemplate
from ..models.booking_status import BUSY_STATUSES
from ..utils.errors import BookingValidationError
from ..utils.redis_cache import cache_availability, get_cached_availability
from .interval_math import Interval, day_intervals, expand_to_slots, overlaps

logger = logging.getLogger(__name__)

WEEKDAY_KEYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def default_open_ranges() -> List[Dict[str, str]]:
    return [{"start": settings.DEFAULT_OPEN_START, "end": settings.DEFAULT_OPEN_END}]


def weekday_key(day: date) -> str:
    # date.weekday() is Monday=0; keys start at Sunday
    return WEEKDAY_KEYS[(day.weekday() + 1) % 7]


@dataclass(frozen=True)
class ResolvedTemplate:
    provider_id: str
    timezone: str
    slot_minutes: int
    weekly: Dict[str, Optional[List[Dict[str, str]]]] = field(default_factory=dict)
    exceptions: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)
    is_default: bool = False


def _clamp_slot_minutes(value: Any) -> int:
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        minutes = settings.DEFAULT_SLOT_MINUTES
    return max(5, min(480, minutes))


def default_template(provider_id: str) -> ResolvedTemplate:
    return ResolvedTemplate(
        provider_id=provider_id,
        timezone=settings.DEFAULT_TIMEZONE,
        slot_minutes=settings.DEFAULT_SLOT_MINUTES,
        weekly={key: None for key in WEEKDAY_KEYS},
        exceptions={},
        is_default=True,
    )


def resolve_template(db: Session, provider_id: str) -> ResolvedTemplate:
    """Stored template for *provider_id*, or the configured fallback."""
    template: Optional[AvailabilityTemplate] = crud_availability.get_template(db, provider_id)
    if template is None:
        return default_template(provider_id)
    weekly = template.weekly or {}
    return ResolvedTemplate(
        provider_id=provider_id,
        timezone=template.timezone or settings.DEFAULT_TIMEZONE,
        slot_minutes=_clamp_slot_minutes(template.slot_minutes),
        weekly={key: weekly.get(key) for key in WEEKDAY_KEYS},
        exceptions={str(k): v for k, v in (template.exceptions or {}).items()},
    )


def ranges_for_date(template: ResolvedTemplate, day: date) -> List[Dict[str, str]]:
    """Source ranges for *day*: exception if present (even empty), else weekly, else default."""
    key = day.isoformat()
    if key in template.exceptions:
        return list(template.exceptions[key] or [])
    weekly = template.weekly.get(weekday_key(day))
    if weekly is not None:
        return list(weekly)
    return default_open_ranges()


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError as exc:
        raise BookingValidationError(
            f"Invalid date {value!r}, expected YYYY-MM-DD", code="invalid_date"
        ) from exc


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def compute_open_slots(db: Session, provider_id: str, day: date) -> List[Interval]:
    template = resolve_template(db, provider_id)
    intervals = day_intervals(day, template.timezone, ranges_for_date(template, day))
    slots = expand_to_slots(intervals, template.slot_minutes)
    if not slots:
        return []
    # Busy window spans every candidate slot, so it covers the local day
    # however it straddles UTC midnight.
    busy = crud_booking.get_overlapping(
        db,
        provider_id,
        slots[0].start,
        slots[-1].end,
        statuses=BUSY_STATUSES,
    )
    busy_intervals = [Interval(b.start_at, b.end_at) for b in busy]
    return [slot for slot in slots if not any(overlaps(slot, b) for b in busy_intervals)]


def list_open_slots(db: Session, provider_id: str, day: date, *, use_cache: bool = True) -> List[Dict[str, str]]:
    """Ordered ``{"startISO", "endISO"}`` windows a client may book on *day*."""
    if use_cache:
        cached = get_cached_availability(provider_id, day)
        if cached is not None:
            return cached
    result = [
        {"startISO": to_iso(slot.start), "endISO": to_iso(slot.end)}
        for slot in compute_open_slots(db, provider_id, day)
    ]
    if use_cache:
        cache_availability(result, provider_id, day)
    logger.debug("Computed %d open slots for provider=%s day=%s", len(result), provider_id, day)
    return result

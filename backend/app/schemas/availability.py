from datetime import date
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.config import settings
from ..services.interval_math import parse_clock_time

SLOT_MINUTES_MIN = 5
SLOT_MINUTES_MAX = 480


class TimeRange(BaseModel):
    """Wall-clock range ``start``-``end`` (``HH:MM``; ``24:00`` allowed as end)."""

    start: str
    end: str

    @model_validator(mode="after")
    def end_after_start(self) -> "TimeRange":
        try:
            start = parse_clock_time(self.start)
            end = parse_clock_time(self.end)
        except ValueError as exc:
            raise ValueError(str(exc)) from exc
        if end <= start:
            raise ValueError(f"range end {self.end} must be after start {self.start}")
        return self


class WeeklySchedule(BaseModel):
    """Open ranges per weekday. ``None`` means default hours; ``[]`` means closed."""

    sun: Optional[List[TimeRange]] = None
    mon: Optional[List[TimeRange]] = None
    tue: Optional[List[TimeRange]] = None
    wed: Optional[List[TimeRange]] = None
    thu: Optional[List[TimeRange]] = None
    fri: Optional[List[TimeRange]] = None
    sat: Optional[List[TimeRange]] = None


class AvailabilityTemplateIn(BaseModel):
    timezone: str = Field(default_factory=lambda: settings.DEFAULT_TIMEZONE)
    slot_minutes: int = 60
    weekly: WeeklySchedule = Field(default_factory=WeeklySchedule)
    exceptions: Dict[date, List[TimeRange]] = Field(default_factory=dict)

    @field_validator("timezone")
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {v!r}") from exc
        return v

    @field_validator("slot_minutes", mode="before")
    def clamp_slot_minutes(cls, v):
        if v is None:
            return 60
        return max(SLOT_MINUTES_MIN, min(SLOT_MINUTES_MAX, int(v)))


class AvailabilityTemplateResponse(BaseModel):
    provider_id: str
    timezone: str
    slot_minutes: int
    weekly: WeeklySchedule
    exceptions: Dict[date, List[TimeRange]]
    is_default: bool = False

    model_config = {"from_attributes": True}


class SlotWindow(BaseModel):
    start_iso: str = Field(alias="startISO")
    end_iso: str = Field(alias="endISO")

    model_config = ConfigDict(populate_by_name=True)

from datetime import date, datetime, timedelta, timezone

import pytest

from app.crud import crud_availability
from app.models import BookingStatus
from app.services import availability_engine
from app.services.interval_math import overlaps
from app.utils.errors import BookingValidationError

from factories import add_booking


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def save_template(db, provider_id="prov-1", **overrides):
    data = {
        "timezone": "UTC",
        "slot_minutes": 60,
        "weekly": {"mon": [{"start": "09:00", "end": "12:00"}], "sun": []},
        "exceptions": {},
    }
    data.update(overrides)
    return crud_availability.upsert_template(db, provider_id, data)


def test_default_template_when_none_saved(db):
    slots = availability_engine.list_open_slots(db, "nobody", date(2030, 1, 7), use_cache=False)
    # 10:00-22:00 New York in 30 minute slots
    assert len(slots) == 24
    assert slots[0] == {"startISO": "2030-01-07T15:00:00Z", "endISO": "2030-01-07T15:30:00Z"}
    assert slots[-1]["endISO"] == "2030-01-08T03:00:00Z"


def test_weekly_ranges_by_weekday(db):
    save_template(db)
    monday = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 7), use_cache=False)
    assert [s["startISO"] for s in monday] == [
        "2030-01-07T09:00:00Z",
        "2030-01-07T10:00:00Z",
        "2030-01-07T11:00:00Z",
    ]
    # explicit empty list closes the day
    assert availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 6), use_cache=False) == []
    # unset weekday falls back to the default open range
    tuesday = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 8), use_cache=False)
    assert tuesday[0]["startISO"] == "2030-01-08T10:00:00Z"
    assert tuesday[-1]["endISO"] == "2030-01-08T22:00:00Z"


def test_exception_replaces_weekly_ranges(db):
    save_template(
        db,
        exceptions={
            "2030-01-14": [],
            "2030-01-21": [{"start": "13:00", "end": "15:00"}],
        },
    )
    assert availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 14), use_cache=False) == []
    overridden = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 21), use_cache=False)
    assert [s["startISO"] for s in overridden] == ["2030-01-21T13:00:00Z", "2030-01-21T14:00:00Z"]
    # the following Monday is back on the weekly schedule
    regular = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 28), use_cache=False)
    assert len(regular) == 3


def test_busy_bookings_are_removed(db):
    save_template(db, weekly={"mon": [{"start": "09:00", "end": "13:00"}]})
    add_booking(db, start=utc(2030, 1, 7, 9), minutes=60, status=BookingStatus.PENDING)
    add_booking(db, start=utc(2030, 1, 7, 10, 30), minutes=30, status=BookingStatus.CONFIRMED, client_id="c2")
    add_booking(db, start=utc(2030, 1, 7, 11), minutes=60, status=BookingStatus.CANCELLED, client_id="c3")
    add_booking(db, start=utc(2030, 1, 7, 12), minutes=60, status=BookingStatus.COMPLETED, client_id="c4")
    add_booking(db, provider_id="other", start=utc(2030, 1, 7, 11), minutes=60)

    slots = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 7), use_cache=False)
    assert [s["startISO"] for s in slots] == ["2030-01-07T11:00:00Z"]


def test_slots_never_overlap_busy_bookings(db):
    save_template(db, slot_minutes=15, weekly={"mon": [{"start": "08:00", "end": "18:00"}]})
    busy = []
    start = utc(2030, 1, 7, 8, 10)
    for i, status in enumerate([BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED] * 4):
        booking = add_booking(db, start=start, minutes=25, status=status, client_id=f"c{i}")
        busy.append((booking.start_at, booking.end_at))
        start += timedelta(minutes=47)

    slots = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 7), use_cache=False)
    assert slots
    for slot in slots:
        window = (parse(slot["startISO"]), parse(slot["endISO"]))
        assert not any(overlaps(window, b) for b in busy)


def test_busy_window_follows_local_day_across_utc_midnight(db):
    # Tokyo is UTC+9: local 2030-01-07 00:00-02:00 is 2030-01-06 15:00-17:00 UTC
    save_template(db, timezone="Asia/Tokyo", weekly={"mon": [{"start": "00:00", "end": "02:00"}]})
    add_booking(db, start=utc(2030, 1, 6, 15), minutes=60)
    slots = availability_engine.list_open_slots(db, "prov-1", date(2030, 1, 7), use_cache=False)
    assert slots == [{"startISO": "2030-01-06T16:00:00Z", "endISO": "2030-01-06T17:00:00Z"}]


def test_stored_slot_minutes_are_clamped(db):
    save_template(db, slot_minutes=1000)
    template = availability_engine.resolve_template(db, "prov-1")
    assert template.slot_minutes == 480
    assert not template.is_default


@pytest.mark.parametrize("value", ["2030-13-01", "tomorrow", "", "2030/01/07"])
def test_malformed_date(value):
    with pytest.raises(BookingValidationError) as excinfo:
        availability_engine.parse_day(value)
    assert excinfo.value.code == "invalid_date"


def test_weekday_key():
    assert availability_engine.weekday_key(date(2030, 1, 6)) == "sun"
    assert availability_engine.weekday_key(date(2030, 1, 7)) == "mon"
    assert availability_engine.weekday_key(date(2030, 1, 12)) == "sat"

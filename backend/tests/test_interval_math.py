from datetime import date, datetime, timezone

import pytest

from app.services.interval_math import (
    Interval,
    day_intervals,
    expand_to_slots,
    overlaps,
    parse_clock_time,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_parse_clock_time():
    assert parse_clock_time("00:00") == 0
    assert parse_clock_time("09:30") == 570
    assert parse_clock_time("24:00") == 1440


@pytest.mark.parametrize("value", ["9", "25:00", "10:60", "24:30", "ab:cd", ""])
def test_parse_clock_time_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_clock_time(value)


def test_day_intervals_uses_provider_timezone():
    # 2030-01-07 is in EST (UTC-5)
    intervals = day_intervals(date(2030, 1, 7), "America/New_York", [{"start": "10:00", "end": "12:00"}])
    assert intervals == [Interval(utc(2030, 1, 7, 15), utc(2030, 1, 7, 17))]


def test_day_intervals_skips_inverted_and_empty_ranges():
    ranges = [
        {"start": "12:00", "end": "10:00"},
        {"start": "09:00", "end": "09:00"},
        {"start": "13:00", "end": "14:00"},
    ]
    intervals = day_intervals(date(2030, 1, 7), "UTC", ranges)
    assert intervals == [Interval(utc(2030, 1, 7, 13), utc(2030, 1, 7, 14))]


def test_day_intervals_end_of_day():
    intervals = day_intervals(date(2030, 1, 7), "UTC", [{"start": "22:00", "end": "24:00"}])
    assert intervals == [Interval(utc(2030, 1, 7, 22), utc(2030, 1, 8, 0))]


def test_spring_forward_day_is_shorter():
    # 2030-03-10: New York clocks jump from 02:00 EST to 03:00 EDT
    intervals = day_intervals(date(2030, 3, 10), "America/New_York", [{"start": "01:00", "end": "04:00"}])
    assert intervals == [Interval(utc(2030, 3, 10, 6), utc(2030, 3, 10, 8))]
    slots = expand_to_slots(intervals, 60)
    assert slots == [
        Interval(utc(2030, 3, 10, 6), utc(2030, 3, 10, 7)),
        Interval(utc(2030, 3, 10, 7), utc(2030, 3, 10, 8)),
    ]


def test_expand_drops_short_tail():
    slots = expand_to_slots([Interval(utc(2030, 1, 7, 10), utc(2030, 1, 7, 11, 45))], 30)
    assert [s.start.minute for s in slots] == [0, 30, 0]
    assert slots[-1].end == utc(2030, 1, 7, 11, 30)


def test_expand_never_bridges_intervals():
    intervals = [
        Interval(utc(2030, 1, 7, 10, 0), utc(2030, 1, 7, 10, 45)),
        Interval(utc(2030, 1, 7, 10, 45), utc(2030, 1, 7, 11, 30)),
    ]
    slots = expand_to_slots(intervals, 30)
    assert slots == [
        Interval(utc(2030, 1, 7, 10, 0), utc(2030, 1, 7, 10, 30)),
        Interval(utc(2030, 1, 7, 10, 45), utc(2030, 1, 7, 11, 15)),
    ]
    for slot in slots:
        assert any(i.start <= slot.start and slot.end <= i.end for i in intervals)


def test_expand_is_ordered_and_deduplicated():
    later = Interval(utc(2030, 1, 7, 14), utc(2030, 1, 7, 15))
    earlier = Interval(utc(2030, 1, 7, 9), utc(2030, 1, 7, 10))
    slots = expand_to_slots([later, earlier, earlier], 60)
    assert slots == [earlier, later]


def test_expand_rejects_non_positive_length():
    with pytest.raises(ValueError):
        expand_to_slots([], 0)


def test_overlaps_is_half_open():
    a = (utc(2030, 1, 7, 10), utc(2030, 1, 7, 11))
    touching = (utc(2030, 1, 7, 11), utc(2030, 1, 7, 12))
    inside = (utc(2030, 1, 7, 10, 15), utc(2030, 1, 7, 10, 45))
    straddling = (utc(2030, 1, 7, 10, 30), utc(2030, 1, 7, 11, 30))
    assert not overlaps(a, touching)
    assert not overlaps(touching, a)
    assert overlaps(a, inside)
    assert overlaps(inside, a)
    assert overlaps(a, straddling)

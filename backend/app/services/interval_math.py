"""Timezone-aware interval and slot arithmetic.

Everything here is pure: inputs are dates, zone names and ``HH:MM`` ranges,
outputs are half-open ``[start, end)`` intervals in UTC.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, List, Mapping, NamedTuple
from zoneinfo import ZoneInfo

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


class Interval(NamedTuple):
    start: datetime
    end: datetime


def parse_clock_time(value: str) -> int:
    """Return minutes since midnight for ``HH:MM`` (``24:00`` allowed)."""
    match = _CLOCK_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid clock time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise ValueError(f"Invalid clock time {value!r}")
    return hours * 60 + minutes


def _read_field(source: Any, key: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _local_instant(day: date, minutes: int, zone: ZoneInfo) -> datetime:
    # 24:00 is midnight of the following day
    day = day + timedelta(days=minutes // MINUTES_PER_DAY)
    minutes %= MINUTES_PER_DAY
    local = datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=zone)
    return local.astimezone(timezone.utc)


def day_intervals(day: date, tz: str | ZoneInfo, ranges: Iterable[Any]) -> List[Interval]:
    """Turn wall-clock ranges on ``day`` in ``tz`` into UTC intervals.

    Ranges whose end does not come after their start are skipped, both as
    written and after DST resolution.
    """
    zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
    intervals: List[Interval] = []
    for rng in ranges or ():
        start_min = parse_clock_time(_read_field(rng, "start"))
        end_min = parse_clock_time(_read_field(rng, "end"))
        if end_min <= start_min:
            continue
        start = _local_instant(day, start_min, zone)
        end = _local_instant(day, end_min, zone)
        if end <= start:
            continue
        intervals.append(Interval(start, end))
    intervals.sort()
    return intervals


def expand_to_slots(intervals: Iterable[Interval], slot_minutes: int) -> List[Interval]:
    """Cut each interval into back-to-back slots of ``slot_minutes``.

    Slots never cross interval boundaries; a tail shorter than one slot is
    dropped. Output is chronological with duplicates removed.
    """
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")
    step = timedelta(minutes=slot_minutes)
    seen = set()
    slots: List[Interval] = []
    for interval in sorted(intervals):
        cursor = interval.start
        while cursor + step <= interval.end:
            slot = Interval(cursor, cursor + step)
            if slot not in seen:
                seen.add(slot)
                slots.append(slot)
            cursor += step
    slots.sort()
    return slots


def overlaps(a: Interval | tuple, b: Interval | tuple) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return a[0] < b[1] and b[0] < a[1]

from datetime import datetime, timedelta, timezone

import threading

import pytest

from app.models import Booking, BookingStatus, ProviderCalendarLock
from app.models.booking_status import AppointmentType
from app.services import booking_state_machine as machine
from app.services import conflict_guard
from app.utils.errors import BookingConflictError

from factories import NOW, add_booking


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def new_booking(start, minutes=60, provider_id="prov-1", client_id="client-9"):
    return Booking(
        provider_id=provider_id,
        client_id=client_id,
        start_at=start,
        end_at=start + timedelta(minutes=minutes),
        appointment_type=AppointmentType.SESSION,
        status=BookingStatus.PENDING,
        deposit_required_cents=0,
        deposit_paid_cents=0,
    )


def test_find_overlapping_only_counts_active_bookings(db):
    pending = add_booking(db, start=utc(2030, 2, 1, 10), status=BookingStatus.PENDING)
    confirmed = add_booking(db, start=utc(2030, 2, 1, 11), status=BookingStatus.CONFIRMED)
    for status in (BookingStatus.CANCELLED, BookingStatus.NO_SHOW, BookingStatus.COMPLETED):
        add_booking(db, start=utc(2030, 2, 1, 10, 30), status=status)

    found = conflict_guard.find_overlapping(db, "prov-1", utc(2030, 2, 1, 9), utc(2030, 2, 1, 13))
    assert [b.id for b in found] == [pending.id, confirmed.id]


def test_touching_windows_do_not_conflict(db):
    add_booking(db, start=utc(2030, 2, 1, 10))
    assert conflict_guard.find_overlapping(db, "prov-1", utc(2030, 2, 1, 11), utc(2030, 2, 1, 12)) == []
    assert conflict_guard.find_overlapping(db, "prov-1", utc(2030, 2, 1, 9), utc(2030, 2, 1, 10)) == []


def test_exclude_booking_id(db):
    booking = add_booking(db, start=utc(2030, 2, 1, 10))
    found = conflict_guard.find_overlapping(
        db, "prov-1", utc(2030, 2, 1, 10), utc(2030, 2, 1, 11), exclude_booking_id=booking.id
    )
    assert found == []


def test_other_providers_do_not_conflict(db):
    add_booking(db, provider_id="prov-2", start=utc(2030, 2, 1, 10))
    assert conflict_guard.find_overlapping(db, "prov-1", utc(2030, 2, 1, 10), utc(2030, 2, 1, 11)) == []


def test_reserve_rejects_overlap_and_rolls_back(db):
    add_booking(db, start=utc(2030, 2, 1, 10))
    with pytest.raises(BookingConflictError) as excinfo:
        conflict_guard.reserve(db, new_booking(utc(2030, 2, 1, 10, 30)))
    assert excinfo.value.status_code == 409
    assert excinfo.value.to_body() == {"error": "Slot already booked", "code": "slot_conflict"}
    assert db.query(Booking).count() == 1


def test_reserve_takes_the_provider_lock(db):
    conflict_guard.reserve(db, new_booking(utc(2030, 2, 1, 10)))
    db.commit()
    conflict_guard.reserve(db, new_booking(utc(2030, 2, 1, 11)))
    db.commit()
    lock = db.query(ProviderCalendarLock).filter_by(provider_id="prov-1").one()
    assert lock.version == 2
    assert db.query(Booking).count() == 2


def test_reserve_moved_booking_ignores_itself(db):
    booking = add_booking(db, start=utc(2030, 2, 1, 10))
    booking.start_at = utc(2030, 2, 1, 10, 30)
    booking.end_at = utc(2030, 2, 1, 11, 30)
    conflict_guard.reserve(db, booking, exclude_booking_id=booking.id)
    db.commit()
    db.refresh(booking)
    assert booking.start_at == utc(2030, 2, 1, 10, 30)


def test_concurrent_overlapping_creates_admit_exactly_one(file_session_factory):
    start = utc(2030, 1, 14, 15, 0)
    barrier = threading.Barrier(10)
    outcomes = []

    def attempt(n):
        db = file_session_factory()
        try:
            barrier.wait()
            machine.create_booking(
                db,
                provider_id="prov-1",
                client_id=f"client-{n}",
                appointment_type=AppointmentType.SESSION,
                start_at=start + timedelta(minutes=n),
                duration_minutes=60,
                now=NOW,
            )
            outcomes.append("created")
        except BookingConflictError:
            outcomes.append("conflict")
        except Exception as exc:  # surfaced through the assertion below
            outcomes.append(repr(exc))
        finally:
            db.close()

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("created") == 1, outcomes
    assert outcomes.count("conflict") == 9, outcomes
    with file_session_factory() as db:
        assert db.query(Booking).count() == 1

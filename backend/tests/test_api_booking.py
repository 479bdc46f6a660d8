from datetime import datetime, timedelta, timezone

from app.models import Booking, BookingStatus

API = "/api/v1/bookings"
PROVIDER = {"X-User-Id": "prov-1"}
CLIENT = {"X-User-Id": "client-1"}
OTHER_CLIENT = {"X-User-Id": "client-2"}


def future(days=10, hour=15):
    base = datetime.now(timezone.utc) + timedelta(days=days)
    return base.replace(hour=hour, minute=0, second=0, microsecond=0)


def iso(value):
    return value.isoformat().replace("+00:00", "Z")


def book_session(client, start, headers=CLIENT, minutes=60, **extra):
    payload = {"provider_id": "prov-1", "start_at": iso(start), "duration_minutes": minutes, **extra}
    return client.post(f"{API}/session", json=payload, headers=headers)


def test_create_consultation(client):
    res = client.post(
        f"{API}/consultation",
        json={"provider_id": "prov-1", "start_at": iso(future())},
        headers=CLIENT,
    )
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["appointment_type"] == "consultation"
    assert body["client_id"] == "client-1"
    assert body["deposit_paid_cents"] == 0
    start = datetime.fromisoformat(body["start_at"].replace("Z", "+00:00"))
    end = datetime.fromisoformat(body["end_at"].replace("Z", "+00:00"))
    assert end - start == timedelta(minutes=30)


def test_create_requires_identity(client):
    res = client.post(f"{API}/session", json={"provider_id": "prov-1", "start_at": iso(future())})
    assert res.status_code == 401


def test_conflicting_booking_is_409(client):
    start = future()
    assert book_session(client, start).status_code == 201
    res = book_session(client, start + timedelta(minutes=30), headers=OTHER_CLIENT)
    assert res.status_code == 409
    assert res.json() == {"error": "Slot already booked", "code": "slot_conflict"}


def test_booked_slot_disappears_from_listing(client):
    start = future(hour=16)
    day = start.date().isoformat()
    before = client.get("/api/v1/availability/prov-1/slots", params={"date": day}).json()
    assert {"startISO": iso(start), "endISO": iso(start + timedelta(minutes=30))} in before
    book_session(client, start, minutes=30)
    after = client.get("/api/v1/availability/prov-1/slots", params={"date": day}).json()
    assert len(after) == len(before) - 1
    assert all(slot["startISO"] != iso(start) for slot in after)


def test_reschedule(client):
    booking = book_session(client, future()).json()
    new_start = future(days=12)
    res = client.post(
        f"{API}/{booking['id']}/reschedule", json={"start_at": iso(new_start)}, headers=PROVIDER
    )
    assert res.status_code == 200
    body = res.json()
    assert body["start_at"].startswith(new_start.date().isoformat())
    assert body["rescheduled_by"] == "provider"
    assert body["rescheduled_from"] is not None


def test_reschedule_conflict_is_409(client):
    first = book_session(client, future()).json()
    book_session(client, future(hour=18), headers=OTHER_CLIENT)
    res = client.post(
        f"{API}/{first['id']}/reschedule", json={"start_at": iso(future(hour=18))}, headers=CLIENT
    )
    assert res.status_code == 409


def test_cancel_twice_is_ok(client):
    booking = book_session(client, future()).json()
    first = client.post(f"{API}/{booking['id']}/cancel", json={"reason": "plans changed"}, headers=CLIENT)
    assert first.status_code == 200
    assert first.json()["status"] == "cancelled"
    second = client.post(f"{API}/{booking['id']}/cancel", headers=CLIENT)
    assert second.status_code == 200
    assert second.json()["cancellation_reason"] == "plans changed"


def test_cooldown_after_client_cancel(client):
    booking = book_session(client, future()).json()
    client.post(f"{API}/{booking['id']}/cancel", headers=CLIENT)
    res = client.post(
        f"{API}/consultation",
        json={"provider_id": "prov-1", "start_at": iso(future(days=3))},
        headers=CLIENT,
    )
    assert res.status_code == 429
    assert res.json()["error"] == "cooldown_active"


def test_no_show_before_start_is_400(client):
    booking = book_session(client, future()).json()
    res = client.post(f"{API}/{booking['id']}/no-show", json={"reason": "?"}, headers=PROVIDER)
    assert res.status_code == 400
    assert res.json()["error"] == "no_show_before_start"


def test_complete_by_provider(client, session_factory):
    booking = book_session(client, future()).json()
    assert client.post(f"{API}/{booking['id']}/complete", headers=CLIENT).status_code == 403
    res = client.post(f"{API}/{booking['id']}/complete", headers=PROVIDER)
    assert res.status_code == 400
    assert res.json()["error"] == "booking_not_confirmed"

    with session_factory() as db:
        db.get(Booking, booking["id"]).status = BookingStatus.CONFIRMED
        db.commit()
    res = client.post(f"{API}/{booking['id']}/complete", headers=PROVIDER)
    assert res.status_code == 200
    assert res.json()["status"] == "completed"


def test_read_booking_is_limited_to_participants(client):
    booking = book_session(client, future()).json()
    assert client.get(f"{API}/{booking['id']}", headers=CLIENT).status_code == 200
    assert client.get(f"{API}/{booking['id']}", headers=PROVIDER).status_code == 200
    assert client.get(f"{API}/{booking['id']}", headers=OTHER_CLIENT).status_code == 403


def test_unknown_booking_is_404(client):
    res = client.get(f"{API}/4242", headers=CLIENT)
    assert res.status_code == 404
    assert res.json()["error"] == "booking_not_found"


def test_list_by_role(client):
    book_session(client, future(days=10))
    book_session(client, future(days=11))
    book_session(client, future(days=12), headers=OTHER_CLIENT)

    mine = client.get(API, headers=CLIENT).json()
    assert len(mine) == 2
    assert mine[0]["start_at"] > mine[1]["start_at"]
    as_provider = client.get(API, params={"role": "provider"}, headers=PROVIDER).json()
    assert len(as_provider) == 3
    assert client.get(API, params={"role": "admin"}, headers=CLIENT).status_code == 422


def test_provider_day_listing(client):
    start = future(days=10, hour=9)
    book_session(client, start)
    cancelled = book_session(client, start + timedelta(hours=2), headers=OTHER_CLIENT).json()
    client.post(f"{API}/{cancelled['id']}/cancel", headers=PROVIDER)
    book_session(client, future(days=11, hour=9), headers=OTHER_CLIENT)

    params = {"provider_id": "prov-1", "date": start.date().isoformat()}
    res = client.get(f"{API}/day", params=params, headers=PROVIDER)
    assert res.status_code == 200
    assert len(res.json()) == 1
    assert client.get(f"{API}/day", params=params, headers=CLIENT).status_code == 403

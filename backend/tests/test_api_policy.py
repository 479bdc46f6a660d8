API = "/api/v1/policies"
PROVIDER = {"X-User-Id": "prov-1"}
CLIENT = {"X-User-Id": "client-1"}


def test_defaults_when_unset(client):
    body = client.get(f"{API}/prov-1").json()
    assert body["is_default"] is True
    assert body["enabled"] is False
    assert body["percent"] == 0.2
    assert body["min_cents"] == 5000
    assert body["max_cents"] == 30000
    assert body["cutoff_hours"] == 48


def test_provider_saves_policy(client):
    res = client.put(
        f"{API}/prov-1",
        json={"mode": "percent", "percent": 1.5, "min_cents": 1000, "max_cents": 20000, "cutoff_hours": 24},
        headers=PROVIDER,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["percent"] == 1.0
    assert body["enabled"] is True
    assert body["is_default"] is False
    assert client.get(f"{API}/prov-1").json()["cutoff_hours"] == 24


def test_policy_is_provider_only(client):
    res = client.put(f"{API}/prov-1", json={"mode": "flat", "amount_cents": 100}, headers=CLIENT)
    assert res.status_code == 403


def test_cap_below_floor_is_rejected(client):
    res = client.put(f"{API}/prov-1", json={"min_cents": 5000, "max_cents": 100}, headers=PROVIDER)
    assert res.status_code == 422
    assert "max_cents" in res.json()["detail"][0]["msg"]


def test_flat_policy_drives_deposit(client):
    client.put(f"{API}/prov-1", json={"mode": "flat", "amount_cents": 7500}, headers=PROVIDER)
    res = client.post(
        "/api/v1/bookings/session",
        json={"provider_id": "prov-1", "start_at": "2031-03-03T15:00:00Z", "price_cents": 100000},
        headers=CLIENT,
    )
    assert res.json()["deposit_required_cents"] == 7500


def test_permission_needs_enabled_policy(client):
    res = client.post(f"{API}/prov-1/permissions/client-1", headers=PROVIDER)
    assert res.status_code == 400
    assert res.json()["error"] == "policy_not_configured"

    client.put(f"{API}/prov-1", json={"mode": "flat", "amount_cents": 0}, headers=PROVIDER)
    assert client.post(f"{API}/prov-1/permissions/client-1", headers=PROVIDER).status_code == 400

    client.put(f"{API}/prov-1", json={"mode": "percent", "percent": 0.3, "min_cents": 2000}, headers=PROVIDER)
    res = client.post(f"{API}/prov-1/permissions/client-1", headers=PROVIDER)
    assert res.status_code == 200
    assert res.json() == {
        "provider_id": "prov-1",
        "client_id": "client-1",
        "enabled": True,
        "granted_by": "provider",
    }

    res = client.delete(f"{API}/prov-1/permissions/client-1", headers=PROVIDER)
    assert res.status_code == 200
    assert res.json()["enabled"] is False


def test_permissions_are_provider_only(client):
    assert client.post(f"{API}/prov-1/permissions/client-1", headers=CLIENT).status_code == 403

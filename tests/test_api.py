"""
Integration tests for the REST API endpoints.

The routes get a ``RideService`` bound to the per-test SQLite database
through ``app.dependency_overrides``; no PostgreSQL or Redis is touched.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tests.conftest import T0

RIDE = {
    "member_id": 7,
    "scheduled_pickup_time": (T0 + timedelta(hours=2)).isoformat(),
    "pickup_address": {"address": "14 Oak Ave", "city": "Springfield"},
    "dropoff_address": {"address": "1200 Main St", "city": "Springfield"},
    "payment_method": "medicaid",
}


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(service):
    """AsyncClient whose routes use the SQLite-backed test service."""
    from ride_lifecycle.api.app import create_app
    from ride_lifecycle.api.dependencies import get_ride_service

    app = create_app()
    app.dependency_overrides[get_ride_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create(client: AsyncClient, **overrides) -> dict:
    resp = await client.post("/api/v1/rides", json={**RIDE, **overrides})
    assert resp.status_code == 201
    return resp.json()


async def _move(client: AsyncClient, ride_id: int, status: str, mileage=None):
    return await client.post(
        f"/api/v1/rides/{ride_id}/transitions",
        json={"status": status, "mileage": mileage},
    )


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_ride_returns_201(client: AsyncClient):
    data = await _create(client)
    assert data["id"] is not None
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["driver_id"] is None
    assert data["total_miles"] is None
    assert data["ready_by"].startswith("2026-03-02T10:00:00")


@pytest.mark.asyncio
async def test_get_ride(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await client.get(f"/api/v1/rides/{ride_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == ride_id


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/rides/9999")
    assert resp.status_code == 404
    assert resp.json()["kind"] == "not_found"
    assert resp.json()["ride_id"] == 9999


@pytest.mark.asyncio
async def test_driver_flow(client: AsyncClient):
    ride_id = (await _create(client))["id"]

    resp = await client.put(f"/api/v1/rides/{ride_id}/driver", json={"driver_id": 3})
    assert resp.status_code == 200
    assert resp.json()["status"] == "assigned"

    for status, miles in (("started", 100), ("picked_up", 105), ("completed", 120)):
        resp = await _move(client, ride_id, status, miles)
        assert resp.status_code == 200, resp.text

    data = resp.json()
    assert data["status"] == "completed"
    assert data["outbound_miles"] == 20
    assert data["total_miles"] == 20
    assert data["end_time"] is not None


@pytest.mark.asyncio
async def test_skipped_step_is_409(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await _move(client, ride_id, "completed", 10)
    assert resp.status_code == 409
    body = resp.json()
    assert body["kind"] == "invalid_transition"
    assert body["current_status"] == "pending"
    assert body["attempted_status"] == "completed"


@pytest.mark.asyncio
async def test_missing_driver_is_422(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await _move(client, ride_id, "assigned")
    assert resp.status_code == 422
    assert resp.json()["kind"] == "missing_driver"


@pytest.mark.asyncio
async def test_backwards_mileage_is_422(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    await client.put(f"/api/v1/rides/{ride_id}/driver", json={"driver_id": 3})
    await _move(client, ride_id, "started", 100)

    resp = await _move(client, ride_id, "picked_up", 90)
    assert resp.status_code == 422
    assert resp.json()["kind"] == "invalid_mileage"

    resp = await client.get(f"/api/v1/rides/{ride_id}")
    assert resp.json()["status"] == "started"
    assert resp.json()["pickup_miles"] is None


@pytest.mark.asyncio
async def test_stale_snapshot_is_409(client: AsyncClient):
    created = await _create(client)
    await client.put(f"/api/v1/rides/{created['id']}/driver", json={"driver_id": 3})

    resp = await client.put(
        f"/api/v1/rides/{created['id']}/driver",
        json={"driver_id": 4, "expected_updated_at": created["updated_at"]},
    )
    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"


@pytest.mark.asyncio
async def test_mileage_correction(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    await client.put(f"/api/v1/rides/{ride_id}/driver", json={"driver_id": 3})
    await _move(client, ride_id, "started", 100)
    await _move(client, ride_id, "picked_up", 105)

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/mileage", json={"step": "started", "value": 101}
    )
    assert resp.status_code == 200
    assert resp.json()["start_miles"] == 101

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/mileage", json={"step": "started", "value": 106}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_return_ride_and_linked(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    await client.put(f"/api/v1/rides/{ride_id}/driver", json={"driver_id": 3})

    resp = await client.post(
        f"/api/v1/rides/{ride_id}/return",
        json={"scheduled_pickup_time": (T0 + timedelta(hours=5)).isoformat()},
    )
    assert resp.status_code == 201
    back = resp.json()
    assert back["is_return_trip"] is True
    assert back["status"] == "return_pending"
    assert back["driver_id"] == 3

    resp = await client.get(f"/api/v1/rides/{ride_id}/linked")
    assert resp.status_code == 200
    assert resp.json()["id"] == back["id"]

    resp = await client.get("/api/v1/admin/trip-anomalies")
    assert resp.json() == []


@pytest.mark.asyncio
async def test_linked_without_trip_is_null(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    resp = await client.get(f"/api/v1/rides/{ride_id}/linked")
    assert resp.status_code == 200
    assert resp.json() is None


@pytest.mark.asyncio
async def test_board(client: AsyncClient):
    first = (await _create(client))["id"]
    second = (await _create(client, member_id=8))["id"]
    await client.put(f"/api/v1/rides/{second}/driver", json={"driver_id": 3})
    await _move(client, second, "started", 10)

    resp = await client.get("/api/v1/rides/board", params={"on": T0.date().isoformat()})
    assert resp.status_code == 200
    board = resp.json()
    assert board["reference_date"] == T0.date().isoformat()
    assert [r["id"] for r in board["upcoming"]] == [first]
    assert [r["id"] for r in board["active"]] == [second]
    assert board["counts"]["todays"] == 2

    resp = await client.get(
        "/api/v1/rides/board", params={"on": T0.date().isoformat(), "member_id": 7}
    )
    assert resp.json()["counts"] == {
        "active": 0,
        "upcoming": 1,
        "completed": 0,
        "todays": 1,
        "uncategorized": 0,
    }


@pytest.mark.asyncio
async def test_assignments(client: AsyncClient):
    first = (await _create(client))["id"]
    second = (await _create(client))["id"]
    await client.put(f"/api/v1/rides/{second}/driver", json={"driver_id": 3})

    resp = await client.get("/api/v1/admin/assignments")
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["assigned"]] == [second]
    assert [r["id"] for r in resp.json()["unassigned"]] == [first]


@pytest.mark.asyncio
async def test_driver_summary(client: AsyncClient):
    ride_id = (await _create(client))["id"]
    await client.put(f"/api/v1/rides/{ride_id}/driver", json={"driver_id": 3})
    for status, miles in (("started", 100), ("picked_up", 104), ("completed", 112)):
        await _move(client, ride_id, status, miles)

    resp = await client.get(
        "/api/v1/admin/drivers/3/summary", params={"day": T0.date().isoformat()}
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["finished"] == 1
    assert data["total_miles"] == 12

"""API tests over ASGITransport, each with its own DATA_ROOT."""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from gpslog.core.exceptions import Busy, InvalidInput, StorageFault
from gpslog.main import create_application, status_for
from gpslog.services.storage_service import TenantStorage


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestHealthAPI:
    @pytest.mark.asyncio
    async def test_health(self, app):
        async with _client(app) as client:
            resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestUsersAPI:
    @pytest.mark.asyncio
    async def test_empty_server(self, app, tenant_id):
        async with _client(app) as client:
            listed = await client.get("/api/users")
            fetched = await client.get(f"/api/users/{tenant_id}")

        assert listed.status_code == 200
        assert listed.json() == []
        assert fetched.status_code == 404
        assert fetched.json()["detail"] == "There are no users on this server yet"
        assert fetched.json()["error"] == "RegistryAbsent"

    @pytest.mark.asyncio
    async def test_register_list_and_get(self, app):
        async with _client(app) as client:
            created = await client.post("/api/users", json={"device_id": "  phone-1  "})
            assert created.status_code == 201
            body = created.json()
            assert body["label"] == "phone-1"
            assert body["last_sample_at"] is None

            listed = await client.get("/api/users")
            fetched = await client.get(f"/api/users/{body['id']}")

        assert listed.json() == [body["id"]]
        assert fetched.status_code == 200
        assert fetched.json()["id"] == body["id"]

    @pytest.mark.asyncio
    async def test_unknown_user_after_registration(self, app, tenant_id):
        async with _client(app) as client:
            await client.post("/api/users", json={"device_id": "phone-1"})
            resp = await client.get(f"/api/users/{tenant_id}")
        assert resp.status_code == 404
        assert resp.json()["error"] == "TenantNotFound"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"device_id": ""}, {"device_id": "   "}, {"device_id": "x" * 256}])
    async def test_invalid_device_id(self, app, payload):
        async with _client(app) as client:
            resp = await client.post("/api/users", json=payload)
            listed = await client.get("/api/users")
        assert resp.status_code == 422
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_quotes_in_device_id_are_accepted(self, app):
        label = "Bob's \"phone\""
        async with _client(app) as client:
            created = await client.post("/api/users", json={"device_id": label})
            fetched = await client.get(f"/api/users/{created.json()['id']}")
        assert created.status_code == 201
        assert fetched.json()["label"] == label


class TestLocationsAPI:
    @pytest.mark.asyncio
    async def test_ingest_and_read_back(self, app):
        async with _client(app) as client:
            tenant_id = (await client.post("/api/users", json={"device_id": "phone-1"})).json()["id"]

            before = datetime.now(timezone.utc)
            accepted = await client.post(
                f"/api/users/{tenant_id}/locations",
                json={"latitude": 52.09, "longitude": 5.12},
            )
            assert accepted.status_code == 201
            recorded_at = datetime.fromisoformat(accepted.json()["recorded_at"].replace("Z", "+00:00"))
            assert recorded_at >= before

            locations = await client.get(f"/api/users/{tenant_id}/locations")
            user = await client.get(f"/api/users/{tenant_id}")

        assert locations.status_code == 200
        data = locations.json()
        assert data["total"] == 1
        assert data["items"][0]["latitude"] == 52.09
        assert data["items"][0]["longitude"] == 5.12
        last = datetime.fromisoformat(user.json()["last_sample_at"].replace("Z", "+00:00"))
        assert last == recorded_at

    @pytest.mark.asyncio
    async def test_ingest_for_unknown_user(self, app):
        async with _client(app) as client:
            resp = await client.post(
                "/api/users/unknown-id/locations",
                json={"latitude": 0, "longitude": 0},
            )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"latitude": 91, "longitude": 0},
            {"latitude": 0, "longitude": -180.5},
            {"latitude": "north", "longitude": 0},
            {"longitude": 0},
        ],
    )
    async def test_invalid_coordinates(self, app, payload):
        async with _client(app) as client:
            tenant_id = (await client.post("/api/users", json={"device_id": "phone-1"})).json()["id"]
            resp = await client.post(f"/api/users/{tenant_id}/locations", json=payload)
            locations = await client.get(f"/api/users/{tenant_id}/locations")
        assert resp.status_code == 422
        assert locations.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_busy_maps_to_503_with_retry_after(self, app, storage, monkeypatch):
        async def busy(*args, **kwargs):
            raise Busy("database is busy", operation="append_sample")

        monkeypatch.setattr(storage, "ingest_sample", busy)
        async with _client(app) as client:
            tenant_id = (await client.post("/api/users", json={"device_id": "phone-1"})).json()["id"]
            resp = await client.post(
                f"/api/users/{tenant_id}/locations",
                json={"latitude": 1, "longitude": 1},
            )
        assert resp.status_code == 503
        assert resp.headers["retry-after"] == "1"
        assert resp.json()["error"] == "Busy"

    @pytest.mark.asyncio
    async def test_storage_fault_maps_to_500(self, app, storage, monkeypatch):
        async def fault(*args, **kwargs):
            raise StorageFault("disk full", operation="create_store")

        monkeypatch.setattr(storage, "create_tenant", fault)
        async with _client(app) as client:
            resp = await client.post("/api/users", json={"device_id": "phone-1"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "StorageFault"

    @pytest.mark.asyncio
    async def test_total_counts_every_stored_sample(self, app):
        async with _client(app) as client:
            tenant_id = (await client.post("/api/users", json={"device_id": "phone-1"})).json()["id"]
            for lat in (1.0, 2.0, 3.0):
                await client.post(f"/api/users/{tenant_id}/locations", json={"latitude": lat, "longitude": 0})
            resp = await client.get(f"/api/users/{tenant_id}/locations")
        data = resp.json()
        assert data["total"] == 3
        assert [item["latitude"] for item in data["items"]] == [1.0, 2.0, 3.0]


class TestErrorMapping:
    def test_invalid_input_is_422(self):
        assert status_for(InvalidInput("label must be a non-empty string")) == 422

    @pytest.mark.asyncio
    async def test_invalid_input_from_storage_maps_to_422(self, app, storage, monkeypatch):
        async def rejected(*args, **kwargs):
            raise InvalidInput("label must be a non-empty string", operation="create_tenant")

        monkeypatch.setattr(storage, "create_tenant", rejected)
        async with _client(app) as client:
            resp = await client.post("/api/users", json={"device_id": "phone-1"})
        assert resp.status_code == 422
        assert resp.json() == {"detail": "label must be a non-empty string", "error": "InvalidInput"}

    @pytest.mark.asyncio
    async def test_storage_fault_is_logged_once(self, data_root):
        data_root.parent.mkdir(parents=True, exist_ok=True)
        data_root.write_text("not a directory")
        app = create_application(storage=TenantStorage(root=data_root))

        with capture_logs() as logs:
            async with _client(app) as client:
                resp = await client.post("/api/users", json={"device_id": "phone-1"})

        assert resp.status_code == 500
        assert resp.json()["error"] == "StorageFault"
        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert len(errors) == 1
        assert errors[0]["event"] == "Tenant creation failed, partial tenant left on disk"

"""Tests for the activity log HTTP endpoints and the request audit dependency."""
from datetime import datetime, timedelta

import httpx
import pytest_asyncio
from fastapi import Depends, FastAPI

from radio_api.api.routers import activity_logs
from radio_api.core.exceptions import ActivityLogError
from radio_api.db.utils.activity_log_crud import get_activity_log_crud
from radio_api.services.activity_log_service import (
    ActivityLogService,
    audit_action,
    get_activity_log_service,
)

BASE = "/api/activity-log"


def build_app(store) -> FastAPI:
    app = FastAPI()
    app.include_router(activity_logs.router, prefix=BASE)
    app.dependency_overrides[get_activity_log_crud] = lambda: store
    return app


@pytest_asyncio.fixture
async def client(store):
    transport = httpx.ASGITransport(app=build_app(store))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class BrokenStore:
    async def query(self, page=None, limit=None, filters=None):
        raise ActivityLogError("Error getting activity logs: connection refused")

    async def get_by_id(self, log_id):
        raise ActivityLogError("Error getting activity log by id: connection refused")

    async def get_stats(self, days=30):
        raise ActivityLogError("Error getting activity stats: connection refused")


def assert_no_cache(response):
    assert "no-store" in response.headers["cache-control"]
    assert response.headers["pragma"] == "no-cache"
    assert response.headers["expires"] == "0"


class TestListEndpoint:
    async def test_envelope_and_pagination(self, client, make_log):
        base = datetime(2024, 5, 1, 8, 0)
        for i in range(15):
            await make_log(created_at=base + timedelta(minutes=i))

        response = await client.get(f"{BASE}/", params={"page": 2, "limit": 10})

        assert response.status_code == 200
        assert_no_cache(response)
        body = response.json()
        assert body["success"] is True
        assert body["message"]
        assert body["data"]["pagination"] == {"page": 2, "limit": 10, "total": 15, "totalPages": 2}
        assert len(body["data"]["logs"]) == 5

    async def test_invalid_pagination_uses_defaults(self, client, make_log):
        await make_log()

        response = await client.get(f"{BASE}/", params={"page": "abc", "limit": "-3"})

        assert response.status_code == 200
        pagination = response.json()["data"]["pagination"]
        assert pagination["page"] == 1
        assert pagination["limit"] == 20

    async def test_page_past_any_offset(self, client, make_log):
        await make_log()

        response = await client.get(f"{BASE}/", params={"page": str(10 ** 19)})

        assert response.status_code == 200
        assert_no_cache(response)
        data = response.json()["data"]
        assert data["logs"] == []
        assert data["pagination"]["total"] == 1
        assert data["pagination"]["totalPages"] == 1
        assert data["pagination"]["page"] == 10 ** 19

    async def test_limit_is_capped(self, client):
        response = await client.get(f"{BASE}/", params={"limit": 5000})
        assert response.json()["data"]["pagination"]["limit"] == 100

    async def test_filters_use_camel_case_names(self, client, make_log):
        await make_log(action="delete", entity_type="podcast", user_id=1, created_at=datetime(2024, 5, 1, 10))
        await make_log(action="delete", entity_type="program", user_id=1, created_at=datetime(2024, 5, 1, 11))
        await make_log(action="delete", entity_type="podcast", user_id=1, created_at=datetime(2024, 5, 2, 10))

        response = await client.get(f"{BASE}/", params={
            "action": "delete",
            "entityType": "podcast",
            "userId": "1",
            "startDate": "2024-05-01",
            "endDate": "2024-05-01",
        })

        logs = response.json()["data"]["logs"]
        assert len(logs) == 1
        assert logs[0]["entity_type"] == "podcast"

    async def test_rows_carry_description_and_user(self, client, make_log, make_user):
        user = await make_user()
        await make_log(
            action="create",
            entity_type="podcast",
            entity_id=9,
            user_id=user.user_id,
            log_metadata={"path": "/api/podcasts"},
        )

        response = await client.get(f"{BASE}/", params={"lang": "en"})

        row = response.json()["data"]["logs"][0]
        assert row["description"] == "Created podcast #9 at /api/podcasts"
        assert row["user_display"] == "Ana Pérez (ana@radio.test)"
        assert row["user_email"] == "ana@radio.test"
        assert row["metadata"] == {"path": "/api/podcasts"}

    async def test_system_rows(self, client, make_log):
        await make_log(action="system_start", ip_address="system")

        response = await client.get(f"{BASE}/", params={"lang": "es"})

        row = response.json()["data"]["logs"][0]
        assert row["description"] == "Sistema iniciado"
        assert row["user_display"] == "Sistema"

    async def test_store_failure(self):
        transport = httpx.ASGITransport(app=build_app(BrokenStore()))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"{BASE}/")

        assert response.status_code == 500
        assert_no_cache(response)
        body = response.json()
        assert body["success"] is False
        assert "connection refused" in body["error"]
        assert body["message"] == "Error retrieving activity logs"


class TestDetailEndpoint:
    async def test_found(self, client, make_log):
        log = await make_log(action="logout")

        response = await client.get(f"{BASE}/{log.log_id}")

        assert response.status_code == 200
        assert_no_cache(response)
        assert response.json()["data"]["log_id"] == log.log_id

    async def test_not_found(self, client):
        response = await client.get(f"{BASE}/4242")

        assert response.status_code == 404
        assert_no_cache(response)
        assert response.json()["success"] is False

    async def test_malformed_id(self, client):
        response = await client.get(f"{BASE}/abc")

        assert response.status_code == 400
        assert_no_cache(response)
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid activity log id"

    async def test_id_outside_key_range(self, client):
        response = await client.get(f"{BASE}/{10 ** 19}")

        assert response.status_code == 404
        assert_no_cache(response)

    async def test_store_failure(self):
        transport = httpx.ASGITransport(app=build_app(BrokenStore()))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"{BASE}/1")

        assert response.status_code == 500
        assert response.json()["success"] is False


class TestStatsEndpoint:
    async def test_stats(self, client, make_log):
        await make_log(action="login", created_at=datetime.now())
        await make_log(action="login", created_at=datetime.now())

        response = await client.get(f"{BASE}/stats", params={"days": "abc"})

        assert response.status_code == 200
        assert_no_cache(response)
        stats = response.json()["data"]
        assert stats == [{"action": "login", "date": datetime.now().date().isoformat(), "count": 2}]

    async def test_store_failure(self):
        transport = httpx.ASGITransport(app=build_app(BrokenStore()))
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"{BASE}/stats")

        assert response.status_code == 500
        assert response.json()["message"] == "Error retrieving activity statistics"

    async def test_huge_day_window(self, client, make_log):
        await make_log(action="login", created_at=datetime(2000, 1, 1, 12, 0))

        response = await client.get(f"{BASE}/stats", params={"days": str(10 ** 19)})

        assert response.status_code == 200
        assert response.json()["data"] == [{"action": "login", "date": "2000-01-01", "count": 1}]


class TestAuditDependency:
    async def test_records_request_after_response(self, store):
        service = ActivityLogService(store)
        app = FastAPI()

        @app.delete("/api/podcasts/{podcast_id}", dependencies=[Depends(audit_action("podcast"))])
        async def delete_podcast(podcast_id: int):
            return {"deleted": podcast_id}

        app.dependency_overrides[get_activity_log_service] = lambda: service

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.delete("/api/podcasts/7", headers={"X-Forwarded-For": "203.0.113.5"})

        assert response.status_code == 200
        result = await store.query()
        assert result.total == 1
        row = result.logs[0]
        assert row.action == "delete"
        assert row.entity_type == "podcast"
        assert row.entity_id == 7
        assert row.ip_address == "203.0.113.5"
        assert row.metadata["path"] == "/api/podcasts/7"

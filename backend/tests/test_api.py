"""Tests for the HTTP API."""

import pytest

from nestpush.config import settings
from nestpush.errors import StorageError
from nestpush.services.push_gateway import GatewayResult, Outcome
from nestpush.services.token_store import token_store


async def _register(client, user_id, token, install_id="install-1"):
    return await client.post("/api/devices/register", json={
        "user_id": user_id,
        "token": token,
        "device_type": "web",
        "device_info": {"platform": "web", "installId": install_id, "userAgent": "Mozilla/5.0"},
    })


# ═══════════════════════════════════════════════════════════════════════
# Test: Devices
# ═══════════════════════════════════════════════════════════════════════


class TestDevicesApi:

    @pytest.mark.asyncio
    async def test_register_and_count(self, client, org):
        response = await _register(client, org["alice"].id, "tok-1")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["token_id"]

        # Same device again converges on the same row
        again = await _register(client, org["alice"].id, "tok-2")
        assert again.json()["token_id"] == response.json()["token_id"]

        count = await client.get("/api/devices/count")
        assert count.json() == {"total": 1, "active": 1}

    @pytest.mark.asyncio
    async def test_register_rejects_unknown_device_type(self, client, org):
        response = await client.post("/api/devices/register", json={
            "user_id": org["alice"].id,
            "token": "tok-1",
            "device_type": "fridge",
        })
        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_unregister(self, client, org):
        await _register(client, org["alice"].id, "tok-1")

        response = await client.delete("/api/devices/tok-1", params={"user_id": org["alice"].id})
        assert response.status_code == 200

        count = await client.get("/api/devices/count")
        assert count.json() == {"total": 1, "active": 0}

    @pytest.mark.asyncio
    async def test_unregister_unknown(self, client, org):
        response = await client.delete("/api/devices/nope", params={"user_id": org["alice"].id})
        assert response.status_code == 404


# ═══════════════════════════════════════════════════════════════════════
# Test: Push send
# ═══════════════════════════════════════════════════════════════════════


class TestPushApi:

    @pytest.mark.asyncio
    async def test_send_to_users(self, client, org, gateway):
        alice = org["alice"]
        await _register(client, alice.id, "t1", "laptop")
        await _register(client, alice.id, "t2", "desktop")
        gateway.outcomes["t2"] = GatewayResult(Outcome.PERMANENT, error="NotRegistered")

        response = await client.post("/api/push/send", json={
            "userIds": [alice.id],
            "notification": {"title": "New Task", "body": "Lab report"},
            "data": {"type": "new_task", "taskId": "task-1"},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["summary"] == {"total": 2, "successful": 1, "failed": 1, "userIds": 1}
        assert body["results"]["t2"]["tokenInvalid"] is True
        assert body["results"]["t1"]["userId"] == alice.id

        count = await client.get("/api/devices/count")
        assert count.json()["active"] == 1

        history = await client.get(f"/api/history/{alice.id}")
        assert sorted(h["status"] for h in history.json()) == ["failed", "sent"]

        stats = await client.get("/api/history/stats")
        assert stats.json() == {"sent": 1, "failed": 1, "delivery_rate": 0.5}

    @pytest.mark.asyncio
    async def test_empty_user_ids(self, client, org, gateway):
        response = await client.post("/api/push/send", json={
            "userIds": [],
            "notification": {"title": "Hi", "body": "There"},
        })

        assert response.status_code == 200
        assert response.json()["summary"]["total"] == 0
        assert gateway.sent == []

    @pytest.mark.asyncio
    async def test_missing_body_is_400(self, client, org, gateway):
        response = await client.post("/api/push/send", json={
            "userIds": [org["alice"].id],
            "notification": {"title": "Hi"},
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Notification title and body are required"}

    @pytest.mark.asyncio
    async def test_missing_recipients_is_400(self, client, org):
        response = await client.post("/api/push/send", json={
            "notification": {"title": "Hi", "body": "There"},
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Either userIds or tokens must be provided"}

    @pytest.mark.asyncio
    async def test_storage_failure_is_500(self, client, org, monkeypatch):
        async def failing(*args, **kwargs):
            raise StorageError("list_active_for_users", RuntimeError("disk I/O error"))

        monkeypatch.setattr(token_store, "list_active_for_users", failing)

        response = await client.post("/api/push/send", json={
            "userIds": [org["alice"].id],
            "notification": {"title": "Hi", "body": "There"},
        })

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert "disk I/O error" in response.json()["details"]

    @pytest.mark.asyncio
    async def test_service_key_required_when_configured(self, client, org, monkeypatch):
        monkeypatch.setattr(settings, "service_role_key", "secret")
        payload = {"userIds": [], "notification": {"title": "Hi", "body": "There"}}

        denied = await client.post("/api/push/send", json=payload)
        assert denied.status_code == 401
        assert denied.json() == {"error": "Invalid or missing service key"}

        wrong = await client.post(
            "/api/push/send", json=payload, headers={"Authorization": "Bearer guess"}
        )
        assert wrong.status_code == 401
        assert wrong.json()["error"] == "Invalid or missing service key"

        allowed = await client.post(
            "/api/push/send", json=payload, headers={"Authorization": "Bearer secret"}
        )
        assert allowed.status_code == 200


# ═══════════════════════════════════════════════════════════════════════
# Test: Preferences, records
# ═══════════════════════════════════════════════════════════════════════


class TestPreferencesApi:

    @pytest.mark.asyncio
    async def test_get_and_update(self, client, org):
        alice = org["alice"]

        response = await client.get(f"/api/preferences/{alice.id}")
        assert response.status_code == 200
        assert response.json()["task_notifications"] is True

        updated = await client.put(f"/api/preferences/{alice.id}", json={"task_notifications": False})
        assert updated.json()["task_notifications"] is False
        assert updated.json()["announcement_notifications"] is True

    @pytest.mark.asyncio
    async def test_defaults_for_unknown_user(self, client, org):
        response = await client.get("/api/preferences/no-such-user")
        assert response.status_code == 200
        assert response.json()["email_notifications"] is True


class TestRecordsApi:

    @pytest.mark.asyncio
    async def test_create_task_publishes_event(self, client, org, publisher):
        response = await client.post("/api/tasks", json={
            "name": "Lab report",
            "section_id": org["section_a"].id,
            "created_by": org["adam"].id,
        })

        assert response.status_code == 201
        assert [e.entity_id for e in publisher.events] == [response.json()["id"]]

    @pytest.mark.asyncio
    async def test_create_task_when_publisher_fails(self, client, org, publisher):
        publisher.fail = True

        response = await client.post("/api/tasks", json={"name": "Still saved"})
        assert response.status_code == 201
        assert response.json()["name"] == "Still saved"

    @pytest.mark.asyncio
    async def test_create_announcement_when_publisher_fails(self, client, org, publisher):
        publisher.fail = True

        response = await client.post("/api/announcements", json={"title": "Holiday"})
        assert response.status_code == 201
        assert response.json()["title"] == "Holiday"

    @pytest.mark.asyncio
    async def test_create_announcement(self, client, org, publisher):
        response = await client.post("/api/announcements", json={"title": "Holiday"})

        assert response.status_code == 201
        assert publisher.events[0].category == "announcement"

    @pytest.mark.asyncio
    async def test_create_and_deactivate_user(self, client, org):
        response = await client.post("/api/users", json={"name": "Eve", "email": "eve@example.com"})
        assert response.status_code == 201
        user_id = response.json()["id"]

        preferences = await client.get(f"/api/preferences/{user_id}")
        assert preferences.json()["user_id"] == user_id

        deactivated = await client.post(f"/api/users/{user_id}/deactivate")
        assert deactivated.json()["is_active"] is False

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, org):
        response = await client.post("/api/users", json={"name": "Alice", "email": "alice@example.com"})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json()["status"] == "healthy"

"""Test the HTTP API."""

import uuid
from datetime import timedelta

import pytest

from promptcollab.auth.security import token_manager


@pytest.mark.integration
class TestCollaborationAPI:
    """Collaborative session endpoints."""

    async def test_join_and_status(self, async_client, helpers, alice, bob, document):
        response = await async_client.post(
            "/api/v1/collaborative/join",
            json={"promptId": str(document.id)},
            headers=helpers.auth_headers(alice.id),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["session"]["promptId"] == str(document.id)
        assert body["session"]["participants"] == [str(alice.id)]
        assert body["collaborators"][0]["name"] == "Alice"

        response = await async_client.post(
            "/api/v1/collaborative/join",
            json={"promptId": str(document.id)},
            headers=helpers.auth_headers(bob.id),
        )
        assert response.json()["session"]["id"] == body["session"]["id"]

        response = await async_client.get(
            "/api/v1/collaborative/status",
            params={"promptId": str(document.id)},
            headers=helpers.auth_headers(alice.id),
        )
        assert response.status_code == 200
        status = response.json()["status"]
        assert status["isActive"] is True
        assert status["sessionId"] == body["session"]["id"]
        assert {c["id"] for c in status["collaborators"]} == {str(alice.id), str(bob.id)}
        assert status["lockedSections"] == []

    async def test_status_without_session(self, async_client, helpers, alice, document):
        response = await async_client.get(
            "/api/v1/collaborative/status",
            params={"promptId": str(document.id)},
            headers=helpers.auth_headers(alice.id),
        )

        assert response.status_code == 200
        assert response.json()["status"] == {
            "sessionId": None,
            "isActive": False,
            "collaborators": [],
            "lockedSections": [],
        }

    async def test_join_requires_token(self, async_client, document):
        response = await async_client.post(
            "/api/v1/collaborative/join", json={"promptId": str(document.id)}
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Authentication required"}

    async def test_expired_token(self, async_client, alice, document):
        token = token_manager.create_access_token(
            {"user_id": str(alice.id)}, expires_delta=timedelta(seconds=-1)
        )

        response = await async_client.post(
            "/api/v1/collaborative/join",
            json={"promptId": str(document.id)},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    async def test_token_without_user_id(self, async_client, document):
        token = token_manager.create_access_token({"sub": "someone"})

        response = await async_client.post(
            "/api/v1/collaborative/join",
            json={"promptId": str(document.id)},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    async def test_join_missing_prompt_id(self, async_client, helpers, alice):
        response = await async_client.post(
            "/api/v1/collaborative/join", json={}, headers=helpers.auth_headers(alice.id)
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_join_unknown_document(self, async_client, helpers, alice):
        response = await async_client.post(
            "/api/v1/collaborative/join",
            json={"promptId": str(uuid.uuid4())},
            headers=helpers.auth_headers(alice.id),
        )

        assert response.status_code == 404

    async def test_lock_unlock_leave(self, async_client, helpers, alice, document):
        headers = helpers.auth_headers(alice.id)
        await async_client.post(
            "/api/v1/collaborative/join", json={"promptId": str(document.id)}, headers=headers
        )

        response = await async_client.post(
            "/api/v1/collaborative/lock",
            json={"promptId": str(document.id), "startPos": 2, "endPos": 9},
            headers=headers,
        )
        assert response.status_code == 200
        lock = response.json()["lock"]
        assert lock["range"] == [2, 9]
        assert lock["userName"] == "Alice"

        response = await async_client.post(
            "/api/v1/collaborative/unlock",
            json={"promptId": str(document.id), "startPos": 2, "endPos": 9},
            headers=headers,
        )
        assert response.json() == {"success": True, "released": 1}

        response = await async_client.post(
            "/api/v1/collaborative/leave", json={"promptId": str(document.id)}, headers=headers
        )
        assert response.json() == {"success": True, "left": True}

    async def test_lock_reversed_range(self, async_client, helpers, alice, document):
        response = await async_client.post(
            "/api/v1/collaborative/lock",
            json={"promptId": str(document.id), "startPos": 9, "endPos": 2},
            headers=helpers.auth_headers(alice.id),
        )

        assert response.status_code == 400

    async def test_lock_without_session(self, async_client, helpers, alice, document):
        response = await async_client.post(
            "/api/v1/collaborative/lock",
            json={"promptId": str(document.id), "startPos": 0, "endPos": 5},
            headers=helpers.auth_headers(alice.id),
        )

        assert response.status_code == 404

    async def test_cursor(self, async_client, helpers, alice, bob, document):
        await async_client.post(
            "/api/v1/collaborative/join",
            json={"promptId": str(document.id)},
            headers=helpers.auth_headers(alice.id),
        )

        response = await async_client.post(
            "/api/v1/collaborative/cursor",
            json={"promptId": str(document.id), "position": 4},
            headers=helpers.auth_headers(alice.id),
        )
        assert response.json() == {"success": True, "updated": True}

        response = await async_client.post(
            "/api/v1/collaborative/cursor",
            json={"promptId": str(document.id), "position": 4},
            headers=helpers.auth_headers(bob.id),
        )
        assert response.status_code == 404


@pytest.mark.integration
class TestVersionAPI:
    """Version save, history and revert endpoints."""

    async def _save(self, client, helpers, user_id, document_id, content, message=None):
        payload = {"promptId": str(document_id), "content": content}
        if message:
            payload["message"] = message
        return await client.post(
            "/api/v1/collaborative/version", json=payload, headers=helpers.auth_headers(user_id)
        )

    async def test_save_version(self, async_client, helpers, alice, document):
        await self._save(async_client, helpers, alice.id, document.id, "a\nb\nc")
        response = await self._save(async_client, helpers, alice.id, document.id, "a\nX\nc\nd", "Tweak")

        assert response.status_code == 200
        version = response.json()["version"]
        assert version["versionNumber"] == 2
        assert version["author"] == "Alice"
        assert version["message"] == "Tweak"
        assert version["content"] == "a\nX\nc\nd"
        assert version["changesSummary"] == {
            "linesAdded": 1,
            "linesRemoved": 0,
            "linesModified": 1,
            "totalChanges": 2,
            "changePercentage": 50,
        }

    async def test_save_missing_content(self, async_client, helpers, alice, document):
        response = await async_client.post(
            "/api/v1/collaborative/version",
            json={"promptId": str(document.id)},
            headers=helpers.auth_headers(alice.id),
        )

        assert response.status_code == 400

    async def test_save_empty_content(self, async_client, helpers, alice, document):
        response = await self._save(async_client, helpers, alice.id, document.id, "")

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Content is required"}

    async def test_list_versions(self, async_client, helpers, alice, document):
        for text in ("one", "two"):
            await self._save(async_client, helpers, alice.id, document.id, text)

        response = await async_client.get(
            f"/api/v1/prompts/{document.id}/versions", headers=helpers.auth_headers(alice.id)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [v["versionNumber"] for v in body["data"]] == [2, 1]
        assert body["data"][0]["promptId"] == str(document.id)
        assert body["data"][0]["authorName"] == "Alice"

    async def test_list_private_history_forbidden(self, async_client, helpers, alice, bob, document):
        await self._save(async_client, helpers, alice.id, document.id, "one")

        response = await async_client.get(
            f"/api/v1/prompts/{document.id}/versions", headers=helpers.auth_headers(bob.id)
        )

        assert response.status_code == 403

    async def test_list_public_history(self, async_client, helpers, test_session, alice, bob):
        public = await helpers.create_test_document(test_session, alice.id, is_public=True)
        await self._save(async_client, helpers, alice.id, public.id, "one")

        response = await async_client.get(
            f"/api/v1/prompts/{public.id}/versions", headers=helpers.auth_headers(bob.id)
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1

    async def test_get_single_version(self, async_client, helpers, alice, document):
        saved = await self._save(async_client, helpers, alice.id, document.id, "one")
        version_id = saved.json()["version"]["id"]

        response = await async_client.get(
            f"/api/v1/prompts/{document.id}/versions/{version_id}",
            headers=helpers.auth_headers(alice.id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["content"] == "one"

        response = await async_client.get(
            f"/api/v1/prompts/{document.id}/versions/{uuid.uuid4()}",
            headers=helpers.auth_headers(alice.id),
        )
        assert response.status_code == 404

    async def test_invalid_document_id(self, async_client, helpers, alice):
        response = await async_client.get(
            "/api/v1/prompts/not-a-uuid/versions", headers=helpers.auth_headers(alice.id)
        )

        assert response.status_code == 400

    async def test_revert(self, async_client, helpers, alice, document):
        first = await self._save(async_client, helpers, alice.id, document.id, "hello")
        await self._save(async_client, helpers, alice.id, document.id, "world")

        response = await async_client.post(
            f"/api/v1/prompts/{document.id}/revert",
            json={"versionId": first.json()["version"]["id"]},
            headers=helpers.auth_headers(alice.id),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Reverted to version 1"
        assert body["data"]["previousVersion"] == 3
        assert body["data"]["newVersion"] == 4
        assert body["data"]["revertedFromVersion"] == 1
        assert body["data"]["document"]["content"] == "hello"
        assert body["data"]["document"]["previewAssetUrl"] == "https://cdn.example.com/preview.png"

    async def test_revert_by_non_owner(self, async_client, helpers, alice, bob, document):
        first = await self._save(async_client, helpers, alice.id, document.id, "hello")

        response = await async_client.post(
            f"/api/v1/prompts/{document.id}/revert",
            json={"versionId": first.json()["version"]["id"]},
            headers=helpers.auth_headers(bob.id),
        )

        assert response.status_code == 403
        assert response.json()["success"] is False


@pytest.mark.integration
class TestOperationalEndpoints:

    async def test_metrics(self, async_client):
        response = await async_client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    async def test_health_without_database(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "PromptCollab"
        assert body["databases"]["database"]["status"] in ("healthy", "disabled")


@pytest.mark.integration
class TestTrustedHosts:
    """Host header filtering does not depend on the bind address."""

    async def _health(self, monkeypatch, host_header, **overrides):
        from httpx import ASGITransport, AsyncClient

        from promptcollab.config import settings
        from promptcollab.main import create_app

        for name, value in overrides.items():
            monkeypatch.setattr(settings, name, value)

        transport = ASGITransport(app=create_app())
        async with AsyncClient(transport=transport, base_url=f"http://{host_header}") as client:
            return await client.get("/health")

    async def test_production_wildcard_bind_accepts_public_host(self, monkeypatch):
        response = await self._health(
            monkeypatch, "prompts.example.com", environment="production", host="0.0.0.0"
        )

        assert response.status_code == 200

    async def test_configured_hosts_reject_others(self, monkeypatch):
        response = await self._health(
            monkeypatch, "evil.example.com",
            environment="production", allowed_hosts=["prompts.example.com"],
        )

        assert response.status_code == 400

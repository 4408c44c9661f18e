"""HTTP tests for the FastAPI application."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from miniapp.api.v1.sessions import SessionManager, get_session_manager
from miniapp.services.orchestrator import BuildOrchestrator

API = "/api/v1"


def _design_json(design):
    return design.model_dump(mode="json", by_alias=True)


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get(f"{API}/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["generator"] == "openai"
        assert body["generator_ready"] is False

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client):
        response = await client.get(f"{API}/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestDesigns:
    @pytest.mark.asyncio
    async def test_validate(self, client, broken_design):
        response = await client.post(f"{API}/designs/validate", json=_design_json(broken_design))
        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is False
        assert len(body["errors"]) == 3

    @pytest.mark.asyncio
    async def test_repair(self, client, broken_design):
        response = await client.post(
            f"{API}/designs/repair",
            json={"design": _design_json(broken_design)},
        )
        body = response.json()
        assert body["before"]["is_valid"] is False
        assert body["after"]["is_valid"] is True
        assert body["design"]["rootComponent"]["children"][2]["data"]["text"] == "Tap"

    @pytest.mark.asyncio
    async def test_compile(self, client, simple_design):
        response = await client.post(
            f"{API}/designs/compile",
            json={"design": _design_json(simple_design), "owner_id": "owner-9"},
        )
        body = response.json()
        assert body["spec"]["ownerId"] == "owner-9"
        assert body["spec"]["pages"][0]["id"] == "page-design-1"
        assert [a["id"] for a in body["spec"]["actions"]] == ["action-cta"]
        assert body["validation"]["is_valid"] is True

    @pytest.mark.asyncio
    async def test_markup_document(self, client, simple_design):
        response = await client.post(
            f"{API}/designs/markup",
            params={"document": "true"},
            json=_design_json(simple_design),
        )
        body = response.json()
        assert 'id="component-cta"' in body["app"]["html"]
        assert body["document"].startswith("<!DOCTYPE html>")

    @pytest.mark.asyncio
    async def test_markup_debug(self, client, simple_design):
        body = (await client.post(f"{API}/designs/markup", json=_design_json(simple_design))).json()
        assert body["document"] is None
        app = body["app"]

        response = await client.post(
            f"{API}/designs/markup/debug",
            json={"app": app, "runtime_error": "script failed"},
        )
        fixed = response.json()
        assert 'data-testid="root"' in fixed["html"]
        assert "DOMContentLoaded" in fixed["javascript"]


class TestSpecs:
    @pytest.mark.asyncio
    async def test_decode(self, client, counter_spec_payload):
        response = await client.post(f"{API}/specs/decode", json=counter_spec_payload)
        body = response.json()
        assert body["spec"]["name"] == "Counter"
        assert body["validation"]["is_valid"] is True

    @pytest.mark.asyncio
    async def test_decode_rejects_missing_name(self, client):
        response = await client.post(f"{API}/specs/decode", json={"pages": []})
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "spec_decode_failed"


class TestSessions:
    @pytest.mark.asyncio
    async def test_session_flow(self, client, counter_spec_payload):
        response = await client.post(f"{API}/sessions", json=counter_spec_payload)
        assert response.status_code == 201
        session = response.json()
        session_id = session["session_id"]
        assert session["current_page_id"] == "home"
        assert session["state"] == {"darkMode": False, "title": "Hello"}

        response = await client.post(
            f"{API}/sessions/{session_id}/dispatch",
            json={"actionIds": ["nav-details"]},
        )
        assert response.json()["current_page_id"] == "details"

        response = await client.put(f"{API}/sessions/{session_id}/state/title", json={"value": "Bob"})
        assert response.json()["state"]["title"] == "Bob"

        response = await client.post(f"{API}/sessions/{session_id}/toggle/darkMode")
        assert response.json()["is_on"] is True

        response = await client.post(f"{API}/sessions/{session_id}/dispatch", json={"actionIds": ["alert"]})
        assert response.json()["active_alert"] == {"title": "Hey", "message": "Saved"}

        response = await client.delete(f"{API}/sessions/{session_id}/alert")
        assert response.json()["active_alert"] is None

        response = await client.post(f"{API}/sessions/{session_id}/images")
        assert response.status_code == 200

        assert (await client.delete(f"{API}/sessions/{session_id}")).status_code == 204
        assert (await client.get(f"{API}/sessions/{session_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_session(self, client):
        response = await client.post(f"{API}/sessions/nope/dispatch", json={"actionIds": []})
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "session_not_found"
        assert (await client.delete(f"{API}/sessions/nope")).status_code == 404

    @pytest.mark.asyncio
    async def test_state_value_past_float_range(self, client, counter_spec_payload):
        session_id = (await client.post(f"{API}/sessions", json=counter_spec_payload)).json()["session_id"]
        response = await client.put(
            f"{API}/sessions/{session_id}/state/count",
            content='{"value": 1' + "0" * 400 + "}",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_value"


class TestSessionManager:
    @pytest.mark.asyncio
    async def test_recently_read_session_survives_eviction(self, counter_spec):
        manager = SessionManager(max_sessions=2)
        first = await manager.create(counter_spec)
        second = await manager.create(counter_spec)

        assert manager.get(first.id) is first
        third = await manager.create(counter_spec)

        assert first.id in manager
        assert second.id not in manager
        assert third.id in manager
        assert len(manager) == 2

    @pytest.mark.asyncio
    async def test_evicted_session_is_shut_down(self, counter_spec):
        manager = SessionManager(max_sessions=1)
        first = await manager.create(counter_spec)
        first.images.close = AsyncMock()

        await manager.create(counter_spec)

        first.images.close.assert_awaited_once()
        assert not first.runtime.is_loaded


class TestBuilds:
    @pytest.mark.asyncio
    async def test_offline_build_opens_session(self, client):
        response = await client.post(f"{API}/builds", json={"prompt": "Build me an alarm clock"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["source"] == "local"
        assert body["progress"] == 1.0
        assert body["spec"]["name"] == "Clock Control Center"
        assert body["messages"][-1]["role"] == "assistant"

        session = await client.get(f"{API}/sessions/{body['session_id']}")
        assert session.status_code == 200
        assert session.json()["view"]

    @pytest.mark.asyncio
    async def test_blank_prompt_rejected(self, client):
        response = await client.post(f"{API}/builds", json={"prompt": "   "})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_crashed_build_closes_its_session(self, client, monkeypatch):
        from miniapp.main import app

        manager = SessionManager()
        app.dependency_overrides[get_session_manager] = lambda: manager
        monkeypatch.setattr(
            BuildOrchestrator, "build_from_prompt", AsyncMock(side_effect=RuntimeError("boom"))
        )

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as raw:
            response = await raw.post(f"{API}/builds", json={"prompt": "Build me an alarm clock"})
        assert response.status_code == 500
        assert len(manager) == 0


class TestCreations:
    @pytest.mark.asyncio
    async def test_crud(self, client):
        response = await client.post(
            f"{API}/creations",
            json={"userId": "u1", "title": "Timer", "thumbnailURL": "https://img.test/t.png"},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["userId"] == "u1"
        assert created["thumbnailURL"] == "https://img.test/t.png"

        await client.post(f"{API}/creations", json={"userId": "u2", "title": "Quiz"})

        mine = (await client.get(f"{API}/creations", params={"user_id": "u1"})).json()
        assert [c["title"] for c in mine] == ["Timer"]
        assert len((await client.get(f"{API}/creations")).json()) == 2

        assert (await client.delete(f"{API}/creations/{created['id']}")).status_code == 204
        response = await client.delete(f"{API}/creations/{created['id']}")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "creation_not_found"

    @pytest.mark.asyncio
    async def test_publish_to_marketplace(self, client):
        assert (await client.get(f"{API}/marketplace")).json() == []
        created = (await client.post(f"{API}/creations", json={"userId": "u1", "title": "Timer"})).json()

        response = await client.post(f"{API}/marketplace/{created['id']}")
        assert response.status_code == 201
        await client.post(f"{API}/marketplace/{created['id']}")

        listed = (await client.get(f"{API}/marketplace")).json()
        assert [c["id"] for c in listed] == [created["id"]]
        assert len((await client.get(f"{API}/creations")).json()) == 1

        response = await client.post(f"{API}/marketplace/nope")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "creation_not_found"

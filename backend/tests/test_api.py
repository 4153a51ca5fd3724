"""
GapHunter Backend — API Endpoint Tests

REST + SSE endpoints: health check, sessions, navigation, analysis and blueprint streams.
All tests use mocked LLM calls - no real API requests.
"""

import pytest
from fastapi import status

import app.api.sessions as sessions_module
from app.config import settings
from tests.conftest import parse_sse_events


def get_events_by_type(events: list[dict], event_type: str) -> list[dict]:
    return [e for e in events if e.get("type") == event_type]


async def new_session(client) -> str:
    response = await client.post("/api/sessions")
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["session_id"]


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_health_check_returns_ok(self, client):
        response = await client.get("/api/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok", "version": "0.1.0"}


class TestSessions:

    @pytest.mark.asyncio
    async def test_create_starts_on_landing(self, client):
        response = await client.post("/api/sessions")

        data = response.json()
        assert data["session_id"]
        assert data["screen"] == {"state": "LANDING", "content": None}

    @pytest.mark.asyncio
    async def test_unknown_session_404(self, client):
        response = await client.get("/api/sessions/does-not-exist")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_session(self, client):
        session_id = await new_session(client)

        response = await client.delete(f"/api/sessions/{session_id}")
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = await client.get(f"/api/sessions/{session_id}")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_idle_session_expires(self, client):
        session_id = await new_session(client)
        sessions_module._last_seen[session_id] -= settings.session_idle_ttl_seconds + 1

        response = await client.get(f"/api/sessions/{session_id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert session_id not in sessions_module._sessions
        assert session_id not in sessions_module._last_seen

    @pytest.mark.asyncio
    async def test_idle_sessions_swept_on_create(self, client):
        stale = await new_session(client)
        sessions_module._last_seen[stale] -= settings.session_idle_ttl_seconds + 1

        fresh = await new_session(client)

        assert stale not in sessions_module._sessions
        assert fresh in sessions_module._sessions

    @pytest.mark.asyncio
    async def test_use_keeps_session_alive(self, client):
        session_id = await new_session(client)
        sessions_module._last_seen[session_id] -= settings.session_idle_ttl_seconds - 5

        assert (await client.get(f"/api/sessions/{session_id}")).status_code == status.HTTP_200_OK
        sessions_module._last_seen[session_id] -= 10

        response = await client.get(f"/api/sessions/{session_id}")
        assert response.status_code == status.HTTP_200_OK


class TestNavigation:

    @pytest.mark.asyncio
    async def test_navigate_to_dashboard(self, client):
        session_id = await new_session(client)

        response = await client.post(f"/api/sessions/{session_id}/navigate", json={"target": "DASHBOARD"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["state"] == "DASHBOARD"

    @pytest.mark.asyncio
    async def test_navigate_to_insights_without_analysis_409(self, client):
        session_id = await new_session(client)

        response = await client.post(f"/api/sessions/{session_id}/navigate", json={"target": "INSIGHTS"})

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_unknown_target_422(self, client):
        session_id = await new_session(client)

        response = await client.post(f"/api/sessions/{session_id}/navigate", json={"target": "NOWHERE"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_sample_opens_insights(self, client):
        session_id = await new_session(client)

        response = await client.post(f"/api/sessions/{session_id}/sample")

        screen = response.json()
        assert screen["state"] == "INSIGHTS"
        assert screen["content"]["competitor_name"] == "Salesforce (Demo)"
        assert [p["count"] for p in screen["content"]["pain_points"]] == [45, 38, 22, 12]


class TestAnalysisStream:

    @pytest.mark.asyncio
    async def test_full_analysis_stream(self, client, mock_llm_sequence, reviews_payload, analysis_payload):
        mock_llm_sequence([reviews_payload, analysis_payload])
        session_id = await new_session(client)

        response = await client.post(
            f"/api/sessions/{session_id}/analysis",
            json={"competitor_name": "Acme", "description": "CRM tool"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse_events(response.text)
        assert [e["to_state"] for e in get_events_by_type(events, "state_changed")] == ["ANALYZING", "INSIGHTS"]
        assert len(get_events_by_type(events, "step_started")) == 2
        analysis = get_events_by_type(events, "analysis_ready")[0]["analysis"]
        assert analysis["total_reviews_analyzed"] == 20
        assert analysis["average_rating"] == 1.8

        final = events[-1]
        assert final["type"] == "screen"
        assert final["screen"]["state"] == "INSIGHTS"
        assert final["screen"]["content"]["pain_points"][0]["category"] == "Pricing"

    @pytest.mark.asyncio
    async def test_missing_credential_stream(self, client, mock_llm, no_api_key):
        session_id = await new_session(client)

        response = await client.post(
            f"/api/sessions/{session_id}/analysis",
            json={"competitor_name": "Acme", "description": "CRM tool"},
        )

        events = parse_sse_events(response.text)
        error = get_events_by_type(events, "error")[0]
        assert error["message"] == "Analysis failed. Please check your API key or try again."
        assert error["recoverable"] is True
        assert events[-1]["screen"]["state"] == "ANALYZER_INPUT"
        assert events[-1]["screen"]["content"]["error"] == error["message"]
        mock_llm.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_fields_rejected(self, client):
        session_id = await new_session(client)

        response = await client.post(
            f"/api/sessions/{session_id}/analysis",
            json={"competitor_name": "", "description": "CRM tool"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_unknown_session_404(self, client):
        response = await client.post(
            "/api/sessions/nope/analysis",
            json={"competitor_name": "Acme", "description": "CRM tool"},
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestBlueprintStream:

    @pytest.mark.asyncio
    async def test_blueprint_without_analysis_409(self, client, mock_llm):
        session_id = await new_session(client)

        response = await client.post(f"/api/sessions/{session_id}/blueprint")

        assert response.status_code == status.HTTP_409_CONFLICT
        mock_llm.assert_not_called()

    @pytest.mark.asyncio
    async def test_blueprint_stream_and_export(self, client, mock_llm_sequence, blueprint_payload):
        mock_llm_sequence([blueprint_payload])
        session_id = await new_session(client)
        await client.post(f"/api/sessions/{session_id}/sample")

        response = await client.post(f"/api/sessions/{session_id}/blueprint")

        events = parse_sse_events(response.text)
        assert get_events_by_type(events, "blueprint_ready")[0]["blueprint"]["product_name"] == "OpenLedger CRM"
        assert events[-1]["screen"]["state"] == "BLUEPRINT"
        assert events[-1]["screen"]["content"]["competitor_name"] == "Salesforce (Demo)"

        export = await client.get(f"/api/sessions/{session_id}/blueprint/export")
        assert export.status_code == status.HTTP_200_OK
        assert export.headers["content-type"].startswith("text/markdown")
        assert export.text.startswith("# OpenLedger CRM")

    @pytest.mark.asyncio
    async def test_blueprint_failure_returns_to_insights(self, client, mock_llm_failure):
        session_id = await new_session(client)
        await client.post(f"/api/sessions/{session_id}/sample")

        response = await client.post(f"/api/sessions/{session_id}/blueprint")

        events = parse_sse_events(response.text)
        assert get_events_by_type(events, "error")[0]["message"] == "Failed to generate blueprint."
        screen = events[-1]["screen"]
        assert screen["state"] == "INSIGHTS"
        assert screen["content"]["competitor_name"] == "Salesforce (Demo)"
        assert screen["content"]["error"] == "Failed to generate blueprint."

    @pytest.mark.asyncio
    async def test_export_without_blueprint_404(self, client):
        session_id = await new_session(client)
        await client.post(f"/api/sessions/{session_id}/sample")

        response = await client.get(f"/api/sessions/{session_id}/blueprint/export")

        assert response.status_code == status.HTTP_404_NOT_FOUND

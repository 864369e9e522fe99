"""Tests for the HTTP surface."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from parallax.api import routes
from parallax.exceptions import (
    MessageNotFoundError,
    SessionNotFoundError,
    TriggerValidationError,
)
from parallax.models.conductor import ConductorResult
from parallax.models.intervention import InterventionType
from parallax.models.session import ConductorPhase


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons between tests."""
    routes._conductor = None
    routes._db_client = None
    yield
    routes._conductor = None
    routes._db_client = None


@pytest.fixture
def mock_conductor():
    conductor = MagicMock()
    conductor.advance = AsyncMock()
    routes._conductor = conductor
    return conductor


async def _request(method: str, path: str, **kwargs):
    from httpx import ASGITransport, AsyncClient
    from parallax.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, path, **kwargs)


# ---------------------------------------------------------------------------
# POST /conductor
# ---------------------------------------------------------------------------

class TestConductorRoute:
    """Tests for POST /conductor."""

    @pytest.mark.asyncio
    async def test_returns_result(self, mock_conductor):
        mock_conductor.advance.return_value = ConductorResult(
            phase=ConductorPhase.GATHER_FIRST,
            message="Welcome, both of you.",
        )

        resp = await _request(
            "POST", "/conductor",
            json={"session_id": "s1", "trigger": "session_active"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["phase"] == "gather_first"
        assert data["message"] == "Welcome, both of you."
        assert data["noop"] is False
        assert data["error"] is None
        mock_conductor.advance.assert_awaited_once_with("s1", "session_active", None)

    @pytest.mark.asyncio
    async def test_passes_message_id(self, mock_conductor):
        mock_conductor.advance.return_value = ConductorResult(
            phase=ConductorPhase.GATHER_SECOND,
        )

        await _request(
            "POST", "/conductor",
            json={"session_id": "s1", "trigger": "message_sent", "message_id": "m1"},
        )

        mock_conductor.advance.assert_awaited_once_with("s1", "message_sent", "m1")

    @pytest.mark.asyncio
    async def test_generation_error_is_still_200(self, mock_conductor):
        """Test that a degraded transition is reported, not failed."""
        mock_conductor.advance.return_value = ConductorResult(
            phase=ConductorPhase.STEADY_STATE,
            error="Generation failed during synthesis: timeout",
        )

        resp = await _request(
            "POST", "/conductor",
            json={"session_id": "s1", "trigger": "message_sent", "message_id": "m2"},
        )

        assert resp.status_code == 200
        assert resp.json()["error"].startswith("Generation failed")

    @pytest.mark.asyncio
    async def test_validation_error_is_400(self, mock_conductor):
        mock_conductor.advance.side_effect = TriggerValidationError("trigger is required")

        resp = await _request("POST", "/conductor", json={"session_id": "s1"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "trigger is required"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        SessionNotFoundError("s9"),
        MessageNotFoundError("m9"),
    ])
    async def test_not_found_is_404(self, mock_conductor, error):
        mock_conductor.advance.side_effect = error

        resp = await _request(
            "POST", "/conductor",
            json={"session_id": "s9", "trigger": "message_sent", "message_id": "m9"},
        )

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_intervention_result(self, mock_conductor):
        mock_conductor.advance.return_value = ConductorResult(
            phase=ConductorPhase.STEADY_STATE,
            message="Let's pause.",
            intervened=True,
            intervention_type=InterventionType.ESCALATION,
        )

        resp = await _request(
            "POST", "/conductor",
            json={"session_id": "s1", "trigger": "check_intervention"},
        )

        data = resp.json()
        assert data["intervened"] is True
        assert data["intervention_type"] == "escalation"


# ---------------------------------------------------------------------------
# POST /interventions/check
# ---------------------------------------------------------------------------

class TestInterventionCheckRoute:
    """Tests for the stateless heuristic endpoint."""

    @pytest.mark.asyncio
    async def test_escalation(self):
        history = [
            {"sender": "person_a", "content": "a", "analysis": {"temperature": 0.4}},
            {"sender": "person_b", "content": "b", "analysis": {"temperature": 0.5}},
            {"sender": "person_a", "content": "c", "analysis": {"temperature": 0.5}},
        ]

        resp = await _request(
            "POST", "/interventions/check",
            json={"history": history, "latest": {"temperature": 0.9}},
        )

        assert resp.status_code == 200
        assert resp.json() == {"should_intervene": True, "type": "escalation"}

    @pytest.mark.asyncio
    async def test_cooldown(self):
        history = [
            {"sender": "person_a", "content": "a", "analysis": {"temperature": 0.4}},
            {"sender": "mediator", "content": "Let's slow down."},
            {"sender": "person_b", "content": "b", "analysis": {"temperature": 0.5}},
        ]

        resp = await _request(
            "POST", "/interventions/check",
            json={"history": history, "latest": {"temperature": 0.95}},
        )

        assert resp.json() == {"should_intervene": False, "type": None}

    @pytest.mark.asyncio
    async def test_rejects_out_of_range_temperature(self):
        resp = await _request(
            "POST", "/interventions/check",
            json={"history": [], "latest": {"temperature": 1.5}},
        )

        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

class TestHealth:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_healthy(self):
        mock_db = MagicMock()
        mock_db.health_check = AsyncMock(return_value={
            "healthy": True, "latency_ms": 3.2, "error": None,
        })
        routes._db_client = mock_db

        resp = await _request("GET", "/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["database"]["latency_ms"] == 3.2

    @pytest.mark.asyncio
    async def test_degraded(self):
        mock_db = MagicMock()
        mock_db.health_check = AsyncMock(return_value={
            "healthy": False, "latency_ms": 5000.0, "error": "timeout",
        })
        routes._db_client = mock_db

        resp = await _request("GET", "/health")

        assert resp.json()["status"] == "degraded"

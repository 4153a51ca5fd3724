"""
GapHunter Backend — Shared Test Fixtures

Provides mocked versions of the hosted model (litellm) and sample payloads
for deterministic, fast unit tests.
"""

import json
import os
import sys
from dataclasses import dataclass
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport

# Ensure app module is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# -----------------------------------------------------------------------------
# Environment Setup (before importing app modules)
# -----------------------------------------------------------------------------

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")


# -----------------------------------------------------------------------------
# Mock Response Classes
# -----------------------------------------------------------------------------


@dataclass
class MockLLMMessage:
    """Mock message from LLM response."""
    content: str
    reasoning_content: Optional[str] = None


@dataclass
class MockLLMChoice:
    """Mock choice from LLM response."""
    message: MockLLMMessage


@dataclass
class MockLLMUsage:
    """Mock usage stats from LLM response."""
    total_tokens: int = 100
    prompt_tokens: int = 50
    completion_tokens: int = 50


@dataclass
class MockLLMResponse:
    """Mock LLM completion response."""
    choices: list[MockLLMChoice]
    usage: MockLLMUsage = None

    def __post_init__(self):
        if self.usage is None:
            self.usage = MockLLMUsage()


def create_mock_llm_response(content: str) -> MockLLMResponse:
    """Create a mock LLM response with given content."""
    return MockLLMResponse(
        choices=[MockLLMChoice(message=MockLLMMessage(content=content))]
    )


# -----------------------------------------------------------------------------
# Sample Payloads
# -----------------------------------------------------------------------------


def make_reviews(count: int = 20) -> list[dict]:
    """Reviews rated 1-3 cycling through every source."""
    sources = ["App Store", "Play Store", "G2", "Capterra", "Twitter"]
    return [
        {
            "id": f"r{i}",
            "author": f"user_{i}",
            "rating": (i % 3) + 1,
            "date": "2024-05-01",
            "content": f"Complaint number {i}: pricing keeps going up and support never answers.",
            "source": sources[i % len(sources)],
        }
        for i in range(count)
    ]


@pytest.fixture
def reviews_payload() -> list[dict]:
    return make_reviews(20)


@pytest.fixture
def analysis_payload() -> dict:
    return {
        "sentiment_summary": "Customers feel overcharged and ignored by support.",
        "average_rating": 1.8,
        "pain_points": [
            {"category": "Support", "count": 6, "description": "Tickets go unanswered", "severity": "Medium"},
            {"category": "Pricing", "count": 10, "description": "Seat prices doubled", "severity": "High"},
            {"category": "Usability", "count": 6, "description": "Settings buried in menus", "severity": "Low"},
        ],
        "feature_gaps": [
            {"feature_name": "CSV export", "demand_level": "Critical", "context": "Data is locked in"},
            {"feature_name": "Dark mode", "demand_level": "Nice to Have", "context": "Late night use"},
        ],
    }


@pytest.fixture
def blueprint_payload() -> dict:
    return {
        "product_name": "OpenLedger CRM",
        "tagline": "The CRM that doesn't hold your data hostage.",
        "value_proposition": "Flat pricing, one-click export, humans on support.",
        "core_features": [
            {"title": "One-click export", "description": "Every object to CSV.", "solves_gap": "CSV export"},
            {"title": "Flat pricing", "description": "One price, unlimited seats.", "solves_gap": "Pricing"},
        ],
        "marketing_angles": ["Leave Acme in an afternoon", "Your data, your exit"],
    }


# -----------------------------------------------------------------------------
# LLM Mocking Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_llm(monkeypatch):
    """
    Mock litellm.acompletion to return predictable responses.

    Returns the mock function so tests can customize responses.
    """
    async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
        return create_mock_llm_response("[]")

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


@pytest.fixture
def mock_llm_sequence(monkeypatch):
    """
    Factory fixture: mock LLM answering successive calls in order.

    Each item is a dict/list (serialized to JSON), a raw string, or an
    Exception instance (raised for that call).

    Usage:
        mock = mock_llm_sequence([reviews, analysis])
    """
    def _create_mock(items: list):
        side_effect = []
        for item in items:
            if isinstance(item, Exception):
                side_effect.append(item)
            elif isinstance(item, str):
                side_effect.append(create_mock_llm_response(item))
            else:
                side_effect.append(create_mock_llm_response(json.dumps(item)))
        mock = AsyncMock(side_effect=side_effect)
        monkeypatch.setattr("litellm.acompletion", mock)
        return mock

    return _create_mock


@pytest.fixture
def mock_llm_failure(monkeypatch):
    """Mock LLM to simulate the remote call failing."""
    async def mock_acompletion(*args, **kwargs):
        raise Exception("503 Service Unavailable")

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


@pytest.fixture
def no_api_key(monkeypatch):
    """Simulate an unset GEMINI_API_KEY."""
    from app.config import settings
    monkeypatch.setattr(settings, "gemini_api_key", "")


# -----------------------------------------------------------------------------
# HTTP Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
async def client():
    """Async HTTP client for testing FastAPI endpoints."""
    from app.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def reset_sessions():
    """Drop in-memory sessions between tests."""
    import app.api.sessions as sessions_module
    sessions_module._sessions.clear()
    sessions_module._running_pipelines.clear()
    sessions_module._last_seen.clear()
    yield
    sessions_module._sessions.clear()
    sessions_module._running_pipelines.clear()
    sessions_module._last_seen.clear()


# -----------------------------------------------------------------------------
# SSE Parsing Helpers
# -----------------------------------------------------------------------------


def parse_sse_events(content: str) -> list[dict]:
    """Parse SSE event stream into list of event dicts."""
    events = []
    for line in content.split("\n"):
        if line.startswith("data: "):
            try:
                events.append(json.loads(line[6:]))
            except json.JSONDecodeError:
                continue
    return events

"""
GapHunter Backend — Central Configuration

All environment variables and LLM settings live here.
Import `settings`, `LLM_CONFIG`, `log`, and `generate_error_code` from this module.
Do not read `os.environ` anywhere else.
"""

import uuid
from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All environment variables. Loaded from .env or the process environment."""

    # Empty means "missing credential": gateway calls refuse to run
    gemini_api_key: str = ""

    # App
    environment: str = "development"  # "development" | "production" | "test"
    cors_origins: str = "http://localhost:3000"  # Comma-separated for multiple origins

    # Sessions untouched for this long are dropped from the in-memory store
    session_idle_ttl_seconds: int = 3600

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import this everywhere
settings = Settings()


# ──────────────────────────────────────────────────────
# Logging Utilities (structured print)
# ──────────────────────────────────────────────────────

def generate_error_code() -> str:
    """Generate a short, user-friendly error reference code.

    Format: 'GH-' followed by 6 uppercase hex characters.
    Example: 'GH-3F8A2C'

    The same code is logged on the backend AND sent to the client in the
    ErrorEvent, so a user can quote it and the logs can be grepped for it.
    """
    return f"GH-{uuid.uuid4().hex[:6].upper()}"


def log(level: str, message: str, **context) -> None:
    """Structured print-based logger.

    Every log line follows the format:
        [ISO_TIMESTAMP] [LEVEL] message | key1=value1 key2=value2

    Args:
        level: One of "INFO", "WARN", "ERROR".
        message: Human-readable description of what happened.
        **context: Arbitrary key-value pairs. Include session_id when available.

    Usage:
        log("INFO", "transition", session_id="abc-123", from_state="LANDING", to_state="DASHBOARD")
        log("ERROR", "llm call failed", session_id="abc-123", operation="analyze_reviews",
            error_code="GH-3F8A2C", error=str(e))
    """
    ts = datetime.now(timezone.utc).isoformat()
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    print(f"[{ts}] [{level}] {message} | {ctx}", flush=True)


# ──────────────────────────────────────────────────────
# LLM Configuration
# ──────────────────────────────────────────────────────

LLM_CONFIG = {
    "persona": {
        "name": "GapHunter",
        "system_prompt": (
            "You are GapHunter, a competitive intelligence assistant for SaaS founders. "
            "You read what customers say about a competitor and turn it into product opportunities.\n\n"
            "Guidelines:\n"
            "- Output strictly valid JSON matching the requested schema. No markdown code fences, "
            "no explanation text outside the JSON.\n"
            "- Be specific: name concrete features, workflows and price points rather than generic themes.\n"
            "- Keep every string field concise — one or two sentences at most.\n"
            "- Use only the enumeration values the schema allows."
        ),
    },
    "model": "gemini/gemini-2.5-flash",
    "temperature": 0.7,
    "max_tokens": 8000,
}

# Number of synthetic reviews requested from the model per analysis
REVIEW_SAMPLE_SIZE = 20

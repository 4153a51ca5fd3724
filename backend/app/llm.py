"""
GapHunter Backend — LLM Interactions

All LLM calls go through litellm: one-shot completion with a declared
response schema, code-fence stripping and Pydantic validation.
No retries, no provider fallback: every call is a single request/response.
"""

import json
import re
import time
import warnings
from enum import Enum
from typing import Any

import litellm
from pydantic import TypeAdapter, ValidationError

from app.config import LLM_CONFIG, generate_error_code, log, settings

# litellm internally creates VertexLLM coroutines that sometimes go un-awaited
# when the gemini/ prefix routes through a code path that raises before awaiting.
warnings.filterwarnings(
    "ignore",
    message="coroutine 'VertexLLM.async_completion' was never awaited",
)
litellm.suppress_debug_info = True
litellm.drop_params = True

LLM_CALL_TIMEOUT_SECONDS = 90


# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class FailureKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    REMOTE = "remote"
    MALFORMED_RESPONSE = "malformed_response"


class GatewayError(Exception):
    """Base class for every failure of a call to the hosted model."""

    kind: FailureKind = FailureKind.REMOTE


class MissingCredentialError(GatewayError):
    """No API key configured. Raised before any request is attempted."""

    kind = FailureKind.MISSING_CREDENTIAL

    def __init__(self, message: str = "API Key is missing"):
        super().__init__(message)


class LLMError(GatewayError):
    """The remote call raised, timed out, or returned no content."""

    kind = FailureKind.REMOTE


class LLMValidationError(GatewayError):
    """LLM output was not JSON or did not match the declared schema."""

    kind = FailureKind.MALFORMED_RESPONSE

    def __init__(self, raw_output: str, expected_schema: str, error: str):
        self.raw_output = raw_output
        self.expected_schema = expected_schema
        super().__init__(f"LLM validation failed: {error}")


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


async def call_llm(
    messages: list[dict],
    response_schema: dict | None = None,
    session_id: str | None = None,
) -> str:
    """
    Call the configured model once.

    Args:
        messages: List of message dicts (without system prompt — injected here).
        response_schema: Optional JSON schema the response must conform to.
            Passed to the provider as a structured-output constraint.
        session_id: Optional session ID for logging correlation.

    Returns:
        Raw response content string from the LLM.

    Raises:
        MissingCredentialError: If no API key is configured.
        LLMError: If the call raises or returns empty content.
    """
    if not settings.gemini_api_key:
        raise MissingCredentialError()

    model = LLM_CONFIG["model"]
    completion_kwargs: dict[str, Any] = {
        "model": model,
        "messages": _inject_system_prompt(messages),
        "temperature": LLM_CONFIG["temperature"],
        "max_tokens": LLM_CONFIG["max_tokens"],
        "timeout": LLM_CALL_TIMEOUT_SECONDS,
        "api_key": settings.gemini_api_key,
    }
    if response_schema is not None:
        completion_kwargs["response_format"] = {
            "type": "json_object",
            "response_schema": response_schema,
        }

    log("INFO", "llm call started", session_id=session_id, model=model)
    start = time.perf_counter()

    try:
        response = await litellm.acompletion(**completion_kwargs)
    except Exception as e:
        code = generate_error_code()
        log(
            "ERROR",
            "llm call failed",
            session_id=session_id,
            model=model,
            error=str(e),
            error_code=code,
        )
        raise LLMError(f"LLM call failed: {e}") from e

    duration_ms = int((time.perf_counter() - start) * 1000)

    content = ""
    if response.choices:
        msg = response.choices[0].message
        if msg.content:
            content = msg.content
        # Gemini 2.5 "thinking" models may return reasoning separately
        elif getattr(msg, "reasoning_content", None):
            content = msg.reasoning_content

    tokens_used = None
    if getattr(response, "usage", None):
        tokens_used = getattr(response.usage, "total_tokens", None)

    if not content:
        log(
            "WARN",
            "llm returned empty content",
            session_id=session_id,
            model=model,
            duration_ms=duration_ms,
            tokens_used=tokens_used,
        )
        raise LLMError(f"Model {model} returned empty content")

    log(
        "INFO",
        "llm call succeeded",
        session_id=session_id,
        model=model,
        duration_ms=duration_ms,
        tokens_used=tokens_used,
    )
    return content


async def call_llm_structured(
    messages: list[dict],
    response_model: Any,
    session_id: str | None = None,
) -> Any:
    """
    Call the LLM with a declared output schema and validate the response.

    Steps:
        1. Derive the JSON schema from response_model (a Pydantic model class
           or any type TypeAdapter accepts, e.g. list[Review])
        2. call_llm(messages, response_schema=schema)
        3. Strip markdown code fences if present (```json ... ```)
        4. json.loads() and validate
        5. On JSONDecodeError or ValidationError: raise LLMValidationError
           (the response is never trusted implicitly and never re-requested)

    Returns:
        The validated instance (model instance, list of model instances, ...).

    Raises:
        MissingCredentialError, LLMError: propagated from call_llm.
        LLMValidationError: If the body is not valid against the schema.
    """
    adapter = TypeAdapter(response_model)
    schema = adapter.json_schema()

    raw = await call_llm(messages, response_schema=schema, session_id=session_id)
    stripped = _strip_code_fences(raw)

    try:
        parsed = json.loads(stripped)
        return adapter.validate_python(parsed)
    except (json.JSONDecodeError, ValidationError) as e:
        error_code = generate_error_code()
        log(
            "ERROR",
            "llm output validation failed",
            session_id=session_id,
            raw_output=raw[:500] + "..." if len(raw) > 500 else raw,
            schema=_schema_name(response_model),
            validation_error=str(e)[:300],
            error_code=error_code,
        )
        raise LLMValidationError(
            raw_output=raw,
            expected_schema=json.dumps(schema, indent=2),
            error=str(e),
        ) from e


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────


def _inject_system_prompt(messages: list[dict]) -> list[dict]:
    """
    Prepend the persona system prompt to the message list.
    Returns a new list (does not mutate the input).
    """
    system_msg = {
        "role": "system",
        "content": LLM_CONFIG["persona"]["system_prompt"],
    }
    return [system_msg] + list(messages)


def _strip_code_fences(text: str) -> str:
    """
    Remove markdown code fences from LLM output.
    Handles: ```json\\n...\\n```, ```\\n...\\n```, and plain text.
    """
    if not text or not isinstance(text, str):
        return text
    stripped = text.strip()
    match = re.match(r"^```(?:json)?\s*\n?(.*?)\n?```\s*$", stripped, re.DOTALL)
    if match:
        return match.group(1).strip()
    return stripped


def _schema_name(response_model: Any) -> str:
    return getattr(response_model, "__name__", None) or str(response_model)

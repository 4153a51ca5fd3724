"""
GapHunter Backend — Sessions API

One in-memory ViewController per session. Navigation endpoints answer with the
new screen; the two gateway-backed transitions answer with an SSE stream of
controller events terminated by the final screen.
"""

import asyncio
import json
import time
import uuid
from collections.abc import AsyncIterator

from fastapi import APIRouter, HTTPException, Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import BaseModel

from app import views
from app.config import log, settings
from app.controller import InvalidTransition, ViewController
from app.models import (
    AnalysisRequest,
    NavigateRequest,
    Screen,
    ScreenEvent,
    SessionCreatedResponse,
)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

# In-memory session store (single-instance assumption, lost on restart)
_sessions: dict[str, ViewController] = {}

# Monotonic time each session was last used; idle sessions are expired lazily
_last_seen: dict[str, float] = {}

# One in-flight pipeline per session. Pipelines keep running after a client
# disconnects; the reference is dropped when the task finishes.
_running_pipelines: dict[str, asyncio.Task] = {}

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _format_sse_event(event_data: dict) -> str:
    """Format a dict as an SSE event string. Format: 'data: {json}\\n\\n'"""
    return f"data: {json.dumps(event_data)}\n\n"


def _serialize_event(event: BaseModel) -> str:
    """Serialize a Pydantic event model to SSE string."""
    return _format_sse_event(event.model_dump(mode="json"))


def _expire_idle_sessions() -> None:
    """Drop sessions idle past the TTL. Sessions with a running pipeline are kept."""
    cutoff = time.monotonic() - settings.session_idle_ttl_seconds
    for session_id, seen in list(_last_seen.items()):
        if seen >= cutoff:
            continue
        controller = _sessions.get(session_id)
        if controller is not None and _in_flight(session_id, controller):
            continue
        _sessions.pop(session_id, None)
        _last_seen.pop(session_id, None)
        log("INFO", "session expired", session_id=session_id)


def _get_controller(session_id: str) -> ViewController:
    _expire_idle_sessions()
    controller = _sessions.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    _last_seen[session_id] = time.monotonic()
    return controller


def _in_flight(session_id: str, controller: ViewController) -> bool:
    task = _running_pipelines.get(session_id)
    return controller.busy or (task is not None and not task.done())


def _dispatch(
    session_id: str,
    pipeline: AsyncIterator[BaseModel],
) -> tuple[asyncio.Queue, asyncio.Task]:
    """
    Start the pipeline in its own task right away.

    The task is not tied to the response: once dispatched, an operation always
    runs to completion and leaves the controller in a final state.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def pump() -> None:
        try:
            async for event in pipeline:
                await queue.put(event)
        finally:
            await queue.put(None)

    task = asyncio.create_task(pump())
    _running_pipelines[session_id] = task

    def _release(done: asyncio.Task) -> None:
        if _running_pipelines.get(session_id) is done:
            del _running_pipelines[session_id]

    task.add_done_callback(_release)
    return queue, task


async def _relay(
    controller: ViewController,
    queue: asyncio.Queue,
    task: asyncio.Task,
) -> AsyncIterator[str]:
    """Relay pipeline events as SSE frames, then the final screen."""
    while True:
        event = await queue.get()
        if event is None:
            break
        yield _serialize_event(event)

    await task
    yield _serialize_event(ScreenEvent(screen=views.render(controller)))


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_session() -> SessionCreatedResponse:
    """
    POST /api/sessions

    Start a new client session on the LANDING screen.
    """
    _expire_idle_sessions()
    session_id = str(uuid.uuid4())
    controller = ViewController(session_id=session_id)
    _sessions[session_id] = controller
    _last_seen[session_id] = time.monotonic()
    log("INFO", "session created", session_id=session_id)
    return SessionCreatedResponse(session_id=session_id, screen=views.render(controller))


@router.get("/{session_id}")
async def get_screen(session_id: str) -> Screen:
    """GET /api/sessions/{session_id} — payload of the current screen."""
    return views.render(_get_controller(session_id))


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str) -> Response:
    controller = _get_controller(session_id)
    if _in_flight(session_id, controller):
        raise HTTPException(status_code=409, detail="Operation in progress for this session")
    _sessions.pop(session_id, None)
    _last_seen.pop(session_id, None)
    log("INFO", "session deleted", session_id=session_id)
    return Response(status_code=204)


@router.post("/{session_id}/navigate")
async def navigate(session_id: str, request: NavigateRequest) -> Screen:
    """
    POST /api/sessions/{session_id}/navigate

    Plain navigation. 409 when the target is not reachable from here.
    """
    controller = _get_controller(session_id)
    if _in_flight(session_id, controller):
        raise HTTPException(status_code=409, detail="Operation in progress for this session")
    try:
        controller.navigate(request.target)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return views.render(controller)


@router.post("/{session_id}/sample")
async def view_sample(session_id: str) -> Screen:
    """POST /api/sessions/{session_id}/sample — open the demonstration analysis."""
    controller = _get_controller(session_id)
    if _in_flight(session_id, controller):
        raise HTTPException(status_code=409, detail="Operation in progress for this session")
    try:
        controller.view_sample()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return views.render(controller)


@router.post("/{session_id}/analysis")
async def start_analysis(session_id: str, request: AnalysisRequest) -> StreamingResponse:
    """
    POST /api/sessions/{session_id}/analysis

    Fetch and analyze reviews for a competitor. Returns SSE stream.
    409 if an operation is already in progress for this session.
    """
    controller = _get_controller(session_id)
    if _in_flight(session_id, controller):
        raise HTTPException(status_code=409, detail="Operation in progress for this session")

    queue, task = _dispatch(
        session_id,
        controller.request_analysis(request.competitor_name, request.description),
    )
    return StreamingResponse(
        _relay(controller, queue, task),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/{session_id}/blueprint")
async def start_blueprint(session_id: str) -> StreamingResponse:
    """
    POST /api/sessions/{session_id}/blueprint

    Draft a blueprint for the current analysis. Returns SSE stream.
    409 without a current analysis or while another operation runs.
    """
    controller = _get_controller(session_id)
    if controller.current_analysis is None:
        raise HTTPException(status_code=409, detail="No analysis to build a blueprint from")
    if _in_flight(session_id, controller):
        raise HTTPException(status_code=409, detail="Operation in progress for this session")

    queue, task = _dispatch(session_id, controller.request_blueprint())
    return StreamingResponse(
        _relay(controller, queue, task),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/{session_id}/blueprint/export")
async def export_blueprint(session_id: str) -> PlainTextResponse:
    """GET /api/sessions/{session_id}/blueprint/export — blueprint as Markdown."""
    controller = _get_controller(session_id)
    analysis = controller.current_analysis
    if analysis is None or analysis.blueprint is None:
        raise HTTPException(status_code=404, detail="No blueprint for this session")
    return PlainTextResponse(views.blueprint_to_markdown(analysis), media_type="text/markdown")

"""Sessions — reflection flow endpoints and in-memory FlowState management.

Invariants:
    - FlowState is per-session, in-memory (module-level dict)
    - Every transition endpoint returns the flow snapshot after the move
    - Flows missing from _flow_states are rebuilt from the store (resume)
    - Stage/validation problems surface as BrainDumpError (global handlers)

Design Decisions:
    - _flow_states as module-level dict: single-process uvicorn, no
      multi-worker; a restart loses only unsaved answers of the current thought
    - Routes stay thin: all sequencing lives in ReflectionFlow
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from brain_dump.api.dependencies import (
    get_assistant, get_narration, get_store,
)
from brain_dump.core.domain_types import SessionId
from brain_dump.core.errors import ResourceNotFoundError
from brain_dump.core.flow_state import FlowState
from brain_dump.core.repository_protocols import (
    ReflectionAssistant, ReflectionStore,
)
from brain_dump.core.results_summary import ALL_CATEGORIES
from brain_dump.schemas.assistant import InsightResponse
from brain_dump.schemas.session import (
    AnswerSubmit, FlowSnapshot, SessionCreate, SessionDetail, ThoughtCapture,
)
from brain_dump.services.narration import NarrationDispatcher
from brain_dump.services.reflection_flow import ReflectionFlow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])

# In-memory flow positions, keyed by session id. Lost on restart.
_flow_states: dict[SessionId, FlowState] = {}


def get_reflection_flow(
    store: ReflectionStore = Depends(get_store),
    assistant: ReflectionAssistant = Depends(get_assistant),
    narration: NarrationDispatcher = Depends(get_narration),
) -> ReflectionFlow:
    return ReflectionFlow(store, assistant, narration, _flow_states)


def clear_flow_states() -> None:
    """Forget every in-memory flow (used when all data is erased)."""
    _flow_states.clear()


@router.post(
    "", response_model=FlowSnapshot,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    body: SessionCreate, flow: ReflectionFlow = Depends(get_reflection_flow),
):
    """Start a session with the chosen mind weather."""
    state = await flow.start(body.mind_weather.value)
    return state.to_snapshot()


@router.get("")
async def list_sessions(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: ReflectionStore = Depends(get_store),
):
    """List sessions, most recent first."""
    sessions = await store.list_sessions(limit=limit, offset=offset)
    return {
        "sessions": [s.to_dict() for s in sessions],
        "pagination": {"limit": limit, "offset": offset},
    }


@router.get("/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: str,
    store: ReflectionStore = Depends(get_store),
    flow: ReflectionFlow = Depends(get_reflection_flow),
):
    """Session record plus current flow position (resumes unknown flows)."""
    state = await flow.get_flow(session_id)
    session = await store.get_session(session_id)
    if session is None:
        raise ResourceNotFoundError("Session", session_id)
    return {"session": session.to_dict(), "flow": state.to_snapshot()}


@router.post("/{session_id}/thoughts", response_model=FlowSnapshot)
async def capture_thoughts(
    session_id: str,
    body: ThoughtCapture,
    flow: ReflectionFlow = Depends(get_reflection_flow),
):
    state = await flow.capture(session_id, body.thoughts)
    return state.to_snapshot()


@router.post("/{session_id}/answer", response_model=FlowSnapshot)
async def submit_answer(
    session_id: str,
    body: AnswerSubmit,
    flow: ReflectionFlow = Depends(get_reflection_flow),
):
    state = await flow.answer(session_id, body.value)
    return state.to_snapshot()


@router.post("/{session_id}/next", response_model=FlowSnapshot)
async def next_step(
    session_id: str, flow: ReflectionFlow = Depends(get_reflection_flow),
):
    state = await flow.next(session_id)
    return state.to_snapshot()


@router.post("/{session_id}/back", response_model=FlowSnapshot)
async def previous_step(
    session_id: str, flow: ReflectionFlow = Depends(get_reflection_flow),
):
    state = await flow.back(session_id)
    return state.to_snapshot()


@router.post("/{session_id}/restart", response_model=FlowSnapshot)
async def restart_thought(
    session_id: str, flow: ReflectionFlow = Depends(get_reflection_flow),
):
    state = await flow.restart(session_id)
    return state.to_snapshot()


@router.post("/{session_id}/exit", response_model=FlowSnapshot)
async def exit_session(
    session_id: str, flow: ReflectionFlow = Depends(get_reflection_flow),
):
    state = await flow.exit(session_id)
    return state.to_snapshot()


@router.get("/{session_id}/results")
async def get_results(
    session_id: str,
    category: str = Query(ALL_CATEGORIES),
    flow: ReflectionFlow = Depends(get_reflection_flow),
):
    """Results view: counts, theme groups, overall reflection."""
    return await flow.results(session_id, category)


@router.get(
    "/{session_id}/narration",
    responses={200: {"content": {"audio/mpeg": {}}}, 204: {}},
)
async def get_narration_audio(
    session_id: str,
    flow: ReflectionFlow = Depends(get_reflection_flow),
    narration: NarrationDispatcher = Depends(get_narration),
):
    """Audio for the current question, once the background narration finished."""
    state = await flow.get_flow(session_id)
    audio = narration.latest(session_id, state.generation)
    if audio is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/{session_id}/insight", response_model=InsightResponse)
async def session_insight(
    session_id: str, flow: ReflectionFlow = Depends(get_reflection_flow),
):
    """Compassionate insight for the session's first thought."""
    if await flow.store.get_session(session_id) is None:
        raise ResourceNotFoundError("Session", session_id)
    return {"insight": await flow.insight(session_id)}

"""Reflection Flow — drives one session from weather selection to completion.

Invariants:
    - Every transition goes through FlowState (pure); this service only adds IO
    - A finished thought is persisted (answers + heuristic category/theme)
      before the flow moves past it
    - Categorization is attempted once per session; assistant failure never
      blocks completion
    - completed_at is written once and never changed afterwards
    - Missing records redirect the flow (weather_select / capture), they never
      leave it stuck

Design Decisions:
    - Flow registry is a plain dict injected by the caller (the sessions router
      owns it); flows missing from it are rebuilt from the store on demand
    - Narration scheduled after each move into a question, never awaited
    - results() categorizes only when the first thought still has no category,
      and on assistant failure persists other/other so it is never retried
    - Session.categorized_at marks the one attempt; it is written before the
      assistant is called and both categorization paths check it
    - A failed completion evicts the flow so the next request resumes it from
      the store instead of finding it stuck at categorizing
"""

import logging
from datetime import datetime, timezone

from brain_dump.core.categorization import (
    CategorizationPayload, apply_categorization,
)
from brain_dump.core.domain_types import (
    FlowMove, FlowStage, MindWeather, SessionId, ThoughtCategory,
)
from brain_dump.core.errors import (
    ConfigurationError, DatabaseError, ErrorContext, ExternalServiceError,
    ResourceNotFoundError, ValidationFailure,
)
from brain_dump.core.flow_state import FlowState
from brain_dump.core.questions import answer_fields, derive_category_theme
from brain_dump.core.records import ThoughtRecord
from brain_dump.core.repository_protocols import (
    ReflectionAssistant, ReflectionStore,
)
from brain_dump.core.results_summary import (
    ALL_CATEGORIES, compute_results_summary,
)
from brain_dump.services.narration import NarrationDispatcher

logger = logging.getLogger(__name__)

RESULT_FILTERS = (ALL_CATEGORIES, *(c.value for c in ThoughtCategory))


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReflectionFlow:
    """Imperative shell around FlowState: store, assistant and narration."""

    def __init__(
        self,
        store: ReflectionStore,
        assistant: ReflectionAssistant,
        narration: NarrationDispatcher | None = None,
        flows: dict[SessionId, FlowState] | None = None,
    ):
        self.store = store
        self.assistant = assistant
        self.narration = narration
        self.flows = flows if flows is not None else {}

    # --- Entry points -----------------------------------------------------------

    async def start(self, mind_weather: str) -> FlowState:
        """weather_select → capture. Creates the session."""
        try:
            weather = MindWeather(mind_weather)
        except ValueError:
            raise ValidationFailure(
                f"Unknown mind weather '{mind_weather}'", "mind_weather",
            )
        session = await self.store.create_session(weather.value, _utc_now_iso())
        flow = FlowState(session_id=session.id, stage=FlowStage.CAPTURE)
        self.flows[SessionId(session.id)] = flow
        logger.info(
            f"Session started ({weather.value})",
            extra={"session_id": session.id, "stage": flow.stage.value},
        )
        return flow

    async def get_flow(self, session_id: str) -> FlowState:
        flow = self.flows.get(SessionId(session_id))
        if flow is None:
            flow = await self.resume(session_id)
        return flow

    async def resume(self, session_id: str) -> FlowState:
        """Rebuild a flow for an existing session from persisted records."""
        session = await self.store.get_session(session_id)
        if session is None:
            raise ResourceNotFoundError("Session", session_id)
        thoughts = await self.store.get_thoughts_by_session(session_id)
        flow = FlowState(session_id=session_id)
        self.flows[SessionId(session_id)] = flow

        if session.completed_at:
            flow.stage = FlowStage.COMPLETE
            flow.thoughts = thoughts
        elif not thoughts:
            flow.stage = FlowStage.CAPTURE
        else:
            # Saved answers always carry an intensity
            pending = next(
                (i for i, t in enumerate(thoughts) if t.intensity is None), None,
            )
            if pending is not None:
                flow.resume_at(thoughts, pending)
                self._narrate(flow)
            else:
                flow.stage = FlowStage.CATEGORIZING
                flow.thoughts = thoughts
                flow.finished_thoughts = list(range(len(thoughts)))
                await self._categorize_and_complete(flow)

        logger.info(
            "Session resumed",
            extra={"session_id": session_id, "stage": flow.stage.value},
        )
        return flow

    # --- Transitions --------------------------------------------------------------

    async def capture(self, session_id: str, texts: list[str]) -> FlowState:
        """capture → question(0, 0) once at least one non-empty thought exists."""
        flow = await self.get_flow(session_id)
        flow.require_stage("capture thoughts", FlowStage.CAPTURE)
        cleaned = [t.strip() for t in texts if t and t.strip()]
        if not cleaned:
            raise ValidationFailure(
                "At least one thought is required", "thoughts",
                ErrorContext(session_id=session_id, stage=flow.stage.value),
            )

        thoughts = await self.store.create_thoughts(session_id, cleaned)
        if not thoughts:
            logger.warning(
                "Session vanished during capture", extra={"session_id": session_id},
            )
            flow.redirect_to(FlowStage.WEATHER_SELECT)
            return flow

        await self.store.update_session(
            session_id, thoughts_explored=len(thoughts),
        )
        flow.begin_questions(thoughts)
        self._narrate(flow)
        logger.info(
            f"Captured {len(thoughts)} thoughts",
            extra={"session_id": session_id, "stage": flow.stage.value},
        )
        return flow

    async def answer(self, session_id: str, value: str) -> FlowState:
        flow = await self.get_flow(session_id)
        flow.record_answer(value)
        return flow

    async def next(self, session_id: str) -> FlowState:
        """Advance one step; finishing the last step persists the thought."""
        flow = await self.get_flow(session_id)
        if flow.step_forward() == FlowMove.STEP:
            self._narrate(flow)
            return flow

        thought = flow.current_thought
        updated = await self._persist_answers(thought, flow.answers)
        if updated is None:
            logger.warning(
                "Thought vanished before it could be saved",
                extra={"session_id": session_id, "thought_id": thought.id},
            )
            flow.redirect_to(FlowStage.CAPTURE)
            return flow
        flow.replace_thought(updated)

        if flow.finish_thought() == FlowMove.NEXT_THOUGHT:
            self._narrate(flow)
            return flow
        await self._categorize_and_complete(flow)
        return flow

    async def back(self, session_id: str) -> FlowState:
        flow = await self.get_flow(session_id)
        flow.step_back()
        self._narrate(flow)
        return flow

    async def restart(self, session_id: str) -> FlowState:
        flow = await self.get_flow(session_id)
        flow.restart_thought()
        self._narrate(flow)
        return flow

    async def exit(self, session_id: str) -> FlowState:
        """Any stage → weather_select. In-memory answers are dropped."""
        flow = await self.get_flow(session_id)
        flow.exit()
        if self.narration is not None:
            self.narration.cancel(session_id)
        logger.info("Session exited", extra={"session_id": session_id})
        return flow

    # --- Views ----------------------------------------------------------------------

    async def results(
        self, session_id: str, category: str = ALL_CATEGORIES,
    ) -> dict:
        if category not in RESULT_FILTERS:
            raise ValidationFailure(
                f"Unknown category filter '{category}'", "category",
            )
        session = await self.store.get_session(session_id)
        if session is None:
            raise ResourceNotFoundError("Session", session_id)
        thoughts = await self.store.get_thoughts_by_session(session_id)

        if thoughts and thoughts[0].category is None:
            await self._categorize(
                session_id, thoughts, default_on_failure=True,
            )
            session = await self.store.get_session(session_id) or session
            thoughts = await self.store.get_thoughts_by_session(session_id)

        return compute_results_summary(session, thoughts, category)

    async def insight(self, session_id: str) -> str:
        """Compassionate insight for the session's first thought."""
        thoughts = await self.store.get_thoughts_by_session(session_id)
        if not thoughts:
            raise ResourceNotFoundError("Thought", f"first of session {session_id}")
        first = thoughts[0]
        return await self.assistant.insight(
            first.thought_text, first.primary_feeling, first.reflection,
        )

    # --- Internals --------------------------------------------------------------------

    async def _persist_answers(
        self, thought: ThoughtRecord, answers: dict[str, str],
    ) -> ThoughtRecord | None:
        updates = answer_fields(answers)
        session = await self.store.get_session(thought.session_id)
        # Heuristics never overwrite the assistant's classification
        if session is None or session.categorized_at is None:
            category, theme = derive_category_theme(answers)
            updates.update(category=category, theme=theme)
        return await self.store.update_thought(thought.id, **updates)

    async def _categorize(
        self,
        session_id: str,
        thoughts: list[ThoughtRecord],
        default_on_failure: bool = False,
    ) -> None:
        """The single assistant pass over all thoughts.

        Writes categories, themes and the overall reflection. Nothing is
        written when the session was already categorized.
        """
        session = await self.store.get_session(session_id)
        if session is None or session.categorized_at is not None:
            logger.info(
                "Categorization already attempted, skipping",
                extra={"session_id": session_id},
            )
            return
        await self.store.update_session(session_id, categorized_at=_utc_now_iso())

        try:
            payload = await self.assistant.categorize(
                [t.thought_text for t in thoughts],
            )
            failed = False
        except (ExternalServiceError, ConfigurationError) as e:
            logger.warning(
                f"Categorization failed, keeping fallback: {e.message}",
                extra={"session_id": session_id, "error_code": e.code},
            )
            if not default_on_failure:
                return
            payload = CategorizationPayload()
            failed = True

        result = apply_categorization(thoughts, payload)
        for assignment in result.assignments:
            try:
                await self.store.update_thought(
                    assignment.thought_id,
                    category=assignment.category, theme=assignment.theme,
                )
            except DatabaseError as e:
                logger.warning(
                    f"Keeping previous category: {e.message}",
                    extra={
                        "session_id": session_id,
                        "thought_id": assignment.thought_id,
                        "error_code": e.code,
                    },
                )
        if not failed:
            await self.store.update_session(
                session_id, overall_reflection=result.overall_reflection,
            )

    async def _categorize_and_complete(self, flow: FlowState) -> None:
        """categorizing → complete."""
        session_id = flow.session_id
        try:
            thoughts = await self.store.get_thoughts_by_session(session_id)
            await self._categorize(session_id, thoughts)

            session = await self.store.get_session(session_id)
            if session is None:
                flow.redirect_to(FlowStage.WEATHER_SELECT)
                return
            if session.completed_at is None:
                await self.store.update_session(
                    session_id, completed_at=_utc_now_iso(),
                )

            flow.mark_complete(await self.store.get_thoughts_by_session(session_id))
        except Exception as e:
            self.flows.pop(SessionId(session_id), None)  # next request resumes it
            logger.error(
                f"Failed to complete session: {e}",
                extra={"session_id": session_id, "stage": flow.stage.value},
            )
            raise
        logger.info(
            "Session complete",
            extra={"session_id": session_id, "stage": flow.stage.value},
        )

    def _narrate(self, flow: FlowState) -> None:
        question = flow.current_question
        if self.narration is None or question is None:
            return
        self.narration.schedule(flow.session_id, flow.generation, question.text)

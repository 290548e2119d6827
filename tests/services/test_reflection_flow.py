"""Reflection flow tests — the full session lifecycle against both store backends.

Invariants:
    - complete is reached only after every thought was walked once, in order
    - completed_at absent until complete, never changed afterwards
    - capture with N non-empty texts → N thoughts, thoughts_explored == N
    - categorization attempted at most once per session
    - assistant failure never blocks completion (heuristics kept)
    - missing records redirect instead of raising
    - a failed completion is recovered by the next request

Design Decisions:
    - FakeAssistant counts calls so "at most once" is observable
    - Narration dispatcher drained before asserting on published audio
"""

import pytest

from brain_dump.core.domain_types import THEME_MAX_LENGTH, FlowStage
from brain_dump.core.errors import (
    ConfigurationError, DatabaseError, InvalidTransitionError,
    ResourceNotFoundError, ValidationFailure,
)
from brain_dump.infrastructure.memory_store import InMemoryReflectionStore
from brain_dump.services.reflection_flow import ReflectionFlow

from tests.services.fakes import FakeAssistant, assistant_down


async def _walk_thought(flow, session_id, answers=("can-change", "hurts", "tense", "it repeats", "7")):
    state = None
    for value in answers:
        await flow.answer(session_id, value)
        state = await flow.next(session_id)
    return state


async def _captured(flow, texts=("deadline at work", "argument with a friend"), weather="stormy"):
    state = await flow.start(weather)
    await flow.capture(state.session_id, list(texts))
    return state.session_id


# -- start / capture ---------------------------------------------------------------


async def test_start_creates_session_at_capture(flow, store):
    state = await flow.start("stormy")
    assert state.stage == FlowStage.CAPTURE
    session = await store.get_session(state.session_id)
    assert session.mind_weather == "stormy"
    assert session.thoughts_explored == 0


async def test_start_rejects_unknown_weather(flow):
    with pytest.raises(ValidationFailure):
        await flow.start("hail")


async def test_capture_persists_non_empty_thoughts(flow, store):
    state = await flow.start("cloudy")
    state = await flow.capture(state.session_id, ["one", "  ", "two", "", "three"])
    assert state.stage == FlowStage.QUESTION
    assert (state.thought_index, state.step_index) == (0, 0)
    thoughts = await store.get_thoughts_by_session(state.session_id)
    assert [t.thought_text for t in thoughts] == ["one", "two", "three"]
    session = await store.get_session(state.session_id)
    assert session.thoughts_explored == 3


async def test_capture_without_text_is_rejected(flow, store):
    state = await flow.start("cloudy")
    with pytest.raises(ValidationFailure):
        await flow.capture(state.session_id, ["", "   "])
    assert state.stage == FlowStage.CAPTURE
    assert await store.get_thoughts_by_session(state.session_id) == []


async def test_capture_twice_is_invalid(flow):
    session_id = await _captured(flow)
    with pytest.raises(InvalidTransitionError):
        await flow.capture(session_id, ["again"])


async def test_capture_after_data_cleared_redirects_to_weather(flow, store):
    state = await flow.start("foggy")
    await store.clear_all()
    state = await flow.capture(state.session_id, ["lost"])
    assert state.stage == FlowStage.WEATHER_SELECT
    assert state.redirect == FlowStage.WEATHER_SELECT


# -- question steps ------------------------------------------------------------------


async def test_next_blocked_on_empty_answer(flow):
    session_id = await _captured(flow)
    with pytest.raises(ValidationFailure):
        await flow.next(session_id)


async def test_finishing_a_thought_persists_heuristics(flow, store):
    session_id = await _captured(flow)
    state = await _walk_thought(flow, session_id, ("accept", "hurts", "sad", "it lingers", "abc"))
    assert (state.thought_index, state.step_index) == (1, 0)
    first = (await store.get_thoughts_by_session(session_id))[0]
    assert (first.category, first.theme) == ("rumination", "hurts")
    assert first.primary_feeling == "sad"
    assert first.reflection == "it lingers"
    assert first.intensity == 5


async def test_empty_intensity_defaults_to_five(flow, store):
    session_id = await _captured(flow, texts=("only one",))
    for value in ("can-change", "helps", "calm", "fine"):
        await flow.answer(session_id, value)
        await flow.next(session_id)
    state = await flow.next(session_id)
    assert state.stage == FlowStage.COMPLETE
    [thought] = await store.get_thoughts_by_session(session_id)
    assert thought.intensity == 5


async def test_back_and_restart(flow):
    session_id = await _captured(flow)
    await flow.answer(session_id, "accept")
    await flow.next(session_id)
    state = await flow.back(session_id)
    assert state.step_index == 0
    assert state.answers["can-change"] == "accept"
    await flow.next(session_id)
    state = await flow.restart(session_id)
    assert state.step_index == 0
    assert state.answers == {}


# -- categorization / completion -------------------------------------------------------


async def test_stormy_session_end_to_end(flow, store, assistant):
    assistant.categorize_response = {
        "categorized": [
            {"index": 0, "category": "worry", "theme": "work"},
            {"index": 1, "category": "rumination", "theme": "relationships"},
        ],
        "overallReflection": "You carried a lot today.",
    }
    session_id = await _captured(flow)
    await _walk_thought(flow, session_id)
    state = await _walk_thought(flow, session_id, ("accept", "hurts", "hurt", "still stings", "6"))

    assert state.stage == FlowStage.COMPLETE
    assert state.finished_thoughts == [0, 1]
    session = await store.get_session(session_id)
    assert session.thoughts_explored == 2
    assert session.completed_at is not None
    assert session.overall_reflection == "You carried a lot today."
    thoughts = await store.get_thoughts_by_session(session_id)
    assert [(t.category, t.theme) for t in thoughts] == [
        ("worry", "work"), ("rumination", "relationships"),
    ]
    assert assistant.categorize_calls == [
        ["deadline at work", "argument with a friend"],
    ]


async def test_empty_categorization_defaults_to_other(flow, store, assistant):
    assistant.categorize_response = {"categorized": [], "overallReflection": "Rest now."}
    session_id = await _captured(flow, texts=("a", "b", "c"))
    for _ in range(3):
        await _walk_thought(flow, session_id)
    thoughts = await store.get_thoughts_by_session(session_id)
    assert all((t.category, t.theme) == ("other", "other") for t in thoughts)
    assert (await store.get_session(session_id)).overall_reflection == "Rest now."


@pytest.mark.parametrize("failure", [
    assistant_down(),
    ConfigurationError("ANTHROPIC_API_KEY", "Anthropic"),
])
async def test_assistant_failure_keeps_heuristics_and_completes(flow, store, assistant, failure):
    assistant.categorize_response = failure
    session_id = await _captured(flow, texts=("deadline",))
    state = await _walk_thought(flow, session_id)
    assert state.stage == FlowStage.COMPLETE
    session = await store.get_session(session_id)
    assert session.completed_at is not None
    assert session.overall_reflection is None
    [thought] = await store.get_thoughts_by_session(session_id)
    assert (thought.category, thought.theme) == ("worry", "hurts")


async def test_malformed_categorization_falls_back(store, narration):
    from brain_dump.core.categorization import parse_assistant_json

    class _GarbageAssistant(FakeAssistant):
        async def categorize(self, thought_texts):
            self.categorize_calls.append(thought_texts)
            return parse_assistant_json("I think these are mostly worries.")

    flow = ReflectionFlow(store, _GarbageAssistant(), narration)
    session_id = await _captured(flow, texts=("deadline",))
    state = await _walk_thought(flow, session_id)
    assert state.stage == FlowStage.COMPLETE
    [thought] = await store.get_thoughts_by_session(session_id)
    assert thought.category == "worry"


class _NarrowThemeStore(InMemoryReflectionStore):
    """Rejects category writes the way a too-narrow theme column would."""

    async def update_thought(self, thought_id, **fields):
        if set(fields) == {"category", "theme"}:
            raise DatabaseError("value too long for type character varying(100)", "update")
        return await super().update_thought(thought_id, **fields)


class _FlakyCompletionStore(InMemoryReflectionStore):
    """Fails the first completed_at write."""

    def __init__(self):
        super().__init__()
        self.completion_failures = 1

    async def update_session(self, session_id, **fields):
        if "completed_at" in fields and self.completion_failures:
            self.completion_failures -= 1
            raise DatabaseError("connection reset", "update")
        return await super().update_session(session_id, **fields)


async def test_rejected_category_write_still_completes():
    store = _NarrowThemeStore()
    assistant = FakeAssistant({
        "categorized": [{"index": 0, "category": "worry", "theme": "work"}],
        "overallReflection": "Breathe out.",
    })
    flow = ReflectionFlow(store, assistant)
    session_id = await _captured(flow, texts=("deadline",))
    state = await _walk_thought(flow, session_id)

    assert state.stage == FlowStage.COMPLETE
    session = await store.get_session(session_id)
    assert session.completed_at is not None
    assert session.overall_reflection == "Breathe out."
    [thought] = await store.get_thoughts_by_session(session_id)
    assert (thought.category, thought.theme) == ("worry", "hurts")


async def test_failed_completion_recovers_on_next_request():
    store = _FlakyCompletionStore()
    assistant = FakeAssistant({
        "categorized": [{"index": 0, "category": "worry", "theme": "work"}],
        "overallReflection": "Breathe out.",
    })
    flow = ReflectionFlow(store, assistant)
    session_id = await _captured(flow, texts=("deadline",))
    for value in ("can-change", "hurts", "tense", "it repeats"):
        await flow.answer(session_id, value)
        await flow.next(session_id)
    await flow.answer(session_id, "7")
    with pytest.raises(DatabaseError):
        await flow.next(session_id)
    assert session_id not in flow.flows

    state = await flow.get_flow(session_id)
    assert state.stage == FlowStage.COMPLETE
    assert len(assistant.categorize_calls) == 1
    session = await store.get_session(session_id)
    assert session.completed_at is not None
    assert session.overall_reflection == "Breathe out."
    [thought] = await store.get_thoughts_by_session(session_id)
    assert (thought.category, thought.theme, thought.intensity) == ("worry", "work", 7)


async def test_long_assistant_theme_fits_column(flow, store, assistant):
    assistant.categorize_response = {
        "categorized": [{"index": 0, "category": "worry", "theme": "x" * 150}],
        "overallReflection": "Rest.",
    }
    session_id = await _captured(flow, texts=("deadline",))
    state = await _walk_thought(flow, session_id)
    assert state.stage == FlowStage.COMPLETE
    [thought] = await store.get_thoughts_by_session(session_id)
    assert thought.theme == "x" * THEME_MAX_LENGTH


async def test_results_never_recategorize_completed_session(flow, assistant):
    session_id = await _captured(flow, texts=("deadline",))
    await _walk_thought(flow, session_id)
    first = await flow.results(session_id)
    second = await flow.results(session_id)
    assert len(assistant.categorize_calls) == 1
    assert first["overall_reflection"] == second["overall_reflection"]


async def test_completed_at_never_changes(flow, store):
    session_id = await _captured(flow, texts=("deadline",))
    await _walk_thought(flow, session_id)
    completed_at = (await store.get_session(session_id)).completed_at
    flow.flows.clear()
    state = await flow.resume(session_id)
    assert state.stage == FlowStage.COMPLETE
    await flow.results(session_id)
    assert (await store.get_session(session_id)).completed_at == completed_at


async def test_completed_at_absent_before_complete(flow, store):
    session_id = await _captured(flow)
    await _walk_thought(flow, session_id)
    assert (await store.get_session(session_id)).completed_at is None


# -- results view ------------------------------------------------------------------------


async def test_results_categorize_unwalked_thoughts_once(flow, store, assistant):
    state = await flow.start("foggy")
    await store.create_thoughts(state.session_id, ["never walked"])
    summary = await flow.results(state.session_id)
    await flow.results(state.session_id)
    assert len(assistant.categorize_calls) == 1
    assert summary["thoughts"][0]["category"] == "other"
    assert summary["overall_reflection"] == "Be gentle with yourself."
    assert (await store.get_session(state.session_id)).completed_at is None


async def test_results_mid_flow_then_walk_categorizes_once(flow, store, assistant):
    assistant.categorize_response = {
        "categorized": [
            {"index": 0, "category": "worry", "theme": "money"},
            {"index": 1, "category": "future", "theme": "work"},
        ],
        "overallReflection": "One step at a time.",
    }
    session_id = await _captured(flow, texts=("rent", "meeting"))
    await flow.results(session_id)
    await _walk_thought(flow, session_id)
    state = await _walk_thought(flow, session_id, ("accept", "hurts", "sad", "again", "4"))

    assert state.stage == FlowStage.COMPLETE
    assert len(assistant.categorize_calls) == 1
    session = await store.get_session(session_id)
    assert session.overall_reflection == "One step at a time."
    assert session.categorized_at is not None
    assert session.completed_at is not None
    thoughts = await store.get_thoughts_by_session(session_id)
    assert [(t.category, t.theme) for t in thoughts] == [
        ("worry", "money"), ("future", "work"),
    ]
    assert [t.intensity for t in thoughts] == [7, 4]


async def test_resume_after_results_does_not_recategorize(flow, assistant):
    session_id = await _captured(flow, texts=("rent", "meeting"))
    await flow.results(session_id)
    flow.flows.clear()
    resumed = await flow.get_flow(session_id)
    assert (resumed.stage, resumed.thought_index) == (FlowStage.QUESTION, 0)

    await _walk_thought(flow, session_id)
    state = await _walk_thought(flow, session_id)
    assert state.stage == FlowStage.COMPLETE
    assert len(assistant.categorize_calls) == 1


async def test_results_assistant_failure_not_retried(flow, store, assistant):
    assistant.categorize_response = assistant_down()
    state = await flow.start("foggy")
    await store.create_thoughts(state.session_id, ["never walked"])
    summary = await flow.results(state.session_id)
    await flow.results(state.session_id)
    assert len(assistant.categorize_calls) == 1
    assert summary["overall_reflection"] == ""
    assert summary["category_counts"]["other"] == 1


async def test_results_category_filter(flow):
    session_id = await _captured(flow)
    await _walk_thought(flow, session_id)
    await _walk_thought(flow, session_id)
    summary = await flow.results(session_id, "worry")
    assert summary["selected_category"] == "worry"
    with pytest.raises(ValidationFailure):
        await flow.results(session_id, "panic")


async def test_results_unknown_session(flow):
    with pytest.raises(ResourceNotFoundError):
        await flow.results("00000000-0000-0000-0000-000000000000")


# -- exit / resume ---------------------------------------------------------------------------


async def test_exit_keeps_persisted_data(flow, store):
    session_id = await _captured(flow)
    await flow.answer(session_id, "accept")
    state = await flow.exit(session_id)
    assert state.stage == FlowStage.WEATHER_SELECT
    assert state.answers == {}
    assert len(await store.get_thoughts_by_session(session_id)) == 2


async def test_resume_without_thoughts_goes_to_capture(flow):
    state = await flow.start("sunny")
    flow.flows.clear()
    resumed = await flow.get_flow(state.session_id)
    assert resumed.stage == FlowStage.CAPTURE


async def test_resume_at_first_unanswered_thought(flow):
    session_id = await _captured(flow, texts=("a", "b", "c"))
    await _walk_thought(flow, session_id)
    flow.flows.clear()
    resumed = await flow.get_flow(session_id)
    assert resumed.stage == FlowStage.QUESTION
    assert (resumed.thought_index, resumed.step_index) == (1, 0)
    assert resumed.current_thought.thought_text == "b"


async def test_resume_completed_session_stays_complete(flow, store, assistant):
    session_id = await _captured(flow, texts=("deadline",))
    await _walk_thought(flow, session_id)
    flow.flows.clear()

    resumed = await flow.get_flow(session_id)
    assert resumed.stage == FlowStage.COMPLETE
    assert [t.thought_text for t in resumed.thoughts] == ["deadline"]
    assert (await store.get_session(session_id)).completed_at is not None
    assert len(assistant.categorize_calls) == 1


async def test_resume_fully_answered_session_completes(flow, store, assistant):
    state = await flow.start("cloudy")
    [thought] = await store.create_thoughts(state.session_id, ["late bus"])
    await store.update_thought(
        thought.id, category="future", theme="helps", can_change="can-change",
        helps_or_hurts="helps", intensity=3,
    )
    assert (await store.get_session(state.session_id)).completed_at is None
    flow.flows.clear()

    resumed = await flow.get_flow(state.session_id)
    assert resumed.stage == FlowStage.COMPLETE
    assert resumed.finished_thoughts == [0]
    assert len(assistant.categorize_calls) == 1
    session = await store.get_session(state.session_id)
    assert session.completed_at is not None
    assert session.overall_reflection == "Be gentle with yourself."


async def test_resume_unknown_session(flow):
    with pytest.raises(ResourceNotFoundError):
        await flow.resume("00000000-0000-0000-0000-000000000000")


async def test_next_after_thought_vanished_redirects_to_capture(flow, store):
    session_id = await _captured(flow, texts=("gone",))
    for value in ("can-change", "hurts", "tense", "why"):
        await flow.answer(session_id, value)
        await flow.next(session_id)
    await store.clear_all()
    state = await flow.next(session_id)
    assert state.stage == FlowStage.CAPTURE
    assert state.redirect == FlowStage.CAPTURE


# -- insight -----------------------------------------------------------------------------------


async def test_insight_uses_first_thought_answers(flow, assistant):
    session_id = await _captured(flow)
    await _walk_thought(flow, session_id)
    insight = await flow.insight(session_id)
    assert insight == "You are doing well."
    assert assistant.insight_calls == [("deadline at work", "tense", "it repeats")]


async def test_insight_without_thoughts(flow):
    state = await flow.start("sunny")
    with pytest.raises(ResourceNotFoundError):
        await flow.insight(state.session_id)


# -- narration -----------------------------------------------------------------------------------


async def test_question_entry_is_narrated(flow, narration, narrator):
    session_id = await _captured(flow)
    await narration.drain()
    state = flow.flows[session_id]
    assert narrator.texts[-1] == state.current_question.text
    assert narration.latest(session_id, state.generation) == narrator.audio


async def test_stale_narration_is_discarded(flow, narration):
    session_id = await _captured(flow)
    await narration.drain()
    old_generation = flow.flows[session_id].generation
    await flow.answer(session_id, "accept")
    await flow.next(session_id)
    assert narration.latest(session_id, old_generation) is None


async def test_exit_cancels_narration(flow, narration):
    session_id = await _captured(flow)
    state = await flow.exit(session_id)
    await narration.drain()
    assert narration.latest(session_id, state.generation) is None

"""Flow State — in-memory position of one session inside the reflection flow.

Invariants:
    - stage ∈ weather_select → capture → question(i, s) → categorizing → complete
    - question stage requires ≥1 thought; thought indices are finished in
      increasing order, each exactly once
    - step_forward never leaves a step whose answer is empty (intensity excepted)
    - back/restart never touch answers of steps already visited, except restart
      which clears the current thought's answers only
    - generation increments whenever the displayed question changes, so side
      channels (narration) can detect stale results

Design Decisions:
    - Pure dataclass, no IO: the reflection flow service persists around these
      transitions (functional core, imperative shell)
    - step_forward reports FINISH_THOUGHT instead of moving, so the service can
      persist the thought before finish_thought() advances the index
"""

from dataclasses import dataclass, field

from brain_dump.core.domain_types import FlowMove, FlowStage, QuestionKind
from brain_dump.core.errors import (
    ErrorContext, InvalidTransitionError, ValidationFailure,
)
from brain_dump.core.questions import (
    QUESTIONS, TOTAL_STEPS, Question, is_answer_present,
)
from brain_dump.core.records import ThoughtRecord


@dataclass
class FlowState:
    """Per-session flow position — pure dataclass, no IO."""

    session_id: str
    stage: FlowStage = FlowStage.CAPTURE
    thoughts: list[ThoughtRecord] = field(default_factory=list)
    thought_index: int = 0
    step_index: int = 0
    answers: dict[str, str] = field(default_factory=dict)

    # Thought indices that left the question flow, in order
    finished_thoughts: list[int] = field(default_factory=list)

    # Bumped on every change of the displayed question
    generation: int = 0

    # Stage the flow was sent back to after a missing record, for the client
    redirect: FlowStage | None = None

    # --- Computed properties ---------------------------------------------------

    @property
    def thought_count(self) -> int:
        return len(self.thoughts)

    @property
    def current_question(self) -> Question | None:
        if self.stage != FlowStage.QUESTION:
            return None
        return QUESTIONS[self.step_index]

    @property
    def current_thought(self) -> ThoughtRecord | None:
        if self.stage != FlowStage.QUESTION:
            return None
        return self.thoughts[self.thought_index]

    @property
    def is_last_step(self) -> bool:
        return self.step_index == TOTAL_STEPS - 1

    @property
    def is_last_thought(self) -> bool:
        return self.thought_index == self.thought_count - 1

    @property
    def can_proceed(self) -> bool:
        question = self.current_question
        if question is None:
            return False
        return is_answer_present(question, self.answers.get(question.id))

    # --- Transitions -------------------------------------------------------------

    def require_stage(self, action: str, *stages: FlowStage) -> None:
        if self.stage not in stages:
            raise InvalidTransitionError(
                action, self.stage.value,
                ErrorContext(session_id=self.session_id),
            )

    def begin_questions(self, thoughts: list[ThoughtRecord]) -> None:
        """capture → question(0, 0)."""
        self.require_stage("start the questions", FlowStage.CAPTURE)
        if not thoughts:
            raise ValidationFailure(
                "At least one thought is required", "thoughts",
                ErrorContext(session_id=self.session_id),
            )
        self.thoughts = list(thoughts)
        self.stage = FlowStage.QUESTION
        self.thought_index = 0
        self.step_index = 0
        self.answers = {}
        self.finished_thoughts = []
        self.redirect = None
        self._moved()

    def resume_at(self, thoughts: list[ThoughtRecord], thought_index: int) -> None:
        """Re-enter question(thought_index, 0) for a session rebuilt from the store."""
        self.thoughts = list(thoughts)
        self.stage = FlowStage.QUESTION
        self.thought_index = thought_index
        self.step_index = 0
        self.answers = {}
        self.finished_thoughts = list(range(thought_index))
        self._moved()

    def record_answer(self, value: str) -> None:
        """Store the answer for the active step. Does not move."""
        self.require_stage("answer", FlowStage.QUESTION)
        question = QUESTIONS[self.step_index]
        if question.kind == QuestionKind.CHOICE and value not in question.option_values:
            raise ValidationFailure(
                f"'{value}' is not an option for {question.id}", question.id,
                ErrorContext(session_id=self.session_id),
            )
        self.answers[question.id] = value

    def step_forward(self) -> FlowMove:
        """question(i, s) → question(i, s+1), or report that the thought is done."""
        self.require_stage("continue", FlowStage.QUESTION)
        if not self.can_proceed:
            question = QUESTIONS[self.step_index]
            raise ValidationFailure(
                f"An answer is required for {question.id}", question.id,
                ErrorContext(session_id=self.session_id),
            )
        if self.is_last_step:
            return FlowMove.FINISH_THOUGHT
        self.step_index += 1
        self._moved()
        return FlowMove.STEP

    def finish_thought(self) -> FlowMove:
        """question(i, last) → question(i+1, 0) or → categorizing."""
        self.require_stage("finish a thought", FlowStage.QUESTION)
        self.finished_thoughts.append(self.thought_index)
        self.answers = {}
        if not self.is_last_thought:
            self.thought_index += 1
            self.step_index = 0
            self._moved()
            return FlowMove.NEXT_THOUGHT
        self.stage = FlowStage.CATEGORIZING
        self._moved()
        return FlowMove.CATEGORIZE

    def step_back(self) -> None:
        """question(i, s) → question(i, s-1). Answers are kept."""
        self.require_stage("go back", FlowStage.QUESTION)
        if self.step_index == 0:
            raise InvalidTransitionError(
                "go back from the first step", self.stage.value,
                ErrorContext(session_id=self.session_id),
            )
        self.step_index -= 1
        self._moved()

    def restart_thought(self) -> None:
        """question(i, s) → question(i, 0), discarding this thought's answers."""
        self.require_stage("restart", FlowStage.QUESTION)
        self.step_index = 0
        self.answers = {}
        self._moved()

    def replace_thought(self, record: ThoughtRecord) -> None:
        self.thoughts = [
            record if t.id == record.id else t for t in self.thoughts
        ]

    def mark_complete(self, thoughts: list[ThoughtRecord] | None = None) -> None:
        """categorizing → complete."""
        self.require_stage("complete", FlowStage.CATEGORIZING)
        if thoughts is not None:
            self.thoughts = list(thoughts)
        self.stage = FlowStage.COMPLETE
        self._moved()

    def exit(self) -> None:
        """Any stage → weather_select. Persisted data is untouched."""
        self.stage = FlowStage.WEATHER_SELECT
        self.thought_index = 0
        self.step_index = 0
        self.answers = {}
        self._moved()

    def redirect_to(self, stage: FlowStage) -> None:
        """Send the flow back to an earlier stage after a missing record."""
        self.stage = stage
        self.thoughts = []
        self.thought_index = 0
        self.step_index = 0
        self.answers = {}
        self.redirect = stage
        self._moved()

    def _moved(self) -> None:
        self.generation += 1

    # --- Serialization -----------------------------------------------------------

    def to_snapshot(self) -> dict:
        """JSON-safe view of the flow position for API responses."""
        question = self.current_question
        thought = self.current_thought
        return {
            "session_id": self.session_id,
            "stage": self.stage.value,
            "thought_index": self.thought_index,
            "step_index": self.step_index,
            "total_steps": TOTAL_STEPS,
            "thought_count": self.thought_count,
            "current_thought": (
                {"id": thought.id, "thought_text": thought.thought_text}
                if thought else None
            ),
            "current_question": question.to_dict() if question else None,
            "answers": dict(self.answers),
            "finished_thoughts": list(self.finished_thoughts),
            "can_proceed": self.can_proceed,
            "redirect": self.redirect.value if self.redirect else None,
        }

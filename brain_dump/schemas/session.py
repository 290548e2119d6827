"""Session Schemas — Pydantic models for the reflection flow endpoints.

Invariants:
    - SessionCreate.mind_weather is one of the four MindWeather values
    - ThoughtCapture carries 1-20 texts, each at most 5000 chars; empty texts
      are allowed here and filtered by the flow
    - AnswerSubmit.value is raw text; choice validation happens in FlowState

Design Decisions:
    - FlowSnapshot mirrors FlowState.to_snapshot() so OpenAPI documents it
    - Answer values stay strings end to end (intensity is parsed on save)
"""

from pydantic import BaseModel, Field, field_validator

from brain_dump.core.domain_types import MindWeather


class SessionCreate(BaseModel):
    """Session creation — picks the mind weather."""
    mind_weather: MindWeather


class ThoughtCapture(BaseModel):
    thoughts: list[str] = Field(min_length=1, max_length=20)

    @field_validator("thoughts")
    @classmethod
    def limit_thought_length(cls, v: list[str]) -> list[str]:
        for text in v:
            if len(text) > 5_000:
                raise ValueError("a thought cannot exceed 5000 characters")
        return v


class AnswerSubmit(BaseModel):
    value: str = Field("", max_length=5_000)


class QuestionOptionOut(BaseModel):
    value: str
    label: str


class QuestionOut(BaseModel):
    id: str
    text: str
    type: str
    options: list[QuestionOptionOut]
    placeholder: str | None = None


class CurrentThought(BaseModel):
    id: str
    thought_text: str


class FlowSnapshot(BaseModel):
    """Where a session is inside the reflection flow."""
    session_id: str
    stage: str
    thought_index: int
    step_index: int
    total_steps: int
    thought_count: int
    current_thought: CurrentThought | None = None
    current_question: QuestionOut | None = None
    answers: dict[str, str]
    finished_thoughts: list[int] = []
    can_proceed: bool
    redirect: str | None = None


class SessionOut(BaseModel):
    id: str
    mind_weather: str
    started_at: str
    thoughts_explored: int
    completed_at: str | None = None
    overall_reflection: str | None = None


class SessionDetail(BaseModel):
    session: SessionOut
    flow: FlowSnapshot

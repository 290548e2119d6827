"""Assistant & Voice Schemas — request bodies for the stateless service endpoints.

Invariants:
    - Field aliases keep the camelCase names web clients already send
      (thoughtText, overallReflection); snake_case is accepted too
    - Every text input is stripped and must be non-empty

Design Decisions:
    - CategorizeRequest takes thought objects, not bare strings, so a client can
      post its stored thoughts unchanged
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InsightRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    thought_text: str = Field(alias="thoughtText", max_length=5_000)
    feeling: str | None = Field(None, max_length=2_000)
    reflection: str | None = Field(None, max_length=5_000)

    @field_validator("thought_text")
    @classmethod
    def strip_thought(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("thought text cannot be empty or whitespace")
        return v


class InsightResponse(BaseModel):
    insight: str


class ThoughtIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    thought_text: str = Field(min_length=1, max_length=5_000)


class CategorizeRequest(BaseModel):
    thoughts: list[ThoughtIn] = Field(min_length=1, max_length=50)


class CategorizedOut(BaseModel):
    index: int
    category: str
    theme: str


class CategorizeResponse(BaseModel):
    categorized: list[CategorizedOut]
    overall_reflection: str = Field(serialization_alias="overallReflection")


class NarrateRequest(BaseModel):
    text: str = Field(max_length=2_500)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text is required")
        return v


class TranscriptionResponse(BaseModel):
    text: str

"""Categorization — validates the assistant's batch classification and maps it onto thoughts.

Invariants:
    - The assistant response is untrusted: non-JSON, non-object, or wrongly
      typed fields raise ExternalServiceError (caller falls back)
    - A JSON object with an empty/missing `categorized` list is a valid answer:
      every thought defaults to category "other", theme "other"
    - Entries with an unknown category or an index outside the thought list are
      dropped (their thought defaults)
    - Every thought gets exactly one (category, theme) assignment, both set
    - Themes are lowercased and cut to THEME_MAX_LENGTH (the column width)

Design Decisions:
    - Pydantic models for the payload shape: one validation point, precise errors
    - Entry index falls back to list position when the model omits it
    - parse_assistant_json has 2 extraction levels (direct, first {...} block)
      and raises instead of guessing a third
"""

import json
import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from brain_dump.core.domain_types import (
    DEFAULT_THEME, THEME_MAX_LENGTH, ThoughtCategory,
)
from brain_dump.core.errors import ExternalServiceError
from brain_dump.core.records import ThoughtRecord

logger = logging.getLogger(__name__)

ASSISTANT_SERVICE = "Reflection assistant"


class CategorizedEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int | None = None
    category: str | None = None
    theme: str | None = None


class CategorizationPayload(BaseModel):
    """Shape the assistant is asked to return."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    categorized: list[CategorizedEntry] | None = None
    overall_reflection: str | None = Field(None, alias="overallReflection")


@dataclass(frozen=True)
class ThoughtAssignment:
    thought_id: str
    category: str
    theme: str


@dataclass(frozen=True)
class CategorizationResult:
    assignments: list[ThoughtAssignment]
    overall_reflection: str


def parse_assistant_json(text: str) -> dict:
    """Extract a JSON object from model output.

    1. Direct json.loads
    2. Regex: first {...} block (handles ```json fences and preambles)
    Anything else raises ExternalServiceError.
    """
    text = (text or "").strip()
    if not text:
        raise ExternalServiceError(ASSISTANT_SERVICE, "empty response", "malformed")

    candidates = [text]
    match = re.search(r"\{[\s\S]*\}", text)
    if match and match.group() != text:
        candidates.append(match.group())

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
        break

    raise ExternalServiceError(
        ASSISTANT_SERVICE, "response is not a JSON object", "malformed",
    )


def validate_payload(data: dict) -> CategorizationPayload:
    try:
        return CategorizationPayload.model_validate(data)
    except ValidationError as e:
        raise ExternalServiceError(
            ASSISTANT_SERVICE,
            f"response failed schema validation ({e.error_count()} errors)",
            "malformed",
        )


def _normalize_category(raw: str | None) -> str | None:
    if not raw:
        return None
    value = raw.strip().lower()
    try:
        return ThoughtCategory(value).value
    except ValueError:
        return None


def _normalize_theme(raw: str | None) -> str:
    value = (raw or "").strip().lower()[:THEME_MAX_LENGTH].rstrip()
    return value or DEFAULT_THEME


def assign_categories(
    count: int, payload: CategorizationPayload,
) -> list[tuple[str, str]]:
    """One (category, theme) per position 0..count-1. Pure."""
    by_index: dict[int, tuple[str, str]] = {}
    for position, entry in enumerate(payload.categorized or []):
        index = entry.index if entry.index is not None else position
        category = _normalize_category(entry.category)
        if category is None or not 0 <= index < count:
            logger.warning(
                f"Dropping categorization entry (index={index}, "
                f"category={entry.category!r})",
            )
            continue
        by_index.setdefault(index, (category, _normalize_theme(entry.theme)))

    default = (ThoughtCategory.OTHER.value, DEFAULT_THEME)
    return [by_index.get(index, default) for index in range(count)]


def apply_categorization(
    thoughts: list[ThoughtRecord], payload: CategorizationPayload,
) -> CategorizationResult:
    """Assign one (category, theme) per thought, in thought order. Pure."""
    pairs = assign_categories(len(thoughts), payload)
    return CategorizationResult(
        assignments=[
            ThoughtAssignment(thought.id, category, theme)
            for thought, (category, theme) in zip(thoughts, pairs)
        ],
        overall_reflection=(payload.overall_reflection or "").strip(),
    )

"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SessionId wraps an opaque string identifier (UUID4 text)
    - Intensity is bounded 1–10, defaulting to 5
    - All closed vocabularies encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

SessionId = NewType("SessionId", str)


# ─── Value Types ─────────────────────────────────────────────────

MIN_INTENSITY = 1
MAX_INTENSITY = 10
DEFAULT_INTENSITY = 5

DEFAULT_THEME = "other"
THEME_MAX_LENGTH = 100


# ─── Enums ───────────────────────────────────────────────────────

class MindWeather(str, Enum):
    """Coarse self-reported mood captured when a session starts."""
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    STORMY = "stormy"
    FOGGY = "foggy"


WEATHER_LABELS: dict[MindWeather, str] = {
    MindWeather.SUNNY: "Sunny and clear",
    MindWeather.CLOUDY: "Cloudy and uncertain",
    MindWeather.STORMY: "Stormy and stirred up",
    MindWeather.FOGGY: "Foggy and unclear",
}


class ThoughtCategory(str, Enum):
    """Categorization buckets assigned to each thought."""
    WORRY = "worry"
    FUTURE = "future"
    RUMINATION = "rumination"
    OTHER = "other"


class FlowStage(str, Enum):
    """Reflection flow stages, in the order a session walks them."""
    WEATHER_SELECT = "weather_select"
    CAPTURE = "capture"
    QUESTION = "question"
    CATEGORIZING = "categorizing"
    COMPLETE = "complete"


class QuestionKind(str, Enum):
    """How an answer to a reflective question is entered."""
    CHOICE = "choice"
    TEXT = "text"
    NUMBER = "number"


class FlowMove(str, Enum):
    """Outcome of a forward step, consumed by the reflection flow service."""
    STEP = "step"
    FINISH_THOUGHT = "finish_thought"
    NEXT_THOUGHT = "next_thought"
    CATEGORIZE = "categorize"

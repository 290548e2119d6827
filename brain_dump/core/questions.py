"""Reflective Questions — the fixed, ordered question set walked for every thought.

Invariants:
    - Exactly 5 steps, in this order: can-change, helps-hurts, feeling, reflection, intensity
    - Choice answers must be one of the question's option values
    - Intensity parses as an integer clamped to 1–10; anything unparseable is 5
    - Heuristic category/theme derived only from the two choice answers

Design Decisions:
    - Tuple of frozen dataclasses: the sequence is data, not a class hierarchy
    - Heuristic mapping table over nested ifs: easy to audit against the results view
"""

from dataclasses import dataclass

from brain_dump.core.domain_types import (
    DEFAULT_INTENSITY, DEFAULT_THEME, MAX_INTENSITY, MIN_INTENSITY,
    QuestionKind, ThoughtCategory,
)

CAN_CHANGE = "can-change"
HELPS_HURTS = "helps-hurts"
FEELING = "feeling"
REFLECTION = "reflection"
INTENSITY = "intensity"


@dataclass(frozen=True)
class QuestionOption:
    value: str
    label: str


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    kind: QuestionKind
    options: tuple[QuestionOption, ...] = ()
    placeholder: str | None = None

    @property
    def option_values(self) -> tuple[str, ...]:
        return tuple(o.value for o in self.options)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.kind.value,
            "options": [
                {"value": o.value, "label": o.label} for o in self.options
            ],
            "placeholder": self.placeholder,
        }


QUESTIONS: tuple[Question, ...] = (
    Question(
        id=CAN_CHANGE,
        text=(
            "Is this something you can still change in any way, or is it "
            "more about accepting what has already happened?"
        ),
        kind=QuestionKind.CHOICE,
        options=(
            QuestionOption("can-change", "I can change something about it"),
            QuestionOption("accept", "I can't change it; I may need to accept it"),
            QuestionOption("not-sure", "I'm not sure yet"),
        ),
    ),
    Question(
        id=HELPS_HURTS,
        text="Does holding onto this thought mostly help you, or mostly hurt you?",
        kind=QuestionKind.CHOICE,
        options=(
            QuestionOption("helps", "It mostly helps me"),
            QuestionOption("hurts", "It mostly hurts me"),
            QuestionOption("not-sure", "I'm not sure"),
        ),
    ),
    Question(
        id=FEELING,
        text="When this thought shows up, what feeling do you notice most strongly?",
        kind=QuestionKind.TEXT,
        placeholder=(
            "For example: anxious, guilty, sad, tense, heavy, angry, numb, "
            "or something else"
        ),
    ),
    Question(
        id=REFLECTION,
        text=(
            "Let's look gently at this thought. "
            "What part of it feels most true to you?"
        ),
        kind=QuestionKind.TEXT,
        placeholder="Type a few words about how this feels...",
    ),
    Question(
        id=INTENSITY,
        text="On a scale of 1-10, how intense does this thought feel right now?",
        kind=QuestionKind.NUMBER,
        placeholder="Enter a number from 1 to 10",
    ),
)

TOTAL_STEPS = len(QUESTIONS)


def parse_intensity(raw: str | None) -> int:
    """Parse the intensity answer. Unparseable input falls back to 5."""
    if raw is None:
        return DEFAULT_INTENSITY
    try:
        value = int(raw.strip())
    except ValueError:
        return DEFAULT_INTENSITY
    return max(MIN_INTENSITY, min(MAX_INTENSITY, value))


def is_answer_present(question: Question, value: str | None) -> bool:
    """Whether forward navigation may leave this step.

    The intensity step always may: an empty answer defaults to 5.
    """
    if question.kind == QuestionKind.NUMBER:
        return True
    return bool(value and value.strip())


# (can-change answer, helps-hurts answer) -> category; missing pairs are OTHER
_HEURISTIC_CATEGORIES: dict[tuple[str, str], ThoughtCategory] = {
    ("can-change", "hurts"): ThoughtCategory.WORRY,
    ("can-change", "helps"): ThoughtCategory.FUTURE,
    ("can-change", "not-sure"): ThoughtCategory.FUTURE,
    ("accept", "hurts"): ThoughtCategory.RUMINATION,
}


def derive_category_theme(answers: dict[str, str]) -> tuple[str, str]:
    """Heuristic (category, theme) from the two choice answers. Pure."""
    can_change = answers.get(CAN_CHANGE, "")
    helps_hurts = answers.get(HELPS_HURTS, "")
    category = _HEURISTIC_CATEGORIES.get(
        (can_change, helps_hurts), ThoughtCategory.OTHER,
    )
    theme = helps_hurts or DEFAULT_THEME
    return category.value, theme


def answer_fields(answers: dict[str, str]) -> dict:
    """Map raw step answers to the persisted Thought answer fields."""
    return {
        "can_change": answers.get(CAN_CHANGE) or None,
        "helps_or_hurts": answers.get(HELPS_HURTS) or None,
        "primary_feeling": (answers.get(FEELING) or "").strip() or None,
        "reflection": (answers.get(REFLECTION) or "").strip() or None,
        "intensity": parse_intensity(answers.get(INTENSITY)),
    }

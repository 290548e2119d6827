"""Results Summary — pure computation of the end-of-session results view.

Invariants:
    - Inputs are records only (no IO, no DB)
    - Category counts always include all, worry, future, rumination, other
    - Thoughts without a theme are grouped under "other"
    - top_emotions is always empty (emotion data is never collected)

Design Decisions:
    - Pure function, not a method on the flow (the flow is enforcement,
      the summary is presentation)
"""

from brain_dump.core.domain_types import (
    DEFAULT_THEME, WEATHER_LABELS, MindWeather, ThoughtCategory,
)
from brain_dump.core.records import SessionRecord, ThoughtRecord

ALL_CATEGORIES = "all"


def weather_label(weather: str | None) -> str:
    if not weather:
        return "Unknown"
    try:
        return WEATHER_LABELS[MindWeather(weather)]
    except ValueError:
        return weather


def category_counts(thoughts: list[ThoughtRecord]) -> dict[str, int]:
    counts = {ALL_CATEGORIES: len(thoughts)}
    for category in ThoughtCategory:
        counts[category.value] = sum(
            1 for t in thoughts if t.category == category.value
        )
    return counts


def group_by_theme(thoughts: list[ThoughtRecord]) -> dict[str, list[dict]]:
    groups: dict[str, list[dict]] = {}
    for thought in thoughts:
        groups.setdefault(thought.theme or DEFAULT_THEME, []).append(
            thought.to_dict(),
        )
    return groups


def average_intensity(thoughts: list[ThoughtRecord]) -> float | None:
    values = [t.intensity for t in thoughts if t.intensity is not None]
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def compute_results_summary(
    session: SessionRecord,
    thoughts: list[ThoughtRecord],
    category: str = ALL_CATEGORIES,
) -> dict:
    """Build the results view for a session. Pure, no IO."""
    selected = (
        thoughts if category == ALL_CATEGORIES
        else [t for t in thoughts if t.category == category]
    )
    return {
        "session": session.to_dict(),
        "weather_label": weather_label(session.mind_weather),
        "thoughts_explored": session.thoughts_explored,
        "overall_reflection": session.overall_reflection or "",
        "selected_category": category,
        "category_counts": category_counts(thoughts),
        "thoughts": [t.to_dict() for t in selected],
        "thoughts_by_theme": group_by_theme(selected),
        "average_intensity": average_intensity(thoughts),
        "top_emotions": [],
    }

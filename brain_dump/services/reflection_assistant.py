"""Reflection Assistant — compassionate insight and batch categorization via Claude.

Invariants:
    - insight() never raises: any failure returns FALLBACK_INSIGHT
    - categorize() returns a validated CategorizationPayload or raises
      ExternalServiceError / ConfigurationError (caller falls back)
    - Thought text is quoted into the prompt, never interpreted as instructions

Design Decisions:
    - System prompts are static per call type, user message carries the thoughts
    - JSON extraction delegated to core/categorization (pure, tested in isolation)
    - Thoughts numbered from 0 in the prompt so `index` lines up with list order
"""

import logging

from brain_dump.core.categorization import (
    ASSISTANT_SERVICE, CategorizationPayload,
    parse_assistant_json, validate_payload,
)
from brain_dump.core.errors import BrainDumpError, ExternalServiceError
from brain_dump.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)

FALLBACK_INSIGHT = "Thank you for sharing this thought."

_INSIGHT_SYSTEM = (
    "You are a compassionate mental health companion who helps people "
    "explore their thoughts with kindness and wisdom."
)

_CATEGORIZE_SYSTEM = (
    "You are a compassionate mental health companion. Analyze thoughts and "
    "provide gentle categorization and reflection. "
    "Respond with a single JSON object and nothing else."
)


def _build_insight_prompt(
    thought_text: str, feeling: str | None, reflection: str | None,
) -> str:
    return (
        "Analyze this thought and provide gentle insights.\n\n"
        f'Thought: "{thought_text}"\n'
        f"Primary Feeling: {feeling or 'Not specified'}\n"
        f"User Reflection: {reflection or 'None provided'}\n\n"
        "Provide a brief, compassionate response (2-3 sentences) that:\n"
        "1. Acknowledges their feeling\n"
        "2. Offers a gentle perspective\n"
        "3. Encourages self-compassion\n\n"
        "Keep the tone warm, non-judgmental, and supportive."
    )


def _build_categorize_prompt(thought_texts: list[str]) -> str:
    listing = "\n".join(
        f"{i}. {text}" for i, text in enumerate(thought_texts)
    )
    return (
        "Analyze these thoughts and provide:\n"
        "1. A category for each (worry, future, rumination, or other)\n"
        "2. A theme for grouping similar thoughts\n"
        "3. An overall compassionate reflection (2-3 sentences)\n\n"
        f"Thoughts (numbered from 0):\n{listing}\n\n"
        "Respond in JSON format:\n"
        "{\n"
        '  "categorized": [\n'
        '    {"index": 0, "category": "worry|future|rumination|other", '
        '"theme": "work|relationships|health|future|etc"}\n'
        "  ],\n"
        '  "overallReflection": "Your compassionate reflection here"\n'
        "}"
    )


def _response_text(response) -> str:
    """Concatenate text blocks of a Messages API response."""
    return "".join(
        getattr(block, "text", "") for block in response.content
        if getattr(block, "type", None) == "text"
    )


class ClaudeReflectionAssistant:
    """ReflectionAssistant backed by the Anthropic Messages API."""

    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        temperature: float = 0.7,
        insight_max_tokens: int = 300,
        categorize_max_tokens: int = 1500,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.insight_max_tokens = insight_max_tokens
        self.categorize_max_tokens = categorize_max_tokens

    async def insight(
        self, thought_text: str, feeling: str | None, reflection: str | None,
    ) -> str:
        try:
            response = await self.client.create_message(
                model=self.model,
                max_tokens=self.insight_max_tokens,
                system=_INSIGHT_SYSTEM,
                messages=[{
                    "role": "user",
                    "content": _build_insight_prompt(
                        thought_text, feeling, reflection,
                    ),
                }],
                temperature=self.temperature,
            )
        except BrainDumpError as e:
            logger.warning(
                f"Insight unavailable, using fallback: {e.message}",
                extra={"error_code": e.code},
            )
            return FALLBACK_INSIGHT
        return _response_text(response).strip() or FALLBACK_INSIGHT

    async def categorize(self, thought_texts: list[str]) -> CategorizationPayload:
        if not thought_texts:
            raise ExternalServiceError(
                ASSISTANT_SERVICE, "no thoughts to categorize", "client_error",
            )
        response = await self.client.create_message(
            model=self.model,
            max_tokens=self.categorize_max_tokens,
            system=_CATEGORIZE_SYSTEM,
            messages=[{
                "role": "user",
                "content": _build_categorize_prompt(thought_texts),
            }],
            temperature=self.temperature,
        )
        payload = validate_payload(parse_assistant_json(_response_text(response)))
        logger.info(
            "Categorization received",
            extra={"entries": len(payload.categorized or [])},
        )
        return payload

"""Reflection Assistant tests — mock Claude responses, verify prompts, parsing and fallbacks.

Invariants:
    - insight() never raises; failures and empty text → fallback sentence
    - categorize() returns a validated payload or raises ExternalServiceError
    - Prompts number thoughts from 0 and carry the answer context

Design Decisions:
    - Mock at the create_message boundary (no real API calls)
"""

import pytest

from brain_dump.core.errors import ConfigurationError, ExternalServiceError
from brain_dump.services.reflection_assistant import (
    FALLBACK_INSIGHT,
    ClaudeReflectionAssistant,
    _build_categorize_prompt,
    _build_insight_prompt,
)


class _MockBlock:
    def __init__(self, type, text=None):
        self.type = type
        self.text = text


class _MockUsage:
    def __init__(self):
        self.input_tokens = 40
        self.output_tokens = 20


class _MockResponse:
    def __init__(self, text):
        self.content = [_MockBlock("text", text=text)]
        self.usage = _MockUsage()


class _MockClient:
    """Mock ResilientAnthropicClient: returns or raises queued items in order."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    async def create_message(self, **kwargs):
        self.calls.append(kwargs)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _assistant(*responses):
    client = _MockClient(responses)
    return ClaudeReflectionAssistant(client, model="claude-test"), client


# -- prompts (pure) ---------------------------------------------------------------


def test_insight_prompt_defaults_missing_context():
    prompt = _build_insight_prompt("I failed the exam", None, None)
    assert '"I failed the exam"' in prompt
    assert "Not specified" in prompt
    assert "None provided" in prompt


def test_categorize_prompt_numbers_from_zero():
    prompt = _build_categorize_prompt(["first", "second"])
    assert "0. first" in prompt
    assert "1. second" in prompt
    assert "overallReflection" in prompt


# -- insight ------------------------------------------------------------------------


async def test_insight_returns_model_text():
    assistant, client = _assistant(_MockResponse("  You are not alone.  "))
    text = await assistant.insight("thought", "sad", "it hurts")
    assert text == "You are not alone."
    call = client.calls[0]
    assert call["model"] == "claude-test"
    assert call["temperature"] == 0.7
    assert "sad" in call["messages"][0]["content"]


@pytest.mark.parametrize("failure", [
    ExternalServiceError("Anthropic", "down", "connection_error"),
    ConfigurationError("ANTHROPIC_API_KEY", "Anthropic"),
])
async def test_insight_falls_back_on_failure(failure):
    assistant, _ = _assistant(failure)
    assert await assistant.insight("thought", None, None) == FALLBACK_INSIGHT


async def test_insight_falls_back_on_empty_text():
    assistant, _ = _assistant(_MockResponse(""))
    assert await assistant.insight("thought", None, None) == FALLBACK_INSIGHT


# -- categorize -------------------------------------------------------------------------


async def test_categorize_parses_fenced_json():
    raw = (
        '```json\n{"categorized": [{"index": 0, "category": "worry", '
        '"theme": "work"}], "overallReflection": "Gently now."}\n```'
    )
    assistant, client = _assistant(_MockResponse(raw))
    payload = await assistant.categorize(["deadline"])
    assert payload.categorized[0].category == "worry"
    assert payload.overall_reflection == "Gently now."
    assert "0. deadline" in client.calls[0]["messages"][0]["content"]


async def test_categorize_raises_on_prose():
    assistant, _ = _assistant(_MockResponse("These all look like worries."))
    with pytest.raises(ExternalServiceError):
        await assistant.categorize(["deadline"])


async def test_categorize_propagates_client_failure():
    assistant, _ = _assistant(ExternalServiceError("Anthropic", "down", "timeout"))
    with pytest.raises(ExternalServiceError):
        await assistant.categorize(["deadline"])


async def test_categorize_without_thoughts_raises():
    assistant, client = _assistant()
    with pytest.raises(ExternalServiceError):
        await assistant.categorize([])
    assert client.calls == []

"""Assistant — stateless insight and categorization endpoints.

Invariants:
    - /analyze-thought always answers 200 (assistant failure → fallback insight)
    - /categorize-thoughts answers with one entry per submitted thought, or a
      structured 503 when the assistant fails or returns garbage
"""

import logging

from fastapi import APIRouter, Depends

from brain_dump.api.dependencies import get_assistant
from brain_dump.core.categorization import assign_categories
from brain_dump.core.repository_protocols import ReflectionAssistant
from brain_dump.schemas.assistant import (
    CategorizeRequest, CategorizeResponse, InsightRequest, InsightResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["assistant"])


@router.post("/analyze-thought", response_model=InsightResponse)
async def analyze_thought(
    body: InsightRequest,
    assistant: ReflectionAssistant = Depends(get_assistant),
):
    insight = await assistant.insight(
        body.thought_text, body.feeling, body.reflection,
    )
    return {"insight": insight}


@router.post("/categorize-thoughts", response_model=CategorizeResponse)
async def categorize_thoughts(
    body: CategorizeRequest,
    assistant: ReflectionAssistant = Depends(get_assistant),
):
    payload = await assistant.categorize([t.thought_text for t in body.thoughts])
    pairs = assign_categories(len(body.thoughts), payload)
    return CategorizeResponse(
        categorized=[
            {"index": i, "category": category, "theme": theme}
            for i, (category, theme) in enumerate(pairs)
        ],
        overall_reflection=(payload.overall_reflection or "").strip(),
    )

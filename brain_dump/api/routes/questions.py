"""Questions — the fixed reflective question sequence, for clients rendering the flow."""

from fastapi import APIRouter

from brain_dump.core.questions import QUESTIONS

router = APIRouter(prefix="/api/v1/questions", tags=["questions"])


@router.get("")
async def list_questions():
    return {"questions": [q.to_dict() for q in QUESTIONS]}

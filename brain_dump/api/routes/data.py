"""Data — erase everything the store holds, plus in-memory flows and narration."""

import logging

from fastapi import APIRouter, Depends, Response, status

from brain_dump.api.dependencies import get_narration, get_store
from brain_dump.api.routes.sessions import clear_flow_states
from brain_dump.core.repository_protocols import ReflectionStore
from brain_dump.services.narration import NarrationDispatcher

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/data", tags=["data"])


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_all_data(
    store: ReflectionStore = Depends(get_store),
    narration: NarrationDispatcher = Depends(get_narration),
):
    await store.clear_all()
    narration.cancel_all()
    clear_flow_states()
    logger.info("All reflection data erased")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Voice — narration (text-to-speech) and transcription (speech-to-text) endpoints.

Invariants:
    - /narrate returns audio/mpeg bytes or a structured 503 error
    - /transcribe reads the upload fully into memory and closes it on every path
    - A failed transcription never modifies the caller's draft text

Design Decisions:
    - Draft merging happens server-side so every client appends the same way:
      existing draft + single space + transcript, stripped
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from brain_dump.api.dependencies import get_narrator, get_transcriber
from brain_dump.core.errors import ValidationFailure
from brain_dump.core.repository_protocols import Narrator, Transcriber
from brain_dump.schemas.assistant import NarrateRequest, TranscriptionResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["voice"])

_MAX_AUDIO_BYTES = 25 * 1024 * 1024


def merge_transcript(draft: str | None, transcript: str) -> str:
    """Append a transcript to an existing draft thought."""
    return f"{draft or ''} {transcript}".strip()


@router.post(
    "/narrate", responses={200: {"content": {"audio/mpeg": {}}}},
)
async def narrate(
    body: NarrateRequest, narrator: Narrator = Depends(get_narrator),
):
    audio = await narrator.synthesize(body.text)
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe(
    audio: UploadFile = File(...),
    draft: str | None = Form(None),
    transcriber: Transcriber = Depends(get_transcriber),
):
    try:
        payload = await audio.read()
    finally:
        await audio.close()

    if not payload:
        raise ValidationFailure("Audio recording is empty", "audio")
    if len(payload) > _MAX_AUDIO_BYTES:
        raise ValidationFailure("Audio recording exceeds 25 MB", "audio")

    transcript = await transcriber.transcribe(
        payload, audio.filename or "recording.webm", audio.content_type,
    )
    logger.info(f"Transcribed upload of {len(payload)} bytes")
    return {"text": merge_transcript(draft, transcript)}

"""Note API endpoints."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from lumen.database import get_db
from lumen.dependencies import CurrentProfile, get_current_profile
from lumen.rate_limit import limiter
from lumen.schemas.note import NoteCreateRequest, NoteListResponse, NoteResponse, SummaryResponse
from lumen.schemas.recording import RecordingStopResponse
from lumen.services.completion import get_completion_client
from lumen.services.note_updates import get_note_updater
from lumen.services.notes import RecordingResult, get_note_service, remove_audio_file
from lumen.services.playback import get_playback_controller
from lumen.services.transcription import get_transcription_service

logger = logging.getLogger("lumen")

router = APIRouter(prefix="/api/v1/notes", tags=["Notes"])


@router.get("", response_model=NoteListResponse)
def list_notes(
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> NoteListResponse:
    """List all notes, newest first."""
    notes = get_note_service().list_notes(db)
    return NoteListResponse(
        items=[NoteResponse.model_validate(n) for n in notes],
        total=len(notes),
    )


@router.post("", response_model=NoteResponse)
@limiter.limit("20/minute")
def create_note(
    request: Request,
    body: NoteCreateRequest,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> NoteResponse:
    """Create a note from typed or imported text. Title and summary are generated."""
    try:
        note = get_note_service().create_from_text(db, body.text, get_completion_client())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return NoteResponse.model_validate(note)


@router.post("/audio", response_model=RecordingStopResponse)
@limiter.limit("10/minute")
async def import_audio(
    request: Request,
    file: UploadFile,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> RecordingStopResponse:
    """Import an audio file, transcribe it and create a note like a finished recording."""
    service = get_note_service()

    error = service.validate_audio_metadata(file.filename or "", file.content_type)
    if error:
        raise HTTPException(status_code=400, detail=error)

    try:
        audio_path, _size = await service.store_file(file)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    try:
        text = await run_in_threadpool(get_transcription_service().transcribe, audio_path)
    except RuntimeError as e:
        logger.error("Audio import failed for %s: %s", file.filename, e)
        remove_audio_file(str(audio_path))
        raise HTTPException(status_code=500, detail="Transcription failed") from None

    result = RecordingResult(audio_path=str(audio_path), transcription=text)
    note, needs_title = service.create_from_recording(db, result)
    response = RecordingStopResponse(note=NoteResponse.model_validate(note), title_pending=needs_title)
    if needs_title:
        get_note_updater().request_title(note.id, result.transcription, service.fallback_title(result))
    return response


@router.get("/{note_id}", response_model=NoteResponse)
def get_note(
    note_id: str,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> NoteResponse:
    """Get a single note by ID."""
    note = get_note_service().get_note(db, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.delete("/{note_id}")
def delete_note(
    note_id: str,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> dict:
    """Delete a note and its audio file."""
    service = get_note_service()
    note = service.get_note(db, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")

    player = get_playback_controller()
    if note.audio_path and player.path == note.audio_path:
        player.stop()

    service.delete_note(db, note)
    return {"detail": "Note deleted"}


@router.post("/{note_id}/summary", response_model=SummaryResponse)
def ensure_summary(
    note_id: str,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> SummaryResponse:
    """Return the note summary, generating it first if the note has none."""
    service = get_note_service()
    note = service.get_note(db, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")

    summary, generated = service.ensure_summary(db, note, get_completion_client())
    return SummaryResponse(note_id=note_id, summary=summary, generated=generated)


@router.get("/{note_id}/audio")
def get_note_audio(
    note_id: str,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> FileResponse:
    """Download the recorded audio of a note."""
    note = get_note_service().get_note(db, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    if not note.audio_path or not Path(note.audio_path).is_file():
        raise HTTPException(status_code=404, detail="Note has no audio")
    return FileResponse(note.audio_path, filename=Path(note.audio_path).name)

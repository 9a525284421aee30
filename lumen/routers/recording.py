"""Recording API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lumen.database import get_db
from lumen.dependencies import CurrentProfile, get_current_profile
from lumen.schemas.note import NoteResponse
from lumen.schemas.recording import RecordingStatusResponse, RecordingStopResponse
from lumen.services.note_updates import get_note_updater
from lumen.services.notes import get_note_service
from lumen.services.recorder import get_recorder

router = APIRouter(prefix="/api/v1/recording", tags=["Recording"])


@router.post("/start", response_model=RecordingStatusResponse)
def start_recording(profile: CurrentProfile = Depends(get_current_profile)) -> RecordingStatusResponse:
    """Start capturing from the microphone."""
    recorder = get_recorder()
    if recorder.is_recording:
        raise HTTPException(status_code=409, detail="Already recording")
    if not recorder.start():
        raise HTTPException(status_code=503, detail="Could not start recording")
    return RecordingStatusResponse(**recorder.status())


@router.post("/pause", response_model=RecordingStatusResponse)
def pause_recording(profile: CurrentProfile = Depends(get_current_profile)) -> RecordingStatusResponse:
    """Pause the running recording."""
    recorder = get_recorder()
    if not recorder.pause():
        raise HTTPException(status_code=409, detail="Not recording")
    return RecordingStatusResponse(**recorder.status())


@router.post("/resume", response_model=RecordingStatusResponse)
def resume_recording(profile: CurrentProfile = Depends(get_current_profile)) -> RecordingStatusResponse:
    """Resume a paused recording."""
    recorder = get_recorder()
    if not recorder.resume():
        raise HTTPException(status_code=409, detail="Recording is not paused")
    return RecordingStatusResponse(**recorder.status())


@router.post("/stop", response_model=RecordingStopResponse)
def stop_recording(
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> RecordingStopResponse:
    """Stop recording and save the result as a note. The title is generated in the background."""
    result = get_recorder().stop()
    if result is None:
        raise HTTPException(status_code=409, detail="Not recording")

    service = get_note_service()
    note, needs_title = service.create_from_recording(db, result)
    response = RecordingStopResponse(note=NoteResponse.model_validate(note), title_pending=needs_title)
    if needs_title:
        get_note_updater().request_title(note.id, result.transcription, service.fallback_title(result))
    return response


@router.get("/status", response_model=RecordingStatusResponse)
def recording_status(profile: CurrentProfile = Depends(get_current_profile)) -> RecordingStatusResponse:
    """Elapsed time, partial transcript and input level of the current recording."""
    return RecordingStatusResponse(**get_recorder().status())

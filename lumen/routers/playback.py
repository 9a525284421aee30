"""Playback API endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lumen.database import get_db
from lumen.dependencies import CurrentProfile, get_current_profile
from lumen.schemas.recording import PlaybackStatusResponse, SeekRequest
from lumen.services.notes import get_note_service
from lumen.services.playback import get_playback_controller

router = APIRouter(prefix="/api/v1/playback", tags=["Playback"])


def _status() -> PlaybackStatusResponse:
    return PlaybackStatusResponse(**asdict(get_playback_controller().poll()))


@router.post("/{note_id}/play", response_model=PlaybackStatusResponse)
def play_note(
    note_id: str,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> PlaybackStatusResponse:
    """Play a note's audio from the start."""
    note = get_note_service().get_note(db, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    if not note.audio_path:
        raise HTTPException(status_code=404, detail="Note has no audio")

    get_playback_controller().play(note.audio_path)
    return _status()


@router.post("/pause", response_model=PlaybackStatusResponse)
def pause_playback(profile: CurrentProfile = Depends(get_current_profile)) -> PlaybackStatusResponse:
    """Pause playback."""
    get_playback_controller().pause()
    return _status()


@router.post("/resume", response_model=PlaybackStatusResponse)
def resume_playback(profile: CurrentProfile = Depends(get_current_profile)) -> PlaybackStatusResponse:
    """Continue paused playback."""
    if not get_playback_controller().resume():
        raise HTTPException(status_code=409, detail="Nothing to resume")
    return _status()


@router.post("/stop", response_model=PlaybackStatusResponse)
def stop_playback(profile: CurrentProfile = Depends(get_current_profile)) -> PlaybackStatusResponse:
    """Stop playback and rewind."""
    get_playback_controller().stop()
    return _status()


@router.post("/seek", response_model=PlaybackStatusResponse)
def seek_playback(body: SeekRequest, profile: CurrentProfile = Depends(get_current_profile)) -> PlaybackStatusResponse:
    """Move the playback position."""
    get_playback_controller().seek(body.seconds)
    return _status()


@router.get("/status", response_model=PlaybackStatusResponse)
def playback_status(profile: CurrentProfile = Depends(get_current_profile)) -> PlaybackStatusResponse:
    """Current playback position."""
    return _status()

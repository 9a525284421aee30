"""Pydantic schemas for recording and playback endpoints."""

from pydantic import BaseModel

from lumen.schemas.note import NoteResponse


class RecordingStatusResponse(BaseModel):
    is_recording: bool
    is_paused: bool
    elapsed_seconds: float
    elapsed: str
    partial_transcript: str
    level: float


class RecordingStopResponse(BaseModel):
    note: NoteResponse
    title_pending: bool


class SeekRequest(BaseModel):
    seconds: float


class PlaybackStatusResponse(BaseModel):
    is_playing: bool
    current_time: float
    duration: float
    error_message: str | None = None

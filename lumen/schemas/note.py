"""Pydantic schemas for note endpoints."""

from datetime import datetime

from pydantic import BaseModel


class NoteCreateRequest(BaseModel):
    text: str


class NoteResponse(BaseModel):
    id: str
    title: str
    created_at: datetime
    audio_path: str | None
    transcription: str | None
    summary: str | None

    model_config = {"from_attributes": True}


class NoteListResponse(BaseModel):
    items: list[NoteResponse]
    total: int


class SummaryResponse(BaseModel):
    note_id: str
    summary: str
    generated: bool

"""Pydantic schemas for chat endpoints."""

from datetime import datetime

from pydantic import BaseModel


class ChatMessageRequest(BaseModel):
    content: str


class ChatMessageResponse(BaseModel):
    id: str
    timestamp: datetime
    role: str
    content: str

    model_config = {"from_attributes": True}


class ChatTranscriptResponse(BaseModel):
    items: list[ChatMessageResponse]
    total: int

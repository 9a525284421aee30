"""Note model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from lumen.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Note(Base):
    """Recorded, imported or typed note."""

    __tablename__ = "note"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(512), nullable=False, default="Processing Title...")
    created_at = Column(DateTime, nullable=False, default=_utcnow, index=True)
    audio_path = Column(String(1024), nullable=True)
    transcription = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)

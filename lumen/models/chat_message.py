"""Chat message model."""

import uuid

from sqlalchemy import Column, DateTime, String, Text

from lumen.database import Base
from lumen.models.note import _utcnow

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLES = (ROLE_USER, ROLE_ASSISTANT)


class ChatMessage(Base):
    """One turn of the assistant conversation. Never updated after insert."""

    __tablename__ = "chat_message"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    timestamp = Column(DateTime, nullable=False, default=_utcnow, index=True)
    role = Column(String(16), nullable=False)  # user, assistant
    content = Column(Text, nullable=False)

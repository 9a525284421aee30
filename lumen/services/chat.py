"""Chat service: transcript storage and note-aware replies."""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from lumen.models.chat_message import ROLE_ASSISTANT, ROLE_USER, ROLES, ChatMessage
from lumen.models.note import Note, _utcnow
from lumen.services.completion import CompletionClient, CompletionError
from lumen.services.notes import get_note_service

logger = logging.getLogger("lumen")

GREETING = "Hello! How can I help you today? I have access to your notes."


def build_notes_context(notes: list[Note]) -> str:
    """Flatten notes into the plain-text context sent with every chat turn."""
    context = "User's Notes Context:\n"
    if not notes:
        return context + "The user currently has no notes.\n"

    for note in notes:
        context += f"Note Title: {note.title}\n"
        if note.transcription:
            context += f"Transcription/Content: {note.transcription}\n"
        if note.summary:
            context += f"Summary: {note.summary}\n"
        context += "---\n"
    return context


class ChatService:
    """Handles the persisted chat transcript and assistant replies."""

    def list_messages(self, db: Session) -> list[ChatMessage]:
        """Get the whole transcript in timestamp order."""
        return db.query(ChatMessage).order_by(ChatMessage.timestamp.asc()).all()

    def add_message(self, db: Session, role: str, content: str) -> ChatMessage:
        """Append one turn to the transcript."""
        if role not in ROLES:
            raise ValueError(f"Unknown role '{role}'")
        message = ChatMessage(role=role, content=content, timestamp=self._next_timestamp(db))
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    def _next_timestamp(self, db: Session):
        now = _utcnow()
        latest = db.query(ChatMessage.timestamp).order_by(ChatMessage.timestamp.desc()).first()
        if latest and latest[0] >= now:
            return latest[0] + timedelta(microseconds=1)
        return now

    def ensure_greeting(self, db: Session) -> None:
        """Seed an empty transcript with the assistant greeting."""
        if db.query(ChatMessage.id).first() is None:
            self.add_message(db, ROLE_ASSISTANT, GREETING)

    def send_message(self, db: Session, content: str, completion: CompletionClient) -> ChatMessage:
        """Store a user turn, ask the assistant, and store its reply.

        The context is rebuilt from every note on each call.
        """
        prompt = content.strip()
        if not prompt:
            raise ValueError("Message is empty")

        history = self.list_messages(db)
        self.add_message(db, ROLE_USER, prompt)

        notes_context = build_notes_context(get_note_service().list_notes(db))
        try:
            reply = completion.generate_chat_response(prompt, notes_context, history)
        except CompletionError as e:
            logger.warning("Chat completion failed: %s", e)
            reply = f"Sorry, I encountered an error: {e}"

        return self.add_message(db, ROLE_ASSISTANT, reply)


_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """Get singleton chat service instance."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service

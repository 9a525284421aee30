"""Note service for creation rules, storage, and CRUD."""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy.orm import Session

from lumen.config import get_settings
from lumen.models.note import Note, _utcnow
from lumen.services.completion import CompletionClient, CompletionError

logger = logging.getLogger("lumen")

PLACEHOLDER_TITLE = "Processing Title..."
EMPTY_NOTE_TITLE = "Empty Note"
NO_SPEECH_TEXT = "No speech was detected."
RECORDING_FALLBACK_TITLE = "Untitled Recording"
TRANSCRIPTION_FALLBACK_TITLE = "Transcription Note"
UPLOADED_TITLE = "Uploaded Note"
UPLOAD_FAILED_TITLE = "Uploaded Note (Processing Failed)"
SUMMARY_FAILED_TEXT = "Failed to generate summary."
NO_SUMMARY_TEXT = "No summary generated yet."

ALLOWED_AUDIO_EXTENSIONS = {".mp3", ".m4a", ".mp4", ".wav", ".webm", ".ogg", ".flac"}
ALLOWED_AUDIO_MIME_TYPES = {
    "audio/mpeg",
    "audio/mp4",
    "audio/x-m4a",
    "audio/wav",
    "audio/x-wav",
    "audio/webm",
    "audio/ogg",
    "audio/flac",
    "audio/x-flac",
    "video/mp4",
}


@dataclass
class RecordingResult:
    """Outcome of a finished recording or audio import."""

    audio_path: str | None
    transcription: str


class NoteService:
    """Handles note creation rules, audio storage, and management."""

    def create_note(
        self,
        db: Session,
        title: str,
        transcription: str | None = None,
        summary: str | None = None,
        audio_path: str | None = None,
    ) -> Note:
        """Create a note record in the database."""
        note = Note(
            title=title,
            created_at=self._next_created_at(db),
            audio_path=audio_path,
            transcription=transcription,
            summary=summary,
        )
        db.add(note)
        db.commit()
        db.refresh(note)
        return note

    def _next_created_at(self, db: Session):
        """Creation time that sorts strictly after every existing note."""
        now = _utcnow()
        latest = db.query(Note.created_at).order_by(Note.created_at.desc()).first()
        if latest and latest[0] >= now:
            return latest[0] + timedelta(microseconds=1)
        return now

    def list_notes(self, db: Session) -> list[Note]:
        """Get all notes, newest first."""
        return db.query(Note).order_by(Note.created_at.desc()).all()

    def get_note(self, db: Session, note_id: str) -> Note | None:
        """Get a single note by ID."""
        return db.query(Note).filter(Note.id == note_id).first()

    def update_note(self, db: Session, note: Note, title: str | None = None, summary: str | None = None) -> Note:
        """Overwrite the mutable fields of a note."""
        if title is not None:
            note.title = title
        if summary is not None:
            note.summary = summary
        db.commit()
        db.refresh(note)
        return note

    def delete_note(self, db: Session, note: Note) -> None:
        """Delete a note record and its audio file."""
        audio_path = note.audio_path
        db.delete(note)
        db.commit()
        remove_audio_file(audio_path)

    def create_from_recording(self, db: Session, result: RecordingResult) -> tuple[Note, bool]:
        """Persist a finished recording. Returns (note, needs_title)."""
        if not result.transcription.strip():
            note = self.create_note(
                db,
                title=EMPTY_NOTE_TITLE,
                transcription=NO_SPEECH_TEXT,
                summary=NO_SPEECH_TEXT,
                audio_path=result.audio_path,
            )
            return note, False

        note = self.create_note(
            db,
            title=PLACEHOLDER_TITLE,
            transcription=result.transcription,
            audio_path=result.audio_path,
        )
        return note, True

    @staticmethod
    def fallback_title(result: RecordingResult) -> str:
        """Title used when generation fails or returns nothing."""
        return RECORDING_FALLBACK_TITLE if result.audio_path else TRANSCRIPTION_FALLBACK_TITLE

    def create_from_text(self, db: Session, text: str, completion: CompletionClient) -> Note:
        """Create a note from typed or imported text with a generated title and summary."""
        if not text.strip():
            raise ValueError("Note text is empty")

        try:
            title = completion.generate_title(text)
            summary = completion.generate_summary(text)
        except CompletionError as e:
            logger.warning("Error processing note: %s", e)
            return self.create_note(
                db,
                title=UPLOAD_FAILED_TITLE,
                transcription=text,
                summary=f"AI processing failed: {e}",
            )

        return self.create_note(db, title=title or UPLOADED_TITLE, transcription=text, summary=summary)

    def ensure_summary(self, db: Session, note: Note, completion: CompletionClient) -> tuple[str, bool]:
        """Return the note summary, generating it first if missing. Returns (summary, generated)."""
        if note.summary is not None:
            return note.summary, False
        if not note.transcription:
            return NO_SUMMARY_TEXT, False

        try:
            summary = completion.generate_summary(note.transcription)
        except CompletionError as e:
            logger.warning("Failed to generate summary for note %s: %s", note.id, e)
            return SUMMARY_FAILED_TEXT, False

        self.update_note(db, note, summary=summary)
        return summary, True

    def validate_audio_metadata(self, filename: str, content_type: str | None) -> str | None:
        """Validate upload file metadata (extension + MIME). Returns error message or None if valid."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_AUDIO_EXTENSIONS:
            return f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_AUDIO_EXTENSIONS))}"

        if (
            content_type
            and content_type not in ALLOWED_AUDIO_MIME_TYPES
            and not content_type.startswith("audio/")
        ):
            return f"Invalid content type '{content_type}'. Must be an audio file."

        return None

    async def store_file(self, upload: UploadFile, directory: str | None = None) -> tuple[Path, int]:
        """Stream uploaded file to disk with size limit. Returns (file_path, file_size_bytes).

        Raises ValueError if file exceeds max upload size.
        """
        settings = get_settings()
        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        ext = Path(upload.filename or "upload.bin").suffix.lower()
        target_dir = Path(directory or settings.UPLOAD_DIR)
        target_dir.mkdir(parents=True, exist_ok=True)

        file_path = target_dir / f"{uuid.uuid4()}{ext}"
        file_size = 0
        chunk_size = 1024 * 64

        try:
            with open(file_path, "wb") as f:
                while True:
                    chunk = await upload.read(chunk_size)
                    if not chunk:
                        break
                    file_size += len(chunk)
                    if file_size > max_bytes:
                        raise ValueError(
                            f"File too large ({file_size // (1024 * 1024)}MB). Maximum: {settings.MAX_UPLOAD_SIZE_MB}MB"
                        )
                    f.write(chunk)
        except ValueError:
            if file_path.exists():
                os.remove(file_path)
            raise

        return file_path, file_size


def remove_audio_file(audio_path: str | None) -> None:
    """Delete an audio file if it still exists. Failures are logged only."""
    if not audio_path:
        return
    path = Path(audio_path)
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete audio file %s: %s", path, e)


_note_service: NoteService | None = None


def get_note_service() -> NoteService:
    """Get singleton note service instance."""
    global _note_service
    if _note_service is None:
        _note_service = NoteService()
    return _note_service

"""Tests for note creation rules and the notes API."""

import io
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from lumen.services.completion import CompletionError
from lumen.services.note_updates import get_note_updater
from lumen.services.notes import (
    EMPTY_NOTE_TITLE,
    NO_SPEECH_TEXT,
    NO_SUMMARY_TEXT,
    PLACEHOLDER_TITLE,
    RECORDING_FALLBACK_TITLE,
    SUMMARY_FAILED_TEXT,
    TRANSCRIPTION_FALLBACK_TITLE,
    UPLOAD_FAILED_TITLE,
    UPLOADED_TITLE,
    NoteService,
    RecordingResult,
)


class TestNoteStore:
    """Tests for basic note storage."""

    def test_list_newest_first(self, db_session: Session):
        """Notes list in reverse creation order."""
        service = NoteService()
        first = service.create_note(db_session, title="First")
        second = service.create_note(db_session, title="Second")
        third = service.create_note(db_session, title="Third")

        assert [n.id for n in service.list_notes(db_session)] == [third.id, second.id, first.id]

    def test_ids_are_unique(self, db_session: Session):
        """Each note gets its own opaque id."""
        service = NoteService()
        ids = {service.create_note(db_session, title=f"n{i}").id for i in range(5)}
        assert len(ids) == 5

    def test_delete_removes_audio_file(self, db_session: Session, tmp_path):
        """Deleting a note deletes its recording."""
        audio = tmp_path / "recording.wav"
        audio.write_bytes(b"RIFF")
        service = NoteService()
        note = service.create_note(db_session, title="With audio", audio_path=str(audio))

        service.delete_note(db_session, note)

        assert service.list_notes(db_session) == []
        assert not audio.exists()


class TestCreateFromRecording:
    """Tests for turning a recording into a note."""

    @pytest.mark.parametrize("transcript", ["", "   \n\t"])
    def test_empty_transcript_is_empty_note(self, db_session: Session, transcript: str):
        """No speech gives the fixed empty note and no title request."""
        note, needs_title = NoteService().create_from_recording(
            db_session, RecordingResult(audio_path="/tmp/a.wav", transcription=transcript)
        )

        assert needs_title is False
        assert note.title == EMPTY_NOTE_TITLE
        assert note.transcription == NO_SPEECH_TEXT
        assert note.summary == NO_SPEECH_TEXT
        assert note.audio_path == "/tmp/a.wav"

    def test_transcript_gets_placeholder(self, db_session: Session):
        """Speech gives a placeholder title awaiting generation."""
        note, needs_title = NoteService().create_from_recording(
            db_session, RecordingResult(audio_path=None, transcription="buy milk")
        )

        assert needs_title is True
        assert note.title == PLACEHOLDER_TITLE
        assert note.transcription == "buy milk"
        assert note.summary is None

    def test_fallback_title_depends_on_audio(self):
        """Fallback title reflects whether audio was kept."""
        assert NoteService.fallback_title(RecordingResult("/tmp/a.wav", "x")) == RECORDING_FALLBACK_TITLE
        assert NoteService.fallback_title(RecordingResult(None, "x")) == TRANSCRIPTION_FALLBACK_TITLE


class TestCreateFromText:
    """Tests for typed and imported notes."""

    def test_generates_title_and_summary(self, db_session: Session):
        """Title and summary come from the completion client."""
        completion = MagicMock()
        completion.generate_title.return_value = "Trip Ideas"
        completion.generate_summary.return_value = "Places to visit."

        note = NoteService().create_from_text(db_session, "Lisbon, Porto", completion)

        assert note.title == "Trip Ideas"
        assert note.summary == "Places to visit."
        assert note.transcription == "Lisbon, Porto"

    def test_empty_title_falls_back(self, db_session: Session):
        """An empty generated title becomes the upload default."""
        completion = MagicMock()
        completion.generate_title.return_value = ""
        completion.generate_summary.return_value = "s"

        assert NoteService().create_from_text(db_session, "text", completion).title == UPLOADED_TITLE

    def test_failure_still_saves_note(self, db_session: Session):
        """Completion failure keeps the text with an explanatory title and summary."""
        completion = MagicMock()
        completion.generate_title.side_effect = CompletionError("quota exceeded")

        note = NoteService().create_from_text(db_session, "keep me", completion)

        assert note.title == UPLOAD_FAILED_TITLE
        assert note.summary == "AI processing failed: quota exceeded"
        assert note.transcription == "keep me"

    def test_empty_text_rejected(self, db_session: Session):
        """Blank text is refused before any request."""
        completion = MagicMock()
        with pytest.raises(ValueError):
            NoteService().create_from_text(db_session, "   ", completion)
        completion.generate_title.assert_not_called()


class TestEnsureSummary:
    """Tests for on-demand summaries."""

    def test_existing_summary_returned(self, db_session: Session):
        """A stored summary is returned without a request."""
        service = NoteService()
        note = service.create_note(db_session, title="t", transcription="text", summary="Stored.")
        completion = MagicMock()

        assert service.ensure_summary(db_session, note, completion) == ("Stored.", False)
        completion.generate_summary.assert_not_called()

    def test_missing_summary_generated_and_saved(self, db_session: Session):
        """A missing summary is generated and persisted."""
        service = NoteService()
        note = service.create_note(db_session, title="t", transcription="text")
        completion = MagicMock()
        completion.generate_summary.return_value = "Fresh."

        assert service.ensure_summary(db_session, note, completion) == ("Fresh.", True)
        assert service.get_note(db_session, note.id).summary == "Fresh."

    def test_failure_not_persisted(self, db_session: Session):
        """On failure the fixed text is returned and nothing is stored."""
        service = NoteService()
        note = service.create_note(db_session, title="t", transcription="text")
        completion = MagicMock()
        completion.generate_summary.side_effect = CompletionError("down")

        assert service.ensure_summary(db_session, note, completion) == (SUMMARY_FAILED_TEXT, False)
        assert service.get_note(db_session, note.id).summary is None

    def test_no_transcription_skips_request(self, db_session: Session):
        """A note without a transcription is not sent for summarising."""
        service = NoteService()
        note = service.create_note(db_session, title="Typed")
        completion = MagicMock()

        assert service.ensure_summary(db_session, note, completion) == (NO_SUMMARY_TEXT, False)
        completion.generate_summary.assert_not_called()
        assert service.get_note(db_session, note.id).summary is None


class TestNotesApi:
    """Tests for the notes endpoints."""

    def test_requires_auth(self, client: TestClient):
        """Notes need a session token."""
        assert client.get("/api/v1/notes").status_code == 401

    def test_create_and_list(self, client: TestClient, test_profile: dict, completion: MagicMock):
        """A typed note is created with generated title and appears in the list."""
        response = client.post("/api/v1/notes", json={"text": "call the bank"}, headers=test_profile["headers"])
        assert response.status_code == 200
        assert response.json()["title"] == "Generated Title"
        assert response.json()["summary"] == "Generated summary."

        listing = client.get("/api/v1/notes", headers=test_profile["headers"]).json()
        assert listing["total"] == 1
        assert listing["items"][0]["transcription"] == "call the bank"

    def test_create_empty_text(self, client: TestClient, test_profile: dict, completion: MagicMock):
        """Blank text is a bad request."""
        response = client.post("/api/v1/notes", json={"text": "  "}, headers=test_profile["headers"])
        assert response.status_code == 400

    def test_get_missing(self, client: TestClient, test_profile: dict):
        """Unknown note ids are 404."""
        response = client.get("/api/v1/notes/does-not-exist", headers=test_profile["headers"])
        assert response.status_code == 404
        assert response.json()["detail"] == "Note not found"

    def test_delete(self, client: TestClient, test_profile: dict, db_session: Session):
        """Deleting a note removes it."""
        note = NoteService().create_note(db_session, title="Bye")

        response = client.delete(f"/api/v1/notes/{note.id}", headers=test_profile["headers"])
        assert response.status_code == 200
        assert client.get(f"/api/v1/notes/{note.id}", headers=test_profile["headers"]).status_code == 404

    def test_summary_endpoint(self, client: TestClient, test_profile: dict, completion: MagicMock, db_session):
        """Summary is generated on demand."""
        note = NoteService().create_note(db_session, title="t", transcription="long text")

        response = client.post(f"/api/v1/notes/{note.id}/summary", headers=test_profile["headers"])
        assert response.status_code == 200
        assert response.json() == {"note_id": note.id, "summary": "Generated summary.", "generated": True}

    def test_audio_download(self, client: TestClient, test_profile: dict, db_session: Session, tmp_path):
        """Recorded audio is served; notes without audio are 404."""
        audio = tmp_path / "clip.wav"
        audio.write_bytes(b"RIFFdata")
        service = NoteService()
        with_audio = service.create_note(db_session, title="a", audio_path=str(audio))
        without_audio = service.create_note(db_session, title="b")

        response = client.get(f"/api/v1/notes/{with_audio.id}/audio", headers=test_profile["headers"])
        assert response.status_code == 200
        assert response.content == b"RIFFdata"
        response = client.get(f"/api/v1/notes/{without_audio.id}/audio", headers=test_profile["headers"])
        assert response.status_code == 404


class TestAudioImport:
    """Tests for importing an audio file as a note."""

    @patch("lumen.routers.notes.get_transcription_service")
    def test_import_transcribes_and_titles(
        self, mock_get_service, client: TestClient, test_profile: dict, completion: MagicMock
    ):
        """Imported audio is transcribed, saved with a placeholder, then titled."""
        mock_get_service.return_value.transcribe.return_value = "remember the dentist"
        completion.generate_title.return_value = "Dentist Reminder"

        response = client.post(
            "/api/v1/notes/audio",
            files={"file": ("memo.m4a", io.BytesIO(b"\x00" * 512), "audio/mp4")},
            headers=test_profile["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title_pending"] is True
        assert data["note"]["title"] == PLACEHOLDER_TITLE
        assert data["note"]["audio_path"].endswith(".m4a")

        get_note_updater().join(timeout=5)
        note = client.get(f"/api/v1/notes/{data['note']['id']}", headers=test_profile["headers"]).json()
        assert note["title"] == "Dentist Reminder"

    @patch("lumen.routers.notes.get_transcription_service")
    def test_import_silence(self, mock_get_service, client: TestClient, test_profile: dict):
        """Silent audio becomes an empty note."""
        mock_get_service.return_value.transcribe.return_value = ""

        response = client.post(
            "/api/v1/notes/audio",
            files={"file": ("quiet.wav", io.BytesIO(b"\x00" * 64), "audio/wav")},
            headers=test_profile["headers"],
        )
        assert response.status_code == 200
        assert response.json()["title_pending"] is False
        assert response.json()["note"]["title"] == EMPTY_NOTE_TITLE

    def test_import_rejects_non_audio(self, client: TestClient, test_profile: dict):
        """Non-audio extensions are refused."""
        response = client.post(
            "/api/v1/notes/audio",
            files={"file": ("virus.exe", io.BytesIO(b"\x00" * 10), "application/octet-stream")},
            headers=test_profile["headers"],
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

"""Tests for login state and the delete-all reset."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lumen.models.chat_message import ROLE_USER, ChatMessage
from lumen.models.note import Note
from lumen.models.profile import Profile
from lumen.services.chat import ChatService
from lumen.services.notes import NoteService
from lumen.services.profile import ProfileService


class TestProfileService:
    """Tests for the local profile."""

    def test_login_creates_profile(self, db_session: Session):
        """First login creates the profile; email is normalized."""
        result = ProfileService().login(db_session, " Ada ", "Ada@Example.COM")

        profile = ProfileService().get_profile(db_session)
        assert profile.is_logged_in is True
        assert profile.last_login_at is not None
        assert (result.name, result.email) == ("Ada", "ada@example.com")

    def test_empty_values_keep_stored(self, db_session: Session):
        """Logging in again without details keeps name and email."""
        service = ProfileService()
        service.login(db_session, "Ada", "ada@example.com")
        service.logout(db_session)

        result = service.login(db_session, "", None)

        assert (result.name, result.email) == ("Ada", "ada@example.com")
        assert db_session.query(Profile).count() == 1

    def test_logout_keeps_details(self, db_session: Session):
        """Logout only clears the logged-in flag."""
        service = ProfileService()
        service.login(db_session, "Ada", "ada@example.com")

        service.logout(db_session)

        profile = service.get_profile(db_session)
        assert profile.is_logged_in is False
        assert profile.name == "Ada"

    def test_delete_all_data(self, db_session: Session, tmp_path):
        """Every note, message and the profile are removed, with audio files."""
        audio = tmp_path / "rec.wav"
        audio.write_bytes(b"RIFF")
        NoteService().create_note(db_session, title="One", audio_path=str(audio))
        NoteService().create_note(db_session, title="Two")
        ChatService().add_message(db_session, ROLE_USER, "hi")
        ProfileService().login(db_session, "Ada", "ada@example.com")

        counts = ProfileService().delete_all_data(db_session)

        assert counts == {"notes": 2, "chat_messages": 1, "profiles": 1}
        assert db_session.query(Note).count() == 0
        assert db_session.query(ChatMessage).count() == 0
        assert ProfileService().get_profile(db_session) is None
        assert not audio.exists()

    def test_delete_all_is_atomic(self, db_session: Session, tmp_path):
        """A failed commit leaves everything in place, audio included."""
        audio = tmp_path / "rec.wav"
        audio.write_bytes(b"RIFF")
        NoteService().create_note(db_session, title="Keep", audio_path=str(audio))
        ChatService().add_message(db_session, ROLE_USER, "hi")
        ProfileService().login(db_session, "Ada", "ada@example.com")

        with patch.object(db_session, "commit", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(SQLAlchemyError):
                ProfileService().delete_all_data(db_session)

        assert db_session.query(Note).count() == 1
        assert db_session.query(ChatMessage).count() == 1
        assert ProfileService().get_profile(db_session).is_logged_in is True
        assert audio.exists()


class TestProfileApi:
    """Tests for the profile endpoints."""

    def test_login_returns_token(self, client: TestClient):
        """Login works without a token and returns one."""
        response = client.post("/api/v1/profile/login", json={"name": "Ada", "email": "ada@example.com"})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Ada"
        assert data["email"] == "ada@example.com"

        profile = client.get("/api/v1/profile", headers={"Authorization": f"Bearer {data['token']}"})
        assert profile.status_code == 200
        assert profile.json() == {"name": "Ada", "email": "ada@example.com", "is_logged_in": True}

    def test_missing_token(self, client: TestClient):
        """Protected routes need a token."""
        assert client.get("/api/v1/profile").status_code == 401

    def test_invalid_token(self, client: TestClient, test_profile: dict):
        """Garbage tokens are rejected."""
        response = client.get("/api/v1/profile", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_logout_revokes_access(self, client: TestClient, test_profile: dict):
        """After logout the same token no longer works."""
        assert client.post("/api/v1/profile/logout", headers=test_profile["headers"]).status_code == 200
        assert client.get("/api/v1/profile", headers=test_profile["headers"]).status_code == 401

    def test_delete_all_data(self, client: TestClient, test_profile: dict, db_session: Session):
        """Delete-all wipes data and ends the session."""
        NoteService().create_note(db_session, title="Gone soon")
        ChatService().add_message(db_session, ROLE_USER, "hello")

        response = client.delete("/api/v1/profile/data", headers=test_profile["headers"])
        assert response.status_code == 200
        assert response.json()["notes"] == 1
        assert response.json()["chat_messages"] == 1

        assert client.get("/api/v1/notes", headers=test_profile["headers"]).status_code == 401
        assert db_session.query(Note).count() == 0


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client: TestClient):
        """Health check needs no auth."""
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

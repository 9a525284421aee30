"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time; point them at throwaway locations first.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="lumen-tests-")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["COMPLETION_API_KEY"] = ""
os.environ["RECORDINGS_DIR"] = os.path.join(_TEST_DATA_DIR, "recordings")
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DATA_DIR, "uploads")

from unittest.mock import MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lumen.database import Base, get_db  # noqa: E402
from lumen.models.chat_message import ChatMessage  # noqa: E402, F401
from lumen.models.note import Note  # noqa: E402, F401
from lumen.models.profile import Profile  # noqa: E402, F401
from lumen.services.completion import CompletionClient  # noqa: E402
from lumen.services.profile import ProfileService  # noqa: E402


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from lumen.rate_limit import limiter
    from lumen.services import note_updates
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    # Point the note updater's owner thread at the test DB session
    note_updates._session_factory = lambda: db_session

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()
    note_updates._session_factory = None


@pytest.fixture(name="test_profile")
def test_profile_fixture(db_session: Session):
    """Log in the local profile and return its data with a token and auth headers."""
    from lumen.services.jwt import get_jwt_service

    result = ProfileService().login(db_session, "Test User", "test@example.com")
    token = get_jwt_service().create_token(profile_id=result.profile_id, name=result.name, email=result.email)

    return {
        "profile_id": result.profile_id,
        "name": result.name,
        "email": result.email,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture(name="completion")
def completion_fixture():
    """Replace the completion client used by routers and the note updater."""
    mock_client = MagicMock(spec=CompletionClient)
    mock_client.generate_title.return_value = "Generated Title"
    mock_client.generate_summary.return_value = "Generated summary."
    mock_client.generate_chat_response.return_value = "Assistant reply."
    with (
        patch("lumen.routers.notes.get_completion_client", return_value=mock_client),
        patch("lumen.routers.chat.get_completion_client", return_value=mock_client),
        patch("lumen.services.note_updates.get_completion_client", return_value=mock_client),
    ):
        yield mock_client

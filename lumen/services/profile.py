"""Profile service: login state and bulk data reset."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from lumen.models.chat_message import ChatMessage
from lumen.models.note import Note, _utcnow
from lumen.models.profile import Profile
from lumen.services.notes import remove_audio_file

logger = logging.getLogger("lumen")


@dataclass
class LoginResult:
    """Result of a login."""

    profile_id: int
    name: str
    email: str


class ProfileService:
    """Handles the local profile and its login state."""

    def get_profile(self, db: Session) -> Profile | None:
        """Get the local profile, if one was ever created."""
        return db.query(Profile).order_by(Profile.id).first()

    def login(self, db: Session, name: str | None, email: str | None) -> LoginResult:
        """Mark the profile logged in. Empty values keep what is stored."""
        profile = self.get_profile(db)
        if profile is None:
            profile = Profile(name="", email="")
            db.add(profile)

        if name and name.strip():
            profile.name = name.strip()
        if email and email.strip():
            profile.email = email.strip().lower()
        profile.is_logged_in = True
        profile.last_login_at = _utcnow()
        db.commit()
        db.refresh(profile)

        logger.info("User logged in: %s <%s>", profile.name or "-", profile.email or "-")
        return LoginResult(profile_id=profile.id, name=profile.name, email=profile.email)

    def logout(self, db: Session) -> None:
        """Mark the profile logged out. Name and email are preserved."""
        profile = self.get_profile(db)
        if profile is None:
            return
        profile.is_logged_in = False
        db.commit()

    def delete_all_data(self, db: Session) -> dict[str, int]:
        """Delete every note, chat message and the profile in one transaction.

        Audio files are removed only after the commit succeeds.
        """
        audio_paths = [path for (path,) in db.query(Note.audio_path).filter(Note.audio_path.isnot(None))]
        try:
            notes = db.query(Note).delete(synchronize_session=False)
            messages = db.query(ChatMessage).delete(synchronize_session=False)
            profiles = db.query(Profile).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.expire_all()

        for path in audio_paths:
            remove_audio_file(path)

        logger.info("Deleted all data: %d notes, %d chat messages", notes, messages)
        return {"notes": notes, "chat_messages": messages, "profiles": profiles}


_profile_service: ProfileService | None = None


def get_profile_service() -> ProfileService:
    """Get singleton profile service instance."""
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService()
    return _profile_service

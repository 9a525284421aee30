"""Profile model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from lumen.database import Base
from lumen.models.note import _utcnow


class Profile(Base):
    """Local user profile and login state."""

    __tablename__ = "profile"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False, default="")
    email = Column(String(256), nullable=False, default="")
    is_logged_in = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    last_login_at = Column(DateTime, nullable=True)

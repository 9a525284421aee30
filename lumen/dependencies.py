"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lumen.database import get_db
from lumen.services.jwt import get_jwt_service
from lumen.services.profile import get_profile_service


@dataclass
class CurrentProfile:
    """Logged-in profile context."""

    profile_id: int
    name: str
    email: str


def get_current_profile(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentProfile:
    """Extract the profile from the Bearer token. Raises 401 unless it is valid and logged in."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = auth_header[7:]

    jwt_service = get_jwt_service()
    payload = jwt_service.decode_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    profile = get_profile_service().get_profile(db)
    if profile is None or str(profile.id) != payload.get("sub") or not profile.is_logged_in:
        raise HTTPException(status_code=401, detail="Not logged in")

    return CurrentProfile(profile_id=profile.id, name=profile.name, email=profile.email)

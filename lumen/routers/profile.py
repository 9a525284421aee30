"""Profile and login API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lumen.database import get_db
from lumen.dependencies import CurrentProfile, get_current_profile
from lumen.rate_limit import limiter
from lumen.schemas.profile import LoginRequest, ProfileResponse, TokenResponse
from lumen.services.jwt import get_jwt_service
from lumen.services.playback import get_playback_controller
from lumen.services.profile import get_profile_service

logger = logging.getLogger("lumen")

router = APIRouter(prefix="/api/v1/profile", tags=["Profile"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Log in to the local profile and receive a session token."""
    result = get_profile_service().login(db, body.name, body.email)

    jwt_service = get_jwt_service()
    token = jwt_service.create_token(profile_id=result.profile_id, name=result.name, email=result.email)

    return TokenResponse(token=token, name=result.name, email=result.email)


@router.post("/logout")
def logout(
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> dict:
    """Log out. Name and email are kept for the next login."""
    get_profile_service().logout(db)
    return {"detail": "Logged out"}


@router.get("", response_model=ProfileResponse)
def get_profile(
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Get the local profile."""
    stored = get_profile_service().get_profile(db)
    if not stored:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ProfileResponse.model_validate(stored)


@router.delete("/data")
def delete_all_data(
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> dict:
    """Delete every note, chat message and the profile."""
    get_playback_controller().stop()
    counts = get_profile_service().delete_all_data(db)
    return {"detail": "All data deleted", **counts}

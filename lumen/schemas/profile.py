"""Pydantic schemas for profile endpoints."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class TokenResponse(BaseModel):
    token: str
    name: str
    email: str


class ProfileResponse(BaseModel):
    name: str
    email: str
    is_logged_in: bool

    model_config = {"from_attributes": True}

"""Authenticated user and session models."""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """Signed-in user as exposed to the rest of the app."""

    uid: str
    email: str


class Credentials(BaseModel):
    email: str
    password: str = Field(..., min_length=1)


class AuthSession(BaseModel):
    """Bearer token issued by a successful sign-in."""

    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: User

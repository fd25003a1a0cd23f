"""Pydantic schemas for registration, login and the public profile.

Learn: request fields are Optional so that a missing field reaches the
handler and comes back as our own 400 "Missing required fields", rather
than FastAPI's generic 422. PublicUser is the only user shape that is
ever serialized. It has no password_hash field to leak.
"""

from typing import Optional

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PublicUser(BaseModel):
    id: str
    email: str
    name: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    token: str
    user: PublicUser

"""
VoiceNotes — Credential Request/Response Schemas
==================================================

What:  Contracts for signup, login and token verification.
Why:   The credential endpoints are the only unauthenticated writes, so
       their input is validated as strictly as the note bodies.
"""

import uuid
from typing import Literal, Optional

from pydantic import EmailStr, Field

from voicenotes.schemas.note import RequestModel, WireModel


class SignupRequest(RequestModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(RequestModel):
    email: EmailStr
    # No length rule here; a too-short password simply fails to match
    password: str = Field(max_length=128)


class AuthResponse(WireModel):
    """Returned by signup (201) and login (200)."""
    token: str = Field(description="Signed bearer credential")
    user_id: uuid.UUID = Field(description="Identity the credential was issued to")


class VerifyResponse(WireModel):
    """Returned by GET /api/auth/verify when the bearer credential is valid."""
    valid: Literal[True] = True
    user_id: uuid.UUID

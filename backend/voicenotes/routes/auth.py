"""
VoiceNotes — Credential Route Handlers
========================================

What:  POST /api/auth/signup, POST /api/auth/login, GET /api/auth/verify.
Why:   Entry points for obtaining and checking a session credential.
How:   Validate the body, delegate to AuthService, return the credential.

Both write endpoints sit behind the credential rate limiter
(middleware/rate_limit.py) to slow down password guessing.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.database import get_db_session
from voicenotes.dependencies import CurrentUserId
from voicenotes.schemas.auth import (
    AuthResponse,
    LoginRequest,
    SignupRequest,
    VerifyResponse,
)
from voicenotes.schemas.common import ErrorResponse
from voicenotes.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    responses={
        409: {"description": "Email or username already registered", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Create an account and receive a session credential",
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.signup(
        db=db,
        email=body.email,
        password=body.password,
        username=body.username,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Exchange email and password for a session credential",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    """
    The 401 body is the same whether the email is unknown or the password
    is wrong.
    """
    return await auth_service.login(db=db, email=body.email, password=body.password)


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={401: {"description": "Missing, invalid or expired credential", "model": ErrorResponse}},
    summary="Check a bearer credential",
)
async def verify(user_id: CurrentUserId) -> VerifyResponse:
    return VerifyResponse(user_id=user_id)

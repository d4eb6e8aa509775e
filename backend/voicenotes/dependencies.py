"""
VoiceNotes — Route Dependencies
=================================

What:  FastAPI dependencies shared by the routers.
Why:   Resolving the requester in one dependency means no note route can
       forget to authenticate: the owner id a route receives has always
       been through AuthService.verify().
"""

import uuid
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from voicenotes.services.auth_service import auth_service

# auto_error=False: a missing header must produce our generic 401 body,
# not FastAPI's own 403
bearer_scheme = HTTPBearer(auto_error=False, description="Session credential from /api/auth/login")


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> uuid.UUID:
    """
    Resolve the bearer credential to the requesting identity.

    Raises:
        AuthenticationError: header missing or token invalid/expired (→ 401)
    """
    token = credentials.credentials if credentials else None
    user_id = auth_service.verify(token)
    request.state.user_id = user_id
    return user_id


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]

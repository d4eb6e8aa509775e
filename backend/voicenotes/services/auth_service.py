"""
VoiceNotes — Credential & Token Service
=========================================

What:  Signup, login, and issuing/verifying the signed bearer credential.
Why:   Every note operation is scoped to the identity this service resolves.
       A request that cannot produce a valid, unexpired credential never
       reaches the ownership store.
How:   Passwords are stored as bcrypt hashes; credentials are HS256 JWTs
       (PyJWT) carrying {sub, iat, exp}.
Who:   Called by the auth routes and by the `get_current_user_id` dependency.

Credential lifecycle:
    signup/login ──issue()──▶ token (valid for token_ttl_seconds, 1h default)
    request ──verify(token)──▶ IdentityId  |  AuthenticationError
    after exp ──────────────▶ AuthenticationError; the user logs in again

Enumeration resistance:
    - verify() raises the same message for missing, malformed, forged and
      expired tokens
    - login() raises the same message for an unknown email and a wrong password
    The specific reason is kept in the exception context for server logs.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.config import settings
from voicenotes.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
)
from voicenotes.models.user import User
from voicenotes.schemas.auth import AuthResponse

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72
INVALID_LOGIN_MESSAGE = "Invalid credentials"


# ══════════════════════════════════════════════════════════════════════════
# Password hashing
# ══════════════════════════════════════════════════════════════════════════

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password with a fresh bcrypt salt.

    Returns: "$2b$<cost>$<salt+hash>". The cost is part of the hash, so
    raising password_hash_rounds does not invalidate existing hashes.
    """
    cost = rounds or settings.password_hash_rounds
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=cost))
    return hashed.decode("ascii")


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a stored bcrypt hash (constant time)."""
    try:
        return bcrypt.checkpw(_password_bytes(password), encoded.encode("ascii"))
    except ValueError:
        logger.error("Stored password hash has an unexpected format")
        return False


# ══════════════════════════════════════════════════════════════════════════
# Credential
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Credential:
    """A decoded session credential and its serialized form."""
    subject: uuid.UUID
    issued_at: datetime
    expires_at: datetime
    token: str


class AuthService:
    """
    Identity verification and session credential management.

    Responsibilities:
        - signup(): create an identity, reject duplicates, issue a credential
        - login(): check email + password, issue a credential
        - issue(): sign a credential for an identity
        - verify(): turn a bearer token back into an identity id

    The signing secret, algorithm and lifetime are constructor arguments
    (defaulting to settings) so tests can mint tokens with a short or
    already-elapsed lifetime.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.token_ttl_seconds
        )

    # ── Credentials ──────────────────────────────────────────────────────

    def issue(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> Credential:
        """
        Sign a credential for `user_id`.

        Args:
            user_id: The identity the credential speaks for.
            now: Issue time override (tests use it to mint expired tokens).
        """
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + self.ttl
        token = jwt.encode(
            {"sub": str(user_id), "iat": issued_at, "exp": expires_at},
            self.secret,
            algorithm=self.algorithm,
        )
        return Credential(
            subject=user_id,
            issued_at=issued_at,
            expires_at=expires_at,
            token=token,
        )

    def verify(self, token: Optional[str]) -> uuid.UUID:
        """
        Resolve a bearer token to the identity it was issued to.

        Raises:
            AuthenticationError: token missing, malformed, forged, expired,
                or its subject is not an identity id. Always the same message.
        """
        if not token:
            raise AuthenticationError(context={"reason": "missing"})

        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError(context={"reason": "expired"})
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(context={"reason": type(e).__name__})

        try:
            return uuid.UUID(claims["sub"])
        except (TypeError, ValueError):
            raise AuthenticationError(context={"reason": "bad_subject"})

    # ── Identity ─────────────────────────────────────────────────────────

    async def signup(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        username: Optional[str] = None,
    ) -> AuthResponse:
        """
        Register a new identity and log it in.

        Raises:
            ConflictError: email or username already registered (→ 409)
            DatabaseError: the insert failed for another reason (→ 500)
        """
        email = email.lower()
        conditions = [User.email == email]
        if username:
            conditions.append(User.username == username)

        existing = await db.execute(select(User.id).where(or_(*conditions)))
        if existing.first() is not None:
            raise ConflictError(context={"email": email})

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            raise ConflictError(context={"email": email, "race": True})
        except Exception as e:
            logger.error("Database error during signup: %s", type(e).__name__)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Identity created: %s", user.id)
        credential = self.issue(user.id)
        return AuthResponse(token=credential.token, user_id=user.id)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Check credentials and issue a session credential.

        Raises:
            AuthenticationError: unknown email or wrong password, same message
        """
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if user is None:
            # Spend the same hashing time as a real check so response timing
            # does not reveal whether the email exists
            verify_password(password, _DUMMY_HASH)
            raise AuthenticationError(
                message=INVALID_LOGIN_MESSAGE, context={"reason": "unknown_email"}
            )

        if not verify_password(password, user.password_hash):
            raise AuthenticationError(
                message=INVALID_LOGIN_MESSAGE, context={"reason": "bad_password"}
            )

        credential = self.issue(user.id)
        return AuthResponse(token=credential.token, user_id=user.id)


_DUMMY_HASH = hash_password(secrets.token_urlsafe(16))

auth_service = AuthService()

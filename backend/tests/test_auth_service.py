"""
VoiceNotes Backend — Credential & Token Service Tests
=======================================================

What we test:
    ✅ Password hashing round trip and rejection of wrong passwords
    ✅ Issued credentials verify to the same identity
    ✅ Missing, expired, forged and garbage tokens fail with one message
    ✅ Signup stores a hash (never the password) and rejects duplicates
    ✅ Login gives the same error for unknown email and wrong password
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import select

from voicenotes.exceptions import AuthenticationError, ConflictError
from voicenotes.models.user import User
from voicenotes.services.auth_service import (
    AuthService,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret-with-enough-length-for-hs256"


class TestPasswordHashing:

    def test_hash_verifies_with_same_password(self):
        encoded = hash_password("s3cret!", rounds=4)
        assert encoded.startswith("$2b$04$")
        assert verify_password("s3cret!", encoded)

    def test_wrong_password_rejected(self):
        encoded = hash_password("s3cret!", rounds=4)
        assert not verify_password("s3cret?", encoded)

    def test_same_password_gets_different_salts(self):
        assert hash_password("same", rounds=4) != hash_password("same", rounds=4)

    def test_malformed_hash_is_rejected_not_raised(self):
        assert not verify_password("anything", "not-a-hash")
        assert not verify_password("anything", "pbkdf2_sha256$1$00$00")

    def test_password_longer_than_bcrypt_limit_is_accepted(self):
        long_password = "x" * 128
        encoded = hash_password(long_password, rounds=4)
        assert verify_password(long_password, encoded)


class TestCredentials:

    def setup_method(self):
        self.service = AuthService(secret=SECRET, algorithm="HS256", ttl_seconds=3600)

    def test_issue_then_verify_returns_subject(self):
        user_id = uuid.uuid4()
        credential = self.service.issue(user_id)

        assert credential.subject == user_id
        assert credential.expires_at - credential.issued_at == timedelta(hours=1)
        assert self.service.verify(credential.token) == user_id

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token_rejected(self, token):
        with pytest.raises(AuthenticationError) as exc_info:
            self.service.verify(token)
        assert exc_info.value.context["reason"] == "missing"

    def test_expired_token_rejected(self):
        two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
        credential = self.service.issue(uuid.uuid4(), now=two_hours_ago)

        with pytest.raises(AuthenticationError) as exc_info:
            self.service.verify(credential.token)
        assert exc_info.value.context["reason"] == "expired"

    def test_token_signed_with_other_secret_rejected(self):
        forged = AuthService(secret="another-secret-of-sufficient-length-xyz").issue(uuid.uuid4())
        with pytest.raises(AuthenticationError):
            self.service.verify(forged.token)

    def test_garbage_token_rejected(self):
        with pytest.raises(AuthenticationError):
            self.service.verify("definitely.not.a-jwt")

    def test_token_without_expiry_rejected(self):
        token = jwt.encode({"sub": str(uuid.uuid4()), "iat": 0}, SECRET, algorithm="HS256")
        with pytest.raises(AuthenticationError):
            self.service.verify(token)

    def test_non_uuid_subject_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "admin", "iat": now, "exp": now + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError) as exc_info:
            self.service.verify(token)
        assert exc_info.value.context["reason"] == "bad_subject"

    def test_all_failures_share_one_message(self):
        expired = self.service.issue(
            uuid.uuid4(), now=datetime.now(timezone.utc) - timedelta(days=1)
        ).token
        forged = AuthService(secret="yet-another-secret-of-sufficient-length").issue(
            uuid.uuid4()
        ).token

        messages = set()
        for token in (None, "garbage", expired, forged):
            with pytest.raises(AuthenticationError) as exc_info:
                self.service.verify(token)
            messages.add(exc_info.value.message)

        assert len(messages) == 1


class TestSignupAndLogin:

    def setup_method(self):
        self.service = AuthService(secret=SECRET, algorithm="HS256", ttl_seconds=3600)

    @pytest.mark.asyncio
    async def test_signup_stores_hash_and_issues_credential(self, db_session):
        result = await self.service.signup(
            db_session, email="Ada@Example.com", password="hunter22", username="ada"
        )

        assert self.service.verify(result.token) == result.user_id
        user = (await db_session.execute(select(User))).scalar_one()
        assert user.email == "ada@example.com"
        assert user.password_hash != "hunter22"
        assert verify_password("hunter22", user.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, db_session):
        await self.service.signup(db_session, email="ada@example.com", password="hunter22")

        with pytest.raises(ConflictError):
            await self.service.signup(db_session, email="ADA@example.com", password="other-pw")

    @pytest.mark.asyncio
    async def test_duplicate_username_is_conflict(self, db_session):
        await self.service.signup(
            db_session, email="ada@example.com", password="hunter22", username="ada"
        )

        with pytest.raises(ConflictError):
            await self.service.signup(
                db_session, email="lovelace@example.com", password="hunter22", username="ada"
            )

    @pytest.mark.asyncio
    async def test_login_returns_credential_for_same_identity(self, db_session):
        created = await self.service.signup(
            db_session, email="ada@example.com", password="hunter22"
        )

        result = await self.service.login(db_session, email="ADA@example.com", password="hunter22")

        assert result.user_id == created.user_id
        assert self.service.verify(result.token) == created.user_id

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_alike(self, db_session):
        await self.service.signup(db_session, email="ada@example.com", password="hunter22")

        with pytest.raises(AuthenticationError) as unknown:
            await self.service.login(db_session, email="bob@example.com", password="hunter22")
        with pytest.raises(AuthenticationError) as wrong:
            await self.service.login(db_session, email="ada@example.com", password="wrong-pw")

        assert unknown.value.message == wrong.value.message == "Invalid credentials"
        assert unknown.value.context["reason"] != wrong.value.context["reason"]

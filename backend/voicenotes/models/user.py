"""
VoiceNotes — User SQLAlchemy Model
====================================

What:  ORM model for the `users` table (the Identity record).
Why:   Login and signup need somewhere to keep the email and password hash.

Only `id` ever leaves the server. The hash and email stay inside AuthService.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from voicenotes.database import Base, UTCDateTime


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Optional display name; unique when present
    username: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        unique=True,
    )

    # Stored lower-cased so lookups are case-insensitive
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    # bcrypt modular crypt format: $2b$<cost>$<salt+hash>
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id})>"

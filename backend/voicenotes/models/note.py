"""
VoiceNotes — Note SQLAlchemy Model
====================================

What:  ORM model representing the `notes` table.
Why:   Maps note rows to Python objects for the ownership store.
Who:   Used by NoteService for CRUD and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: Non-sequential, so ids cannot be guessed by counting
    - owner_id: Set once from the verified credential, never from the request
      body; every query filters on it (see NoteService)
    - image_url: Opaque URL returned by the image store; never interpreted
    - created_at: UTC with timezone

    Composite index (owner_id, created_at):
        Serves the only list query: "all notes of this owner, oldest first".
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from voicenotes.database import Base, UTCDateTime


class Note(Base):
    """
    A user's note: free text, optionally dictated, optionally with an image.

    Lifecycle:
        1. Created with the requester stamped as owner
        2. Patched in place by update/favorite requests filtered by (id, owner)
        3. Deleted permanently by a delete request filtered the same way
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Immutable after insert. NoteUpdate has no owner field, so no request
    # can change it.
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # True when the content came from the voice capture session
    is_audio_note: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    image_url: Mapped[Optional[str]] = mapped_column(
        String(2048),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_notes_owner_created_at", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, owner_id={self.owner_id}, "
            f"favorite={self.is_favorite})>"
        )

"""
VoiceNotes — Note Service (Ownership Store)
=============================================

What:  Create, list, get, patch and delete notes on behalf of an identity.
Why:   This is the only code that touches the `notes` table. Keeping every
       query here makes the isolation rule reviewable in one file.
How:   Every method takes the requester's `owner_id` (already resolved by
       AuthService.verify) and every row-level statement filters on
       (Note.id == note_id AND Note.owner_id == owner_id).
Who:   Called by the notes route handlers.

Isolation Rule (the security-critical invariant):
    There is no separate "is this note yours?" check. The compound filter IS
    the authorization. A note owned by somebody else therefore produces the
    same "no row" result as a note that never existed, and both surface as
    NotFoundError. There is no 403 path to leak existence.

        SELECT ... FROM notes WHERE id = :id AND owner_id = :requester
        UPDATE notes SET ...  WHERE id = :id AND owner_id = :requester
        DELETE FROM notes     WHERE id = :id AND owner_id = :requester

Error Handling Strategy:
    NotFoundError propagates as-is. Anything else raised by the database is
    logged and wrapped in DatabaseError so the response stays generic.
"""

import logging
import uuid
from typing import List, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.exceptions import DatabaseError, NotFoundError
from voicenotes.models.note import Note
from voicenotes.schemas.note import NoteCreate, NoteResponse, NoteUpdate

logger = logging.getLogger(__name__)


def parse_note_id(note_id: Union[str, uuid.UUID]) -> uuid.UUID:
    """
    Convert a path parameter to a note UUID.

    A malformed id cannot name any note, so it is reported exactly like a
    missing one (404) rather than as a 422 that would hint at the id format.
    """
    if isinstance(note_id, uuid.UUID):
        return note_id
    try:
        return uuid.UUID(str(note_id))
    except ValueError:
        raise NotFoundError(resource="note", resource_id=str(note_id))


class NoteService:
    """
    Owner-scoped persistence for notes.

    Responsibilities:
        - create_note(): insert with the requester stamped as owner
        - list_notes(): all of the requester's notes, insertion order
        - get_note(): one note, owner-scoped
        - update_note(): patch merge, owner-scoped
        - delete_note(): permanent delete, owner-scoped

    The service is stateless; the session is passed per call so each request
    runs in its own transaction (see database.get_db_session).
    """

    async def create_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        payload: NoteCreate,
    ) -> NoteResponse:
        """
        Insert a new note owned by `owner_id`.

        The id and created_at come from the model defaults; nothing in the
        payload can set them or the owner.

        Raises:
            DatabaseError: the insert failed (→ 500)
        """
        try:
            note = Note(owner_id=owner_id, **payload.model_dump())
            db.add(note)
            await db.flush()
            logger.info("Note %s created for owner %s", note.id, owner_id)
            return NoteResponse.model_validate(note)
        except Exception as e:
            logger.error("Database error creating note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_notes(self, db: AsyncSession, owner_id: uuid.UUID) -> List[NoteResponse]:
        """
        Return every note owned by `owner_id`, oldest first.

        Query plan:
            SELECT * FROM notes WHERE owner_id = :owner ORDER BY created_at, id
            → idx_notes_owner_created_at
        """
        try:
            result = await db.execute(
                select(Note)
                .where(Note.owner_id == owner_id)
                .order_by(Note.created_at, Note.id)
            )
            return [NoteResponse.model_validate(note) for note in result.scalars().all()]
        except Exception as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: Union[str, uuid.UUID],
    ) -> NoteResponse:
        """
        Fetch one note of `owner_id`.

        Raises:
            NotFoundError: no note with this id for this owner (→ 404)
            DatabaseError: query failed (→ 500)
        """
        note = await self._fetch_owned(db, owner_id, parse_note_id(note_id))
        return NoteResponse.model_validate(note)

    async def update_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: Union[str, uuid.UUID],
        payload: NoteUpdate,
    ) -> NoteResponse:
        """
        Apply a field-level patch to one note of `owner_id`.

        Patch semantics:
            Only the fields present in the request body are written. The
            row is loaded through the owner-scoped filter first, so a foreign
            note is never modified, not even partially.

        Raises:
            NotFoundError: no note with this id for this owner (→ 404)
            DatabaseError: query or flush failed (→ 500)
        """
        note_uuid = parse_note_id(note_id)
        note = await self._fetch_owned(db, owner_id, note_uuid)

        changes = payload.changes()
        try:
            for field, value in changes.items():
                setattr(note, field, value)
            await db.flush()
        except Exception as e:
            logger.error("Database error updating note %s: %s", note_uuid, str(e))
            raise DatabaseError(
                message="Could not update the note. Please try again.",
                context={"note_id": str(note_uuid), "error_type": type(e).__name__},
            )

        logger.info("Note %s updated (%s)", note_uuid, ", ".join(sorted(changes)) or "no fields")
        return NoteResponse.model_validate(note)

    async def delete_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: Union[str, uuid.UUID],
    ) -> None:
        """
        Permanently delete one note of `owner_id`.

        A single DELETE ... WHERE id AND owner_id; zero affected rows means
        the note is missing or foreign, and both are NotFoundError.
        """
        note_uuid = parse_note_id(note_id)
        try:
            result = await db.execute(
                delete(Note).where(Note.id == note_uuid, Note.owner_id == owner_id)
            )
        except Exception as e:
            logger.error("Database error deleting note %s: %s", note_uuid, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_uuid), "error_type": type(e).__name__},
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="note", resource_id=str(note_uuid))
        logger.info("Note %s deleted by owner %s", note_uuid, owner_id)

    async def _fetch_owned(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> Note:
        try:
            result = await db.execute(
                select(Note).where(Note.id == note_id, Note.owner_id == owner_id)
            )
            note = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note


note_service = NoteService()

"""
VoiceNotes Backend — Note Service Unit Tests
===============================================

What:  Tests for the owner-scoped note operations.
Why:   The (id, owner_id) filter is the only thing keeping one user's notes
       away from another's, so every operation is tested from both sides.
How:   Real queries against in-memory SQLite; a mock session for the
       database-failure paths.

What we test:
    ✅ Create stamps the owner and assigns id + timestamp
    ✅ List returns only the owner's notes, in insertion order
    ✅ Update is a patch: absent fields keep their value
    ✅ Get/update/delete of a foreign note → NotFoundError, row untouched
    ✅ Malformed ids → NotFoundError
    ✅ Database failures → DatabaseError
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from voicenotes.exceptions import DatabaseError, NotFoundError
from voicenotes.models.note import Note
from voicenotes.schemas.note import NoteCreate, NoteUpdate
from voicenotes.services.note_service import NoteService, parse_note_id


def _create(title="Groceries", content="eggs, milk", **extra):
    return NoteCreate(title=title, content=content, **extra)


class TestNoteServiceCreateAndList:

    def setup_method(self):
        self.service = NoteService()
        self.owner = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_create_stamps_owner_and_defaults(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())

        assert note.owner_id == self.owner
        assert isinstance(note.id, uuid.UUID)
        assert note.created_at is not None
        assert note.is_favorite is False
        assert note.is_audio_note is False
        assert note.image_url is None

    @pytest.mark.asyncio
    async def test_list_only_returns_own_notes_in_insertion_order(self, db_session):
        other = uuid.uuid4()
        first = await self.service.create_note(db_session, self.owner, _create(title="one"))
        await self.service.create_note(db_session, other, _create(title="not mine"))
        second = await self.service.create_note(db_session, self.owner, _create(title="two"))

        notes = await self.service.list_notes(db_session, self.owner)

        assert [n.id for n in notes] == [first.id, second.id]
        assert all(n.owner_id == self.owner for n in notes)

    @pytest.mark.asyncio
    async def test_timestamps_read_back_as_utc(self, db_session):
        await self.service.create_note(db_session, self.owner, _create())
        db_session.expunge_all()

        [note] = await self.service.list_notes(db_session, self.owner)

        assert note.created_at.tzinfo is not None
        assert note.created_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_list_empty_for_new_owner(self, db_session):
        assert await self.service.list_notes(db_session, uuid.uuid4()) == []

    @pytest.mark.asyncio
    async def test_create_database_failure_raises_database_error(self, mock_db_session):
        mock_db_session.flush.side_effect = RuntimeError("disk full")

        with pytest.raises(DatabaseError):
            await self.service.create_note(mock_db_session, self.owner, _create())


class TestNoteServiceUpdate:

    def setup_method(self):
        self.service = NoteService()
        self.owner = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_patch_leaves_absent_fields_unchanged(self, db_session):
        note = await self.service.create_note(
            db_session, self.owner, _create(title="Draft", content="body", image_url="/a.png")
        )

        updated = await self.service.update_note(
            db_session, self.owner, note.id, NoteUpdate(is_favorite=True)
        )

        assert updated.is_favorite is True
        assert updated.title == "Draft"
        assert updated.content == "body"
        assert updated.image_url == "/a.png"
        assert updated.created_at == note.created_at

    @pytest.mark.asyncio
    async def test_explicit_null_image_url_clears_it(self, db_session):
        note = await self.service.create_note(
            db_session, self.owner, _create(image_url="/api/files/x.png")
        )

        updated = await self.service.update_note(
            db_session, self.owner, note.id, NoteUpdate(image_url=None)
        )

        assert updated.image_url is None

    @pytest.mark.asyncio
    async def test_update_accepts_string_id(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())

        updated = await self.service.update_note(
            db_session, self.owner, str(note.id), NoteUpdate(title="Renamed")
        )

        assert updated.title == "Renamed"

    @pytest.mark.asyncio
    async def test_update_foreign_note_is_not_found_and_untouched(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create(title="Mine"))
        intruder = uuid.uuid4()

        with pytest.raises(NotFoundError):
            await self.service.update_note(
                db_session, intruder, note.id, NoteUpdate(title="Hacked", is_favorite=True)
            )

        row = (await db_session.execute(select(Note).where(Note.id == note.id))).scalar_one()
        assert row.title == "Mine"
        assert row.is_favorite is False
        assert row.owner_id == self.owner

    @pytest.mark.asyncio
    async def test_update_missing_note_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.update_note(
                db_session, self.owner, uuid.uuid4(), NoteUpdate(title="x")
            )


class TestNoteServiceGetAndDelete:

    def setup_method(self):
        self.service = NoteService()
        self.owner = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_get_own_note(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())

        fetched = await self.service.get_note(db_session, self.owner, note.id)

        assert fetched.id == note.id

    @pytest.mark.asyncio
    async def test_get_foreign_note_is_not_found(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())

        with pytest.raises(NotFoundError):
            await self.service.get_note(db_session, uuid.uuid4(), note.id)

    @pytest.mark.asyncio
    async def test_delete_removes_note(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())

        await self.service.delete_note(db_session, self.owner, note.id)

        assert await self.service.list_notes(db_session, self.owner) == []
        with pytest.raises(NotFoundError):
            await self.service.get_note(db_session, self.owner, note.id)

    @pytest.mark.asyncio
    async def test_delete_foreign_note_is_not_found_and_keeps_row(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())

        with pytest.raises(NotFoundError):
            await self.service.delete_note(db_session, uuid.uuid4(), note.id)

        assert [n.id for n in await self.service.list_notes(db_session, self.owner)] == [note.id]

    @pytest.mark.asyncio
    async def test_delete_twice_is_not_found(self, db_session):
        note = await self.service.create_note(db_session, self.owner, _create())
        await self.service.delete_note(db_session, self.owner, note.id)

        with pytest.raises(NotFoundError):
            await self.service.delete_note(db_session, self.owner, note.id)

    @pytest.mark.asyncio
    async def test_database_failure_on_get_raises_database_error(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(DatabaseError):
            await self.service.get_note(mock_db_session, self.owner, uuid.uuid4())


class TestParseNoteId:

    @pytest.mark.parametrize("raw", ["not-a-uuid", "", "123", "../../etc/passwd"])
    def test_malformed_id_is_not_found(self, raw):
        with pytest.raises(NotFoundError):
            parse_note_id(raw)

    def test_valid_string_is_parsed(self):
        note_id = uuid.uuid4()
        assert parse_note_id(str(note_id)) == note_id
        assert parse_note_id(note_id) is note_id

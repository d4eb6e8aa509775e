"""
VoiceNotes Client — Note Synchronizer
=======================================

What:  Client-side state container for the current user's notes.
Why:   UI components never talk to the API directly. They call the
       synchronizer, which runs the request, tracks loading/error state and
       folds the server's answer into one immutable snapshot.
How:   Each instance owns its own snapshot and listener list. There is no
       module-level singleton: the app builds one per signed-in user and
       passes it to whatever needs it.

Operation Outcomes:
    ┌──────────────────┬──────────────────────┬───────────────────────────┐
    │ Operation        │ On success           │ On failure                │
    ├──────────────────┼──────────────────────┼───────────────────────────┤
    │ fetch_all()      │ replace list         │ error set, list kept      │
    │ create()         │ append server note   │ error set, raises         │
    │ update()         │ merge server note    │ error set, raises         │
    │ delete()         │ remove, True         │ error set, False          │
    │ toggle_favorite()│ replace entry, True  │ error set, False          │
    │ upload_image()   │ return URL           │ error set, raises         │
    └──────────────────┴──────────────────────┴───────────────────────────┘

    Nothing changes locally before the server confirms.

Out-of-order Responses:
    Two edits of the same note can be in flight at once, and the network may
    deliver the second answer first. Every mutation draws a per-note sequence
    number when it is initiated; a response is discarded if a newer number
    for that note has already been applied:

        update A (seq 1) ──────────────────────────▶ arrives last: dropped
        update B (seq 2) ─────────▶ applied

    fetch_all() is fenced twice. Only the most recently initiated listing
    can replace the list, and a listing never undoes a change confirmed
    after it was requested:

        fetch_all ───────────────────────────────▶ arrives last
        create X ─────────▶ applied
                                                   result: server list + X

    Entries touched by a confirmed create, update, favorite or delete since
    the listing started keep their local state.
"""

import logging
import uuid
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ConfigDict

from voicenotes.exceptions import NetworkOrServerError
from voicenotes.schemas.note import NoteCreate, NoteResponse, NoteUpdate

logger = logging.getLogger(__name__)

T = TypeVar("T")
NoteId = Union[str, uuid.UUID]
Notes = Tuple[NoteResponse, ...]


class NotesApi(Protocol):
    """What the synchronizer needs from a transport; NotesApiClient fits."""

    async def list_notes(self) -> List[NoteResponse]: ...

    async def create_note(self, payload: NoteCreate) -> NoteResponse: ...

    async def update_note(self, note_id: NoteId, payload: NoteUpdate) -> NoteResponse: ...

    async def delete_note(self, note_id: NoteId) -> None: ...

    async def upload_image(self, filename: str, content: bytes, content_type: str) -> str: ...


class NoteSnapshot(BaseModel):
    """Immutable view published to listeners after every change."""

    model_config = ConfigDict(frozen=True)

    notes: Notes = ()
    loading: bool = False
    error: Optional[str] = None

    def find(self, note_id: NoteId) -> Optional[NoteResponse]:
        wanted = _as_uuid(note_id)
        for note in self.notes:
            if note.id == wanted:
                return note
        return None

    def visible(self, search: str = "", favorites_only: bool = False) -> Notes:
        """
        Notes shown by a list view: optionally favorites only, then filtered
        by a case-insensitive substring of the title or content.
        """
        term = search.lower()
        return tuple(
            note
            for note in self.notes
            if (note.is_favorite or not favorites_only)
            and (term in note.title.lower() or term in note.content.lower())
        )


Listener = Callable[[NoteSnapshot], None]


class NoteSynchronizer:
    """
    Mediates every note mutation between the UI and the server.

    Usage:
        sync = NoteSynchronizer(api)
        unsubscribe = sync.subscribe(render)
        await sync.fetch_all()
        note = await sync.create({"title": "Groceries", "content": "eggs"})
        await sync.toggle_favorite(note.id)
    """

    def __init__(self, api: NotesApi):
        self._api = api
        self._snapshot = NoteSnapshot()
        self._listeners: List[Listener] = []
        self._in_flight = 0

        # Per-note fencing: last number handed out / last number applied
        self._issued: Dict[uuid.UUID, int] = {}
        self._applied: Dict[uuid.UUID, int] = {}
        self._fetch_generation = 0

        # Confirmed changes are stamped so a listing can tell which entries
        # changed after it was requested
        self._change_clock = 0
        self._changed_at: Dict[uuid.UUID, int] = {}

    # ── Observation ──────────────────────────────────────────────────────

    @property
    def snapshot(self) -> NoteSnapshot:
        return self._snapshot

    @property
    def notes(self) -> Notes:
        return self._snapshot.notes

    @property
    def loading(self) -> bool:
        return self._snapshot.loading

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener; returns the function that unregisters it.

        Listeners are called synchronously with each new snapshot. A listener
        that raises is logged and skipped so the others still run.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Operations ───────────────────────────────────────────────────────

    async def fetch_all(self) -> None:
        """Load the owner's notes. Never raises; failures land in `error`."""
        self._fetch_generation += 1
        generation = self._fetch_generation
        started_at = self._change_clock

        def reconcile(fetched: List[NoteResponse]) -> Optional[Notes]:
            if generation != self._fetch_generation:
                logger.debug("Discarding superseded note listing #%d", generation)
                return None
            return self._merge_listing(fetched, started_at)

        try:
            await self._run("Failed to fetch notes", self._api.list_notes(), reconcile)
        except NetworkOrServerError:
            # Already recorded in the snapshot; callers read `error`
            return

    async def create(self, fields: Union[NoteCreate, Mapping[str, Any]]) -> NoteResponse:
        payload = fields if isinstance(fields, NoteCreate) else NoteCreate.model_validate(fields)

        def reconcile(created: NoteResponse) -> Notes:
            self._mark_changed(created.id)
            return self._snapshot.notes + (created,)

        return await self._run("Failed to create note", self._api.create_note(payload), reconcile)

    async def update(
        self,
        note_id: NoteId,
        patch: Union[NoteUpdate, Mapping[str, Any]],
    ) -> NoteResponse:
        """Send a partial update; the local entry changes only on confirmation."""
        note_id = _as_uuid(note_id)
        payload = patch if isinstance(patch, NoteUpdate) else NoteUpdate.model_validate(patch)
        seq = self._claim(note_id)

        def reconcile(updated: NoteResponse) -> Optional[Notes]:
            if not self._admit(note_id, seq):
                return None
            self._mark_changed(note_id)
            return tuple(
                note.model_copy(update=dict(updated)) if note.id == note_id else note
                for note in self._snapshot.notes
            )

        return await self._run(
            "Failed to update note", self._api.update_note(note_id, payload), reconcile
        )

    async def delete(self, note_id: NoteId) -> bool:
        note_id = _as_uuid(note_id)
        seq = self._claim(note_id)

        def reconcile(_: None) -> Notes:
            # Deletion is final; also fences out older updates still in flight
            self._applied[note_id] = max(seq, self._applied.get(note_id, 0))
            self._mark_changed(note_id)
            return tuple(note for note in self._snapshot.notes if note.id != note_id)

        try:
            await self._run("Failed to delete note", self._api.delete_note(note_id), reconcile)
        except NetworkOrServerError:
            return False
        return True

    async def toggle_favorite(self, note_id: NoteId) -> bool:
        """Flip isFavorite based on the local copy; replace the entry with the server's."""
        note_id = _as_uuid(note_id)
        current = self._snapshot.find(note_id)
        if current is None:
            logger.warning("toggle_favorite on unknown note %s", note_id)
            self._publish(error="Failed to favorite note")
            return False

        payload = NoteUpdate(is_favorite=not current.is_favorite)
        seq = self._claim(note_id)

        def reconcile(updated: NoteResponse) -> Optional[Notes]:
            if not self._admit(note_id, seq):
                return None
            self._mark_changed(note_id)
            return tuple(
                updated if note.id == note_id else note for note in self._snapshot.notes
            )

        try:
            await self._run(
                "Failed to favorite note", self._api.update_note(note_id, payload), reconcile
            )
        except NetworkOrServerError:
            return False
        return True

    async def upload_image(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Store an image and return the URL to set as a note's imageUrl."""
        return await self._run(
            "Failed to upload image",
            self._api.upload_image(filename, content, content_type),
            lambda _url: None,
        )

    # ── Internals ────────────────────────────────────────────────────────

    async def _run(
        self,
        failure_message: str,
        request: Awaitable[T],
        reconcile: Callable[[T], Optional[Notes]],
    ) -> T:
        """
        Wrap one remote call with loading/error bookkeeping.

        `reconcile` runs against the snapshot as it is when the response
        arrives and returns the new note tuple, or None to leave it alone.
        The snapshot is published once at the start and once at the end.
        """
        self._in_flight += 1
        self._publish(loading=True, error=None)

        notes: Optional[Notes] = None
        error: Optional[str] = None
        try:
            result = await request
            notes = reconcile(result)
            return result
        except NetworkOrServerError as e:
            logger.warning("%s: %s", failure_message, e.message)
            error = failure_message
            raise
        finally:
            self._in_flight -= 1
            changes: Dict[str, Any] = {"loading": self._in_flight > 0}
            if notes is not None:
                changes["notes"] = notes
            if error is not None:
                changes["error"] = error
            self._publish(**changes)

    def _claim(self, note_id: uuid.UUID) -> int:
        seq = self._issued.get(note_id, 0) + 1
        self._issued[note_id] = seq
        return seq

    def _admit(self, note_id: uuid.UUID, seq: int) -> bool:
        """True if a response with `seq` may still be applied, and record it."""
        if seq < self._applied.get(note_id, 0):
            logger.debug(
                "Discarding stale response for note %s (seq %d < %d)",
                note_id,
                seq,
                self._applied[note_id],
            )
            return False
        self._applied[note_id] = seq
        return True

    def _mark_changed(self, note_id: uuid.UUID) -> None:
        self._change_clock += 1
        self._changed_at[note_id] = self._change_clock

    def _merge_listing(self, fetched: List[NoteResponse], started_at: int) -> Notes:
        """
        Server listing, except for notes changed locally after `started_at`:
        those keep their local entry, or stay gone if they were deleted.
        """
        recent = {
            note_id for note_id, stamp in self._changed_at.items() if stamp > started_at
        }
        if not recent:
            return tuple(fetched)

        local = {note.id: note for note in self._snapshot.notes}
        merged = [
            local[note.id] if note.id in recent else note
            for note in fetched
            if note.id not in recent or note.id in local
        ]
        listed = {note.id for note in fetched}
        merged.extend(
            note for note in self._snapshot.notes if note.id in recent and note.id not in listed
        )
        logger.debug("Kept %d locally confirmed change(s) over an older listing", len(recent))
        return tuple(merged)

    def _publish(self, **changes: Any) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)


def _as_uuid(note_id: NoteId) -> uuid.UUID:
    return note_id if isinstance(note_id, uuid.UUID) else uuid.UUID(str(note_id))

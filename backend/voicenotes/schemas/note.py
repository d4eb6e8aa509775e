"""
VoiceNotes — Note Request/Response Schemas
============================================

What:  Pydantic models defining the note API contract.
Why:   Strict input validation, automatic serialization, OpenAPI generation,
       and one shared definition for the server and the Python client.
How:   Fields are snake_case in Python and camelCase on the wire
       (`is_favorite` ↔ `isFavorite`). Request models reject unknown fields,
       so a typo in a patch fails loudly instead of being ignored.

Contracts:
    NoteCreate    POST /api/notes body        title + content required
    NoteUpdate    PUT  /api/notes/{id} body   any subset (patch semantics)
    NoteResponse  every note-returning route  full note incl. ownerId
    UploadResponse POST /api/notes/upload     {imageUrl}
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for everything that crosses HTTP: camelCase aliases, either name accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestModel(WireModel):
    """Base for request bodies: unknown fields are a validation error (422)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(RequestModel):
    """
    What:  Body of POST /api/notes.
    Why no owner field: The owner is always the verified requester. Accepting
           one from the body would let a client write into someone else's list.
    """
    title: str = Field(min_length=1, max_length=200, description="Note title")
    content: str = Field(max_length=50_000, description="Note body text")
    is_audio_note: bool = Field(default=False, description="Content was dictated")
    is_favorite: bool = Field(default=False, description="Pinned by the user")
    image_url: Optional[str] = Field(
        default=None,
        max_length=2048,
        description="URL returned by POST /api/notes/upload",
    )


# Columns that cannot hold NULL; a patch may omit them but not null them out
_NON_NULLABLE_PATCH_FIELDS = ("title", "content", "is_audio_note", "is_favorite")


class NoteUpdate(RequestModel):
    """
    What:  Body of PUT /api/notes/{id} — a field-level patch.

    Patch semantics:
        Only fields present in the JSON body change. Absent fields keep their
        stored value; this is what `model_dump(exclude_unset=True)` yields.
        `imageUrl: null` is the one explicit null allowed (removes the image).
    """
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, max_length=50_000)
    is_audio_note: Optional[bool] = None
    is_favorite: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, max_length=2048)

    @model_validator(mode="after")
    def reject_nulls_for_required_fields(self) -> "NoteUpdate":
        for name in _NON_NULLABLE_PATCH_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict:
        """The provided fields only, keyed by column name."""
        return self.model_dump(exclude_unset=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(WireModel):
    """
    What:  Full representation of a note as the owner sees it.
    Who:   Returned by create, get, list (as array items) and update.
           The client synchronizer stores these directly in its snapshot.
    """
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    owner_id: uuid.UUID = Field(description="Identity that owns the note")
    title: str
    content: str
    is_audio_note: bool = False
    is_favorite: bool = False
    image_url: Optional[str] = None
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UploadResponse(WireModel):
    """Response of POST /api/notes/upload; the URL goes into a note's imageUrl."""
    image_url: str = Field(description="Retrievable URL of the stored image")

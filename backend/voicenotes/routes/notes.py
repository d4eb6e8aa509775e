"""
VoiceNotes — Notes Route Handlers
===================================

What:  CRUD for the requester's notes, image upload, and image serving.
Why:   The HTTP face of the ownership store.
How:   Every note route depends on `CurrentUserId`, so the owner id handed to
       NoteService always comes from a verified credential, never from the
       request body or query string.

Route Inventory:
    GET    /api/notes            list the requester's notes
    POST   /api/notes            create (201)
    GET    /api/notes/{id}       one note
    PUT    /api/notes/{id}       patch-update
    DELETE /api/notes/{id}       permanent delete
    POST   /api/notes/upload     multipart `image` → {imageUrl} (201)
    GET    /api/files/{path}     stored image bytes (public URL)

Caching:
    Note responses are private and change on every edit, so they are sent
    with `Cache-Control: no-store`. Stored images never change after upload
    and are cacheable for a day.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.database import get_db_session
from voicenotes.dependencies import CurrentUserId
from voicenotes.schemas.common import ErrorResponse, MessageResponse
from voicenotes.schemas.note import (
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    UploadResponse,
)
from voicenotes.services.file_service import file_service
from voicenotes.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

_AUTH_AND_MISSING = {
    401: {"description": "Missing, invalid or expired credential", "model": ErrorResponse},
    404: {"description": "Note not found for this user", "model": ErrorResponse},
}


@router.get(
    "/notes",
    response_model=List[NoteResponse],
    responses={401: _AUTH_AND_MISSING[401]},
    summary="List the requester's notes",
)
async def list_notes(
    response: Response,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db_session),
) -> List[NoteResponse]:
    notes = await note_service.list_notes(db=db, owner_id=user_id)
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Total-Count"] = str(len(notes))
    return notes


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteResponse,
    responses={401: _AUTH_AND_MISSING[401]},
    summary="Create a note owned by the requester",
)
async def create_note(
    body: NoteCreate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.create_note(db=db, owner_id=user_id, payload=body)


@router.post(
    "/notes/upload",
    status_code=201,
    response_model=UploadResponse,
    responses={
        400: {"description": "Unsupported, empty or oversized image", "model": ErrorResponse},
        401: _AUTH_AND_MISSING[401],
    },
    summary="Upload an image to attach to a note",
)
async def upload_image(
    user_id: CurrentUserId,
    image: UploadFile = File(..., description="Image file (png, jpg, jpeg, gif, webp)"),
) -> UploadResponse:
    """
    Stores the image and returns its URL. The note itself is not touched;
    the client puts the URL into a create or update request.
    """
    try:
        content = await image.read()
        logger.info(
            "Image upload from %s: filename=%s, size=%d bytes",
            user_id,
            image.filename or "unknown",
            len(content),
        )
        image_url = await file_service.store_image(
            filename=image.filename or "",
            content=content,
            content_length=image.size,
        )
    finally:
        await image.close()
    return UploadResponse(image_url=image_url)


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses=_AUTH_AND_MISSING,
    summary="Get one of the requester's notes",
)
async def get_note(
    note_id: str,
    response: Response,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    """
    `note_id` is taken as a plain string so a malformed id gets the same 404
    as a missing one (see note_service.parse_note_id).
    """
    note = await note_service.get_note(db=db, owner_id=user_id, note_id=note_id)
    response.headers["Cache-Control"] = "no-store"
    return note


@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses=_AUTH_AND_MISSING,
    summary="Patch one of the requester's notes",
)
async def update_note(
    note_id: str,
    body: NoteUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    """Fields absent from the body are left unchanged."""
    return await note_service.update_note(
        db=db, owner_id=user_id, note_id=note_id, payload=body
    )


@router.delete(
    "/notes/{note_id}",
    response_model=MessageResponse,
    responses=_AUTH_AND_MISSING,
    summary="Delete one of the requester's notes",
)
async def delete_note(
    note_id: str,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await note_service.delete_note(db=db, owner_id=user_id, note_id=note_id)
    return MessageResponse(message="Note deleted successfully")


@router.get(
    "/files/{file_path:path}",
    summary="Serve an uploaded image",
    responses={404: {"description": "File not found", "model": ErrorResponse}},
)
async def serve_file(file_path: str) -> FileResponse:
    """
    Image URLs are unguessable (UUID filenames) and are meant to be embedded
    in <img> tags, so this route does not require a credential.
    """
    full_path, media_type = file_service.resolve_path(file_path)
    return FileResponse(
        path=str(full_path),
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )

"""
VoiceNotes Client — Notes API Client
======================================

What:  Async HTTP client for the VoiceNotes backend.
Why:   The note synchronizer needs one object that speaks the wire contract,
       attaches the bearer credential, and turns every failure into the
       single error type the UI handles.
How:   Wraps an httpx.AsyncClient. Request bodies are built from and
       responses parsed into the same Pydantic schemas the server uses.
Who:   Used by NoteSynchronizer; also usable directly from scripts.

Error Mapping:
    connection refused / timeout / DNS       ┐
    non-2xx status (401, 404, 409, 500, ...) ├─▶ NetworkOrServerError(message)
    2xx body that fails schema validation    ┘

    The server's `message` field is reused when present, so the toast shows
    "Note not found" rather than a status code. Status codes are kept in the
    exception context for logging only.

Retry Policy:
    Only GET /api/notes is retried (tenacity, exponential backoff + jitter)
    and only on transport errors. Creates, updates and deletes are never
    retried: a timed-out POST may have been applied, and repeating it would
    create a duplicate note.
"""

import logging
import uuid
from typing import Any, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from voicenotes.config import settings
from voicenotes.exceptions import NetworkOrServerError
from voicenotes.schemas.auth import (
    AuthResponse,
    LoginRequest,
    SignupRequest,
    VerifyResponse,
)
from voicenotes.schemas.note import (
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    UploadResponse,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
NoteId = Union[str, uuid.UUID]

_NOTE_LIST = TypeAdapter(List[NoteResponse])


class NotesApiClient:
    """
    Thin async client over the /api routes.

    Usage:
        async with NotesApiClient() as api:
            await api.login("ada@example.com", "hunter22")
            notes = await api.list_notes()

    Args:
        base_url: API root, e.g. "http://localhost:8000/api"
        token: Bearer credential, if already known
        timeout: Per-request timeout in seconds
        retry_attempts / retry_min_wait / retry_max_wait: list retry policy
        transport: Custom httpx transport (tests pass MockTransport or
                   ASGITransport here)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_min_wait: Optional[float] = None,
        retry_max_wait: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.retry_attempts = retry_attempts or settings.client_retry_attempts
        self.retry_min_wait = (
            retry_min_wait if retry_min_wait is not None else settings.client_retry_min_wait
        )
        self.retry_max_wait = (
            retry_max_wait if retry_max_wait is not None else settings.client_retry_max_wait
        )
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.client_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "NotesApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Credentials ──────────────────────────────────────────────────────

    async def signup(
        self,
        email: str,
        password: str,
        username: Optional[str] = None,
    ) -> AuthResponse:
        """Create an account; the returned credential is kept for later calls."""
        body = SignupRequest(email=email, password=password, username=username)
        response = await self._send("POST", "/auth/signup", json=_dump(body))
        auth = _parse(AuthResponse, response)
        self.token = auth.token
        return auth

    async def login(self, email: str, password: str) -> AuthResponse:
        """Log in; the returned credential is kept for later calls."""
        body = LoginRequest(email=email, password=password)
        response = await self._send("POST", "/auth/login", json=_dump(body))
        auth = _parse(AuthResponse, response)
        self.token = auth.token
        return auth

    def logout(self) -> None:
        """Forget the credential. Tokens are stateless; nothing to tell the server."""
        self.token = None

    async def verify(self) -> VerifyResponse:
        response = await self._send("GET", "/auth/verify")
        return _parse(VerifyResponse, response)

    # ── Notes ────────────────────────────────────────────────────────────

    async def list_notes(self) -> List[NoteResponse]:
        """GET /notes, retried on transport errors."""
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential_jitter(
                    initial=self.retry_min_wait,
                    max=self.retry_max_wait,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    response = await self._send("GET", "/notes", wrap_transport_errors=False)
        except httpx.TransportError as e:
            logger.error(
                "GET /notes failed after %d attempts: %s",
                self.retry_attempts,
                type(e).__name__,
            )
            raise NetworkOrServerError(
                message="Could not reach the server. Check your connection and try again.",
                context={"path": "/notes", "attempts": self.retry_attempts},
            )

        try:
            return _NOTE_LIST.validate_python(response.json())
        except (ValueError, SchemaValidationError) as e:
            raise NetworkOrServerError(
                message="Received an invalid response from the server.",
                context={"path": "/notes", "error_type": type(e).__name__},
            )

    async def create_note(self, payload: NoteCreate) -> NoteResponse:
        response = await self._send("POST", "/notes", json=_dump(payload))
        return _parse(NoteResponse, response)

    async def update_note(self, note_id: NoteId, payload: NoteUpdate) -> NoteResponse:
        """PUT /notes/{id} with only the fields set on `payload`."""
        response = await self._send(
            "PUT",
            f"/notes/{note_id}",
            json=payload.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return _parse(NoteResponse, response)

    async def delete_note(self, note_id: NoteId) -> None:
        await self._send("DELETE", f"/notes/{note_id}")

    async def upload_image(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """POST /notes/upload; returns the URL to put in a note's imageUrl."""
        response = await self._send(
            "POST",
            "/notes/upload",
            files={"image": (filename, content, content_type)},
        )
        return _parse(UploadResponse, response).image_url

    # ── Transport ────────────────────────────────────────────────────────

    async def _send(
        self,
        method: str,
        path: str,
        wrap_transport_errors: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Perform one request and raise NetworkOrServerError on any non-2xx.

        With wrap_transport_errors=False, httpx.TransportError propagates
        unchanged so the retry loop in list_notes() can see it; list_notes()
        wraps whatever is left after the last attempt.
        """
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            if not wrap_transport_errors:
                raise
            logger.warning("%s %s failed: %s", method, path, type(e).__name__)
            raise NetworkOrServerError(
                message="Could not reach the server. Check your connection and try again.",
                context={"method": method, "path": path, "error_type": type(e).__name__},
            )
        except httpx.HTTPError as e:
            raise NetworkOrServerError(
                message="Request failed. Please try again.",
                context={"method": method, "path": path, "error_type": type(e).__name__},
            )

        if response.is_error:
            message = _error_message(response)
            logger.info("%s %s → %d: %s", method, path, response.status_code, message)
            raise NetworkOrServerError(
                message=message,
                context={"method": method, "path": path, "status_code": response.status_code},
            )
        return response


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _parse(model: Type[ModelT], response: httpx.Response) -> ModelT:
    try:
        return model.model_validate(response.json())
    except (ValueError, SchemaValidationError) as e:
        raise NetworkOrServerError(
            message="Received an invalid response from the server.",
            context={"model": model.__name__, "error_type": type(e).__name__},
        )


def _error_message(response: httpx.Response) -> str:
    """The server's `message` field when there is one, else a generic text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return "Request failed. Please try again."

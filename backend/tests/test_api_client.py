"""
VoiceNotes Client — Notes API Client Tests
============================================

What:  Tests for NotesApiClient over a scripted httpx.MockTransport, plus
       one pass against the real app through ASGITransport.

What we test:
    ✅ Bearer header attached after login
    ✅ 404 and 500 both become NetworkOrServerError with the server message
    ✅ Transport errors are retried for list_notes only
    ✅ Patch bodies contain only the fields that were set
"""

import json
import uuid
from datetime import datetime, timezone

import httpx
import pytest

from voicenotes.client.api import NotesApiClient
from voicenotes.exceptions import NetworkOrServerError
from voicenotes.schemas.note import NoteCreate, NoteUpdate

USER_ID = uuid.uuid4()


def _note(**overrides):
    note = {
        "id": str(uuid.uuid4()),
        "ownerId": str(USER_ID),
        "title": "Groceries",
        "content": "eggs",
        "isAudioNote": False,
        "isFavorite": False,
        "imageUrl": None,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    note.update(overrides)
    return note


def _client(handler, **kwargs):
    kwargs.setdefault("retry_min_wait", 0)
    kwargs.setdefault("retry_max_wait", 0)
    return NotesApiClient(
        base_url="http://api.test/api",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestRequests:

    @pytest.mark.asyncio
    async def test_login_stores_token_and_sends_bearer(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json={"token": "tok-123", "userId": str(USER_ID)})
            return httpx.Response(200, json=[_note()])

        async with _client(handler) as api:
            auth = await api.login("ada@example.com", "hunter22")
            notes = await api.list_notes()

        assert auth.user_id == USER_ID
        assert len(notes) == 1
        assert json.loads(seen[0].content) == {"email": "ada@example.com", "password": "hunter22"}
        assert "Authorization" not in seen[0].headers
        assert seen[1].headers["Authorization"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_update_sends_only_set_fields(self):
        seen = []
        note_id = uuid.uuid4()

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_note(id=str(note_id), isFavorite=True))

        async with _client(handler, token="tok") as api:
            updated = await api.update_note(note_id, NoteUpdate(is_favorite=True))

        assert updated.is_favorite is True
        assert seen[0].method == "PUT"
        assert seen[0].url.path == f"/api/notes/{note_id}"
        assert json.loads(seen[0].content) == {"isFavorite": True}

    @pytest.mark.asyncio
    async def test_create_sends_camel_case_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json=_note(isAudioNote=True))

        async with _client(handler, token="tok") as api:
            await api.create_note(NoteCreate(title="Groceries", content="eggs", is_audio_note=True))

        assert json.loads(seen[0].content) == {
            "title": "Groceries",
            "content": "eggs",
            "isAudioNote": True,
            "isFavorite": False,
        }

    @pytest.mark.asyncio
    async def test_upload_posts_multipart_image(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"imageUrl": "/api/files/2026/10/19/x.png"})

        async with _client(handler, token="tok") as api:
            url = await api.upload_image("x.png", b"\x89PNG", "image/png")

        assert url == "/api/files/2026/10/19/x.png"
        assert seen[0].headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="image"' in seen[0].content


class TestErrorMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 404, 409, 500, 503])
    async def test_error_statuses_become_network_or_server_error(self, status):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": "x", "message": "Note not found"})

        async with _client(handler, token="tok") as api:
            with pytest.raises(NetworkOrServerError) as exc_info:
                await api.delete_note(uuid.uuid4())

        assert exc_info.value.message == "Note not found"
        assert exc_info.value.context["status_code"] == status

    @pytest.mark.asyncio
    async def test_non_json_error_gets_generic_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with _client(handler, token="tok") as api:
            with pytest.raises(NetworkOrServerError, match="Request failed"):
                await api.create_note(NoteCreate(title="t", content="c"))

    @pytest.mark.asyncio
    async def test_malformed_success_body_is_an_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        async with _client(handler, token="tok") as api:
            with pytest.raises(NetworkOrServerError, match="invalid response"):
                await api.verify()


class TestRetries:

    @pytest.mark.asyncio
    async def test_list_notes_retries_transport_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[])

        async with _client(handler, token="tok", retry_attempts=3) as api:
            assert await api.list_notes() == []

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_list_notes_gives_up_after_attempts(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler, token="tok", retry_attempts=2) as api:
            with pytest.raises(NetworkOrServerError, match="Could not reach the server"):
                await api.list_notes()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_list_notes_does_not_retry_http_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500, json={"message": "boom"})

        async with _client(handler, token="tok", retry_attempts=3) as api:
            with pytest.raises(NetworkOrServerError):
                await api.list_notes()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler, token="tok", retry_attempts=3) as api:
            with pytest.raises(NetworkOrServerError):
                await api.create_note(NoteCreate(title="t", content="c"))

        assert len(calls) == 1


class TestAgainstApp:

    @pytest.mark.asyncio
    async def test_full_round_trip(self, test_client):
        from voicenotes.main import app

        api = NotesApiClient(
            base_url="http://test/api",
            transport=httpx.ASGITransport(app=app),
        )
        async with api:
            await api.signup("roundtrip@example.com", "hunter22")
            assert (await api.verify()).valid is True

            created = await api.create_note(NoteCreate(title="From client", content="hi"))
            updated = await api.update_note(created.id, NoteUpdate(content="hello"))
            assert updated.title == "From client"
            assert updated.content == "hello"

            await api.delete_note(created.id)
            with pytest.raises(NetworkOrServerError, match="Note not found"):
                await api.delete_note(created.id)
            assert await api.list_notes() == []

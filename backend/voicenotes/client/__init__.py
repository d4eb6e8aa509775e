"""
VoiceNotes — Client Package
=============================

Client-side half of the system, independent of FastAPI:

    NotesApiClient       httpx client for the /api routes
    NoteSynchronizer     note state container the UI renders from
    VoiceCaptureSession  dictation session over an injected recognizer
"""

from voicenotes.client.api import NotesApiClient
from voicenotes.client.synchronizer import NoteSnapshot, NoteSynchronizer, NotesApi
from voicenotes.client.voice import (
    RecognitionFeed,
    SessionState,
    TranscriptFragment,
    VoiceCaptureSession,
    append_transcript,
)

__all__ = [
    "NotesApiClient",
    "NoteSnapshot",
    "NoteSynchronizer",
    "NotesApi",
    "RecognitionFeed",
    "SessionState",
    "TranscriptFragment",
    "VoiceCaptureSession",
    "append_transcript",
]

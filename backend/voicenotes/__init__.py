"""
VoiceNotes — Application Package Initializer
=============================================

What: Marks the `voicenotes` directory as a Python package.
Why:  Enables imports like `from voicenotes.config import settings`.
Who:  Used by uvicorn, Alembic, pytest, and the client-side synchronizer.

Architecture Note:
    The package holds both halves of the system:

    ┌─────────────────────────────────────┐
    │   client/  (API client, note        │  ← runs next to the UI
    │   synchronizer, voice capture)      │
    ├─────────────────────────────────────┤
    │           routes/  (API layer)      │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   services/  (auth, ownership       │  ← business rules
    │   store, image store)               │
    ├─────────────────────────────────────┤
    │   models/ & schemas/  (data)        │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   database  (persistence)           │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The client half shares the Pydantic wire contracts in `schemas/` with the
    server, so both sides validate the same shapes.
"""

__version__ = "1.0.0"

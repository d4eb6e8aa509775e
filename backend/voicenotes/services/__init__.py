# Services package init
"""
VoiceNotes — Services Layer
=============================

What:  Business logic sitting between routes (HTTP) and the database.

Service Inventory:
    - AuthService: signup, login, credential issue/verify
    - NoteService: owner-scoped note persistence (the ownership store)
    - FileService: image validation, storage and lookup

Routes stay thin: they resolve the requester, call one service method,
and return its result. Services can be tested against a session without HTTP.
"""

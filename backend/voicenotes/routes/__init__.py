# Routes package init
"""
VoiceNotes — API Routes Package
=================================

Route Inventory:
    - auth.py:    POST /api/auth/signup, POST /api/auth/login, GET /api/auth/verify
    - notes.py:   /api/notes CRUD, POST /api/notes/upload, GET /api/files/{path}
    - health.py:  GET /health

Routes are THIN: extract the request data, resolve the requester through
`CurrentUserId`, call one service method, return its result. Errors are
raised as exceptions and formatted by the handlers in main.py.
"""

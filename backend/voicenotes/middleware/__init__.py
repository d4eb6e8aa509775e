# Middleware package init
"""
VoiceNotes — Middleware Package
=================================

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: reject credential brute-forcing before any work
    2. Request ID: correlation id for every later log line
    3. Logging: access line with status and duration
"""

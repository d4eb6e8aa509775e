"""
VoiceNotes — Custom Exception Hierarchy
=========================================

What:  Application-specific exceptions for every failure the system reports.
Why:   Typed exceptions let global handlers (main.py) pick the HTTP status and
       a safe user-facing message, while the debug context stays server-side.
How:   Each exception carries a message and an optional context dict.
Who:   Raised by services, the API client, the synchronizer and the voice session.

Exception Hierarchy:
    VoiceNotesError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized (never says why)
    ├── NotFoundError            → 404 Not Found (missing OR owned by someone else)
    ├── ConflictError            → 409 Conflict (account already exists)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error (storage fault)
    ├── FileStorageError         → 500 Internal Server Error
    ├── NetworkOrServerError     → client side: transport failure or non-2xx
    └── VoiceSessionError        → client side: voice capture misuse
        └── AlreadyActiveError   → start() while already listening

Security Note:
    AuthenticationError and NotFoundError deliberately carry fixed messages.
    Varying them by cause ("expired" vs "bad signature", "missing" vs
    "not yours") would let a caller enumerate accounts or note ids.
"""

from typing import Any, Dict, Optional


class VoiceNotesError(Exception):
    """
    Base exception for all VoiceNotes application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(VoiceNotesError):
    """
    Raised when client input fails a business rule.

    When:    Upload with a wrong extension, an empty or oversized file.
    HTTP:    400 Bad Request

    Schema-level problems (unknown or missing JSON fields) never get here:
    FastAPI rejects them with 422 before the route runs.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(VoiceNotesError):
    """
    Raised when a credential is missing, malformed, badly signed or expired,
    and when a login presents wrong credentials.

    HTTP:    401 Unauthorized

    The message is identical for every cause. The reason goes into `context`
    so it can be logged without being returned.
    """

    def __init__(
        self,
        message: str = "Invalid or expired credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(VoiceNotesError):
    """
    Raised when a requested resource does not exist for the requester.

    HTTP:    404 Not Found

    For notes this covers three cases with one outcome: the id is malformed,
    no row has the id, or the row belongs to another owner. The resource id
    is kept in context only.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(VoiceNotesError):
    """
    Raised when a create would collide with an existing record.

    When:    Signup with an email or username that is already registered.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "User already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(VoiceNotesError):
    """
    Raised when a client exceeds the per-IP limit on credential endpoints.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(VoiceNotesError):
    """
    Raised when a persistence operation fails unexpectedly (StorageError).

    HTTP:    500 Internal Server Error

    The response message is always generic; the original error type is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(VoiceNotesError):
    """Raised when the image store cannot write or read a file. HTTP 500."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ══════════════════════════════════════════════════════════════════════════
# Client-side errors: raised next to the UI, never mapped to HTTP
# ══════════════════════════════════════════════════════════════════════════


class NetworkOrServerError(VoiceNotesError):
    """
    Raised by the API client when a call does not produce a 2xx response.

    What:    Connection refused, timeout, 401, 404, 500... all end up here.
    Why one type: The UI shows the same failure toast for every cause, so the
             client does not expose a status code to branch on.
    """

    def __init__(
        self,
        message: str = "Request failed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class VoiceSessionError(VoiceNotesError):
    """Raised when a voice capture session is used in an invalid state."""

    def __init__(
        self,
        message: str = "Voice capture session is not available",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AlreadyActiveError(VoiceSessionError):
    """
    Raised by start() while the session is already listening.

    Callers that want a fresh recording should stop() and start() again
    (or call restart()) instead of queueing starts.
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Voice capture is already active",
            context=context,
        )

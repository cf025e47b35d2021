"""
IoT Tech Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers registered in main.py translate them into
       `{"error": <kind>, "message": <str>}` JSON bodies with the right status.
Who:   Raised by services, stores, and routes; caught by the global handlers.

Exception Hierarchy:
    IoTTechError (base)
    ├── ValidationError      → 400 validation_error (client can fix)
    ├── NotFoundError        → 404 not_found
    └── ServerError          → 500 server_error
        ├── DatabaseError    → database backend I/O failed
        └── FileStorageError → JSON store or attachment I/O failed

    Validation and not-found are expected conditions reported with precise
    messages. Server errors are logged with their context; the context never
    reaches the client.
"""

from typing import Any, Dict, Optional


class IoTTechError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for 400s)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(IoTTechError):
    """
    Raised when client input fails validation.

    When:    Case study fields out of bounds or missing, unsupported image type,
             empty or oversized upload.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "title is required; description must be between 10 and 5000 characters",
            "details": {"errors": [{"field": "title", "message": "title is required"}, ...]}
        }
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


class NotFoundError(IoTTechError):
    """
    Raised when a requested resource does not exist.

    When:    PUT/DELETE /api/casestudies/{id} with an id unknown to the active
             backend, GET /api/devices/{id} with an unknown device id.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ServerError(IoTTechError):
    """
    Raised for backend failures the client cannot correct.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "An internal error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ServerError):
    """
    Raised when a database query, insert, update, or delete fails.

    The request is not rerouted to the file store: the backend is chosen once
    at the start of the repository call and a failure there is final.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(ServerError):
    """
    Raised when file system operations fail.

    When:    The JSON store cannot be read, parsed, or rewritten; an uploaded
             image cannot be written (disk full, permission denied).
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

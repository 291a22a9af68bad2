"""
Backoffice error taxonomy.

Every error carries the HTTP status and error code used when it reaches the
API layer; ``main.py`` turns them into the standard error envelope.
"""

from typing import Any, Optional


class BackofficeError(Exception):
    """Base class for errors surfaced to backoffice users"""

    status_code: int = 400
    error_code: str = "backoffice_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(BackofficeError):
    status_code = 422
    error_code = "validation_failed"


class EventWindowError(ValidationFailed):
    """End time is not after start time"""

    error_code = "invalid_event_window"


class NotFoundError(BackofficeError):
    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found" if identifier is None else f"{resource} '{identifier}' not found"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class OrderStateError(BackofficeError):
    status_code = 409
    error_code = "invalid_order_state"


class NoActiveEventError(BackofficeError):
    status_code = 409
    error_code = "no_active_event"

    def __init__(self, message: str = "There is no event in progress"):
        super().__init__(message)


class StoreError(BackofficeError):
    """The storage backend failed or could not be reached"""

    status_code = 503
    error_code = "store_unavailable"

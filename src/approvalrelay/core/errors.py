from __future__ import annotations


class RelayError(RuntimeError):
    """Base error for failures reported back to the caller."""

    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthorized(RelayError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(RelayError):
    status_code = 403
    default_message = "Forbidden"


class NotAuthorized(Forbidden):
    default_message = "Forbidden — not an authorized approver"


class InvalidPayload(RelayError):
    status_code = 400
    default_message = "Invalid JSON body"


class MissingField(InvalidPayload):
    default_message = "Missing required fields: id, action"


class InvalidAction(InvalidPayload):
    default_message = 'action must be "approve" or "reject"'


class NotFound(RelayError):
    status_code = 404
    default_message = "not found"


class StorageError(RelayError):
    """Raised by a store when a read or write cannot complete."""

    status_code = 503
    default_message = "Storage unavailable"


class StorageConflict(RelayError):
    """Raised when a versioned write keeps losing to concurrent writers."""

    status_code = 409
    default_message = "Concurrent update conflict, retry the request"

"""
Error taxonomy for the marketplace.

Every error a caller can see is a MicrojobError subclass with a stable
``kind`` and HTTP status. The API boundary (shared.api) turns them into
structured JSON responses; nothing below it formats HTTP.
"""
from typing import Any, Dict, Optional


class MicrojobError(Exception):
    """Base class for caller-visible errors."""

    kind = 'Internal'
    status_code = 500
    default_message = 'Internal Server Error'

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': self.kind,
            'message': self.message,
            'details': self.details,
        }


class Unauthorized(MicrojobError):
    kind = 'Unauthorized'
    status_code = 401
    default_message = 'Unauthorized access'


class Forbidden(MicrojobError):
    kind = 'Forbidden'
    status_code = 403
    default_message = 'Forbidden'


class NotFound(MicrojobError):
    kind = 'NotFound'
    status_code = 404
    default_message = 'Not found'


class InvalidInput(MicrojobError):
    kind = 'InvalidInput'
    status_code = 400
    default_message = 'Invalid input'


class InsufficientBalance(MicrojobError):
    kind = 'InsufficientBalance'
    status_code = 409
    default_message = 'Insufficient balance'


class NoSlotsAvailable(MicrojobError):
    kind = 'NoSlotsAvailable'
    status_code = 409
    default_message = 'Task has no open slots'


class AlreadyProcessed(MicrojobError):
    kind = 'AlreadyProcessed'
    status_code = 409
    default_message = 'Already processed'


class Conflict(MicrojobError):
    kind = 'Conflict'
    status_code = 409
    default_message = 'Conflict'


class Internal(MicrojobError):
    pass

"""Domain error types.

Each error is a Werkzeug HTTPException so the app-level handler renders it with the
standard ``{"error": {...}}`` shape. ``reason`` is a stable machine-readable code that
callers (and tests) can match on instead of parsing the human-readable detail.
"""
from __future__ import annotations
from typing import Dict, Optional
from werkzeug.exceptions import HTTPException


class ServiceError(HTTPException):
    code = 500
    reason = 'error'

    def __init__(self, description: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(description=description)
        if reason:
            self.reason = reason


class ValidationError(ServiceError):
    """User-correctable input problem. Nothing was written to the store."""
    code = 400
    reason = 'validation_failed'

    def __init__(self, description: Optional[str] = None, fields: Optional[Dict[str, str]] = None):
        self.fields = dict(fields or {})
        if description is None:
            description = '; '.join(f"{k}: {v}" for k, v in sorted(self.fields.items())) or 'invalid input'
        super().__init__(description)


class AuthenticationFailed(ServiceError):
    code = 401
    reason = 'invalid_credentials'


class NotFoundError(ServiceError):
    code = 404
    reason = 'not_found'


class TicketNotFound(NotFoundError):
    reason = 'ticket_not_found'


class TransitionRejected(ServiceError):
    """A lifecycle rule refused the requested move."""
    code = 409
    reason = 'transition_rejected'


class StoreFailure(ServiceError):
    code = 502
    reason = 'store_failure'


class VerificationFailed(ServiceError):
    """The store accepted a write but the row read back does not reflect it."""
    code = 500
    reason = 'verification_failed'


__all__ = [
    'ServiceError', 'ValidationError', 'AuthenticationFailed', 'NotFoundError', 'TicketNotFound',
    'TransitionRejected', 'StoreFailure', 'VerificationFailed',
]

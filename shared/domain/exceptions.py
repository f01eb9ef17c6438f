"""
Domain error taxonomy.

Every error raised by the booking engine derives from DomainError and
carries a stable machine-readable `code` plus the HTTP status the API
layer answers with. Extra keyword arguments end up in the response body.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base exception for all booking engine errors."""

    code = 'domain_error'
    http_status = 400

    def __init__(self, message: str = '', **extra: Any):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or (self.__class__.__doc__ or '').strip()
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {'error': self.code, 'detail': self.message, **self.extra}


class ScheduleConflictError(DomainError):
    """The requested time range overlaps a range already reserved for the resource."""

    code = 'schedule_conflict'
    http_status = 409


class InvalidTransitionError(DomainError):
    """The booking cannot move to the requested status from its current status."""

    code = 'invalid_transition'
    http_status = 409


class NotFoundError(DomainError):
    """The requested booking, reschedule or resource does not exist."""

    code = 'not_found'
    http_status = 404


class ForbiddenError(DomainError):
    """The caller may not perform this action on the booking."""

    code = 'forbidden'
    http_status = 403


class BookingValidationError(DomainError):
    """The request is malformed (bad range, past date, unknown field)."""

    code = 'validation_error'
    http_status = 400


class ServiceUnavailableError(DomainError):
    """Storage stayed contended after the bounded number of retries."""

    code = 'unavailable'
    http_status = 503


class ConcurrentModificationError(Exception):
    """A record changed underneath us (version mismatch). Retried, never surfaced."""

"""Domain error hierarchy.

Every error carries a machine-readable ``code`` and an ``errors`` map keyed by
the offending field name (e.g. ``{"MeetingId": "Meeting not found"}``). The
API layer renders them as ``{"code": ..., "errors": {...}}`` with the status
code declared on the class.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    WRONG_REQUEST_TRANSMISSION = "WRONG_REQUEST_TRANSMISSION"
    ROLE_BASED_ACCESS_ERROR = "ROLE_BASED_ACCESS_ERROR"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"


class TimeetError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, code: ErrorCode, errors: dict[str, str]) -> None:
        self.code = code
        self.errors = dict(errors)
        super().__init__(f"{code.value}: {self.errors}")


class NotFoundError(TimeetError):
    """A referenced entity does not exist."""

    status_code = 404

    def __init__(
        self,
        field: str,
        message: str,
        code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
    ) -> None:
        super().__init__(code, {field: message})


class BadRequestError(TimeetError):
    """Malformed input or a request the current state does not allow."""

    status_code = 400

    def __init__(
        self,
        field: str,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ) -> None:
        super().__init__(code, {field: message})


class ForbiddenError(TimeetError):
    """The acting member lacks the role required for the operation."""

    status_code = 403

    def __init__(
        self,
        field: str,
        message: str,
        code: ErrorCode = ErrorCode.ROLE_BASED_ACCESS_ERROR,
    ) -> None:
        super().__init__(code, {field: message})


class ConcurrentModificationError(TimeetError):
    """Another transaction updated the same row first."""

    status_code = 409

    def __init__(self, message: str = "Resource was modified concurrently") -> None:
        super().__init__(ErrorCode.CONCURRENT_MODIFICATION, {"Version": message})

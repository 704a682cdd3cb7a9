"""Application error codes.

Every error raised by the stores and services derives from `AppError`, which
carries a stable error code, an HTTP status and a user-safe message. The API
layer turns these into JSON responses (see `festival_events.api.app`).

| Error | Status | Meaning |
|---|---|---|
| ValidationError | 400 | Malformed or out-of-range input, rejected before any write |
| UnauthorizedError | 401 | No valid identity |
| ForbiddenError | 403 | Valid identity, wrong role or not the owner |
| NotFoundError | 404 | Target id does not exist |
| ConflictError | 409 | Duplicate create, or a write that kept losing races |
| SerializationError | 500 | Stored event document is malformed |
| DatabaseError | 500 | Store-layer failure, details are not exposed |
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error codes returned to API clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class AppError(Exception):
    """Base application error with code, status and user-safe message."""

    code: ErrorCode = ErrorCode.DATABASE_ERROR
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(AppError):
    """Raised when input is malformed or out of range."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class UnauthorizedError(AppError):
    """Raised when a request carries no valid identity."""

    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class ForbiddenError(AppError):
    """Raised when the caller lacks the role or ownership required."""

    code = ErrorCode.FORBIDDEN
    status_code = 403


class NotFoundError(AppError):
    """Raised when the target of an operation does not exist."""

    code = ErrorCode.NOT_FOUND
    status_code = 404


class ConflictError(AppError):
    """Raised on duplicate creates and exhausted write retries."""

    code = ErrorCode.CONFLICT
    status_code = 409


class SerializationError(AppError):
    """Raised when a stored event document cannot be parsed."""

    code = ErrorCode.SERIALIZATION_ERROR
    status_code = 500

    def __init__(self, message: str, entity_id: int | None = None):
        super().__init__(message)
        self.entity_id = entity_id


class DatabaseError(AppError):
    """Raised when the store layer fails. The message is always generic."""

    code = ErrorCode.DATABASE_ERROR
    status_code = 500

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class StaleCollectionError(ConflictError):
    """Raised when a collection record changed between read and write.

    The collection engine retries the whole unit when it sees this error;
    it only reaches a client once every attempt has lost.
    """

    def __init__(self, user_id: str, expected_version: int):
        super().__init__("Collection was modified concurrently, please retry")
        self.user_id = user_id
        self.expected_version = expected_version

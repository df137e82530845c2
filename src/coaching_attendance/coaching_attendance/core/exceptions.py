from __future__ import annotations

from typing import Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class IncompleteError(ValidationError):
    """Raised when some roster students have no attendance status yet."""

    def __init__(self, missing_student_ids: Sequence[str], message: Optional[str] = None):
        self.missing_student_ids = tuple(missing_student_ids)
        super().__init__(message or f"{len(self.missing_student_ids)} student(s) have no attendance status")


class UnknownStudentError(ValidationError):
    """Raised when a student id is not on the session roster."""

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student {student_id!r} is not on this class roster")


class MarkingStateError(DomainError):
    """Raised when a marking command is not allowed in the current state."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a session or record no longer exists."""


class RemoteError(DomainError):
    """Base for failures of the attendance API that may be retried."""


class NetworkError(RemoteError):
    """Raised when the attendance API cannot be reached."""


class ServerError(RemoteError):
    """Raised on 5xx responses and on payloads that fail to parse."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

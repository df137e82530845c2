from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..core.enums import AttendanceView, ErrorKind
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    IncompleteError,
    MarkingStateError,
    NetworkError,
    NotFoundError,
    UnknownStudentError,
    ValidationError,
)


@dataclass(frozen=True)
class ViewResult:
    """Tagged outcome of a coordinator command: data, or an error to show."""

    ok: bool
    view: AttendanceView
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    retryable: bool = False
    details: Optional[dict] = None

    @classmethod
    def success(cls, view: AttendanceView, data: Any = None, message: Optional[str] = None) -> "ViewResult":
        return cls(ok=True, view=view, data=data, message=message)

    @classmethod
    def failure(cls, view: AttendanceView, error: DomainError) -> "ViewResult":
        kind, message, retryable = describe_error(error)
        details = None
        if isinstance(error, IncompleteError):
            details = {"missing_student_ids": list(error.missing_student_ids)}
        elif isinstance(error, UnknownStudentError):
            details = {"student_id": error.student_id}
        return cls(ok=False, view=view, error_kind=kind, message=message, retryable=retryable, details=details)


def describe_error(error: DomainError) -> tuple[ErrorKind, str, bool]:
    if isinstance(error, ValidationError):
        return ErrorKind.VALIDATION, str(error), False
    if isinstance(error, MarkingStateError):
        return ErrorKind.STATE, str(error), False
    if isinstance(error, AuthorizationError):
        return ErrorKind.AUTHORIZATION, str(error), False
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND, str(error), False
    if isinstance(error, NetworkError):
        return ErrorKind.NETWORK, "Could not reach the attendance service. Please try again.", True
    return ErrorKind.SERVER, "The attendance service failed to complete the request. Please try again.", True

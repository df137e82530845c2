from __future__ import annotations

from typing import Optional, Union

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_status(value: Union[str, AttendanceStatus, None]) -> AttendanceStatus:
    """Coerce a raw status value, rejecting anything outside the four statuses."""
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Unsupported attendance status: {value!r}")


def optional_status(value: Union[str, AttendanceStatus, None]) -> Optional[AttendanceStatus]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_status(value)


def clean_remark(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None

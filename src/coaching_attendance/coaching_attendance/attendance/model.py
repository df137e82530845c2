from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass
class AttendanceDecision:
    """One student's unsaved status within a marking session."""

    student_id: str
    status: Optional[AttendanceStatus]
    remark: Optional[str] = None


@dataclass(frozen=True)
class StudentRef:
    student_id: str
    full_name: str
    uid: str = ""
    batch: str = ""


@dataclass(frozen=True)
class SessionRef:
    session_id: str
    subject: str
    topic: str = ""
    venue: str = ""


@dataclass(frozen=True)
class MarkerRef:
    full_name: str
    uid: str = ""


@dataclass(frozen=True)
class AttendanceRecord:
    """Read-only attendance outcome as stored by the attendance API."""

    record_id: str
    student: StudentRef
    session: SessionRef
    record_date: date
    status: AttendanceStatus
    marked_at: datetime
    marked_by: MarkerRef
    remark: Optional[str] = None


@dataclass(frozen=True)
class HistoryFilters:
    student_search: Optional[str] = None
    subject: Optional[str] = None
    batch: Optional[str] = None
    status: Optional[AttendanceStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    limit: Optional[int] = None

    def as_params(self) -> dict:
        params: dict = {}
        if self.student_search:
            params["search"] = self.student_search
        if self.subject:
            params["subject"] = self.subject
        if self.batch:
            params["batchType"] = self.batch
        if self.status:
            params["status"] = self.status.value
        if self.date_from:
            params["startDate"] = self.date_from.isoformat()
        if self.date_to:
            params["endDate"] = self.date_to.isoformat()
        if self.limit:
            params["limit"] = int(self.limit)
        return params

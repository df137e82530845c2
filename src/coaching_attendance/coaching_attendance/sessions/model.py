from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Mapping, Optional

from ..core.enums import AttendanceStatus, SessionStatus
from ..statistics.rates import compute_rate


@dataclass(frozen=True)
class TeacherRef:
    teacher_id: str
    full_name: str


@dataclass(frozen=True)
class RosterStudent:
    student_id: str
    full_name: str
    uid: str = ""
    status: Optional[AttendanceStatus] = None


@dataclass(frozen=True)
class SessionSummary:
    """Summary counts of one session; excused is implied by the total."""

    total_students: int
    present_count: int
    absent_count: int
    late_count: int
    attendance_marked: bool

    @property
    def excused_count(self) -> int:
        return max(self.total_students - self.present_count - self.absent_count - self.late_count, 0)


@dataclass(frozen=True)
class ClassSession:
    """Domain entity: one scheduled class meeting."""

    session_id: str
    subject: str
    topic: str
    batch: str
    session_date: date
    start_time: time
    end_time: time
    venue: str
    teacher: TeacherRef
    total_students: int
    present_count: int = 0
    absent_count: int = 0
    late_count: int = 0
    attendance_marked: bool = False
    roster: tuple[RosterStudent, ...] = field(default_factory=tuple)

    @property
    def excused_count(self) -> int:
        return max(self.total_students - self.present_count - self.absent_count - self.late_count, 0)

    @property
    def attendance_rate(self) -> float:
        return compute_rate(self.present_count, self.total_students)

    @property
    def summary(self) -> SessionSummary:
        return SessionSummary(
            total_students=self.total_students,
            present_count=self.present_count,
            absent_count=self.absent_count,
            late_count=self.late_count,
            attendance_marked=self.attendance_marked,
        )

    def with_marking(self, statuses: Mapping[str, AttendanceStatus]) -> "ClassSession":
        """Return a copy whose summary and roster reflect a committed marking.

        The enrolment count is kept; it only grows when more statuses were
        submitted than the session listed.
        """

        counts = {status: 0 for status in AttendanceStatus}
        for status in statuses.values():
            counts[status] += 1

        roster = tuple(replace(s, status=statuses.get(s.student_id, s.status)) for s in self.roster)
        return replace(
            self,
            total_students=max(self.total_students, len(statuses)),
            present_count=counts[AttendanceStatus.PRESENT],
            absent_count=counts[AttendanceStatus.ABSENT],
            late_count=counts[AttendanceStatus.LATE],
            attendance_marked=True,
            roster=roster,
        )

    def with_bulk_marking(self, status: AttendanceStatus) -> "ClassSession":
        """Return a copy where every enrolled student carries the same status."""

        if self.roster:
            return self.with_marking({s.student_id: status for s in self.roster})

        counts = {s: (self.total_students if s == status else 0) for s in AttendanceStatus}
        return replace(
            self,
            present_count=counts[AttendanceStatus.PRESENT],
            absent_count=counts[AttendanceStatus.ABSENT],
            late_count=counts[AttendanceStatus.LATE],
            attendance_marked=True,
        )


@dataclass(frozen=True)
class SessionFilters:
    subject: Optional[str] = None
    batch: Optional[str] = None
    status: Optional[SessionStatus] = None

    def as_params(self) -> dict:
        params: dict = {}
        if self.subject:
            params["subject"] = self.subject
        if self.batch:
            params["batchType"] = self.batch
        if self.status:
            params["status"] = self.status.value
        return params

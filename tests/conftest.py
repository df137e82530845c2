from __future__ import annotations

from datetime import date, datetime, time

import pytest

from coaching_attendance.attendance.model import AttendanceRecord, MarkerRef, SessionRef, StudentRef
from coaching_attendance.core.enums import AttendanceStatus
from coaching_attendance.sessions.model import ClassSession, RosterStudent, TeacherRef


@pytest.fixture
def fixed_today() -> date:
    return date(2026, 2, 11)


@pytest.fixture
def make_session(fixed_today):
    def _make(
        session_id: str = "cls-1",
        *,
        students=("A", "B", "C"),
        statuses=None,
        subject: str = "Physics",
        start: time = time(9, 0),
        marked: bool = False,
        total=None,
        session_date=None,
    ) -> ClassSession:
        statuses = statuses or {}
        roster = tuple(
            RosterStudent(student_id=s, full_name=f"Student {s}", uid=f"U-{s}", status=statuses.get(s))
            for s in students
        )
        return ClassSession(
            session_id=session_id,
            subject=subject,
            topic="Kinematics",
            batch="JEE-2026",
            session_date=session_date or fixed_today,
            start_time=start,
            end_time=time(start.hour + 1, start.minute),
            venue="Room 1",
            teacher=TeacherRef(teacher_id="t-1", full_name="Teacher One"),
            total_students=len(roster) if total is None else total,
            attendance_marked=marked,
            roster=roster,
        )

    return _make


@pytest.fixture
def make_record():
    counter = {"n": 0}

    def _make(
        student_id: str,
        day: date,
        status: AttendanceStatus,
        *,
        session_id: str = "cls-1",
        name=None,
    ) -> AttendanceRecord:
        counter["n"] += 1
        return AttendanceRecord(
            record_id=f"rec-{counter['n']}",
            student=StudentRef(student_id=student_id, full_name=name or f"Student {student_id}", uid=f"U-{student_id}"),
            session=SessionRef(session_id=session_id, subject="Physics"),
            record_date=day,
            status=status,
            marked_at=datetime.combine(day, time(9, 5)),
            marked_by=MarkerRef(full_name="Teacher One", uid="T-1"),
        )

    return _make

from __future__ import annotations

from coaching_attendance.core.enums import AttendanceStatus, SessionStatus
from coaching_attendance.sessions.model import SessionFilters


def test_excused_count_is_derived_from_total(make_session):
    session = make_session(students=("A", "B", "C", "D"))
    marked = session.with_marking(
        {
            "A": AttendanceStatus.PRESENT,
            "B": AttendanceStatus.EXCUSED,
            "C": AttendanceStatus.EXCUSED,
            "D": AttendanceStatus.ABSENT,
        }
    )

    assert marked.excused_count == 2
    assert marked.attendance_rate == 25.0
    assert marked.summary.excused_count == 2


def test_bulk_marking_without_roster_uses_total(make_session):
    session = make_session(students=(), total=30)

    marked = session.with_bulk_marking(AttendanceStatus.LATE)

    assert marked.late_count == 30
    assert marked.present_count == 0
    assert marked.attendance_marked is True


def test_empty_session_rate_is_zero(make_session):
    assert make_session(students=()).attendance_rate == 0.0


def test_filters_as_params():
    filters = SessionFilters(subject="Maths", batch="NEET", status=SessionStatus.PENDING)

    assert filters.as_params() == {"subject": "Maths", "batchType": "NEET", "status": "pending"}
    assert SessionFilters().as_params() == {}


def test_marking_keeps_enrolment_count(make_session):
    session = make_session(students=("A", "B"), total=5)

    marked = session.with_marking({"A": AttendanceStatus.PRESENT, "B": AttendanceStatus.ABSENT})

    assert marked.total_students == 5
    assert make_session(students=(), total=30).with_marking({}).total_students == 30

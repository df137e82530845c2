from __future__ import annotations

import asyncio
from datetime import time

import pytest

from coaching_attendance.attendance.engine import AttendanceMarkingEngine
from coaching_attendance.core.enums import AttendanceStatus, MarkingState
from coaching_attendance.core.exceptions import (
    IncompleteError,
    MarkingStateError,
    ServerError,
    UnknownStudentError,
    ValidationError,
)
from coaching_attendance.sessions.catalog import ClassSessionCatalog
from coaching_attendance.sessions.model import SessionSummary


class InMemorySessions:
    def __init__(self, sessions):
        self.sessions = sessions

    async def fetch_today_sessions(self, *, session_date, filters):
        return list(self.sessions)

    async def fetch_scheduled_sessions(self, *, session_date, filters):
        return list(self.sessions)


class RecordingAttendance:
    """Answers marking submissions with a summary of what was sent."""

    def __init__(self):
        self.submitted = []
        self.bulk_submitted = []
        self.failures = []
        self.gate = None

    async def _maybe_block(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)

    async def submit_marking(self, *, session_id, decisions):
        self.submitted.append((session_id, list(decisions)))
        await self._maybe_block()
        counts = {s: 0 for s in AttendanceStatus}
        for d in decisions:
            counts[AttendanceStatus(d["status"])] += 1
        return SessionSummary(
            total_students=len(decisions),
            present_count=counts[AttendanceStatus.PRESENT],
            absent_count=counts[AttendanceStatus.ABSENT],
            late_count=counts[AttendanceStatus.LATE],
            attendance_marked=True,
        )

    async def submit_bulk_marking(self, *, session_id, status):
        self.bulk_submitted.append((session_id, status))
        await self._maybe_block()
        return SessionSummary(
            total_students=3,
            present_count=3 if status == AttendanceStatus.PRESENT else 0,
            absent_count=3 if status == AttendanceStatus.ABSENT else 0,
            late_count=3 if status == AttendanceStatus.LATE else 0,
            attendance_marked=True,
        )

    async def fetch_history(self, *, filters):
        return []

    async def export_history(self, *, filters):
        return b""


def _setup(make_session, fixed_today, *, default_status=AttendanceStatus.PRESENT, **session_kwargs):
    session = make_session("cls-1", **session_kwargs)
    catalog = ClassSessionCatalog(InMemorySessions([session]))
    asyncio.run(catalog.load_for_date(fixed_today))
    attendance = RecordingAttendance()
    engine = AttendanceMarkingEngine(attendance, catalog, default_status=default_status)
    return engine, catalog, attendance


def test_marking_three_students_updates_catalog(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))

    engine.set_status("B", AttendanceStatus.ABSENT)
    engine.set_status("C", "late")
    updated = asyncio.run(engine.submit())

    assert engine.state == MarkingState.COMMITTED
    assert engine.transitions == (
        MarkingState.UNOPENED,
        MarkingState.INITIALIZING,
        MarkingState.EDITING,
        MarkingState.SUBMITTING,
        MarkingState.COMMITTED,
    )
    assert attendance.submitted == [
        (
            "cls-1",
            [
                {"studentId": "A", "status": "PRESENT"},
                {"studentId": "B", "status": "ABSENT"},
                {"studentId": "C", "status": "LATE"},
            ],
        )
    ]
    held = catalog.get("cls-1")
    assert held is updated
    assert (held.present_count, held.absent_count, held.late_count, held.excused_count) == (1, 1, 1, 0)
    assert held.attendance_marked is True


def test_bulk_mark_all_absent_uses_bulk_endpoint(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))

    engine.bulk_set(AttendanceStatus.ABSENT)
    asyncio.run(engine.submit(bulk=True))

    assert attendance.bulk_submitted == [("cls-1", AttendanceStatus.ABSENT)]
    assert attendance.submitted == []
    held = catalog.get("cls-1")
    assert held.absent_count == held.total_students == 3
    assert (held.present_count, held.late_count, held.excused_count) == (0, 0, 0)


def test_bulk_submit_requires_untouched_mark_all(make_session, fixed_today):
    engine, catalog, _ = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))
    engine.bulk_set(AttendanceStatus.ABSENT)
    engine.set_status("A", AttendanceStatus.PRESENT)

    with pytest.raises(MarkingStateError):
        asyncio.run(engine.submit(bulk=True))
    assert engine.state == MarkingState.EDITING


def test_server_error_keeps_edits_for_retry(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))
    engine.set_status("B", AttendanceStatus.ABSENT)
    engine.set_remark("B", "sick")
    attendance.failures.append(ServerError("boom", status_code=500))

    with pytest.raises(ServerError):
        asyncio.run(engine.submit())

    assert engine.state == MarkingState.EDITING
    assert MarkingState.FAILED in engine.transitions
    assert isinstance(engine.last_error, ServerError)
    assert engine.store.get("B").status == AttendanceStatus.ABSENT
    assert engine.store.get("B").remark == "sick"
    assert catalog.get("cls-1").attendance_marked is False

    asyncio.run(engine.submit())

    assert engine.state == MarkingState.COMMITTED
    assert engine.last_error is None
    assert catalog.get("cls-1").absent_count == 1


def test_incomplete_decisions_are_not_submitted(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today, default_status=None)
    engine.open(catalog.get("cls-1"))
    engine.set_status("A", AttendanceStatus.PRESENT)

    with pytest.raises(IncompleteError) as exc:
        asyncio.run(engine.submit())

    assert exc.value.missing_student_ids == ("B", "C")
    assert attendance.submitted == []
    assert engine.state == MarkingState.EDITING


def test_remarking_seeds_recorded_statuses(make_session, fixed_today):
    statuses = {"A": AttendanceStatus.LATE, "B": AttendanceStatus.EXCUSED, "C": AttendanceStatus.PRESENT}
    engine, catalog, _ = _setup(make_session, fixed_today, statuses=statuses, marked=True)

    store = engine.open(catalog.get("cls-1"))

    assert store.statuses() == statuses


def test_resubmitting_same_decisions_gives_same_summary(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))
    engine.set_status("C", AttendanceStatus.ABSENT)
    first = asyncio.run(engine.submit()).summary

    again = AttendanceMarkingEngine(attendance, catalog)
    again.open(catalog.get("cls-1"))
    second = asyncio.run(again.submit()).summary

    assert first == second
    assert attendance.submitted[0][1] == attendance.submitted[1][1]


def test_empty_roster_submits_zero_summary(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today, students=())
    engine.open(catalog.get("cls-1"))

    updated = asyncio.run(engine.submit())

    assert attendance.submitted == [("cls-1", [])]
    assert updated.total_students == 0
    assert updated.attendance_rate == 0.0
    assert updated.attendance_marked is True


def test_edits_and_second_submit_refused_while_submitting(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))
    attendance.gate = asyncio.Event()

    async def scenario():
        first = asyncio.ensure_future(engine.submit())
        await asyncio.sleep(0)
        assert engine.state == MarkingState.SUBMITTING

        with pytest.raises(MarkingStateError):
            await engine.submit()
        with pytest.raises(MarkingStateError):
            engine.set_status("A", AttendanceStatus.ABSENT)

        attendance.gate.set()
        return await first

    asyncio.run(scenario())

    assert len(attendance.submitted) == 1
    assert engine.state == MarkingState.COMMITTED


def test_close_during_submit_still_updates_catalog(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))
    engine.set_status("A", AttendanceStatus.ABSENT)
    attendance.gate = asyncio.Event()

    async def scenario():
        pending = asyncio.ensure_future(engine.submit())
        await asyncio.sleep(0)
        engine.close()
        assert engine.store is not None
        attendance.gate.set()
        await pending

    asyncio.run(scenario())

    assert engine.closed is True
    assert engine.store is None
    assert catalog.get("cls-1").absent_count == 1


def test_edit_after_close_is_refused(make_session, fixed_today):
    engine, catalog, _ = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))
    engine.close()

    with pytest.raises(MarkingStateError):
        engine.set_status("A", AttendanceStatus.LATE)
    assert engine.snapshot().decisions == ()


def test_invalid_inputs(make_session, fixed_today):
    engine, catalog, _ = _setup(make_session, fixed_today)

    with pytest.raises(MarkingStateError):
        engine.set_status("A", AttendanceStatus.LATE)

    engine.open(catalog.get("cls-1"))
    with pytest.raises(MarkingStateError):
        engine.open(catalog.get("cls-1"))
    with pytest.raises(UnknownStudentError):
        engine.set_status("nobody", AttendanceStatus.LATE)
    with pytest.raises(ValidationError):
        engine.bulk_set("HOLIDAY")
    assert engine.store.tally()[AttendanceStatus.PRESENT] == 3


def test_snapshot_to_dict(make_session, fixed_today):
    engine, catalog, _ = _setup(make_session, fixed_today, start=time(10, 30))
    engine.open(catalog.get("cls-1"))
    engine.set_status("A", AttendanceStatus.EXCUSED)

    data = engine.snapshot().to_dict()

    assert data["session_id"] == "cls-1"
    assert data["state"] == MarkingState.EDITING.value
    assert data["decisions"][0] == {"student_id": "A", "status": "EXCUSED", "remark": None}
    assert data["tally"]["PRESENT"] == 2


def test_one_absent_of_three(make_session, fixed_today):
    engine, catalog, _ = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))

    engine.set_status("B", AttendanceStatus.ABSENT)
    updated = asyncio.run(engine.submit())

    assert (updated.present_count, updated.absent_count, updated.late_count, updated.excused_count) == (2, 1, 0, 0)


@pytest.mark.parametrize("students", [("A", "B", "C"), ()])
def test_default_policy_validates_immediately(make_session, fixed_today, students):
    engine, catalog, _ = _setup(make_session, fixed_today, students=students)
    engine.open(catalog.get("cls-1"))

    engine.validate()

    tally = engine.store.tally()
    assert sum(tally.values()) == len(students)


@pytest.mark.parametrize("status", list(AttendanceStatus))
def test_mark_all_then_per_student_submit_counts_every_student(make_session, fixed_today, status):
    engine, catalog, _ = _setup(make_session, fixed_today)
    engine.open(catalog.get("cls-1"))

    engine.bulk_set(status)
    updated = asyncio.run(engine.submit())

    counts = {
        AttendanceStatus.PRESENT: updated.present_count,
        AttendanceStatus.ABSENT: updated.absent_count,
        AttendanceStatus.LATE: updated.late_count,
        AttendanceStatus.EXCUSED: updated.excused_count,
    }
    assert counts[status] == updated.total_students == 3
    assert sum(counts.values()) == updated.total_students


def test_bulk_submit_without_roster_keeps_enrolment(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today, students=(), total=30)
    engine.open(catalog.get("cls-1"))

    engine.bulk_set(AttendanceStatus.ABSENT)
    updated = asyncio.run(engine.submit(bulk=True))

    assert attendance.bulk_submitted == [("cls-1", AttendanceStatus.ABSENT)]
    assert (updated.total_students, updated.absent_count) == (30, 30)
    assert (updated.present_count, updated.late_count, updated.excused_count) == (0, 0, 0)
    assert catalog.get("cls-1").absent_count == 30


def test_per_student_submit_refused_when_roster_is_short(make_session, fixed_today):
    engine, catalog, attendance = _setup(make_session, fixed_today, students=("A", "B"), total=30)
    engine.open(catalog.get("cls-1"))
    engine.bulk_set(AttendanceStatus.ABSENT)

    with pytest.raises(IncompleteError):
        asyncio.run(engine.submit())

    assert attendance.submitted == []
    assert engine.state == MarkingState.EDITING
    held = catalog.get("cls-1")
    assert held.total_students == 30
    assert held.attendance_marked is False

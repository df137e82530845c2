from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Sequence

from ..api.payload import as_bool, as_date, as_int, as_list, as_status, as_str, as_time, parsing, require
from ..api.transport import ApiTransport
from .model import ClassSession, RosterStudent, SessionFilters, SessionSummary, TeacherRef
from .repository import SessionRepository

TODAY_PATH = "/api/attendance/today"
SCHEDULED_PATH = "/api/attendance/scheduled"


def parse_roster_student(row: Mapping[str, Any]) -> RosterStudent:
    return RosterStudent(
        student_id=as_str(row, "id"),
        full_name=as_str(row, "fullName"),
        uid=as_str(row, "uid", ""),
        status=as_status(row.get("status")),
    )


def parse_session(row: Mapping[str, Any]) -> ClassSession:
    with parsing("class session"):
        teacher = row.get("teacher") or {}
        roster = tuple(parse_roster_student(s) for s in as_list(row, "students"))
        return ClassSession(
            session_id=as_str(row, "id"),
            subject=as_str(row, "subject"),
            topic=as_str(row, "topic", ""),
            batch=as_str(row, "batchType", ""),
            session_date=as_date(row, "date"),
            start_time=as_time(row, "startTime"),
            end_time=as_time(row, "endTime"),
            venue=as_str(row, "venue", ""),
            teacher=TeacherRef(
                teacher_id=str(teacher.get("id") or teacher.get("uid") or ""),
                full_name=str(teacher.get("fullName") or ""),
            ),
            total_students=as_int(row, "totalStudents", len(roster)),
            present_count=as_int(row, "presentCount", 0),
            absent_count=as_int(row, "absentCount", 0),
            late_count=as_int(row, "lateCount", 0),
            attendance_marked=as_bool(row, "attendanceMarked"),
            roster=roster,
        )


def parse_summary(body: Mapping[str, Any]) -> SessionSummary:
    with parsing("attendance summary"):
        row = require(body, "summary")
        return SessionSummary(
            total_students=as_int(row, "totalStudents"),
            present_count=as_int(row, "presentCount", 0),
            absent_count=as_int(row, "absentCount", 0),
            late_count=as_int(row, "lateCount", 0),
            attendance_marked=as_bool(row, "attendanceMarked", True),
        )


class HttpSessionRepository(SessionRepository):
    def __init__(self, transport: ApiTransport):
        self._transport = transport

    async def _fetch(self, path: str, session_date: date, filters: SessionFilters) -> Sequence[ClassSession]:
        params = {"date": session_date.isoformat(), **filters.as_params()}
        body = await self._transport.get_json(path, params=params)
        with parsing("class list"):
            return [parse_session(row) for row in as_list(body, "classes")]

    async def fetch_today_sessions(self, *, session_date: date, filters: SessionFilters) -> Sequence[ClassSession]:
        return await self._fetch(TODAY_PATH, session_date, filters)

    async def fetch_scheduled_sessions(self, *, session_date: date, filters: SessionFilters) -> Sequence[ClassSession]:
        return await self._fetch(SCHEDULED_PATH, session_date, filters)

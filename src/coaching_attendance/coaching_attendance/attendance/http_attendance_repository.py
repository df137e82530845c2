from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..api.payload import as_datetime, as_date, as_list, as_str, parsing, require
from ..api.transport import ApiTransport
from ..core.enums import AttendanceStatus
from ..sessions.http_session_repository import parse_summary
from ..sessions.model import SessionSummary
from .model import AttendanceRecord, HistoryFilters, MarkerRef, SessionRef, StudentRef
from .repository import AttendanceRepository

MARK_PATH = "/api/attendance/mark"
BULK_MARK_PATH = "/api/attendance/bulk-mark"
HISTORY_PATH = "/api/attendance/history"
EXPORT_PATH = "/api/attendance/export"


def parse_record(row: Mapping[str, Any]) -> AttendanceRecord:
    with parsing("attendance record"):
        student = row.get("student") or {}
        session = row.get("class") or {}
        marker = row.get("markedBy") or {}
        return AttendanceRecord(
            record_id=as_str(row, "id"),
            student=StudentRef(
                student_id=as_str(row, "studentId"),
                full_name=as_str(student, "fullName", ""),
                uid=as_str(student, "uid", ""),
                batch=as_str(student, "batchType", ""),
            ),
            session=SessionRef(
                session_id=as_str(row, "classId"),
                subject=as_str(session, "subject", ""),
                topic=as_str(session, "topic", ""),
                venue=as_str(session, "venue", ""),
            ),
            record_date=as_date(row, "date"),
            status=AttendanceStatus(str(require(row, "status")).upper()),
            marked_at=as_datetime(row, "markedAt"),
            marked_by=MarkerRef(full_name=as_str(marker, "fullName", ""), uid=as_str(marker, "uid", "")),
            remark=row.get("remarks") or None,
        )


class HttpAttendanceRepository(AttendanceRepository):
    def __init__(self, transport: ApiTransport):
        self._transport = transport

    async def submit_marking(self, *, session_id: str, decisions: Sequence[dict]) -> SessionSummary:
        body = await self._transport.post_json(
            MARK_PATH,
            {"classScheduleId": session_id, "attendanceData": list(decisions)},
        )
        return parse_summary(body)

    async def submit_bulk_marking(self, *, session_id: str, status: AttendanceStatus) -> SessionSummary:
        body = await self._transport.post_json(BULK_MARK_PATH, {"classScheduleId": session_id, "status": status.value})
        return parse_summary(body)

    async def fetch_history(self, *, filters: HistoryFilters) -> Sequence[AttendanceRecord]:
        body = await self._transport.get_json(HISTORY_PATH, params=filters.as_params())
        with parsing("attendance history"):
            return [parse_record(row) for row in as_list(body, "records")]

    async def export_history(self, *, filters: HistoryFilters) -> bytes:
        return await self._transport.get_bytes(EXPORT_PATH, params=filters.as_params())

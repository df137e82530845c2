from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..api.payload import as_date, as_float, as_int, as_list, as_str, parsing, require
from ..api.transport import ApiTransport
from .model import AttendanceStatistics, LowAttendanceAlert, StatisticsWindow, TrendPoint
from .repository import StatisticsRepository

STATS_PATH = "/api/attendance/stats"
LOW_ATTENDANCE_PATH = "/api/attendance/low-attendance"


def parse_statistics(body: Mapping[str, Any]) -> AttendanceStatistics:
    with parsing("attendance statistics"):
        row = require(body, "stats")
        present = as_int(row, "presentCount", 0)
        absent = as_int(row, "absentCount", 0)
        late = as_int(row, "lateCount", 0)
        previous = row.get("previousWeeklyRate")
        return AttendanceStatistics(
            total_classes=as_int(row, "totalClasses", 0),
            present_count=present,
            absent_count=absent,
            late_count=late,
            excused_count=as_int(row, "excusedCount", 0),
            attendance_rate=as_float(row, "attendanceRate", 0.0),
            monthly_rate=as_float(row, "monthlyRate", 0.0),
            weekly_rate=as_float(row, "weeklyRate", 0.0),
            previous_weekly_rate=float(previous) if previous is not None else None,
            weekly_trend=tuple(
                TrendPoint(point_date=as_date(p, "date"), rate=as_float(p, "rate", 0.0))
                for p in as_list(row, "weeklyTrend")
            ),
        )


def parse_alert(row: Mapping[str, Any]) -> LowAttendanceAlert:
    with parsing("low-attendance alert"):
        return LowAttendanceAlert(
            student_id=str(row.get("studentId") or require(row, "id")),
            full_name=as_str(row, "studentName"),
            uid=as_str(row, "uid", ""),
            rate=as_float(row, "attendanceRate"),
            days_absent=as_int(row, "daysAbsent", 0),
            consecutive_absent=as_int(row, "consecutiveAbsent", 0),
        )


class HttpStatisticsRepository(StatisticsRepository):
    def __init__(self, transport: ApiTransport):
        self._transport = transport

    async def fetch_statistics(self, *, window: StatisticsWindow) -> AttendanceStatistics:
        body = await self._transport.get_json(
            STATS_PATH,
            params={"startDate": window.start.isoformat(), "endDate": window.end.isoformat()},
        )
        return parse_statistics(body)

    async def fetch_low_attendance_alerts(self, *, threshold: float, limit: int) -> Sequence[LowAttendanceAlert]:
        body = await self._transport.get_json(LOW_ATTENDANCE_PATH, params={"threshold": threshold, "limit": int(limit)})
        with parsing("low-attendance alerts"):
            return [parse_alert(row) for row in as_list(body, "alerts")]

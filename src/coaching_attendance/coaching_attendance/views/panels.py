from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..sessions.model import ClassSession
from ..statistics.model import AttendanceStatistics, LowAttendanceAlert, StatisticsWindow
from ..statistics.rates import rate_band


def session_to_dict(s: ClassSession) -> dict:
    return {
        "id": s.session_id,
        "subject": s.subject,
        "topic": s.topic,
        "batch": s.batch,
        "date": s.session_date.isoformat(),
        "start_time": s.start_time.strftime("%H:%M"),
        "end_time": s.end_time.strftime("%H:%M"),
        "venue": s.venue,
        "teacher": {"id": s.teacher.teacher_id, "full_name": s.teacher.full_name},
        "total_students": s.total_students,
        "present_count": s.present_count,
        "absent_count": s.absent_count,
        "late_count": s.late_count,
        "excused_count": s.excused_count,
        "attendance_marked": s.attendance_marked,
        "attendance_rate": s.attendance_rate,
        "students": [
            {
                "id": st.student_id,
                "full_name": st.full_name,
                "uid": st.uid,
                "status": st.status.value if st.status else None,
            }
            for st in s.roster
        ],
    }


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "id": r.record_id,
        "student": {"id": r.student.student_id, "full_name": r.student.full_name, "uid": r.student.uid},
        "class": {"id": r.session.session_id, "subject": r.session.subject, "topic": r.session.topic},
        "date": r.record_date.isoformat(),
        "status": r.status.value,
        "marked_at": r.marked_at.isoformat(),
        "marked_by": r.marked_by.full_name,
        "remarks": r.remark,
    }


@dataclass(frozen=True)
class SessionsPanel:
    """Today/schedule view content."""

    panel_date: date
    sessions: tuple[ClassSession, ...]
    marked: int
    pending: int

    def to_dict(self) -> dict:
        return {
            "date": self.panel_date.isoformat(),
            "sessions": [session_to_dict(s) for s in self.sessions],
            "marked": self.marked,
            "pending": self.pending,
        }


@dataclass(frozen=True)
class HistoryPanel:
    records: tuple[AttendanceRecord, ...]

    def to_dict(self) -> dict:
        return {"records": [record_to_dict(r) for r in self.records]}


@dataclass(frozen=True)
class StatisticsPanel:
    window: StatisticsWindow
    statistics: AttendanceStatistics
    alerts: tuple[LowAttendanceAlert, ...]
    threshold: Optional[float] = None

    def to_dict(self) -> dict:
        stats = self.statistics.to_dict()
        for point in stats["weekly_trend"]:
            point["band"] = rate_band(point["rate"]).value
        return {
            "start_date": self.window.start.isoformat(),
            "end_date": self.window.end.isoformat(),
            "stats": stats,
            "threshold": self.threshold,
            "low_attendance_alerts": [a.to_dict() for a in self.alerts],
        }

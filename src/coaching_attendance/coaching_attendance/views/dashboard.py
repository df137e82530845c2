from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from ..attendance.model import AttendanceRecord, HistoryFilters
from ..attendance.repository import AttendanceRepository
from ..core.constants import (
    DEFAULT_ALERT_LIMIT,
    DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    DEFAULT_RECENT_LIMIT,
    DEFAULT_TREND_DAYS,
    DEFAULT_UPCOMING_LIMIT,
)
from ..sessions.catalog import session_order
from ..sessions.model import ClassSession, SessionFilters
from ..sessions.repository import SessionRepository
from ..statistics.model import AttendanceStatistics, LowAttendanceAlert, StatisticsWindow
from ..statistics.repository import StatisticsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSummary:
    today: date
    total_classes: int
    marked_classes: int
    pending_classes: int
    recent: tuple[AttendanceRecord, ...]
    statistics: AttendanceStatistics
    upcoming: tuple[ClassSession, ...]
    alerts: tuple[LowAttendanceAlert, ...]

    def to_dict(self) -> dict:
        trend = self.statistics.trend
        return {
            "date": self.today.isoformat(),
            "today_classes": {
                "total": self.total_classes,
                "marked": self.marked_classes,
                "pending": self.pending_classes,
            },
            "recent_attendance": [
                {
                    "id": r.record_id,
                    "student_name": r.student.full_name,
                    "subject": r.session.subject,
                    "status": r.status.value,
                    "date": r.record_date.isoformat(),
                    "time": r.marked_at.isoformat(),
                }
                for r in self.recent
            ],
            "attendance_stats": {
                "overall_rate": self.statistics.attendance_rate,
                "weekly_rate": self.statistics.weekly_rate,
                "trend": trend.direction.value,
                "trend_percentage": trend.delta,
            },
            "upcoming_classes": [
                {
                    "id": s.session_id,
                    "subject": s.subject,
                    "time": f"{s.start_time.strftime('%H:%M')} - {s.end_time.strftime('%H:%M')}",
                    "venue": s.venue,
                    "students_count": s.total_students,
                    "batch": s.batch,
                }
                for s in self.upcoming
            ],
            "low_attendance_alerts": [a.to_dict() for a in self.alerts],
        }


class DashboardService:
    """Attendance widget shown on the role dashboards."""

    def __init__(
        self,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        statistics: StatisticsRepository,
        *,
        threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    ):
        self._sessions = sessions
        self._attendance = attendance
        self._statistics = statistics
        self._threshold = threshold

    async def load(self, today: date) -> DashboardSummary:
        week = StatisticsWindow(start=today - timedelta(days=DEFAULT_TREND_DAYS - 1), end=today)
        classes, recent, stats, alerts = await asyncio.gather(
            self._sessions.fetch_today_sessions(session_date=today, filters=SessionFilters()),
            self._attendance.fetch_history(filters=HistoryFilters(limit=DEFAULT_RECENT_LIMIT)),
            self._statistics.fetch_statistics(window=week),
            self._statistics.fetch_low_attendance_alerts(threshold=self._threshold, limit=DEFAULT_ALERT_LIMIT),
        )

        ordered: Sequence[ClassSession] = sorted(classes, key=session_order)
        marked = sum(1 for s in ordered if s.attendance_marked)
        logger.info("Dashboard for %s: %d class(es), %d marked", today.isoformat(), len(ordered), marked)
        return DashboardSummary(
            today=today,
            total_classes=len(ordered),
            marked_classes=marked,
            pending_classes=len(ordered) - marked,
            recent=tuple(recent[:DEFAULT_RECENT_LIMIT]),
            statistics=stats,
            upcoming=tuple(s for s in ordered if not s.attendance_marked)[:DEFAULT_UPCOMING_LIMIT],
            alerts=tuple(sorted(alerts, key=lambda a: (a.rate, a.full_name.casefold()))[:DEFAULT_ALERT_LIMIT]),
        )

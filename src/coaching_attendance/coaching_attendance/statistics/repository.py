from __future__ import annotations

from typing import Protocol, Sequence

from .model import AttendanceStatistics, LowAttendanceAlert, StatisticsWindow


class StatisticsRepository(Protocol):
    async def fetch_statistics(self, *, window: StatisticsWindow) -> AttendanceStatistics:
        raise NotImplementedError

    async def fetch_low_attendance_alerts(self, *, threshold: float, limit: int) -> Sequence[LowAttendanceAlert]:
        raise NotImplementedError

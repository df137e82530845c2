from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.exceptions import ValidationError
from .rates import Trend, compute_trend


@dataclass(frozen=True)
class StatisticsWindow:
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError("Statistics window must end on or after its start")

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class TrendPoint:
    point_date: date
    rate: float


@dataclass(frozen=True)
class AttendanceStatistics:
    """Computed aggregate over a window of attendance records."""

    total_classes: int
    present_count: int
    absent_count: int
    late_count: int
    excused_count: int
    attendance_rate: float
    monthly_rate: float
    weekly_rate: float = 0.0
    previous_weekly_rate: Optional[float] = None
    weekly_trend: tuple[TrendPoint, ...] = field(default_factory=tuple)

    @property
    def trend(self) -> Trend:
        return compute_trend(self.weekly_rate, self.previous_weekly_rate)

    def to_dict(self) -> dict:
        trend = self.trend
        return {
            "total_classes": self.total_classes,
            "present_count": self.present_count,
            "absent_count": self.absent_count,
            "late_count": self.late_count,
            "excused_count": self.excused_count,
            "attendance_rate": self.attendance_rate,
            "monthly_rate": self.monthly_rate,
            "weekly_rate": self.weekly_rate,
            "trend": trend.direction.value,
            "trend_delta": trend.delta,
            "weekly_trend": [{"date": p.point_date.isoformat(), "rate": p.rate} for p in self.weekly_trend],
        }


@dataclass(frozen=True)
class StudentRate:
    """Per-student attendance over a window, input to low-attendance alerts."""

    student_id: str
    full_name: str
    uid: str
    present: int
    total: int
    rate: float
    days_absent: int = 0
    consecutive_absent: int = 0


@dataclass(frozen=True)
class LowAttendanceAlert:
    student_id: str
    full_name: str
    uid: str
    rate: float
    days_absent: int
    consecutive_absent: int = 0

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "student_name": self.full_name,
            "uid": self.uid,
            "attendance_rate": self.rate,
            "days_absent": self.days_absent,
            "consecutive_absent": self.consecutive_absent,
        }

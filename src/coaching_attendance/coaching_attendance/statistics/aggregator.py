from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import iter_days, month_start
from ..core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD, DEFAULT_TREND_DAYS
from ..core.enums import AttendanceStatus, RateBand
from .model import AttendanceStatistics, LowAttendanceAlert, StatisticsWindow, StudentRate, TrendPoint
from .rates import Trend, compute_rate, compute_trend, rate_band

logger = logging.getLogger(__name__)


def group_by_day(records: Iterable[AttendanceRecord]) -> dict[date, list[AttendanceRecord]]:
    grouped: dict[date, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        grouped[r.record_date].append(r)
    return dict(grouped)


def _present(records: Iterable[AttendanceRecord]) -> int:
    return sum(1 for r in records if r.status == AttendanceStatus.PRESENT)


def _exact_rate(s: StudentRate) -> Decimal:
    """Unrounded percentage; falls back to the stored rate when counts are absent."""
    if s.total > 0:
        return Decimal(s.present) * 100 / Decimal(s.total)
    return Decimal(str(s.rate))


class StatisticsAggregator:
    """Rates, trends and low-attendance alerts over attendance records.

    Pure computation; ``last_result`` only caches the latest summary and is
    never treated as authoritative.
    """

    def __init__(
        self,
        *,
        threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
        trend_days: int = DEFAULT_TREND_DAYS,
    ):
        self._threshold = float(threshold)
        self._trend_days = int(trend_days)
        self._last_result: Optional[AttendanceStatistics] = None

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def trend_days(self) -> int:
        return self._trend_days

    @property
    def last_result(self) -> Optional[AttendanceStatistics]:
        return self._last_result

    def compute_rate(self, present: int, total: int) -> float:
        return compute_rate(present, total)

    def compute_trend(self, current_rate: float, prior_rate: Optional[float]) -> Trend:
        return compute_trend(current_rate, prior_rate)

    def rate_band(self, rate: float) -> RateBand:
        return rate_band(rate)

    def compute_weekly_trend(
        self,
        records_by_day: Mapping[date, Sequence[AttendanceRecord]],
        *,
        end: date,
        days: Optional[int] = None,
    ) -> list[TrendPoint]:
        """One point per day ending at ``end``; days without classes rate 0."""

        days = self._trend_days if days is None else int(days)
        start = end - timedelta(days=days - 1)
        points = []
        for day in iter_days(start, end):
            day_records = records_by_day.get(day, ())
            points.append(TrendPoint(point_date=day, rate=compute_rate(_present(day_records), len(day_records))))
        return points

    def student_rates(self, records: Iterable[AttendanceRecord]) -> list[StudentRate]:
        by_student: dict[str, list[AttendanceRecord]] = defaultdict(list)
        for r in records:
            by_student[r.student.student_id].append(r)

        out: list[StudentRate] = []
        for student_id, items in by_student.items():
            items.sort(key=lambda r: (r.record_date, r.marked_at))
            student = items[-1].student

            # A day counts as absent only when every class that day was missed.
            absent_by_day: dict[date, bool] = {}
            for r in items:
                absent_by_day[r.record_date] = absent_by_day.get(r.record_date, True) and r.status == AttendanceStatus.ABSENT

            streak = 0
            for day in sorted(absent_by_day, reverse=True):
                if not absent_by_day[day]:
                    break
                streak += 1

            present = _present(items)
            out.append(
                StudentRate(
                    student_id=student_id,
                    full_name=student.full_name,
                    uid=student.uid,
                    present=present,
                    total=len(items),
                    rate=compute_rate(present, len(items)),
                    days_absent=sum(1 for absent in absent_by_day.values() if absent),
                    consecutive_absent=streak,
                )
            )
        return out

    def compute_low_attendance_alerts(
        self,
        student_rates: Iterable[StudentRate],
        threshold: Optional[float] = None,
        *,
        limit: Optional[int] = None,
    ) -> list[LowAttendanceAlert]:
        threshold = Decimal(str(self._threshold if threshold is None else threshold))
        # Compared before rounding, so 74.96% is flagged even though it displays as 75.0.
        flagged = sorted(
            (s for s in student_rates if _exact_rate(s) < threshold),
            key=lambda s: (_exact_rate(s), s.full_name.casefold(), s.student_id),
        )
        if limit is not None:
            flagged = flagged[: max(int(limit), 0)]
        return [
            LowAttendanceAlert(
                student_id=s.student_id,
                full_name=s.full_name,
                uid=s.uid,
                rate=s.rate,
                days_absent=s.days_absent,
                consecutive_absent=s.consecutive_absent,
            )
            for s in flagged
        ]

    def summarize(self, records: Sequence[AttendanceRecord], window: StatisticsWindow) -> AttendanceStatistics:
        """Build window statistics.

        ``records`` may extend before ``window.start``; the extra days only feed
        the previous-week rate and the weekly trend.
        """

        in_window = [r for r in records if window.contains(r.record_date)]
        counts = {status: 0 for status in AttendanceStatus}
        for r in in_window:
            counts[r.status] += 1

        first_of_month = month_start(window.end)
        monthly = [r for r in records if first_of_month <= r.record_date <= window.end]

        week_start = window.end - timedelta(days=self._trend_days - 1)
        prev_start = week_start - timedelta(days=self._trend_days)
        this_week = [r for r in records if week_start <= r.record_date <= window.end]
        prev_week = [r for r in records if prev_start <= r.record_date < week_start]

        result = AttendanceStatistics(
            total_classes=len({r.session.session_id for r in in_window}),
            present_count=counts[AttendanceStatus.PRESENT],
            absent_count=counts[AttendanceStatus.ABSENT],
            late_count=counts[AttendanceStatus.LATE],
            excused_count=counts[AttendanceStatus.EXCUSED],
            attendance_rate=compute_rate(counts[AttendanceStatus.PRESENT], len(in_window)),
            monthly_rate=compute_rate(_present(monthly), len(monthly)),
            weekly_rate=compute_rate(_present(this_week), len(this_week)),
            previous_weekly_rate=compute_rate(_present(prev_week), len(prev_week)) if prev_week else None,
            weekly_trend=tuple(self.compute_weekly_trend(group_by_day(records), end=window.end)),
        )
        self._last_result = result
        logger.debug(
            "Summarized %d record(s) for %s..%s: rate=%s",
            len(in_window),
            window.start.isoformat(),
            window.end.isoformat(),
            result.attendance_rate,
        )
        return result

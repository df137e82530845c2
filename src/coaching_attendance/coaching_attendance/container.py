from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import httpx

from .api.transport import ApiConfig, ApiTransport
from .attendance.engine import AttendanceMarkingEngine
from .attendance.http_attendance_repository import HttpAttendanceRepository
from .common.datetime_utils import today_local
from .common.validators import optional_status
from .core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD
from .core.enums import AttendanceStatus
from .sessions.catalog import ClassSessionCatalog
from .sessions.http_session_repository import HttpSessionRepository
from .statistics.aggregator import StatisticsAggregator
from .statistics.http_statistics_repository import HttpStatisticsRepository
from .views.coordinator import ViewCoordinator
from .views.dashboard import DashboardService


@dataclass(frozen=True)
class Container:
    transport: ApiTransport
    threshold: float
    default_status: Optional[AttendanceStatus]
    today_provider: Callable[[], date]

    def build_workspace(self, *, token: Optional[str] = None) -> ViewCoordinator:
        """One coordinator per signed-in user, with its own catalog and engines."""

        transport = self.transport.with_token(token) if token else self.transport
        sessions_repo = HttpSessionRepository(transport)
        attendance_repo = HttpAttendanceRepository(transport)
        statistics_repo = HttpStatisticsRepository(transport)

        catalog = ClassSessionCatalog(sessions_repo)
        aggregator = StatisticsAggregator(threshold=self.threshold)
        dashboard = DashboardService(sessions_repo, attendance_repo, statistics_repo, threshold=self.threshold)

        def engine_factory() -> AttendanceMarkingEngine:
            return AttendanceMarkingEngine(attendance_repo, catalog, default_status=self.default_status)

        return ViewCoordinator(
            catalog,
            attendance_repo,
            aggregator,
            dashboard,
            engine_factory=engine_factory,
            today_provider=self.today_provider,
        )


def build_container(
    *,
    api_config: dict,
    threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    default_status: Optional[str] = AttendanceStatus.PRESENT.value,
    today_provider: Callable[[], date] = today_local,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Container:
    config = ApiConfig(
        base_url=str(api_config["base_url"]),
        timeout_seconds=float(api_config.get("timeout_seconds", 10)),
        token=api_config.get("token") or None,
    )
    return Container(
        transport=ApiTransport(config, transport=http_transport),
        threshold=float(threshold),
        default_status=optional_status(default_status),
        today_provider=today_provider,
    )

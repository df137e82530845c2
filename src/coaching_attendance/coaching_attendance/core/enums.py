from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance outcome of one student in one class session."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"


class MarkingState(str, Enum):
    """Lifecycle of one marking session."""

    UNOPENED = "UNOPENED"
    INITIALIZING = "INITIALIZING"
    EDITING = "EDITING"
    SUBMITTING = "SUBMITTING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


class SessionStatus(str, Enum):
    """Filter on whether a session's attendance has been marked."""

    MARKED = "marked"
    PENDING = "pending"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class RateBand(str, Enum):
    """Display band of an attendance rate."""

    GOOD = "good"
    WARNING = "warning"
    POOR = "poor"


class AttendanceView(str, Enum):
    TODAY = "today"
    HISTORY = "history"
    STATISTICS = "statistics"
    SCHEDULE = "schedule"


class ErrorKind(str, Enum):
    """User-facing category of a failed command."""

    VALIDATION = "validation"
    STATE = "state"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    SERVER = "server"

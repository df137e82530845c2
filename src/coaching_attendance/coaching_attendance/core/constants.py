"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LOW_ATTENDANCE_THRESHOLD = 75
DEFAULT_ALERT_LIMIT = 3
DEFAULT_TREND_DAYS = 7
DEFAULT_RECENT_LIMIT = 5
DEFAULT_UPCOMING_LIMIT = 3
DEFAULT_API_TIMEOUT_SECONDS = 10.0

RATE_GOOD_THRESHOLD = 90
RATE_WARNING_THRESHOLD = 75
RATE_DECIMALS = 1

SECRET_KEY = "test-secret"

API_CONFIG = {
    "base_url": "http://attendance.test",
    "timeout_seconds": 2.0,
    "token": None,
}

LOW_ATTENDANCE_THRESHOLD = 75.0
DEFAULT_MARKING_STATUS = "PRESENT"

DEBUG = False
TESTING = True

LOG_LEVEL = "WARNING"
LOG_FORMAT = "standard"

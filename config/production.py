import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

API_CONFIG = {
    "base_url": os.getenv("API_BASE_URL", "https://api.example.invalid"),
    "timeout_seconds": float(os.getenv("API_TIMEOUT_SECONDS", "10")),
    "token": os.getenv("API_TOKEN") or None,
}

LOW_ATTENDANCE_THRESHOLD = float(os.getenv("LOW_ATTENDANCE_THRESHOLD", "75"))
DEFAULT_MARKING_STATUS = os.getenv("DEFAULT_MARKING_STATUS", "PRESENT")

DEBUG = False

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

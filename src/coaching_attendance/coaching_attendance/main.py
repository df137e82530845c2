from __future__ import annotations

import importlib
import logging
from typing import Optional

import httpx
from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.logging_setup import configure_logging
from .container import build_container

logger = logging.getLogger(__name__)


def create_app(
    settings_module: Optional[str] = None,
    *,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    api_config = getattr(settings, "API_CONFIG")

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FORMAT", "standard"))
    logger.info("settings=%s api=%s", settings_module, api_config.get("base_url"))

    container = build_container(
        api_config=api_config,
        threshold=float(getattr(settings, "LOW_ATTENDANCE_THRESHOLD", 75)),
        default_status=getattr(settings, "DEFAULT_MARKING_STATUS", "PRESENT"),
        http_transport=http_transport,
    )
    app.extensions["attendance_container"] = container
    app.extensions["attendance_workspaces"] = register_attendance(app, container)

    return app

"""Logging configuration: a readable text format for development and a JSON
format for log shipping in production."""

from __future__ import annotations

import logging
import logging.config

from pythonjsonlogger import jsonlogger


class AttendanceJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def build_logging_config(level: str = "INFO", fmt: str = "standard") -> dict:
    formatter = "json" if fmt == "json" else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
            "json": {
                "()": AttendanceJsonFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
        },
        "loggers": {
            "coaching_attendance": {"level": level.upper(), "handlers": ["console"], "propagate": False},
            "httpx": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str = "INFO", fmt: str = "standard") -> None:
    logging.config.dictConfig(build_logging_config(level, fmt))

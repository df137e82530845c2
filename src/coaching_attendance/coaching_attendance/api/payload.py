"""Field coercion for attendance API payloads.

Every helper raises ``ServerError`` so a malformed response is caught at the
client seam instead of surfacing as a missing attribute downstream.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Any, Iterator, Mapping, Optional

from ..common.datetime_utils import parse_clock_time, parse_iso_date, parse_iso_datetime
from ..core.enums import AttendanceStatus
from ..core.exceptions import ServerError


@contextmanager
def parsing(what: str) -> Iterator[None]:
    try:
        yield
    except ServerError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ServerError(f"Malformed {what} in attendance service response: {exc}") from exc


def require(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ServerError(f"Expected an object holding {key!r}")
    value = data.get(key)
    if value is None:
        raise ServerError(f"Missing field {key!r} in attendance service response")
    return value


def as_list(data: Mapping[str, Any], key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ServerError(f"Field {key!r} must be a list")
    return value


def as_str(data: Mapping[str, Any], key: str, default: Optional[str] = None) -> str:
    value = data.get(key, default) if default is not None else require(data, key)
    return str(value if value is not None else default)


def as_int(data: Mapping[str, Any], key: str, default: Optional[int] = None) -> int:
    value = data.get(key)
    if value is None:
        if default is None:
            raise ServerError(f"Missing field {key!r} in attendance service response")
        return default
    if isinstance(value, bool):
        raise ServerError(f"Field {key!r} must be a number")
    return int(value)


def as_float(data: Mapping[str, Any], key: str, default: Optional[float] = None) -> float:
    value = data.get(key)
    if value is None:
        if default is None:
            raise ServerError(f"Missing field {key!r} in attendance service response")
        return default
    return float(value)


def as_bool(data: Mapping[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ServerError(f"Field {key!r} must be a boolean")


def as_date(data: Mapping[str, Any], key: str) -> date:
    return parse_iso_date(str(require(data, key)))


def as_datetime(data: Mapping[str, Any], key: str) -> datetime:
    return parse_iso_datetime(str(require(data, key)))


def as_time(data: Mapping[str, Any], key: str) -> time:
    return parse_clock_time(str(require(data, key)))


def as_status(value: Any) -> Optional[AttendanceStatus]:
    if value is None or value == "":
        return None
    return AttendanceStatus(str(value).upper())

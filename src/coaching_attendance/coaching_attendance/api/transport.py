from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

from ..core.constants import DEFAULT_API_TIMEOUT_SECONDS
from ..core.exceptions import AuthorizationError, NetworkError, NotFoundError, ServerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiConfig:
    base_url: str
    timeout_seconds: float = DEFAULT_API_TIMEOUT_SECONDS
    token: Optional[str] = None


class ApiTransport:
    """Async HTTP access to the attendance API.

    Note: A short-lived client is opened per call so the transport can be
    shared by views running on different event loops.
    """

    def __init__(
        self,
        config: ApiConfig,
        *,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._token = token or config.token
        self._transport = transport

    def with_token(self, token: Optional[str]) -> "ApiTransport":
        return ApiTransport(self._config, token=token, transport=self._transport)

    @asynccontextmanager
    async def client(self) -> AsyncIterator[httpx.AsyncClient]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout_seconds,
            headers=headers,
            transport=self._transport,
        ) as client:
            yield client

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with self.client() as client:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                logger.warning("%s %s failed: %s", method, path, exc)
                raise NetworkError("Could not reach the attendance service") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)
        raise_for_status(response)
        return response

    async def get_json(self, path: str, *, params: Optional[dict] = None) -> dict:
        return decode_json(await self.request("GET", path, params=params or None))

    async def post_json(self, path: str, payload: dict) -> dict:
        return decode_json(await self.request("POST", path, json=payload))

    async def get_bytes(self, path: str, *, params: Optional[dict] = None) -> bytes:
        return (await self.request("GET", path, params=params or None)).content


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or default)
    return default


def raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return
    if status in (401, 403):
        raise AuthorizationError(_error_message(response, "You are not allowed to perform this action"))
    if status == 404:
        raise NotFoundError(_error_message(response, "The requested item no longer exists"))
    logger.error("Attendance API returned %s for %s", status, response.request.url)
    raise ServerError(_error_message(response, f"Attendance service error ({status})"), status_code=status)


def decode_json(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError as exc:
        raise ServerError("Attendance service returned malformed JSON", status_code=response.status_code) from exc
    if not isinstance(body, dict):
        raise ServerError("Attendance service returned an unexpected payload", status_code=response.status_code)
    return body

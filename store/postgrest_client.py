"""
Async PostgREST client for the hosted subscription store.

Only the read path used by the relay is implemented.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence
import logging

import aiohttp

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"


class PostgrestAPIError(RuntimeError):
    """Raised when the store responds with an error."""

    def __init__(self, status: int, message: str, details: Any | None = None):
        super().__init__(f"PostgREST error {status}: {message}")
        self.status = status
        self.message = message
        self.details = details


class PostgrestClient:
    """Thin async wrapper around the PostgREST table endpoints."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._own_session = session is None
        self._session = session or aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self._own_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "PostgrestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str],
        filters: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {"select": ",".join(columns)}
        if filters:
            params.update(filters)
        data = await self._request("GET", f"{REST_PREFIX}/{table}", params=params)
        if not isinstance(data, list):
            raise PostgrestAPIError(200, "unexpected response shape", data)
        return [row for row in data if isinstance(row, dict)]

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Accept": "application/json",
        }
        logger.debug("PostgREST %s %s params=%s", method, url, params)
        async with self._session.request(method, url, headers=headers, params=params) as resp:
            data = await self._parse_response(resp)
            if resp.status >= 400:
                raise PostgrestAPIError(resp.status, data if isinstance(data, str) else str(data), data)
            return data

    @staticmethod
    async def _parse_response(resp: aiohttp.ClientResponse) -> Any:
        ctype = resp.headers.get("Content-Type", "")
        if "application/json" in ctype:
            return await resp.json()
        return await resp.text()


__all__ = ["PostgrestAPIError", "PostgrestClient", "REST_PREFIX"]

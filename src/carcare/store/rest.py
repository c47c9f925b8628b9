"""Realtime Database REST store over aiohttp."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import aiohttp

from carcare._constants import USER_AGENT
from carcare._redact import redact_for_log
from carcare.exceptions import CarCareStoreError
from carcare.store.base import is_empty, join_path, split_path

_logger = logging.getLogger(__name__)


class RestStore:
    """Store backed by the Firebase Realtime Database REST API.

    ``GET``/``PUT``/``DELETE`` address ``{base_url}/{path}.json``; multi-path
    updates are one ``PATCH`` against the root, which the database applies
    atomically.
    """

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        auth: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._auth = auth

    def _url(self, path: str) -> str:
        segments = "/".join(quote(segment, safe="") for segment in split_path(path))
        return f"{self._base_url}/{segments}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth} if self._auth else {}

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        url = self._url(path)
        data = None if body is None else json.dumps(body, separators=(",", ":"))
        headers = {"content-type": "application/json; charset=UTF-8", "user-agent": USER_AGENT}

        _logger.debug("%s %s %s", method, url, redact_for_log(body) if body is not None else "")

        try:
            async with self._http.request(method, url, params=self._params(), data=data, headers=headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise CarCareStoreError(
                        f"HTTP {resp.status} for {method} {path}: {text[:200]}",
                        path=path,
                        status_code=resp.status,
                    )
        except CarCareStoreError:
            raise
        except aiohttp.ClientError as exc:
            raise CarCareStoreError(f"{method} {path} failed: {exc}", path=path) from exc

        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise CarCareStoreError(f"Invalid JSON for {method} {path}: {text[:200]}", path=path) from exc

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def set(self, path: str, value: Any) -> None:
        if is_empty(value):
            await self.delete(path)
            return
        await self._request("PUT", path, value)

    async def update(self, values: Mapping[str, Any]) -> None:
        if not values:
            return
        body = {join_path(path): (None if is_empty(value) else value) for path, value in values.items()}
        await self._request("PATCH", "", body)

    async def delete(self, path: str) -> None:
        await self._request("DELETE", path)

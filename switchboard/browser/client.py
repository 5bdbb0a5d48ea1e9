# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""HTTP client for a remote browser automation service (see switchboard.service.app)."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Tuple

import aiohttp

from switchboard.browser.service import BrowserObservation, BrowserService
from switchboard.exceptions import (
    BrowserActionError,
    BrowserServiceError,
    ElementNotEditableError,
    ElementNotFoundError,
    ElementNotVisibleError,
    InvalidActionParamsError,
    SessionNotFoundError,
    UnknownActionError,
)
from switchboard.utils.logger import logger

_REASON_ERRORS = {
    cls.reason: cls
    for cls in (
        ElementNotFoundError,
        ElementNotVisibleError,
        ElementNotEditableError,
        InvalidActionParamsError,
    )
}


class RemoteBrowserService(BrowserService):
    """
    BrowserService implementation that talks to the HTTP browser service.

    Example:
        >>> service = RemoteBrowserService("http://localhost:3001")
        >>> session_id = await service.create_session()
    """

    def __init__(self, base_url: str, timeout_seconds: float = 60.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def _post(self, path: str, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().post(url, json=payload) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = {"message": await response.text()}
                return response.status, data or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[BROWSER] Request to {url} failed: {e}")
            raise BrowserServiceError(f"Browser service unreachable: {e}") from e

    async def create_session(self) -> str:
        status, data = await self._post("/session/create", {})
        if status != 200 or not data.get("session_id"):
            raise BrowserServiceError(f"Failed to create session: {status} {data.get('message', '')}")
        return data["session_id"]

    async def execute_action(
        self, session_id: str, action: str, params: Optional[Dict[str, Any]] = None
    ) -> BrowserObservation:
        status, data = await self._post(
            "/session/execute",
            {"session_id": session_id, "action": action, "params": params or {}},
        )
        if status == 200:
            return BrowserObservation.from_dict(data)

        message = data.get("message") or data.get("detail") or f"HTTP {status}"
        reason = data.get("reason")
        selector = (params or {}).get("selector")
        if status == 404:
            raise SessionNotFoundError(session_id)
        if reason == "unknown_action":
            raise UnknownActionError(action)
        if reason in _REASON_ERRORS:
            raise _REASON_ERRORS[reason](message, selector=selector)
        if status in (400, 422):
            raise BrowserActionError(message, selector=selector)
        raise BrowserServiceError(f"Browser service error: {status} {message}")

    async def destroy_session(self, session_id: str) -> bool:
        status, data = await self._post("/session/destroy", {"session_id": session_id})
        if status == 404:
            return False
        if status != 200:
            raise BrowserServiceError(f"Failed to destroy session: {status} {data.get('message', '')}")
        return True

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

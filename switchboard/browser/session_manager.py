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

"""
Browser session manager.

Keeps one browser session per user. A persisted session id is re-validated
with a no-op probe before it is reused; ids whose context died (service
restart, crash) are deleted from the index and replaced transparently. The
find-or-create sequence runs under a per-user lock so two concurrent
requests from the same user end up sharing one session.

The manager also enforces the selector contract: ``type_text`` and
``click_element`` may only target selectors present in the session's most
recent action surface.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from switchboard.browser.service import BrowserObservation, BrowserService
from switchboard.browser.surface import ActionSurface
from switchboard.collaborators import SessionIndex
from switchboard.exceptions import (
    BrowserActionError,
    BrowserError,
    SelectorNotInSurfaceError,
    SessionNotFoundError,
    UnknownActionError,
)
from switchboard.tools.registry import BROWSER_PREFIX
from switchboard.types import ToolResult
from switchboard.utils.locks import KeyedLock
from switchboard.utils.logger import logger

SELECTOR_ACTIONS = ("type_text", "click_element")

TOOL_ACTIONS = {
    "navigate": "navigate",
    "type_text": "type_text",
    "click_element": "click_element",
    "get_surface": "get_surface",
}


@dataclass
class BrowserSession:
    """A live browser session owned by one user."""

    id: str
    user_id: str
    created_at: datetime = field(default_factory=datetime.now)


class BrowserSessionManager:
    """
    Per-user browser session lifecycle and action execution.

    Example:
        >>> manager = BrowserSessionManager(PlaywrightBrowserService(), InMemorySessionIndex())
        >>> session_id = await manager.get_or_create_session("user-1")
        >>> obs = await manager.execute(session_id, "navigate", {"url": "https://example.com"})
    """

    def __init__(self, service: BrowserService, index: SessionIndex) -> None:
        self.service = service
        self.index = index
        self.sessions: Dict[str, BrowserSession] = {}
        self._surfaces: Dict[str, ActionSurface] = {}
        self._locks = KeyedLock()

    async def _probe(self, session_id: str) -> Optional[ActionSurface]:
        """Return the session's current surface, or None if it is gone."""
        try:
            observation = await self.service.execute_action(session_id, "get_surface", {})
        except BrowserError as e:
            logger.info(f"[BROWSER] Probe failed for session {session_id}: {e}")
            return None
        return observation.surface

    async def get_or_create_session(self, user_id: str) -> str:
        """Return the user's live session id, creating one when needed."""
        async with self._locks.hold(user_id):
            existing = await self.index.get(user_id)
            if existing:
                surface = await self._probe(existing)
                if surface is not None:
                    self._surfaces[existing] = surface
                    self.sessions.setdefault(existing, BrowserSession(existing, user_id))
                    logger.debug(f"[BROWSER] Reusing session {existing} for user {user_id}")
                    return existing

                logger.warning(f"[BROWSER] Session {existing} is stale, recreating for user {user_id}")
                await self.index.delete(user_id, existing)
                self._forget(existing)

            session_id = await self.service.create_session()
            await self.index.put(user_id, session_id)
            self.sessions[session_id] = BrowserSession(session_id, user_id)
            logger.info(f"[BROWSER] Created session {session_id} for user {user_id}")
            return session_id

    def current_surface(self, session_id: str) -> Optional[ActionSurface]:
        return self._surfaces.get(session_id)

    def _forget(self, session_id: str) -> None:
        self._surfaces.pop(session_id, None)
        self.sessions.pop(session_id, None)

    async def execute(
        self, session_id: str, action: str, params: Optional[Dict[str, Any]] = None
    ) -> BrowserObservation:
        """
        Execute ``action`` and remember the resulting surface.

        Raises:
            SelectorNotInSurfaceError: Selector absent from the latest surface
            BrowserError: Any failure reported by the service
        """
        params = params or {}
        if action in SELECTOR_ACTIONS:
            selector = params.get("selector")
            surface = self._surfaces.get(session_id)
            if not selector or surface is None or not surface.contains(selector):
                raise SelectorNotInSurfaceError(
                    f"Selector {selector!r} is not in the current action surface. "
                    "Use a selector copied from the latest surface.",
                    selector=selector,
                )

        try:
            observation = await self.service.execute_action(session_id, action, params)
        except SessionNotFoundError:
            self._forget(session_id)
            raise

        self._surfaces[session_id] = observation.surface
        return observation

    async def destroy(self, session_id: str) -> bool:
        """Release the browser context. The persisted index is left untouched."""
        self._forget(session_id)
        return await self.service.destroy_session(session_id)

    async def run_tool(self, user_id: str, tool_name: str, args: Dict[str, Any]) -> ToolResult:
        """Executor entry point for ``browser_*`` tools."""
        start = time.time()
        name = tool_name[len(BROWSER_PREFIX):] if tool_name.startswith(BROWSER_PREFIX) else tool_name
        action = TOOL_ACTIONS.get(name)
        if action is None:
            return ToolResult.error_result(f"Unknown browser action: {name}", error_code="UNKNOWN_ACTION")

        session_id = None
        try:
            session_id = await self.get_or_create_session(user_id)
            try:
                observation = await self.execute(session_id, action, args)
            except SessionNotFoundError:
                # Context died between probe and action
                await self.index.delete(user_id, session_id)
                session_id = await self.get_or_create_session(user_id)
                observation = await self.execute(session_id, action, args)
        except BrowserActionError as e:
            surface = self._surfaces.get(session_id) if session_id else None
            return ToolResult.error_result(
                str(e),
                error_code=e.reason.upper(),
                data={"surface": surface.render()} if surface is not None else None,
            )
        except UnknownActionError as e:
            return ToolResult.error_result(str(e), error_code="UNKNOWN_ACTION")
        except BrowserError as e:
            logger.error(f"[BROWSER] {tool_name} failed for user {user_id}: {e}")
            return ToolResult.error_result(
                f"Error executing browser action: {e}", error_code="BROWSER_ERROR"
            )

        result = ToolResult.success_result(observation.to_dict(), session_id=session_id)
        result.execution_time_ms = (time.time() - start) * 1000
        return result

    async def close(self) -> None:
        """Destroy every session this manager knows about."""
        for session_id in list(self.sessions):
            try:
                await self.destroy(session_id)
            except BrowserError as e:
                logger.warning(f"[BROWSER] Failed to destroy session {session_id}: {e}")
        await self.service.close()

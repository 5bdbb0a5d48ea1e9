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
Browser automation service.

Owns one Chromium browser and an in-memory map of session id to
BrowserContext. Every action returns a BrowserObservation carrying the
freshly recomputed action surface of the session's page.

Actions:
    navigate        {url}
    type_text       {selector, text}
    click_element   {selector, description?}
    get_surface     {}
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from switchboard.browser.surface import ActionSurface, extract_action_surface
from switchboard.config import BrowserConfig
from switchboard.exceptions import (
    BrowserActionError,
    BrowserError,
    BrowserServiceError,
    ElementNotEditableError,
    ElementNotFoundError,
    ElementNotVisibleError,
    InvalidActionParamsError,
    SessionNotFoundError,
    UnknownActionError,
)
from switchboard.utils.logger import logger

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ACTIONS = ("navigate", "type_text", "click_element", "get_surface")


@dataclass
class BrowserObservation:
    """Result of one browser action."""

    action: str
    surface: ActionSurface = field(default_factory=ActionSurface)
    url: Optional[str] = None
    selector: Optional[str] = None
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "action": self.action,
            "url": self.url,
            "selector": self.selector,
            "surface": self.surface.render(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BrowserObservation:
        return cls(
            action=data.get("action", ""),
            surface=ActionSurface.parse(data.get("surface")),
            url=data.get("url"),
            selector=data.get("selector"),
            success=bool(data.get("success", True)),
        )


class BrowserService(ABC):
    """Interface of the browser automation service."""

    @abstractmethod
    async def create_session(self) -> str:
        pass

    @abstractmethod
    async def execute_action(
        self, session_id: str, action: str, params: Optional[Dict[str, Any]] = None
    ) -> BrowserObservation:
        """
        Run ``action`` in the session.

        Raises:
            SessionNotFoundError: Unknown session id
            UnknownActionError: Unknown action name
            BrowserActionError: The action failed against an element
        """
        pass

    @abstractmethod
    async def destroy_session(self, session_id: str) -> bool:
        pass

    async def close(self) -> None:
        return None


def _require(params: Dict[str, Any], *names: str) -> List[str]:
    values = []
    for name in names:
        value = params.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidActionParamsError(f"Missing required parameter '{name}'")
        values.append(str(value))
    return values


class PlaywrightBrowserService(BrowserService):
    """
    In-process browser service backed by Playwright.

    Example:
        >>> service = PlaywrightBrowserService(BrowserConfig(headless=True))
        >>> session_id = await service.create_session()
        >>> obs = await service.execute_action(session_id, "navigate", {"url": "https://example.com"})
        >>> print(obs.surface.render())
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.config = config or BrowserConfig()
        self.user_agent = user_agent
        self.sessions: Dict[str, BrowserContext] = {}
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._start_lock = asyncio.Lock()
        self._actions: Dict[str, Callable[[Page, Dict[str, Any]], Awaitable[Optional[str]]]] = {
            "navigate": self._navigate,
            "type_text": self._type_text,
            "click_element": self._click_element,
            "get_surface": self._get_surface,
        }

    async def start(self) -> None:
        """Launch Chromium once. Safe to call repeatedly."""
        async with self._start_lock:
            if self._browser is not None:
                return
            try:
                logger.info(f"[BROWSER] Starting chromium (headless={self.config.headless})")
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
            except Exception as e:
                logger.error(f"[BROWSER] Failed to start browser: {e}")
                raise BrowserServiceError(f"Failed to start browser: {e}") from e

    async def create_session(self) -> str:
        await self.start()
        try:
            context = await self._browser.new_context(
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                user_agent=self.user_agent,
                locale=self.config.locale,
                timezone_id=self.config.timezone_id,
            )
        except Exception as e:
            raise BrowserServiceError(f"Failed to create browser context: {e}") from e

        session_id = str(uuid.uuid4())
        self.sessions[session_id] = context
        logger.info(f"[BROWSER] Session created: {session_id}")
        return session_id

    async def _page_for(self, context: BrowserContext) -> Page:
        pages = context.pages
        if pages:
            return pages[0]
        return await context.new_page()

    async def execute_action(
        self, session_id: str, action: str, params: Optional[Dict[str, Any]] = None
    ) -> BrowserObservation:
        context = self.sessions.get(session_id)
        if context is None:
            raise SessionNotFoundError(session_id)

        handler = self._actions.get(action)
        if handler is None:
            raise UnknownActionError(action)

        params = params or {}
        try:
            page = await self._page_for(context)
            selector = await handler(page, params)
            surface = await extract_action_surface(
                page,
                max_links=self.config.max_links,
                idle_timeout_ms=self.config.navigation_timeout_ms,
            )
        except BrowserError:
            raise
        except Exception as e:
            logger.error(f"[BROWSER] {action} failed in session {session_id}: {e}")
            raise BrowserActionError(f"{action} failed: {e}", selector=params.get("selector")) from e

        return BrowserObservation(action=action, surface=surface, url=page.url, selector=selector)

    # ---------------------------------------------------------------- actions

    async def _navigate(self, page: Page, params: Dict[str, Any]) -> None:
        (url,) = _require(params, "url")
        logger.info(f"[BROWSER] Navigating to {url}")
        await page.goto(url, wait_until="networkidle", timeout=self.config.navigation_timeout_ms)
        await page.wait_for_timeout(self.config.settle_delay_ms)
        return None

    async def _type_text(self, page: Page, params: Dict[str, Any]) -> str:
        selector, text = _require(params, "selector", "text")
        element = await page.query_selector(selector)
        if element is None:
            raise ElementNotFoundError(f"Element not found: {selector}", selector=selector)
        if not await element.is_visible():
            raise ElementNotVisibleError(f"Element not visible: {selector}", selector=selector)
        if not await element.is_editable():
            raise ElementNotEditableError(f"Element not editable: {selector}", selector=selector)

        await page.fill(selector, text, timeout=self.config.action_timeout_ms)
        await page.wait_for_timeout(self.config.settle_delay_ms // 2)
        return selector

    async def _click_element(self, page: Page, params: Dict[str, Any]) -> str:
        (selector,) = _require(params, "selector")
        element = await page.query_selector(selector)
        if element is None:
            raise ElementNotFoundError(f"Element not found: {selector}", selector=selector)
        if not await element.is_visible():
            raise ElementNotVisibleError(f"Element not visible: {selector}", selector=selector)

        description = params.get("description") or selector
        logger.info(f"[BROWSER] Clicking {description}")
        await page.click(selector, timeout=self.config.action_timeout_ms)
        await page.wait_for_load_state("networkidle", timeout=self.config.navigation_timeout_ms)
        return selector

    async def _get_surface(self, page: Page, params: Dict[str, Any]) -> None:
        return None

    # ---------------------------------------------------------------- lifecycle

    async def destroy_session(self, session_id: str) -> bool:
        context = self.sessions.pop(session_id, None)
        if context is None:
            return False
        try:
            await context.close()
        except Exception as e:
            logger.warning(f"[BROWSER] Error closing context for {session_id}: {e}")
        logger.info(f"[BROWSER] Session destroyed: {session_id}")
        return True

    async def close(self) -> None:
        for session_id in list(self.sessions):
            await self.destroy_session(session_id)
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("[BROWSER] Browser service closed")

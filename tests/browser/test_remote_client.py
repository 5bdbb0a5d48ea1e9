# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Tests for RemoteBrowserService status and reason mapping."""

from unittest.mock import AsyncMock, patch

import pytest

from switchboard.browser.client import RemoteBrowserService
from switchboard.exceptions import (
    BrowserActionError,
    BrowserServiceError,
    ElementNotFoundError,
    SessionNotFoundError,
    UnknownActionError,
)


@pytest.fixture
def client():
    return RemoteBrowserService("http://browser:3001/")


@pytest.mark.asyncio
class TestRemoteBrowserService:
    """HTTP responses are mapped onto the browser error family."""

    async def test_create_session(self, client):
        with patch.object(client, "_post", new_callable=AsyncMock, return_value=(200, {"session_id": "abc"})) as post:
            assert await client.create_session() == "abc"

        post.assert_awaited_once_with("/session/create", {})

    async def test_create_session_failure(self, client):
        with patch.object(client, "_post", new_callable=AsyncMock, return_value=(500, {"message": "no browser"})):
            with pytest.raises(BrowserServiceError):
                await client.create_session()

    async def test_execute_parses_observation(self, client):
        body = {
            "success": True,
            "action": "navigate",
            "url": "https://example.com",
            "selector": None,
            "surface": "BUTTON: #login (Login)",
        }
        with patch.object(client, "_post", new_callable=AsyncMock, return_value=(200, body)) as post:
            observation = await client.execute_action("abc", "navigate", {"url": "https://example.com"})

        assert observation.surface.contains("#login")
        assert observation.url == "https://example.com"
        post.assert_awaited_once_with(
            "/session/execute",
            {"session_id": "abc", "action": "navigate", "params": {"url": "https://example.com"}},
        )

    @pytest.mark.parametrize(
        "status,body,error",
        [
            (404, {"message": "Session not found: abc", "reason": "session_not_found"}, SessionNotFoundError),
            (400, {"message": "Unknown action: fly", "reason": "unknown_action"}, UnknownActionError),
            (422, {"message": "Element not found: #x", "reason": "element_not_found"}, ElementNotFoundError),
            (422, {"message": "Timeout", "reason": "action_failed"}, BrowserActionError),
            (422, {"detail": [{"msg": "field required"}]}, BrowserActionError),
            (502, {"message": "bad gateway"}, BrowserServiceError),
        ],
    )
    async def test_error_mapping(self, client, status, body, error):
        with patch.object(client, "_post", new_callable=AsyncMock, return_value=(status, body)):
            with pytest.raises(error):
                await client.execute_action("abc", "click_element", {"selector": "#x"})

    async def test_element_error_keeps_selector(self, client):
        body = {"message": "Element not found: #x", "reason": "element_not_found"}
        with patch.object(client, "_post", new_callable=AsyncMock, return_value=(422, body)):
            with pytest.raises(ElementNotFoundError) as exc_info:
                await client.execute_action("abc", "click_element", {"selector": "#x"})

        assert exc_info.value.selector == "#x"

    async def test_destroy(self, client):
        with patch.object(client, "_post", new_callable=AsyncMock, side_effect=[(200, {}), (404, {})]):
            assert await client.destroy_session("abc") is True
            assert await client.destroy_session("abc") is False


def test_base_url_is_normalized(client):
    assert client.base_url == "http://browser:3001"

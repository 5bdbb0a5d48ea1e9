# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""
Shared test fixtures for the Switchboard test suite.

This module provides common fixtures used across all test categories:
- Scripted backend adapters
- A fake browser automation service
- Fake Playwright pages and elements
- In-memory collaborators
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from switchboard.browser.service import BrowserObservation, BrowserService
from switchboard.browser.session_manager import BrowserSessionManager
from switchboard.browser.surface import ActionSurface
from switchboard.collaborators import (
    InMemoryCredentialStore,
    InMemorySessionIndex,
    InMemoryWorkspaceWriter,
)
from switchboard.exceptions import ElementNotFoundError, SessionNotFoundError, UnknownActionError
from switchboard.llm.base import BackendAdapter
from switchboard.types import (
    GEMINI_FLASH,
    BackendConfig,
    BackendReply,
    ChatTurn,
    ExecutionContext,
    ToolInvocation,
    ToolResult,
    ToolSpec,
)
from switchboard.utils.retry import NO_RETRY


# ==================== Environment Setup ====================

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    os.environ.setdefault("SWITCHBOARD_LOG_LEVEL", "warning")
    yield


# ==================== Scripted backend ====================

class ScriptedAdapter(BackendAdapter):
    """
    Backend adapter that replays scripted replies.

    The conversation format is a neutral list of dicts so tests can inspect
    exactly what the loop sent on each step.
    """

    def __init__(
        self,
        replies: Sequence[Union[BackendReply, Exception]] = (),
        config: BackendConfig = GEMINI_FLASH,
        verdict: Union[str, Exception] = "SIMPLE",
    ) -> None:
        super().__init__(config, retry_policy=NO_RETRY)
        self.replies = list(replies)
        self.verdict = verdict
        self.sends: List[Dict[str, Any]] = []
        self.prompts: List[str] = []
        self.closed = False

    @staticmethod
    def text(text: str) -> BackendReply:
        return BackendReply(text=text)

    @staticmethod
    def calls(*invocations: Tuple[str, Dict[str, Any]], text: str = "") -> BackendReply:
        return BackendReply(
            text=text,
            invocations=[
                ToolInvocation(name=name, arguments=dict(args), call_id=f"call_{i}")
                for i, (name, args) in enumerate(invocations)
            ],
        )

    def render_tools(self, specs: Sequence[ToolSpec]) -> List[str]:
        return [spec.name for spec in specs]

    def render_history(self, turns: Sequence[ChatTurn], prompt: str) -> List[Dict[str, Any]]:
        return [
            {"role": turn.role.value, "text": turn.text}
            for turn in self.normalize_turns(list(turns) + [ChatTurn.user(prompt)])
        ]

    def parse_response(self, raw: BackendReply) -> BackendReply:
        return raw

    def render_tool_results(
        self, reply: BackendReply, results: Sequence[ToolResult]
    ) -> List[Dict[str, Any]]:
        return [
            {"role": "assistant", "calls": [inv.name for inv in reply.invocations]},
            {"role": "tool", "results": [result.to_payload() for result in results]},
        ]

    async def send(self, conversation, rendered_tools, system_prompt=None):
        self.sends.append(
            {
                "conversation": list(conversation),
                "tools": list(rendered_tools),
                "system_prompt": system_prompt,
            }
        )
        if not self.replies:
            raise AssertionError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        if isinstance(self.verdict, Exception):
            raise self.verdict
        return self.verdict

    async def close(self) -> None:
        self.closed = True


class FakeFactory:
    """Stands in for BackendFactory, keyed by backend identifier."""

    def __init__(self, adapters: Dict[str, BackendAdapter]) -> None:
        self.adapters = adapters
        self.requested: List[str] = []
        self.closed = False

    def get(self, backend: BackendConfig) -> BackendAdapter:
        self.requested.append(backend.identifier)
        return self.adapters[backend.identifier]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_adapter():
    """Factory for scripted adapters."""
    return ScriptedAdapter


@pytest.fixture
def fake_factory():
    return FakeFactory


# ==================== Fake browser service ====================

class FakeBrowserService(BrowserService):
    """
    In-memory browser service.

    ``pages`` maps a URL to its rendered action surface and ``transitions``
    maps (url, selector) to the URL a click leads to.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        transitions: Optional[Dict[Tuple[str, str], str]] = None,
    ) -> None:
        self.pages = pages or {}
        self.transitions = transitions or {}
        self.sessions: Dict[str, str] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.typed: List[Tuple[str, str]] = []
        self.destroyed: List[str] = []
        self.created = 0
        self.closed = False

    def surface_for(self, url: str) -> ActionSurface:
        return ActionSurface.parse(self.pages.get(url, ""))

    def actions(self) -> List[str]:
        return [action for _, action, _ in self.calls]

    async def create_session(self) -> str:
        self.created += 1
        session_id = f"session-{self.created}"
        self.sessions[session_id] = "about:blank"
        return session_id

    async def execute_action(self, session_id, action, params=None) -> BrowserObservation:
        params = params or {}
        self.calls.append((session_id, action, dict(params)))
        if session_id not in self.sessions:
            raise SessionNotFoundError(session_id)

        url = self.sessions[session_id]
        selector = params.get("selector")
        if action == "navigate":
            url = params["url"]
        elif action in ("type_text", "click_element"):
            if not self.surface_for(url).contains(selector):
                raise ElementNotFoundError(f"Element not found: {selector}", selector=selector)
            if action == "type_text":
                self.typed.append((selector, params.get("text")))
            else:
                url = self.transitions.get((url, selector), url)
        elif action != "get_surface":
            raise UnknownActionError(action)

        self.sessions[session_id] = url
        return BrowserObservation(
            action=action, surface=self.surface_for(url), url=url, selector=selector
        )

    async def destroy_session(self, session_id: str) -> bool:
        self.destroyed.append(session_id)
        return self.sessions.pop(session_id, None) is not None

    async def close(self) -> None:
        self.closed = True


EXAMPLE_PAGES = {
    "https://example.com": (
        'BUTTON: #login (Login)\n'
        'LINK: text="Pricing" (/pricing)\n'
        'HEADING_1: text="Example" (Example)'
    ),
    "https://example.com/login": (
        'INPUT: [placeholder="Email"] (Email)\n'
        'BUTTON: text="Sign in" (Sign in)\n'
        'HEADING_1: text="Welcome back" (Welcome back)'
    ),
}

EXAMPLE_TRANSITIONS = {
    ("https://example.com", "#login"): "https://example.com/login",
}


@pytest.fixture
def browser_service() -> FakeBrowserService:
    return FakeBrowserService(EXAMPLE_PAGES, EXAMPLE_TRANSITIONS)


@pytest.fixture
def session_index() -> InMemorySessionIndex:
    return InMemorySessionIndex()


@pytest.fixture
def session_manager(browser_service, session_index) -> BrowserSessionManager:
    return BrowserSessionManager(browser_service, session_index)


# ==================== Fake Playwright page ====================

class FakeElement:
    """Element handle with the subset of the Playwright API the surface uses."""

    def __init__(
        self,
        text: Optional[str] = None,
        visible: bool = True,
        editable: bool = True,
        **attributes: str,
    ) -> None:
        self.text = text
        self.visible = visible
        self.editable = editable
        self.attributes = {key.replace("_", "-"): value for key, value in attributes.items()}

    async def is_visible(self) -> bool:
        return self.visible

    async def is_editable(self) -> bool:
        return self.editable

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    async def text_content(self) -> Optional[str]:
        return self.text


class FakePage:
    """
    Page whose ``query_selector_all`` answers from a selector -> elements map.

    Unknown selectors return no elements.
    """

    def __init__(self, elements: Optional[Dict[str, List[FakeElement]]] = None, url: str = "about:blank"):
        self.elements = elements or {}
        self.url = url
        self.filled: List[Tuple[str, str]] = []
        self.clicked: List[str] = []
        self.load_states: List[str] = []

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        return list(self.elements.get(selector, []))

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        matches = self.elements.get(selector, [])
        return matches[0] if matches else None

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        self.load_states.append(state)

    async def wait_for_timeout(self, timeout: float) -> None:
        return None

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.url = url

    async def fill(self, selector: str, value: str, **kwargs: Any) -> None:
        self.filled.append((selector, value))

    async def click(self, selector: str, **kwargs: Any) -> None:
        self.clicked.append(selector)


@pytest.fixture
def fake_element():
    return FakeElement


@pytest.fixture
def fake_page():
    return FakePage


# ==================== Collaborators ====================

@pytest.fixture
def credentials() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def workspace_writer() -> InMemoryWorkspaceWriter:
    return InMemoryWorkspaceWriter()


@pytest.fixture
def make_context(credentials):
    """Factory for ExecutionContext with sensible defaults."""

    def _make(
        query: str = "hello",
        user_id: str = "user-1",
        retrieved_context: str = "",
        history: Sequence[ChatTurn] = (),
    ) -> ExecutionContext:
        return ExecutionContext(
            user_id=user_id,
            query=query,
            history=tuple(history),
            retrieved_context=retrieved_context,
            credentials=credentials,
        )

    return _make

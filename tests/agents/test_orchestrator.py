# Copyright 2026 Firefly Software Solutions Inc
# SPDX-License-Identifier: Apache-2.0

"""Tests for the orchestrator: routing, toolsets and the fallback policy."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from switchboard.agents.classifier import TaskClassifier
from switchboard.agents.orchestrator import Orchestrator
from switchboard.collaborators import StaticRetrievalProvider
from switchboard.config import SwitchboardConfig
from switchboard.exceptions import AuthenticationError, BackendError, OrchestrationError, RateLimitError
from switchboard.llm.factory import BackendFactory
from switchboard.tools.executor import ToolExecutor
from switchboard.types import (
    CLAUDE_SONNET,
    GEMINI_FLASH,
    GEMINI_PRO,
    TaskCategory,
    ToolSpec,
)

SEARCH_PAGES = ToolSpec(
    name="search_pages",
    description="Search workspace pages",
    parameters={"type": "object", "properties": {"query": {"type": "string"}}},
)


def build(fake_factory, adapters, verdict="SIMPLE", **kwargs):
    """Orchestrator wired with scripted adapters and an in-memory metrics mock."""
    factory = fake_factory(adapters)
    classifier_adapter = kwargs.pop("classifier_adapter")
    classifier_adapter.verdict = verdict
    metrics = MagicMock()
    orchestrator = Orchestrator(
        config=SwitchboardConfig(),
        factory=factory,
        classifier=TaskClassifier(classifier_adapter),
        executor=kwargs.pop("executor", ToolExecutor()),
        metrics=metrics,
        **kwargs,
    )
    return orchestrator, factory, metrics


class TestRouting:
    """Category to backend routing."""

    @pytest.mark.asyncio
    async def test_simple_runs_on_flash(self, scripted_adapter, fake_factory, make_context):
        flash = scripted_adapter([scripted_adapter.calls(("answer_user", {"answer": "Hi!"}))])
        orchestrator, factory, metrics = build(
            fake_factory, {GEMINI_FLASH.identifier: flash}, classifier_adapter=scripted_adapter()
        )

        result = await orchestrator.orchestrate(make_context("hello"))

        assert result.answer == "Hi!"
        assert result.backend == "gemini:gemini-2.0-flash"
        assert result.category == TaskCategory.SIMPLE
        assert result.fell_back is False
        assert result.steps == 1
        assert flash.sends[0]["tools"] == ["answer_user"]
        metrics.record.assert_called_once()

    @pytest.mark.asyncio
    async def test_complex_runs_on_sonnet_with_all_builtins(self, scripted_adapter, fake_factory, make_context):
        sonnet = scripted_adapter([scripted_adapter.text("done")], config=CLAUDE_SONNET)
        orchestrator, _, _ = build(
            fake_factory,
            {CLAUDE_SONNET.identifier: sonnet},
            verdict="COMPLEX",
            classifier_adapter=scripted_adapter(),
        )

        result = await orchestrator.orchestrate(make_context("research vendors and compare them"))

        assert result.backend == "anthropic:claude-sonnet-4-20250514"
        tools = sonnet.sends[0]["tools"]
        assert tools[0] == "answer_user"
        assert "add_workspace_item" in tools
        assert "browser_navigate" in tools
        assert "BROWSER:" in sonnet.sends[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_configured_backend_override(self, scripted_adapter, fake_factory, make_context):
        pro = scripted_adapter([scripted_adapter.text("ok")], config=GEMINI_PRO)
        factory = fake_factory({GEMINI_PRO.identifier: pro})
        orchestrator = Orchestrator(
            config=SwitchboardConfig(backends={"SIMPLE": "gemini:gemini-2.5-pro"}),
            factory=factory,
            classifier=TaskClassifier(scripted_adapter(verdict="SIMPLE")),
            metrics=MagicMock(),
        )

        result = await orchestrator.orchestrate(make_context("hello"))

        assert result.backend == "gemini:gemini-2.5-pro"


class TestExternalTools:
    """MCP tools are offered for workspace categories when a token exists."""

    @pytest.mark.asyncio
    async def test_mcp_tools_added_with_token(self, scripted_adapter, fake_factory, make_context, credentials):
        credentials.set_token("user-1", "notion", "secret-token")
        mcp_client = MagicMock()
        mcp_client.list_tools = AsyncMock(return_value=[SEARCH_PAGES])
        sonnet = scripted_adapter([scripted_adapter.text("found it")], config=CLAUDE_SONNET)
        orchestrator, _, _ = build(
            fake_factory,
            {CLAUDE_SONNET.identifier: sonnet},
            classifier_adapter=scripted_adapter(),
            mcp_client=mcp_client,
        )

        result = await orchestrator.orchestrate(make_context("search my notion for the roadmap"))

        assert result.category == TaskCategory.EXTERNAL_WORKSPACE
        mcp_client.list_tools.assert_awaited_once_with("user-1", "secret-token")
        assert sonnet.sends[0]["tools"] == ["answer_user", "add_workspace_item", "search_pages"]
        assert "search_pages" in sonnet.sends[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_no_token_skips_mcp(self, scripted_adapter, fake_factory, make_context):
        mcp_client = MagicMock()
        mcp_client.list_tools = AsyncMock(return_value=[SEARCH_PAGES])
        sonnet = scripted_adapter([scripted_adapter.text("ok")], config=CLAUDE_SONNET)
        orchestrator, _, _ = build(
            fake_factory,
            {CLAUDE_SONNET.identifier: sonnet},
            classifier_adapter=scripted_adapter(),
            mcp_client=mcp_client,
        )

        await orchestrator.orchestrate(make_context("add milk to notion"))

        mcp_client.list_tools.assert_not_awaited()
        assert sonnet.sends[0]["tools"] == ["answer_user", "add_workspace_item"]

    @pytest.mark.asyncio
    async def test_browser_category_never_lists_mcp(self, scripted_adapter, fake_factory, make_context, credentials):
        credentials.set_token("user-1", "notion", "secret-token")
        mcp_client = MagicMock()
        mcp_client.list_tools = AsyncMock(return_value=[SEARCH_PAGES])
        flash = scripted_adapter([scripted_adapter.text("ok")])
        orchestrator, _, _ = build(
            fake_factory,
            {GEMINI_FLASH.identifier: flash},
            verdict="BROWSER",
            classifier_adapter=scripted_adapter(),
            mcp_client=mcp_client,
        )

        await orchestrator.orchestrate(make_context("go to example.com"))

        mcp_client.list_tools.assert_not_awaited()
        assert "search_pages" not in flash.sends[0]["tools"]


class TestFallbackPolicy:
    """Single-shot fallback for high-capability backends."""

    @pytest.mark.asyncio
    async def test_fallback_reports_fallback_backend(self, scripted_adapter, fake_factory, make_context):
        """A failing Claude run is retried once on Gemini Pro with only the answer tool."""
        sonnet = scripted_adapter([BackendError("overloaded")], config=CLAUDE_SONNET)
        pro = scripted_adapter(
            [scripted_adapter.calls(("answer_user", {"answer": "Here you go"}))], config=GEMINI_PRO
        )
        orchestrator, factory, metrics = build(
            fake_factory,
            {CLAUDE_SONNET.identifier: sonnet, GEMINI_PRO.identifier: pro},
            verdict="COMPLEX",
            classifier_adapter=scripted_adapter(),
        )

        result = await orchestrator.orchestrate(make_context("plan my week across tools"))

        assert result.answer == "Here you go"
        assert result.backend == "gemini:gemini-2.5-pro"
        assert result.category == TaskCategory.COMPLEX
        assert result.fell_back is True
        assert pro.sends[0]["tools"] == ["answer_user"]
        assert factory.requested == [CLAUDE_SONNET.identifier, GEMINI_PRO.identifier]
        recorded = metrics.record.call_args[0][0]
        assert recorded.backend == "gemini:gemini-2.5-pro"

    @pytest.mark.asyncio
    async def test_cheap_backend_failure_propagates(self, scripted_adapter, fake_factory, make_context):
        """Flash is not high capability, so its failure is not retried elsewhere."""
        flash = scripted_adapter([RateLimitError("429")])
        pro = scripted_adapter([scripted_adapter.text("unused")], config=GEMINI_PRO)
        orchestrator, _, metrics = build(
            fake_factory,
            {GEMINI_FLASH.identifier: flash, GEMINI_PRO.identifier: pro},
            classifier_adapter=scripted_adapter(),
        )

        with pytest.raises(RateLimitError):
            await orchestrator.orchestrate(make_context("hello"))

        assert pro.sends == []
        metrics.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_primary_key_falls_back(self, scripted_adapter, make_context, monkeypatch):
        """A Gemini-only deployment still answers requests routed to Claude."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        config = SwitchboardConfig(gemini_api_key="g-key", anthropic_api_key=None)
        factory = BackendFactory(config)
        pro = scripted_adapter(
            [scripted_adapter.calls(("answer_user", {"answer": "Saved nothing yet"}))], config=GEMINI_PRO
        )
        factory._adapters[GEMINI_PRO.identifier] = pro
        orchestrator = Orchestrator(
            config=config,
            factory=factory,
            classifier=TaskClassifier(scripted_adapter(verdict="COMPLEX")),
            executor=ToolExecutor(),
            metrics=MagicMock(),
        )

        result = await orchestrator.orchestrate(make_context("add this to notion"))

        assert result.fell_back is True
        assert result.backend == "gemini:gemini-2.5-pro"
        assert result.category == TaskCategory.EXTERNAL_WORKSPACE
        assert result.answer == "Saved nothing yet"

    @pytest.mark.asyncio
    async def test_missing_fallback_key_raises_orchestration_error(self, scripted_adapter, make_context, monkeypatch):
        for name in ("ANTHROPIC_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        config = SwitchboardConfig(gemini_api_key=None, anthropic_api_key=None)
        orchestrator = Orchestrator(
            config=config,
            factory=BackendFactory(config),
            classifier=TaskClassifier(scripted_adapter(verdict="COMPLEX")),
            executor=ToolExecutor(),
            metrics=MagicMock(),
        )

        with pytest.raises(OrchestrationError) as exc_info:
            await orchestrator.orchestrate(make_context("plan my week"))

        assert isinstance(exc_info.value.__cause__, AuthenticationError)

    @pytest.mark.asyncio
    async def test_both_failing_raises_orchestration_error(self, scripted_adapter, fake_factory, make_context):
        sonnet = scripted_adapter([BackendError("primary down")], config=CLAUDE_SONNET)
        pro = scripted_adapter([BackendError("fallback down")], config=GEMINI_PRO)
        orchestrator, _, _ = build(
            fake_factory,
            {CLAUDE_SONNET.identifier: sonnet, GEMINI_PRO.identifier: pro},
            verdict="COMPLEX",
            classifier_adapter=scripted_adapter(),
        )

        with pytest.raises(OrchestrationError) as exc_info:
            await orchestrator.orchestrate(make_context("plan my week"))

        assert exc_info.value.primary == "anthropic:claude-sonnet-4-20250514"
        assert exc_info.value.fallback == "gemini:gemini-2.5-pro"
        assert isinstance(exc_info.value.__cause__, BackendError)

    @pytest.mark.asyncio
    async def test_tool_errors_do_not_trigger_fallback(self, scripted_adapter, fake_factory, make_context):
        """A failing tool is shown to the model; the primary keeps the request."""
        executor = ToolExecutor()
        executor.register("add_workspace_item", AsyncMock(side_effect=RuntimeError("disk full")))
        sonnet = scripted_adapter(
            [
                scripted_adapter.calls(("add_workspace_item", {"text": "milk"})),
                scripted_adapter.calls(("answer_user", {"answer": "Could not save it"})),
            ],
            config=CLAUDE_SONNET,
        )
        orchestrator, _, _ = build(
            fake_factory,
            {CLAUDE_SONNET.identifier: sonnet},
            classifier_adapter=scripted_adapter(),
            executor=executor,
        )

        result = await orchestrator.orchestrate(make_context("add milk to notion"))

        assert result.fell_back is False
        assert result.answer == "Could not save it"
        assert "TOOL_FAILED" in sonnet.sends[1]["conversation"][-1]["results"][0]


class TestHandle:
    """Context assembly in handle()."""

    @pytest.mark.asyncio
    async def test_retrieves_context_when_missing(self, scripted_adapter, fake_factory):
        flash = scripted_adapter([scripted_adapter.text("You wanted milk")])
        orchestrator, _, _ = build(
            fake_factory,
            {GEMINI_FLASH.identifier: flash},
            verdict="RETRIEVAL",
            classifier_adapter=scripted_adapter(),
            retrieval=StaticRetrievalProvider("Shopping: milk"),
        )

        result = await orchestrator.handle("user-1", "what did I need to buy?")

        assert result.answer == "You wanted milk"
        assert "Shopping: milk" in flash.sends[0]["conversation"][-1]["text"]

    @pytest.mark.asyncio
    async def test_supplied_context_skips_retrieval(self, scripted_adapter, fake_factory):
        retrieval = MagicMock()
        retrieval.retrieve = AsyncMock(return_value="unused")
        flash = scripted_adapter([scripted_adapter.text("ok")])
        orchestrator, _, _ = build(
            fake_factory,
            {GEMINI_FLASH.identifier: flash},
            classifier_adapter=scripted_adapter(),
            retrieval=retrieval,
        )

        await orchestrator.handle("user-1", "hello", retrieved_context="given")

        retrieval.retrieve.assert_not_awaited()
        assert "given" in flash.sends[0]["conversation"][-1]["text"]

    @pytest.mark.asyncio
    async def test_aclose_releases_everything(self, scripted_adapter, fake_factory, session_manager, browser_service):
        mcp_client = MagicMock()
        mcp_client.close_all = AsyncMock()
        orchestrator, factory, _ = build(
            fake_factory,
            {},
            classifier_adapter=scripted_adapter(),
            mcp_client=mcp_client,
            browser=session_manager,
        )

        async with orchestrator:
            pass

        assert factory.closed is True
        assert browser_service.closed is True
        mcp_client.close_all.assert_awaited_once()

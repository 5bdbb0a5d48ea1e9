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
Request orchestration.

The Orchestrator is the single entry point used by the surrounding web
layer. For every request it:

1. Classifies the request into a TaskCategory
2. Selects the backend mapped to that category
3. Resolves the toolset (adding the user's MCP tools for workspace work)
4. Runs the agent loop on the selected backend
5. Re-runs the request once on the fallback backend if a high-capability
   backend fails, offering only the answer tool
6. Records metrics and returns an ExecutionResult

Example:
    >>> async with Orchestrator.from_config() as orchestrator:
    ...     result = await orchestrator.handle("user-1", "Go to example.com and log in")
    ...     print(result.answer, result.backend)
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence

from switchboard.agents.classifier import TaskClassifier
from switchboard.agents.loop import AgentLoop
from switchboard.agents.prompts import system_prompt
from switchboard.browser.session_manager import BrowserSessionManager
from switchboard.collaborators import (
    CredentialStore,
    InMemorySessionIndex,
    InMemoryWorkspaceWriter,
    LoggingMetricsSink,
    MetricsSink,
    RetrievalProvider,
    SessionIndex,
    StaticRetrievalProvider,
    WorkspaceWriter,
)
from switchboard.config import SwitchboardConfig, get_config
from switchboard.exceptions import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    OrchestrationError,
)
from switchboard.llm.factory import BackendFactory
from switchboard.mcp.client import MCPToolClient
from switchboard.tools.executor import ToolExecutor
from switchboard.tools.registry import ToolGroup, ToolRegistry
from switchboard.types import (
    AgentRunResult,
    BackendConfig,
    ChatTurn,
    ExecutionContext,
    ExecutionResult,
    Provider,
    TaskCategory,
    ToolSpec,
)
from switchboard.utils.logger import logger

WORKSPACE_CATEGORIES = (TaskCategory.EXTERNAL_WORKSPACE, TaskCategory.COMPLEX)


class Orchestrator:
    """
    Classify, route, run and fall back.

    All collaborators are injected. ``from_config`` wires the standard
    graph from a SwitchboardConfig.

    Attributes:
        config: Routing and loop configuration
        factory: Supplies one adapter per backend (anything with ``get(BackendConfig)``)
        classifier: Task classifier
        registry: Built-in tool specs
        executor: Tool dispatch table
        mcp_client: Source of the user's external-workspace tools (optional)
        retrieval: Used by ``handle`` when no context is supplied
        metrics: Receives one record per request
        browser: Session manager released by ``aclose`` (optional)
    """

    def __init__(
        self,
        config: SwitchboardConfig,
        factory: BackendFactory,
        classifier: TaskClassifier,
        registry: Optional[ToolRegistry] = None,
        executor: Optional[ToolExecutor] = None,
        mcp_client: Optional[MCPToolClient] = None,
        retrieval: Optional[RetrievalProvider] = None,
        metrics: Optional[MetricsSink] = None,
        credentials: Optional[CredentialStore] = None,
        browser: Optional[BrowserSessionManager] = None,
    ) -> None:
        self.config = config
        self.factory = factory
        self.classifier = classifier
        self.registry = registry or ToolRegistry.default()
        self.executor = executor or ToolExecutor()
        self.mcp_client = mcp_client
        self.retrieval = retrieval
        self.metrics = metrics or LoggingMetricsSink()
        self.credentials = credentials
        self.browser = browser

    @classmethod
    def from_config(
        cls,
        config: Optional[SwitchboardConfig] = None,
        credentials: Optional[CredentialStore] = None,
        workspace_writer: Optional[WorkspaceWriter] = None,
        retrieval: Optional[RetrievalProvider] = None,
        session_index: Optional[SessionIndex] = None,
        metrics: Optional[MetricsSink] = None,
    ) -> Orchestrator:
        """
        Build the standard object graph.

        The browser service is remote when ``config.browser.service_url`` is
        set and in-process Playwright otherwise. Collaborators that are not
        supplied default to their in-memory implementations.
        """
        from switchboard.browser.client import RemoteBrowserService
        from switchboard.browser.service import PlaywrightBrowserService

        config = config or get_config()
        factory = BackendFactory(config)

        try:
            classifier_adapter = factory.get(BackendConfig(Provider.GEMINI, config.classifier_model))
        except ConfigurationError as e:
            logger.warning(f"[ORCHESTRATOR] {e}. Using keyword classification")
            classifier_adapter = None
        classifier = TaskClassifier(
            classifier_adapter,
            workspace_keywords=config.workspace_keywords,
            backend_mapping=config.backend_mapping(),
        )

        if config.browser.service_url:
            service = RemoteBrowserService(
                config.browser.service_url, timeout_seconds=config.browser.request_timeout_seconds
            )
        else:
            service = PlaywrightBrowserService(config.browser)
        browser = BrowserSessionManager(service, session_index or InMemorySessionIndex())
        mcp_client = MCPToolClient(config.mcp.server_url, client_name=config.mcp.client_name)

        executor = ToolExecutor.build_default(
            workspace_writer=workspace_writer or InMemoryWorkspaceWriter(),
            browser=browser,
            mcp_client=mcp_client,
            workspace_destination=config.workspace_destination,
            credential_service=config.mcp.credential_service,
        )

        return cls(
            config=config,
            factory=factory,
            classifier=classifier,
            registry=ToolRegistry.default(),
            executor=executor,
            mcp_client=mcp_client,
            retrieval=retrieval or StaticRetrievalProvider(),
            metrics=metrics,
            credentials=credentials,
            browser=browser,
        )

    async def handle(
        self,
        user_id: str,
        query: str,
        history: Sequence[ChatTurn] = (),
        retrieved_context: Optional[str] = None,
        credentials: Optional[CredentialStore] = None,
    ) -> ExecutionResult:
        """Build the ExecutionContext (retrieving context if none given) and orchestrate."""
        if retrieved_context is None:
            retrieved_context = ""
            if self.retrieval is not None:
                retrieved_context = await self.retrieval.retrieve(user_id, query)

        context = ExecutionContext(
            user_id=user_id,
            query=query,
            history=tuple(history),
            retrieved_context=retrieved_context or "",
            credentials=credentials or self.credentials,
        )
        return await self.orchestrate(context)

    async def orchestrate(self, context: ExecutionContext) -> ExecutionResult:
        """
        Run one request end to end.

        Raises:
            BackendError: The primary backend failed and is not high capability
            OrchestrationError: Both the primary and the fallback backend failed
        """
        start = time.time()
        category = await self.classifier.classify(context.query, context.has_retrieved_context)
        primary = self.config.backend_for(category)

        external = await self._external_tools(context, category)
        tools = self.registry.toolset_for(category, external)
        prompt = system_prompt(category, tuple(spec.name for spec in external))
        logger.info(
            f"[ORCHESTRATOR] {category.value} -> {primary.identifier} with {len(tools)} tools"
        )

        backend = primary
        fell_back = False
        try:
            run = await self._run(primary, context, tools, prompt)
        except BackendError as e:
            if not primary.is_high_capability:
                logger.error(f"[ORCHESTRATOR] {primary.identifier} failed: {e}")
                raise

            backend = self.config.fallback_backend
            fell_back = True
            logger.warning(
                f"[ORCHESTRATOR] {primary.identifier} failed ({e}), falling back to {backend.identifier}"
            )
            try:
                run = await self._run(
                    backend,
                    context,
                    self.registry.group(ToolGroup.ANSWER),
                    system_prompt(TaskCategory.SIMPLE),
                )
            except BackendError as fallback_error:
                logger.error(f"[ORCHESTRATOR] Fallback {backend.identifier} failed: {fallback_error}")
                raise OrchestrationError(
                    f"Primary backend {primary.identifier} and fallback {backend.identifier} both failed: "
                    f"{fallback_error}",
                    primary=primary.identifier,
                    fallback=backend.identifier,
                ) from fallback_error

        elapsed = (time.time() - start) * 1000
        result = ExecutionResult(
            answer=run.text,
            backend=backend.identifier,
            category=category,
            execution_time_ms=elapsed,
            fell_back=fell_back,
            steps=run.steps,
        )
        self.metrics.record(result, elapsed)
        return result

    async def _run(
        self,
        backend: BackendConfig,
        context: ExecutionContext,
        tools: Sequence[ToolSpec],
        prompt: str,
    ) -> AgentRunResult:
        try:
            adapter = self.factory.get(backend)
        except ConfigurationError as e:
            raise AuthenticationError(str(e), backend=backend.identifier) from e
        loop = AgentLoop(adapter, self.executor, max_steps=self.config.max_agent_steps)
        return await loop.run(context, tools, prompt)

    async def _external_tools(
        self, context: ExecutionContext, category: TaskCategory
    ) -> List[ToolSpec]:
        if self.mcp_client is None or category not in WORKSPACE_CATEGORIES:
            return []
        token = await context.get_token(self.config.mcp.credential_service)
        if not token:
            logger.info(f"[ORCHESTRATOR] No workspace credential for user {context.user_id}")
            return []
        return await self.mcp_client.list_tools(context.user_id, token)

    async def aclose(self) -> None:
        """Release browser sessions, MCP connections and backend clients."""
        if self.browser is not None:
            await self.browser.close()
        if self.mcp_client is not None:
            await self.mcp_client.close_all()
        await self.factory.close()

    async def __aenter__(self) -> Orchestrator:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

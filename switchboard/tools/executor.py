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
Tool executor.

Routes a tool invocation to its handler through a dispatch table built once
at startup. Resolution order is exact name, then the longest matching
reserved prefix, then the default handler (MCP). The executor never raises:
a missing handler or a handler exception becomes an error ToolResult that
is shown to the model like any other result.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple

from switchboard.tools.registry import BROWSER_PREFIX, WORKSPACE_TOOL
from switchboard.types import ExecutionContext, ToolResult
from switchboard.utils.logger import logger

if TYPE_CHECKING:
    from switchboard.browser.session_manager import BrowserSessionManager
    from switchboard.collaborators import WorkspaceWriter
    from switchboard.mcp.client import MCPToolClient

ToolHandler = Callable[[str, Dict[str, Any], ExecutionContext], Awaitable[Any]]


class ToolExecutor:
    """
    Dispatch table from tool names to async handlers.

    A handler receives ``(name, arguments, context)`` and returns a
    ToolResult, or any other value which is wrapped as a success.

    Example:
        >>> executor = ToolExecutor()
        >>> executor.register("echo", echo_handler)
        >>> result = await executor.execute("echo", {"text": "hi"}, context)
    """

    def __init__(self) -> None:
        self._exact: Dict[str, ToolHandler] = {}
        self._prefixes: List[Tuple[str, ToolHandler]] = []
        self._default: Optional[ToolHandler] = None

    def register(self, name: str, handler: ToolHandler) -> None:
        if name in self._exact:
            raise ValueError(f"Handler for '{name}' is already registered")
        self._exact[name] = handler

    def register_prefix(self, prefix: str, handler: ToolHandler) -> None:
        if any(existing == prefix for existing, _ in self._prefixes):
            raise ValueError(f"Handler for prefix '{prefix}' is already registered")
        self._prefixes.append((prefix, handler))
        self._prefixes.sort(key=lambda item: len(item[0]), reverse=True)

    def set_default(self, handler: Optional[ToolHandler]) -> None:
        self._default = handler

    def resolve(self, name: str) -> Optional[ToolHandler]:
        handler = self._exact.get(name)
        if handler is not None:
            return handler
        for prefix, prefix_handler in self._prefixes:
            if name.startswith(prefix):
                return prefix_handler
        return self._default

    async def execute(
        self, name: str, arguments: Dict[str, Any], context: ExecutionContext
    ) -> ToolResult:
        """Run the handler for ``name``. Never raises."""
        start = time.time()
        handler = self.resolve(name)
        if handler is None:
            logger.warning(f"[TOOLS] No handler for tool '{name}'")
            return ToolResult.error_result(f"Unknown tool: {name}", error_code="UNKNOWN_TOOL")

        try:
            outcome = await handler(name, arguments or {}, context)
        except Exception as e:
            logger.error(f"[TOOLS] Tool '{name}' failed: {e}")
            result = ToolResult.error_result(
                f"Tool '{name}' failed: {e}", error_code="TOOL_FAILED"
            )
        else:
            result = outcome if isinstance(outcome, ToolResult) else ToolResult.success_result(outcome)

        result.execution_time_ms = (time.time() - start) * 1000
        status = "ok" if result.success else f"error ({result.error_code})"
        logger.info(f"[TOOLS] {name} -> {status} in {result.execution_time_ms:.0f}ms")
        return result

    @classmethod
    def build_default(
        cls,
        workspace_writer: Optional["WorkspaceWriter"] = None,
        browser: Optional["BrowserSessionManager"] = None,
        mcp_client: Optional["MCPToolClient"] = None,
        workspace_destination: str = "inbox",
        credential_service: str = "notion",
    ) -> ToolExecutor:
        """
        Build the standard dispatch table.

        - ``add_workspace_item`` -> WorkspaceWriter
        - ``browser_*`` -> BrowserSessionManager.run_tool
        - anything else -> MCP client, using the user's workspace token
        """
        executor = cls()

        if workspace_writer is not None:
            async def add_workspace_item(name: str, args: Dict[str, Any], context: ExecutionContext) -> ToolResult:
                text = str(args.get("text") or "").strip()
                if not text:
                    return ToolResult.error_result("Missing 'text' argument", error_code="INVALID_ARGUMENTS")
                added = await workspace_writer.add_item(context.user_id, workspace_destination, text)
                if not added:
                    return ToolResult.error_result("Workspace rejected the item", error_code="WORKSPACE_WRITE_FAILED")
                return ToolResult.success_result(f"Added to {workspace_destination}: {text}")

            executor.register(WORKSPACE_TOOL, add_workspace_item)

        if browser is not None:
            async def run_browser_tool(name: str, args: Dict[str, Any], context: ExecutionContext) -> ToolResult:
                return await browser.run_tool(context.user_id, name, args)

            executor.register_prefix(BROWSER_PREFIX, run_browser_tool)

        if mcp_client is not None:
            async def call_mcp_tool(name: str, args: Dict[str, Any], context: ExecutionContext) -> ToolResult:
                token = await context.get_token(credential_service)
                if not token:
                    return ToolResult.error_result(
                        f"No {credential_service} credential connected for this user",
                        error_code="MISSING_CREDENTIAL",
                    )
                return await mcp_client.call_tool(context.user_id, token, name, args)

            executor.set_default(call_mcp_tool)

        return executor

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
MCP tool client.

Maintains one lazily opened MCP connection per user against the external
workspace server. The server authenticates the user from the ``X-User-Id``
and bearer token headers and advertises that user's tools dynamically.

Listing failures degrade to an empty toolset; call failures become error
ToolResults. Neither ever propagates into the agent loop.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

from switchboard.exceptions import MCPError
from switchboard.types import ToolResult, ToolSpec
from switchboard.utils.locks import KeyedLock
from switchboard.utils.logger import logger

# (user_id, token, exit_stack) -> initialized session
SessionFactory = Callable[[str, str, contextlib.AsyncExitStack], Awaitable[Any]]


@dataclass
class MCPConnection:
    session: Any
    stack: contextlib.AsyncExitStack
    token: str


def streamable_http_factory(
    server_url: str,
    client_name: str = "switchboard",
    client_version: str = "1.0.0",
) -> SessionFactory:
    """Session factory opening a streamable-HTTP transport to ``server_url``."""

    async def open_session(user_id: str, token: str, stack: contextlib.AsyncExitStack) -> ClientSession:
        headers = {"X-User-Id": user_id, "Authorization": f"Bearer {token}"}
        read, write, _ = await stack.enter_async_context(
            streamablehttp_client(server_url, headers=headers)
        )
        session = await stack.enter_async_context(
            ClientSession(read, write, client_info=Implementation(name=client_name, version=client_version))
        )
        await session.initialize()
        return session

    return open_session


class MCPToolClient:
    """
    Per-user MCP connections with tool listing and invocation.

    Example:
        >>> client = MCPToolClient("http://localhost:3002/mcp")
        >>> tools = await client.list_tools("user-1", token)
        >>> result = await client.call_tool("user-1", token, "search_pages", {"query": "roadmap"})
    """

    def __init__(
        self,
        server_url: str = "http://localhost:3002/mcp",
        client_name: str = "switchboard",
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.server_url = server_url
        self.client_name = client_name
        self._session_factory = session_factory or streamable_http_factory(server_url, client_name)
        self._connections: Dict[str, MCPConnection] = {}
        self._locks = KeyedLock()

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._connections

    async def connect(self, user_id: str, token: str) -> Any:
        """
        Return the user's initialized session, opening it on first use.

        Concurrent callers for the same user share one connection. A changed
        token replaces the existing connection.

        Raises:
            MCPError: If the connection cannot be established
        """
        async with self._locks.hold(user_id):
            connection = self._connections.get(user_id)
            if connection is not None and connection.token == token:
                return connection.session
            if connection is not None:
                await self._close_connection(user_id, connection)

            stack = contextlib.AsyncExitStack()
            try:
                session = await self._session_factory(user_id, token, stack)
            except Exception as e:
                await stack.aclose()
                logger.error(f"[MCP] Connection failed for user {user_id}: {e}")
                raise MCPError(f"Failed to connect to MCP server {self.server_url}: {e}") from e

            self._connections[user_id] = MCPConnection(session=session, stack=stack, token=token)
            logger.info(f"[MCP] Connected user {user_id} to {self.server_url}")
            return session

    async def list_tools(self, user_id: str, token: str) -> List[ToolSpec]:
        """Tools advertised for the user, or an empty list on any failure."""
        try:
            session = await self.connect(user_id, token)
            result = await session.list_tools()
        except Exception as e:
            logger.error(f"[MCP] Failed to list tools for user {user_id}: {e}")
            await self.close(user_id)
            return []

        tools = [ToolSpec.from_mcp(tool) for tool in result.tools]
        logger.info(f"[MCP] {len(tools)} tools available for user {user_id}")
        return tools

    async def call_tool(
        self, user_id: str, token: str, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> ToolResult:
        try:
            session = await self.connect(user_id, token)
            result = await session.call_tool(name, arguments or {})
        except Exception as e:
            logger.error(f"[MCP] Tool '{name}' failed for user {user_id}: {e}")
            await self.close(user_id)
            return ToolResult.error_result(f"MCP tool '{name}' failed: {e}", error_code="MCP_ERROR")

        parts = []
        for item in getattr(result, "content", None) or []:
            if getattr(item, "text", None) is not None:
                parts.append(item.text)
            elif getattr(item, "data", None) is not None:
                parts.append(f"[Binary Data: {len(item.data)} bytes]")
        text = "\n".join(parts)

        if getattr(result, "isError", False):
            return ToolResult.error_result(text or f"MCP tool '{name}' reported an error", error_code="MCP_TOOL_ERROR")
        return ToolResult.success_result(text or "OK")

    async def _close_connection(self, user_id: str, connection: MCPConnection) -> None:
        try:
            await connection.stack.aclose()
        except Exception as e:
            logger.warning(f"[MCP] Error closing connection for user {user_id}: {e}")

    async def close(self, user_id: str) -> None:
        connection = self._connections.pop(user_id, None)
        if connection is not None:
            await self._close_connection(user_id, connection)
            logger.info(f"[MCP] Closed connection for user {user_id}")

    async def close_all(self) -> None:
        for user_id in list(self._connections):
            await self.close(user_id)

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
Anthropic Claude backend adapter.

Uses the Messages API through the official ``anthropic`` SDK. The tool-use
dialect differs from Gemini's:

- tools carry an ``input_schema``
- conversation turns use roles ``user`` and ``assistant``
- a tool call is a ``tool_use`` content block with a stable ``id``
- results go back in one ``user`` message holding a ``tool_result`` block
  per ``tool_use`` id, right after the assistant message that asked for them
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import anthropic
from anthropic import AsyncAnthropic

from switchboard.exceptions import (
    AuthenticationError,
    BackendError,
    RateLimitError,
    TransientBackendError,
)
from switchboard.llm.base import BackendAdapter
from switchboard.types import (
    BackendConfig,
    BackendReply,
    ChatRole,
    ChatTurn,
    ToolInvocation,
    ToolResult,
    ToolSpec,
)
from switchboard.utils.logger import logger
from switchboard.utils.retry import RetryPolicy


def _translate_error(error: Exception, backend: str) -> BackendError:
    """Map SDK exceptions onto the backend error family."""
    message = f"Anthropic request failed: {error}"
    if isinstance(error, anthropic.RateLimitError):
        return RateLimitError(message, backend=backend)
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return AuthenticationError(message, backend=backend)
    if isinstance(error, (anthropic.APIConnectionError, anthropic.InternalServerError)):
        return TransientBackendError(message, backend=backend)
    return BackendError(message, backend=backend)


class AnthropicProvider(BackendAdapter):
    """
    Claude tool-use adapter.

    SDK-level retries are disabled; the adapter's RetryPolicy owns retries so
    that both providers back off identically.
    """

    def __init__(
        self,
        config: BackendConfig,
        api_key: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[AsyncAnthropic] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, retry_policy=retry_policy, **kwargs)
        self.client = client or AsyncAnthropic(api_key=api_key, max_retries=0)

    # ---------------------------------------------------------------- translation

    def render_tools(self, specs: Sequence[ToolSpec]) -> List[Dict[str, Any]]:
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "input_schema": {
                    "type": "object",
                    "properties": spec.properties,
                    "required": spec.required,
                },
            }
            for spec in specs
        ]

    def render_history(self, turns: Sequence[ChatTurn], prompt: str) -> List[Dict[str, Any]]:
        normalized = self.normalize_turns(list(turns) + [ChatTurn.user(prompt)])
        return [
            {
                "role": "assistant" if turn.role == ChatRole.ASSISTANT else "user",
                "content": turn.text,
            }
            for turn in normalized
        ]

    def parse_response(self, raw: Any) -> BackendReply:
        reply = BackendReply(raw=raw)
        texts: List[str] = []
        for block in getattr(raw, "content", None) or []:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use":
                reply.invocations.append(
                    ToolInvocation(
                        name=block.name,
                        arguments=dict(block.input or {}),
                        call_id=block.id,
                    )
                )
        reply.text = "".join(texts).strip()
        return reply

    @staticmethod
    def _block_to_param(block: Any) -> Optional[Dict[str, Any]]:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            return {"type": "text", "text": block.text}
        if block_type == "tool_use":
            return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
        return None

    def render_tool_results(
        self, reply: BackendReply, results: Sequence[ToolResult]
    ) -> List[Dict[str, Any]]:
        assistant_content = [
            param
            for param in (self._block_to_param(b) for b in getattr(reply.raw, "content", None) or [])
            if param is not None
        ]
        tool_results = [
            {
                "type": "tool_result",
                "tool_use_id": invocation.call_id,
                "content": result.to_payload(),
                "is_error": not result.success,
            }
            for invocation, result in zip(reply.invocations, results)
        ]
        return [
            {"role": "assistant", "content": assistant_content},
            {"role": "user", "content": tool_results},
        ]

    # ---------------------------------------------------------------- transport

    async def _create(self, **api_kwargs: Any) -> Any:
        try:
            return await self.client.messages.create(**api_kwargs)
        except anthropic.APIError as e:
            raise _translate_error(e, self.identifier) from e

    async def send(
        self,
        conversation: List[Dict[str, Any]],
        rendered_tools: Any,
        system_prompt: Optional[str] = None,
    ) -> Any:
        api_kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": conversation,
        }
        if system_prompt:
            api_kwargs["system"] = system_prompt
        if rendered_tools:
            api_kwargs["tools"] = rendered_tools

        try:
            response = await self.retry_policy.run(self._create, **api_kwargs)
        except BackendError:
            raise
        except Exception as e:
            logger.error(f"[CLAUDE] Tool calling error: {e}")
            raise BackendError(f"Anthropic tool calling failed: {e}", backend=self.identifier) from e

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                f"[CLAUDE] {self.model} step complete "
                f"(input={usage.input_tokens}, output={usage.output_tokens}, "
                f"stop={getattr(response, 'stop_reason', None)})"
            )
        return response

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        api_kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            api_kwargs["system"] = system_prompt
        try:
            response = await self.retry_policy.run(self._create, **api_kwargs)
        except BackendError:
            raise
        except Exception as e:
            logger.error(f"[CLAUDE] Generation error: {e}")
            raise BackendError(f"Anthropic generation failed: {e}", backend=self.identifier) from e
        return self.parse_response(response).text

    async def close(self) -> None:
        await self.client.close()

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
Google Gemini backend adapter.

Talks to the Generative Language REST API with aiohttp and translates its
function-calling dialect:

- tools are declared under ``tools[0].functionDeclarations``
- conversation turns use roles ``user`` and ``model``
- a tool call comes back as a ``functionCall`` part
- results go back as one ``function`` message holding a ``functionResponse``
  part per call, in call order
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

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

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(BackendAdapter):
    """
    Gemini function-calling adapter.

    Example:
        >>> adapter = GeminiProvider(GEMINI_FLASH, api_key="AIza...")
        >>> text = await adapter.generate("Classify this request...")
    """

    def __init__(
        self,
        config: BackendConfig,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = 120.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, retry_policy=retry_policy, **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    # ---------------------------------------------------------------- translation

    def render_tools(self, specs: Sequence[ToolSpec]) -> List[Dict[str, Any]]:
        if not specs:
            return []
        declarations = []
        for spec in specs:
            declaration: Dict[str, Any] = {
                "name": spec.name,
                "description": spec.description,
            }
            # Gemini rejects an object schema with no properties
            if spec.properties:
                declaration["parameters"] = {
                    "type": "object",
                    "properties": spec.properties,
                    "required": spec.required,
                }
            declarations.append(declaration)
        return [{"functionDeclarations": declarations}]

    def render_history(self, turns: Sequence[ChatTurn], prompt: str) -> List[Dict[str, Any]]:
        normalized = self.normalize_turns(list(turns) + [ChatTurn.user(prompt)])
        return [
            {
                "role": "model" if turn.role == ChatRole.ASSISTANT else "user",
                "parts": [{"text": turn.text}],
            }
            for turn in normalized
        ]

    def parse_response(self, raw: Dict[str, Any]) -> BackendReply:
        reply = BackendReply(raw=raw)
        candidates = (raw or {}).get("candidates") or []
        if not candidates:
            return reply

        texts: List[str] = []
        for part in candidates[0].get("content", {}).get("parts", []) or []:
            if "functionCall" in part:
                fc = part["functionCall"]
                reply.invocations.append(
                    ToolInvocation(
                        name=fc.get("name", ""),
                        arguments=dict(fc.get("args") or {}),
                        call_id=f"call_{len(reply.invocations)}",
                    )
                )
            elif part.get("text"):
                texts.append(part["text"])
        reply.text = "".join(texts).strip()
        return reply

    def render_tool_results(
        self, reply: BackendReply, results: Sequence[ToolResult]
    ) -> List[Dict[str, Any]]:
        candidates = (reply.raw or {}).get("candidates") or [{}]
        model_content = candidates[0].get("content") or {}
        model_message = {"role": "model", "parts": list(model_content.get("parts", []))}

        responses = [
            {
                "functionResponse": {
                    "name": invocation.name,
                    "response": {"content": result.to_payload()},
                }
            }
            for invocation, result in zip(reply.invocations, results)
        ]
        return [model_message, {"role": "function", "parts": responses}]

    # ---------------------------------------------------------------- transport

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to the Gemini API, mapping failures onto the backend error family."""
        url = f"{self.base_url}/models/{self.model}:{endpoint}?key={self.api_key}"
        headers = {"Content-Type": "application/json"}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=payload, headers=headers) as response:
                    if response.status == 200:
                        return await response.json()
                    error_text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientBackendError(f"Gemini connection failed: {e}", backend=self.identifier) from e

        message = f"Gemini API request failed: {response.status} - {error_text[:500]}"
        if response.status == 429:
            raise RateLimitError(message, backend=self.identifier)
        if response.status in (401, 403):
            raise AuthenticationError(message, backend=self.identifier)
        if response.status >= 500:
            raise TransientBackendError(message, backend=self.identifier)
        raise BackendError(message, backend=self.identifier)

    def _payload(
        self,
        contents: List[Dict[str, Any]],
        system_prompt: Optional[str],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if tools:
            payload["tools"] = tools
        return payload

    async def send(
        self,
        conversation: List[Dict[str, Any]],
        rendered_tools: Any,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = self._payload(conversation, system_prompt, rendered_tools)
        try:
            result = await self.retry_policy.run(self._post, "generateContent", payload)
        except BackendError:
            raise
        except Exception as e:
            logger.error(f"[GEMINI] Tool calling error: {e}")
            raise BackendError(f"Gemini tool calling failed: {e}", backend=self.identifier) from e

        usage = result.get("usageMetadata", {})
        logger.debug(
            f"[GEMINI] {self.model} step complete "
            f"(prompt={usage.get('promptTokenCount', 0)}, "
            f"completion={usage.get('candidatesTokenCount', 0)})"
        )
        return result

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        payload = self._payload([{"role": "user", "parts": [{"text": prompt}]}], system_prompt)
        try:
            result = await self.retry_policy.run(self._post, "generateContent", payload)
        except BackendError:
            raise
        except Exception as e:
            logger.error(f"[GEMINI] Generation error: {e}")
            raise BackendError(f"Gemini generation failed: {e}", backend=self.identifier) from e
        return self.parse_response(result).text

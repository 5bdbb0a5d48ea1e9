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
Base backend adapter interface.

Each provider speaks its own tool-calling dialect. An adapter translates
between that dialect and Switchboard's neutral types through exactly four
operations, so the agent loop never sees provider payloads:

- render_tools: ToolSpec list -> provider tool declarations
- render_history: prior turns + new prompt -> provider conversation
- parse_response: raw provider reply -> BackendReply
- render_tool_results: reply + tool results -> messages to append

Transport is ``send`` (one agent-loop step) and ``generate`` (plain text,
used by the classifier).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from switchboard.types import (
    BackendConfig,
    BackendReply,
    ChatRole,
    ChatTurn,
    ToolResult,
    ToolSpec,
)
from switchboard.utils.retry import RetryPolicy


class BackendAdapter(ABC):
    """
    Abstract base class for model backends.

    Attributes:
        config: Provider/model pairing served by this adapter
        retry_policy: Applied to every ``send`` and ``generate``
        max_tokens: Output token ceiling per call
        temperature: Sampling temperature
    """

    def __init__(
        self,
        config: BackendConfig,
        retry_policy: Optional[RetryPolicy] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> None:
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def identifier(self) -> str:
        return self.config.identifier

    @property
    def model(self) -> str:
        return self.config.model

    # ---------------------------------------------------------------- translation

    @abstractmethod
    def render_tools(self, specs: Sequence[ToolSpec]) -> Any:
        """Render canonical tool specs into the provider declaration format."""
        pass

    @abstractmethod
    def render_history(self, turns: Sequence[ChatTurn], prompt: str) -> List[Dict[str, Any]]:
        """Build the provider conversation from prior turns plus the new prompt."""
        pass

    @abstractmethod
    def parse_response(self, raw: Any) -> BackendReply:
        """Extract text and tool invocations from a raw provider reply."""
        pass

    @abstractmethod
    def render_tool_results(
        self, reply: BackendReply, results: Sequence[ToolResult]
    ) -> List[Dict[str, Any]]:
        """
        Messages to append after a tool-calling turn.

        ``results`` is positionally aligned with ``reply.invocations``.
        """
        pass

    # ---------------------------------------------------------------- transport

    @abstractmethod
    async def send(
        self,
        conversation: List[Dict[str, Any]],
        rendered_tools: Any,
        system_prompt: Optional[str] = None,
    ) -> Any:
        """Send one agent-loop step and return the raw provider reply."""
        pass

    @abstractmethod
    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Plain text completion without tools."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def normalize_turns(turns: Sequence[ChatTurn]) -> List[ChatTurn]:
        """
        Make a history acceptable to strict providers.

        Drops empty turns and leading assistant turns, and merges consecutive
        turns of the same role.
        """
        normalized: List[ChatTurn] = []
        for turn in turns:
            if not turn.text or not turn.text.strip():
                continue
            if not normalized and turn.role == ChatRole.ASSISTANT:
                continue
            if normalized and normalized[-1].role == turn.role:
                merged = f"{normalized[-1].text}\n\n{turn.text}"
                normalized[-1] = ChatTurn(turn.role, merged)
            else:
                normalized.append(turn)
        return normalized

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier})"

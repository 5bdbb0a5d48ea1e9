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
Core data types for Switchboard.

This module defines the provider-neutral data model shared by the
classifier, the backend adapters, the agent loop and the tool executor:

- TaskCategory / Provider / BackendConfig: routing
- ChatTurn / ExecutionContext: request input
- ToolSpec / ToolInvocation / ToolResult: the internal tool protocol
- BackendReply / AgentRunResult / ExecutionResult: outputs
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from switchboard.collaborators import CredentialStore


class TaskCategory(str, Enum):
    """Closed set of request categories produced by the classifier."""

    SIMPLE = "SIMPLE"
    RETRIEVAL = "RETRIEVAL"
    BROWSER = "BROWSER"
    EXTERNAL_WORKSPACE = "EXTERNAL_WORKSPACE"
    COMPLEX = "COMPLEX"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional[TaskCategory]:
        """Parse a model reply into a category, None when unrecognized."""
        if not value:
            return None
        token = value.strip().strip(".`'\"*").upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(token)
        except ValueError:
            return None


class Provider(str, Enum):
    """Supported model providers."""

    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class BackendConfig:
    """A provider/model pairing able to run the agent loop."""

    provider: Provider
    model: str

    @property
    def identifier(self) -> str:
        return f"{self.provider.value}:{self.model}"

    @property
    def is_high_capability(self) -> bool:
        """High-capability backends are the ones eligible for fallback."""
        return self.provider == Provider.ANTHROPIC

    @classmethod
    def parse(cls, identifier: str) -> BackendConfig:
        """Build from ``"provider:model"``."""
        provider, sep, model = identifier.partition(":")
        if not sep or not model:
            raise ValueError(f"Invalid backend identifier: {identifier!r}")
        return cls(provider=Provider(provider.strip().lower()), model=model.strip())

    def __str__(self) -> str:
        return self.identifier


GEMINI_FLASH = BackendConfig(Provider.GEMINI, "gemini-2.0-flash")
GEMINI_PRO = BackendConfig(Provider.GEMINI, "gemini-2.5-pro")
CLAUDE_SONNET = BackendConfig(Provider.ANTHROPIC, "claude-sonnet-4-20250514")

TASK_BACKEND_MAPPING: Dict[TaskCategory, BackendConfig] = {
    TaskCategory.SIMPLE: GEMINI_FLASH,
    TaskCategory.RETRIEVAL: GEMINI_FLASH,
    TaskCategory.BROWSER: GEMINI_FLASH,
    TaskCategory.EXTERNAL_WORKSPACE: CLAUDE_SONNET,
    TaskCategory.COMPLEX: CLAUDE_SONNET,
}

FALLBACK_BACKEND = GEMINI_PRO


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def from_value(cls, value: str) -> ChatRole:
        """Accept provider spellings (``model`` is Gemini's assistant)."""
        value = (value or "").lower()
        if value in ("assistant", "model", "bot"):
            return cls.ASSISTANT
        return cls.USER


@dataclass(frozen=True)
class ChatTurn:
    """One prior message of the conversation."""

    role: ChatRole
    text: str

    @classmethod
    def user(cls, text: str) -> ChatTurn:
        return cls(ChatRole.USER, text)

    @classmethod
    def assistant(cls, text: str) -> ChatTurn:
        return cls(ChatRole.ASSISTANT, text)


@dataclass(frozen=True)
class ExecutionContext:
    """
    Everything the orchestrator needs for one request.

    Attributes:
        user_id: Opaque identity of the requesting user
        query: The natural-language request
        history: Prior conversation turns, oldest first
        retrieved_context: Text produced by the retrieval collaborator
        credentials: Handle used to look up per-user service tokens
    """

    user_id: str
    query: str
    history: Tuple[ChatTurn, ...] = ()
    retrieved_context: str = ""
    credentials: Optional["CredentialStore"] = None

    @property
    def has_retrieved_context(self) -> bool:
        return bool(self.retrieved_context and self.retrieved_context.strip())

    async def get_token(self, service: str) -> Optional[str]:
        if self.credentials is None:
            return None
        return await self.credentials.get_token(self.user_id, service)


# ==================== Tool protocol ====================

@dataclass(frozen=True)
class ToolSpec:
    """
    Canonical, provider-neutral tool declaration.

    ``parameters`` is a JSON-schema object (``{"type": "object", ...}``).
    Adapters render it into Gemini function declarations or Claude tools.
    """

    name: str
    description: str
    parameters: Mapping[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @property
    def properties(self) -> Dict[str, Any]:
        return dict(self.parameters.get("properties", {}))

    @property
    def required(self) -> List[str]:
        return list(self.parameters.get("required", []))

    @classmethod
    def from_mcp(cls, tool: Any) -> ToolSpec:
        """Convert an MCP tool descriptor (name, description, inputSchema)."""
        schema = getattr(tool, "inputSchema", None) or {"type": "object", "properties": {}}
        return cls(
            name=tool.name,
            description=getattr(tool, "description", None) or tool.name,
            parameters=dict(schema),
        )


@dataclass
class ToolInvocation:
    """A tool call emitted by a backend."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    call_id: Optional[str] = None


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Every handler result (and every handler failure) is converted to this
    shape before it is rendered back to the model.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    execution_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def success_result(cls, data: Any, **metadata) -> ToolResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def error_result(
        cls,
        error: str,
        error_code: Optional[str] = None,
        data: Any = None,
        **metadata
    ) -> ToolResult:
        return cls(success=False, error=error, error_code=error_code, data=data, metadata=metadata)

    def to_payload(self) -> str:
        """Text fed back to the model for this result."""
        if self.success:
            if isinstance(self.data, str):
                return self.data
            if self.data is None:
                return "OK"
            return json.dumps(self.data, default=str, ensure_ascii=False)

        payload: Dict[str, Any] = {"error": self.error or "Tool failed"}
        if self.error_code:
            payload["error_code"] = self.error_code
        if self.data is not None:
            payload["data"] = self.data
        return json.dumps(payload, default=str, ensure_ascii=False)


# ==================== Outputs ====================

@dataclass
class BackendReply:
    """A parsed backend response."""

    text: str = ""
    invocations: List[ToolInvocation] = field(default_factory=list)
    raw: Any = None

    @property
    def has_invocations(self) -> bool:
        return bool(self.invocations)


class Termination(str, Enum):
    ANSWER_TOOL = "answer_tool"
    TEXT = "text"
    STEP_BUDGET = "step_budget"


@dataclass
class AgentRunResult:
    """Outcome of one agent loop run."""

    text: str
    steps: int
    terminated_by: Termination


@dataclass
class ExecutionResult:
    """
    Final result of orchestrating a request.

    ``backend`` reports the backend that actually produced the answer, which
    is the fallback backend when fallback fired.
    """

    answer: str
    backend: str
    category: TaskCategory
    execution_time_ms: float = 0.0
    fell_back: bool = False
    steps: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "backend": self.backend,
            "category": self.category.value,
            "execution_time_ms": round(self.execution_time_ms, 2),
            "fell_back": self.fell_back,
            "steps": self.steps,
        }

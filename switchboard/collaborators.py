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
External collaborator interfaces.

Switchboard does not own persistence, credential encryption, retrieval or
the external workspace API. It reaches them through the small interfaces
below. In-memory implementations are provided for the CLI and tests.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from switchboard.types import ExecutionResult
from switchboard.utils.logger import logger


class CredentialStore(ABC):
    """Per-user service tokens (decrypted)."""

    @abstractmethod
    async def get_token(self, user_id: str, service: str) -> Optional[str]:
        pass


class WorkspaceWriter(ABC):
    """Writes items into the user's external workspace."""

    @abstractmethod
    async def add_item(self, user_id: str, destination: str, text: str) -> bool:
        pass


class RetrievalProvider(ABC):
    """Returns retrieved context for a query, empty string when nothing matched."""

    @abstractmethod
    async def retrieve(self, user_id: str, query: str) -> str:
        pass


class SessionIndex(ABC):
    """
    Persisted mapping from user to browser session id.

    The index may hold ids whose browser context no longer exists (e.g.
    after a service restart); the session manager probes and heals them.
    """

    @abstractmethod
    async def get(self, user_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def put(self, user_id: str, session_id: str) -> None:
        pass

    @abstractmethod
    async def delete(self, user_id: str, session_id: str) -> None:
        pass


class MetricsSink(ABC):
    """Receives one record per orchestrated request."""

    @abstractmethod
    def record(self, result: ExecutionResult, total_ms: float) -> None:
        pass


# ==================== In-memory implementations ====================

class InMemoryCredentialStore(CredentialStore):
    def __init__(self, tokens: Optional[Dict[Tuple[str, str], str]] = None) -> None:
        self._tokens: Dict[Tuple[str, str], str] = dict(tokens or {})

    def set_token(self, user_id: str, service: str, token: str) -> None:
        self._tokens[(user_id, service)] = token

    async def get_token(self, user_id: str, service: str) -> Optional[str]:
        return self._tokens.get((user_id, service))


class InMemoryWorkspaceWriter(WorkspaceWriter):
    """Collects items in a list, keyed by user."""

    def __init__(self) -> None:
        self.items: List[Tuple[str, str, str]] = []

    async def add_item(self, user_id: str, destination: str, text: str) -> bool:
        if not text or not text.strip():
            return False
        self.items.append((user_id, destination, text))
        logger.info(f"[WORKSPACE] Added item for user {user_id} to {destination}")
        return True


class StaticRetrievalProvider(RetrievalProvider):
    def __init__(self, context: str = "") -> None:
        self.context = context

    async def retrieve(self, user_id: str, query: str) -> str:
        return self.context


class InMemorySessionIndex(SessionIndex):
    def __init__(self) -> None:
        self._sessions: Dict[str, str] = {}

    async def get(self, user_id: str) -> Optional[str]:
        return self._sessions.get(user_id)

    async def put(self, user_id: str, session_id: str) -> None:
        self._sessions[user_id] = session_id

    async def delete(self, user_id: str, session_id: str) -> None:
        if self._sessions.get(user_id) == session_id:
            del self._sessions[user_id]

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions


class LoggingMetricsSink(MetricsSink):
    """Emits a single ``[METRICS]`` log line per request."""

    def record(self, result: ExecutionResult, total_ms: float) -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "category": result.category.value,
            "backend": result.backend,
            "fell_back": result.fell_back,
            "steps": result.steps,
            "execution_time_ms": round(result.execution_time_ms, 2),
            "total_time_ms": round(total_ms, 2),
            "response_length": len(result.answer),
        }
        logger.info(f"[METRICS] {json.dumps(payload)}", extra={"metrics": payload})

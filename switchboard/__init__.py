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
Switchboard - multi-backend LLM task orchestration.

Classifies a natural-language request, routes it to the model backend best
suited to it, and drives a tool-calling agent loop across a stateful
browser, an external workspace and per-user MCP tool servers.
"""

__version__ = "26.10.0"
__author__ = "Firefly Software Solutions Inc"
__license__ = "Apache-2.0"

from switchboard.agents import AgentLoop, Orchestrator, TaskClassifier
from switchboard.config import SwitchboardConfig, get_config, load_config_from_file
from switchboard.exceptions import (
    BackendError,
    BrowserError,
    ConfigurationError,
    OrchestrationError,
    SwitchboardError,
)
from switchboard.types import (
    BackendConfig,
    ChatTurn,
    ExecutionContext,
    ExecutionResult,
    Provider,
    TaskCategory,
    ToolResult,
    ToolSpec,
)

__all__ = [
    # Orchestration
    "AgentLoop",
    "Orchestrator",
    "TaskClassifier",
    # Configuration
    "SwitchboardConfig",
    "get_config",
    "load_config_from_file",
    # Errors
    "BackendError",
    "BrowserError",
    "ConfigurationError",
    "OrchestrationError",
    "SwitchboardError",
    # Types
    "BackendConfig",
    "ChatTurn",
    "ExecutionContext",
    "ExecutionResult",
    "Provider",
    "TaskCategory",
    "ToolResult",
    "ToolSpec",
]
